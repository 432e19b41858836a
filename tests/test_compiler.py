"""
Validator Compiler Test Suite

Tests for compiler.py:
- compile() with resolved, unknown and misconfigured messages
- validator caching
- validate_batch() ordering, independence and parallel execution
- validate_messages(), validate_operation_params() and validate_security_requirements()
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from mesh_schema.core.cache import ValidationContext, ValidatorCache
from mesh_schema.core.catalog import SchemaCatalog
from mesh_schema.core.compiler import MessageValidator, ValidatorCompiler
from mesh_schema.core.errors import Constraint
from mesh_schema.core.model import SchemaNode


@pytest.fixture
def catalog():
    """Catalog with direct, referenced and broken messages"""
    cat = SchemaCatalog()
    cat.add_schema("User", SchemaNode.object(
        properties=[
            ("id", SchemaNode.string(min_length=1)),
            ("age", SchemaNode.integer(minimum=0)),
        ],
        required=["id"],
    ))
    cat.add_schema("Ping", {"type": "object", "properties": {"seq": {"type": "integer"}}})
    cat.add_message("userCreated", "#/components/schemas/User")
    cat.add_message("userUpdated", "User")
    cat.add_message("ping", {"$ref": "#/components/schemas/Ping"})
    cat.add_message("broken", "#/components/schemas/Missing")
    cat.add_channel("user/{user_id}/events")
    cat.add_channel("orders", address="shop/{shop_id}/orders/{order_id}")
    cat.add_operation("publishUser", channel="user/{user_id}/events", messages=["userCreated"])
    cat.add_operation("listOrders", channel="orders", action="receive")
    cat.add_operation("orphan", channel="nowhere")
    cat.add_security_scheme("apiKey", "httpApiKey")
    cat.add_security_scheme("userPassword", "userPassword")
    cat.add_operation(
        "securedPublish",
        channel="user/{user_id}/events",
        messages=["userCreated"],
        security=[{"apiKey": []}, "userPassword"],
    )
    cat.add_operation("unknownScheme", channel="orders", security=[{"oauth": ["write"]}])
    return cat


@pytest.fixture
def compiler(catalog):
    return ValidatorCompiler(catalog)


class TestCompile:
    """compile() never fails at setup time"""

    def test_reference_payload(self, compiler):
        validator = compiler.compile("userCreated")
        assert isinstance(validator, MessageValidator)
        assert validator.resolved
        assert validator({"id": "u1"}).valid

    def test_bare_name_payload(self, compiler):
        result = compiler.validate_message("userUpdated", {"age": -1})
        assert [(e.path, e.constraint) for e in result.errors] == [
            (["id"], Constraint.REQUIRED),
            (["age"], Constraint.MINIMUM),
        ]

    def test_ref_mapping_payload(self, compiler):
        assert compiler.validate_message("ping", {"seq": 1}).valid
        assert not compiler.validate_message("ping", {"seq": "1"}).valid

    def test_unknown_message(self, compiler):
        validator = compiler.compile("ghost")
        assert not validator.resolved
        result = validator({"anything": True})
        assert [(e.path, e.constraint) for e in result.errors] == [([], Constraint.NOT_FOUND)]
        assert result.errors[0].value == "ghost"
        assert "ghost" in result.errors[0].message

    def test_misconfigured_message(self, compiler):
        result = compiler.validate_message("broken", {})
        assert [(e.path, e.constraint) for e in result.errors] == [([], Constraint.NO_SCHEMA)]

    def test_failure_reported_on_every_call(self, compiler):
        validator = compiler.compile("ghost")
        first = validator(1)
        second = validator(2)
        assert first == second
        assert first.errors is not second.errors

    def test_validator_holds_resolved_schema(self, compiler, catalog):
        validator = compiler.compile("userCreated")
        assert validator.schema is catalog.schemas["User"]
        # Later catalog changes do not affect an already compiled validator
        catalog.schemas["User"] = SchemaNode.string()
        assert validator({"id": "u1"}).valid

    def test_compile_all(self, compiler, catalog):
        table = compiler.compile_all()
        assert set(table) == set(catalog.messages)
        assert table["userCreated"].resolved
        assert not table["broken"].resolved

    def test_context_is_applied(self, catalog):
        deep = SchemaNode.array(SchemaNode.array(SchemaNode.array(SchemaNode.integer())))
        catalog.add_schema("Deep", deep)
        catalog.add_message("deep", "Deep")
        compiler = ValidatorCompiler(catalog, context=ValidationContext(max_depth=2))
        result = compiler.validate_message("deep", [[[1]]])
        assert result.constraints() == [Constraint.INTERNAL]


class TestValidatorCache:
    """Resolved validators are built once per message"""

    def test_same_validator_returned(self, compiler):
        first = compiler.compile("userCreated")
        second = compiler.compile("userCreated")
        assert first is second
        assert compiler.cache.hits == 1
        assert "userCreated" in compiler.cache

    def test_failures_not_cached(self, compiler):
        compiler.compile("ghost")
        assert "ghost" not in compiler.cache
        assert len(compiler.cache) == 0

    def test_cache_disabled(self, catalog):
        compiler = ValidatorCompiler(catalog, enable_cache=False)
        assert compiler.cache is None
        assert compiler.compile("userCreated") is not compiler.compile("userCreated")

    def test_stats(self, compiler):
        compiler.compile("userCreated")
        compiler.compile("userCreated")
        stats = compiler.cache.stats()
        assert stats["entries"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5

    def test_counters_exact_under_threads(self):
        cache = ValidatorCache()
        cache.setdefault("userCreated", object())

        def read(_):
            for _ in range(2000):
                cache.get("userCreated")
                cache.get("ghost")

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(read, range(8)))
        assert cache.stats()["hits"] == 16000
        assert cache.stats()["misses"] == 16000


class TestValidateBatch:
    """Order, length and independence of batch results"""

    def test_empty_batch(self, compiler):
        assert compiler.validate_batch("userCreated", []) == []

    def test_index_correspondence(self, compiler):
        payloads = [{"id": "a"}, {}, {"id": ""}, "nope", {"id": "b", "age": 3}]
        results = compiler.validate_batch("userCreated", payloads)
        assert [i for i, _ in results] == [0, 1, 2, 3, 4]
        assert [r.valid for _, r in results] == [True, False, False, False, True]
        assert results[1][1].constraints() == [Constraint.REQUIRED]
        assert results[2][1].constraints() == [Constraint.MIN_LENGTH]
        assert results[3][1].constraints() == [Constraint.TYPE_MISMATCH]

    def test_unknown_message_batch(self, compiler):
        results = compiler.validate_batch("ghost", [{}, {}])
        assert len(results) == 2
        assert all(r.constraints() == [Constraint.NOT_FOUND] for _, r in results)

    def test_parallel_matches_sequential(self, compiler):
        payloads = [{"id": str(i), "age": i - 50} for i in range(200)]
        sequential = compiler.validate_batch("userCreated", payloads)
        parallel = compiler.validate_batch("userCreated", payloads, max_workers=8)
        assert parallel == sequential
        assert sum(1 for _, r in parallel if not r.valid) == 50

    def test_compiler_default_workers(self, catalog):
        compiler = ValidatorCompiler(catalog, max_workers=4)
        results = compiler.validate_batch("userCreated", [{"id": "x"}, {}, {"id": "y"}])
        assert [r.valid for _, r in results] == [True, False, True]

    def test_accepts_any_sequence(self, compiler):
        results = compiler.validate_batch("userCreated", ({"id": str(i)} for i in range(3)))
        assert len(results) == 3


class TestValidateMessages:
    """Mixed message types in one call"""

    def test_mixed(self, compiler):
        items = [
            ("userCreated", {"id": "u"}),
            ("ping", {"seq": "x"}),
            ("ghost", {}),
            ("broken", {}),
        ]
        results = compiler.validate_messages(items, max_workers=2)
        assert [i for i, _ in results] == [0, 1, 2, 3]
        assert results[0][1].valid
        assert results[1][1].constraints() == [Constraint.TYPE_MISMATCH]
        assert results[2][1].constraints() == [Constraint.NOT_FOUND]
        assert results[3][1].constraints() == [Constraint.NO_SCHEMA]


class TestOperationParams:
    """Channel parameters of an operation"""

    def test_parameters_present(self, compiler):
        assert compiler.validate_operation_params("publishUser", {"user_id": "u1"}).valid

    def test_missing_parameter(self, compiler):
        result = compiler.validate_operation_params("publishUser", {})
        assert [(e.path, e.constraint) for e in result.errors] == [(["user_id"], Constraint.REQUIRED)]

    def test_channel_address_used(self, compiler):
        result = compiler.validate_operation_params("listOrders", {"shop_id": 1})
        assert [e.path for e in result.errors] == [["order_id"]]

    def test_unknown_operation(self, compiler):
        result = compiler.validate_operation_params("nope", {})
        assert result.constraints() == [Constraint.NOT_FOUND]

    def test_unknown_channel(self, compiler):
        result = compiler.validate_operation_params("orphan", {})
        assert result.constraints() == [Constraint.NOT_FOUND]
        assert result.errors[0].value == "nowhere"


class TestSecurityRequirements:
    """Authentication data of an operation"""

    def test_all_schemes_provided(self, compiler):
        auth = {"apiKey": "k-123", "userPassword": {"user": "u", "password": "p"}}
        assert compiler.validate_security_requirements("securedPublish", auth).valid

    def test_missing_scheme(self, compiler):
        result = compiler.validate_security_requirements("securedPublish", {"apiKey": "k-123"})
        assert [(e.path, e.constraint) for e in result.errors] == [(["userPassword"], Constraint.MISSING_AUTH)]
        assert result.errors[0].to_dict()["constraint"] == "missing_auth"

    def test_every_missing_scheme_reported(self, compiler):
        result = compiler.validate_security_requirements("securedPublish", {})
        assert [e.path for e in result.errors] == [["apiKey"], ["userPassword"]]
        assert result.constraints() == [Constraint.MISSING_AUTH, Constraint.MISSING_AUTH]

    def test_unsecured_operation(self, compiler):
        assert compiler.validate_security_requirements("publishUser", {}).valid

    def test_unknown_operation(self, compiler):
        result = compiler.validate_security_requirements("nope", {})
        assert [(e.path, e.constraint) for e in result.errors] == [([], Constraint.NOT_FOUND)]

    def test_unknown_scheme(self, compiler):
        result = compiler.validate_security_requirements("unknownScheme", {"oauth": "token"})
        assert [(e.path, e.constraint) for e in result.errors] == [(["oauth"], Constraint.NOT_FOUND)]

    def test_auth_data_not_a_mapping(self, compiler):
        result = compiler.validate_security_requirements("securedPublish", "k-123")
        assert result.constraints() == [Constraint.TYPE_MISMATCH]
