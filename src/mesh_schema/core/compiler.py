"""Validator compiler: reusable per-message validators and batch validation."""

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from mesh_schema.core.cache import ValidationContext, ValidatorCache
from mesh_schema.core.catalog import SchemaCatalog
from mesh_schema.core.errors import Constraint, ValidationError, ValidationResult
from mesh_schema.core.model import SchemaNode
from mesh_schema.core.validator import validate, validate_channel_parameters, validate_security_requirements


logger = logging.getLogger(__name__)

BatchResult = list[tuple[int, ValidationResult]]


class MessageValidator:
    """Callable validating payloads of one message type.

    Holds the already-resolved SchemaNode. When resolution failed it holds the
    resolution error instead and reports it on every call.
    """

    __slots__ = ("message_name", "schema", "context", "_failure")

    def __init__(
        self,
        message_name: str,
        schema: SchemaNode | None,
        context: ValidationContext | None = None,
        failure: tuple[Constraint, str] | None = None,
    ):
        self.message_name = message_name
        self.schema = schema
        self.context = context
        self._failure = failure

    @property
    def resolved(self) -> bool:
        return self._failure is None

    def __call__(self, payload: Any) -> ValidationResult:
        if self._failure is not None:
            constraint, message = self._failure
            return ValidationResult.failed([ValidationError(
                path=[],
                message=message,
                value=self.message_name,
                constraint=constraint,
            )])
        return validate(payload, self.schema, [], self.context)

    def __repr__(self) -> str:
        state = "resolved" if self.resolved else self._failure[0].value
        return f"<MessageValidator {self.message_name!r} {state}>"


class ValidatorCompiler:
    """Builds validators for the messages of a catalog.

    ``compile`` never raises for unknown or misconfigured messages; the
    returned validator reports NOT_FOUND / NO_SCHEMA when called, so a table
    of validators can be built up front.
    """

    def __init__(
        self,
        catalog: SchemaCatalog,
        context: ValidationContext | None = None,
        enable_cache: bool = True,
        max_workers: int = 1,
    ):
        self.catalog = catalog
        self.context = context
        self.max_workers = max_workers
        self._cache = ValidatorCache() if enable_cache else None

    @property
    def cache(self) -> ValidatorCache | None:
        return self._cache

    def compile(self, message_name: str) -> MessageValidator:
        """Return a validator for ``message_name``"""
        if self._cache is not None:
            cached = self._cache.get(message_name)
            if cached is not None:
                return cached

        validator = self._build(message_name)
        # Only resolved validators are cached; failures are cheap to rebuild
        if self._cache is not None and validator.resolved:
            validator = self._cache.setdefault(message_name, validator)
        return validator

    def compile_all(self, message_names: Iterable[str] | None = None) -> dict[str, MessageValidator]:
        """Validator table for the given names (default: every catalog message)"""
        names = list(self.catalog.messages) if message_names is None else list(message_names)
        return {name: self.compile(name) for name in names}

    def _build(self, message_name: str) -> MessageValidator:
        message = self.catalog.get_message(message_name)
        if message is None:
            logger.debug("message %r not found", message_name)
            return MessageValidator(
                message_name, None, self.context,
                failure=(Constraint.NOT_FOUND, f"Message '{message_name}' not found"),
            )

        schema = self.catalog.message_schema(message)
        if schema is None:
            logger.debug("message %r has no schema (payload %r)", message_name, message.payload)
            return MessageValidator(
                message_name, None, self.context,
                failure=(Constraint.NO_SCHEMA, f"No schema found for message '{message_name}'"),
            )

        logger.debug("compiled validator for %r", message_name)
        return MessageValidator(message_name, schema, self.context)

    # ------------------------------------------------------------------

    def validate_message(self, message_name: str, payload: Any) -> ValidationResult:
        return self.compile(message_name)(payload)

    def validate_batch(
        self,
        message_name: str,
        payloads: Sequence[Any],
        max_workers: int | None = None,
    ) -> BatchResult:
        """Validate each payload independently against one message type.

        Output index ``i`` always belongs to ``payloads[i]``. With more than one
        worker the payloads are spread over a thread pool.
        """
        validator = self.compile(message_name)
        payloads = list(payloads)
        results = self._run(validator, payloads, max_workers)
        return list(enumerate(results))

    def validate_messages(
        self,
        items: Sequence[tuple[str, Any]],
        max_workers: int | None = None,
    ) -> BatchResult:
        """Validate ``(message_name, payload)`` pairs of mixed message types"""
        table = self.compile_all({name for name, _ in items})
        calls = [(table[name], payload) for name, payload in items]
        results = self._run(lambda call: call[0](call[1]), calls, max_workers)
        return list(enumerate(results))

    def validate_operation_params(self, operation_name: str, params: Any) -> ValidationResult:
        """Check channel address parameters for an operation"""
        operation = self.catalog.get_operation(operation_name)
        if operation is None:
            return _not_found(f"Operation '{operation_name}' not found", operation_name)

        channel = self.catalog.get_channel(operation.channel)
        if channel is None:
            return _not_found(f"Channel '{operation.channel}' not found", operation.channel)

        return validate_channel_parameters(channel.effective_address, params)

    def validate_security_requirements(self, operation_name: str, auth_data: Any) -> ValidationResult:
        """Check that ``auth_data`` has an entry for every scheme the operation requires"""
        operation = self.catalog.get_operation(operation_name)
        if operation is None:
            return _not_found(f"Operation '{operation_name}' not found", operation_name)
        return validate_security_requirements(operation.security, self.catalog.security_schemes, auth_data)

    def _run(self, fn, items: list, max_workers: int | None) -> list[ValidationResult]:
        workers = self.max_workers if max_workers is None else max_workers
        if workers <= 1 or len(items) <= 1:
            return [fn(item) for item in items]
        with ThreadPoolExecutor(max_workers=min(workers, len(items))) as executor:
            return list(executor.map(fn, items))


def _not_found(message: str, value: Any) -> ValidationResult:
    return ValidationResult.failed([ValidationError(
        path=[],
        message=message,
        value=value,
        constraint=Constraint.NOT_FOUND,
    )])
