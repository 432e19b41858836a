"""Edge Case Generator Module

Generates counter-examples (payloads that must fail validation) from schema
nodes. Every case names the constraint it is meant to trip.
"""

from dataclasses import dataclass
from typing import Any

from mesh_schema.core.catalog import SchemaCatalog
from mesh_schema.core.errors import Constraint
from mesh_schema.core.model import SchemaKind, SchemaNode, conforms_to_kind
from mesh_schema.core.validator import validate
from mesh_schema.generators.example_gen import DEFAULT_SEED, ExampleGenerator


@dataclass
class NegativeCase:
    """Represents a single counter-example"""
    label: str
    value: Any
    constraint: Constraint  # rule the value is expected to violate
    description: str = ""
    category: str = "type"  # "type", "required", "boundary", "format", "enum"

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "value": self.value,
            "constraint": self.constraint.value,
            "description": self.description,
            "category": self.category,
        }


INVALID_PATTERN_SAMPLE = "!@#$%^&*()"
INVALID_ENUM_SAMPLE = "__INVALID_ENUM_VALUE__"

# (label, value, description) - kept only when the value's kind does not
# conform to the schema kind
_WRONG_KIND_CASES: list[tuple[str, Any, str]] = [
    ("wrong_type_string", "string_instead_of_object", "String where another kind is expected"),
    ("wrong_type_number", 123, "Number where another kind is expected"),
    ("wrong_type_array", [], "Empty list where another kind is expected"),
    ("null_value", None, "Null where a value is expected"),
]


def generate_negative_cases(
    schema: SchemaNode,
    include_boundaries: bool = False,
    seed: int | None = DEFAULT_SEED,
) -> list[NegativeCase]:
    """
    Generate counter-examples for a schema.

    Args:
        schema: Schema the values must violate
        include_boundaries: Also emit bound, pattern, enum and item-count
            violations beyond the basic kind/required/length cases
        seed: Random source seed for generated item values

    Returns:
        List of NegativeCase instances, each failing validation with its
        ``constraint``
    """
    cases: list[NegativeCase] = []

    # Wrong kind
    for label, value, description in _WRONG_KIND_CASES:
        if not conforms_to_kind(value, schema.kind):
            cases.append(NegativeCase(
                label=label,
                value=value,
                constraint=Constraint.TYPE_MISMATCH,
                description=description,
                category="type",
            ))

    # Missing required fields
    if schema.kind is SchemaKind.OBJECT and schema.required:
        cases.append(NegativeCase(
            label="empty_object",
            value={},
            constraint=Constraint.REQUIRED,
            description=f"Empty object (missing {', '.join(schema.required)})",
            category="required",
        ))
        extra_key = "unknown_field"
        while extra_key in schema.required:
            extra_key = f"_{extra_key}"
        cases.append(NegativeCase(
            label="extra_fields",
            value={extra_key: "value"},
            constraint=Constraint.REQUIRED,
            description="Only an undeclared field",
            category="required",
        ))

    # String length tests
    if schema.kind is SchemaKind.STRING:
        if schema.min_length is not None and schema.min_length > 0:
            cases.append(NegativeCase(
                label="too_short",
                value="x" * (schema.min_length - 1),
                constraint=Constraint.MIN_LENGTH,
                description=f"Below min length ({schema.min_length - 1})",
                category="boundary",
            ))
        if schema.max_length is not None:
            cases.append(NegativeCase(
                label="too_long",
                value="x" * (schema.max_length + 1),
                constraint=Constraint.MAX_LENGTH,
                description=f"Above max length ({schema.max_length + 1})",
                category="boundary",
            ))

    if include_boundaries:
        boundary_cases = _boundary_cases(schema, ExampleGenerator(seed=seed))
        # Keep only values that really trip the targeted rule
        for case in boundary_cases:
            result = validate(case.value, schema)
            if case.constraint in result.constraints():
                cases.append(case)

    return cases


def _boundary_cases(schema: SchemaNode, generator: ExampleGenerator) -> list[NegativeCase]:
    cases: list[NegativeCase] = []
    kind = schema.kind

    # Numeric boundary tests
    if kind in (SchemaKind.INTEGER, SchemaKind.NUMBER):
        if schema.minimum is not None:
            # For integers, below_min is min - 1; for floats a small delta
            if kind is SchemaKind.INTEGER:
                below_val = int(schema.minimum) - 1
            else:
                below_val = schema.minimum - 0.01
            cases.append(NegativeCase(
                label="below_min",
                value=below_val,
                constraint=Constraint.MINIMUM,
                description=f"Below minimum ({below_val})",
                category="boundary",
            ))
        if schema.maximum is not None:
            if kind is SchemaKind.INTEGER:
                above_val = int(schema.maximum) + 1
            else:
                above_val = schema.maximum + 0.01
            cases.append(NegativeCase(
                label="above_max",
                value=above_val,
                constraint=Constraint.MAXIMUM,
                description=f"Above maximum ({above_val})",
                category="boundary",
            ))

    # Pattern tests
    if kind is SchemaKind.STRING and schema.pattern is not None:
        cases.append(NegativeCase(
            label="invalid_pattern",
            value=INVALID_PATTERN_SAMPLE,
            constraint=Constraint.PATTERN,
            description=f"Violates pattern {schema.pattern}",
            category="format",
        ))

    # Enum tests
    if schema.enum and kind is not SchemaKind.BOOLEAN:
        invalid = INVALID_ENUM_SAMPLE if kind is SchemaKind.STRING else _outside_numeric_enum(schema)
        if invalid is not None:
            cases.append(NegativeCase(
                label="invalid_enum",
                value=invalid,
                constraint=Constraint.ENUM,
                description="Invalid enum value",
                category="enum",
            ))

    # Item count tests
    if kind is SchemaKind.ARRAY:
        item = generator.generate(schema.items) if schema.items is not None else "example_item"
        if schema.min_items is not None and schema.min_items > 0:
            cases.append(NegativeCase(
                label="too_few_items",
                value=[item] * (schema.min_items - 1),
                constraint=Constraint.MIN_ITEMS,
                description=f"Below min items ({schema.min_items - 1})",
                category="boundary",
            ))
        if schema.max_items is not None:
            cases.append(NegativeCase(
                label="too_many_items",
                value=[item] * (schema.max_items + 1),
                constraint=Constraint.MAX_ITEMS,
                description=f"Above max items ({schema.max_items + 1})",
                category="boundary",
            ))

    return cases


def _outside_numeric_enum(schema: SchemaNode) -> int | None:
    numeric = [v for v in schema.enum if isinstance(v, (int, float)) and not isinstance(v, bool)]
    if not numeric:
        return None
    return int(max(numeric)) + 1


def generate_negative_examples(catalog: SchemaCatalog, message_name: str,
                               include_boundaries: bool = False) -> list[NegativeCase]:
    """Counter-examples for a catalog message; empty when it cannot be resolved"""
    schema = catalog.resolve(message_name)
    if schema is None:
        return []
    return generate_negative_cases(schema, include_boundaries=include_boundaries)
