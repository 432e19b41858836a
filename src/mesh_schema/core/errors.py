"""Error types and validation result for the Mesh schema validator."""

from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import Any


class Constraint(str, Enum):
    """Rule a value can violate. Values are the wire tags."""

    TYPE_MISMATCH = "type_mismatch"
    REQUIRED = "required"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    PATTERN = "pattern"
    ENUM = "enum"
    MINIMUM = "minimum"
    MAXIMUM = "maximum"
    MIN_ITEMS = "min_items"
    MAX_ITEMS = "max_items"
    NOT_FOUND = "not_found"
    NO_SCHEMA = "no_schema"
    MISSING_AUTH = "missing_auth"
    INTERNAL = "internal"


@dataclass
class ValidationError:
    """A single path-addressed conformance violation"""

    path: list[str | int]  # [] for root-level errors
    message: str
    value: Any = None  # offending value, echoed for diagnostics
    constraint: Constraint = Constraint.INTERNAL

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "path": list(self.path),
            "message": self.message,
            "value": self.value,
            "constraint": self.constraint.value,
        }


@dataclass
class ValidationResult:
    """Result of a validation operation."""
    valid: bool
    errors: list[ValidationError] = dataclass_field(default_factory=list)

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True, errors=[])

    @classmethod
    def failed(cls, errors: list[ValidationError]) -> "ValidationResult":
        return cls(valid=not errors, errors=list(errors))

    def __bool__(self) -> bool:
        return self.valid

    def constraints(self) -> list[Constraint]:
        """Constraint tags of all errors, in report order"""
        return [e.constraint for e in self.errors]

    def errors_at(self, path: list[str | int]) -> list[ValidationError]:
        """Errors reported at exactly ``path``"""
        return [e for e in self.errors if list(e.path) == list(path)]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
        }


class MeshSchemaError(Exception):
    """Base class for configuration and programming errors raised by the package"""


class SchemaDefinitionError(MeshSchemaError):
    """A schema description could not be turned into a SchemaNode"""

    def __init__(self, message: str, path: list[str | int] | None = None):
        self.path = list(path or [])
        location = "/".join(str(p) for p in self.path)
        super().__init__(f"{location}: {message}" if location else message)


class SchemaDepthError(MeshSchemaError):
    """Schema nesting exceeded the configured depth limit (usually a cyclic graph)"""

    def __init__(self, max_depth: int, path: list[str | int]):
        self.max_depth = max_depth
        self.path = list(path)
        super().__init__(
            f"Schema nesting exceeds max depth {max_depth} at /{'/'.join(str(p) for p in path)}"
        )


class CatalogError(MeshSchemaError):
    """A catalog document is malformed"""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = list(errors or [])
        if self.errors:
            message = f"{message}: " + "; ".join(self.errors)
        super().__init__(message)


class ResolutionError(MeshSchemaError, LookupError):
    """A message or its payload schema could not be resolved"""

    def __init__(self, message: str, constraint: Constraint):
        self.constraint = constraint
        super().__init__(message)
