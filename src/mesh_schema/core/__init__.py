"""Core validation components."""

from mesh_schema.core.errors import (
    CatalogError,
    Constraint,
    MeshSchemaError,
    ResolutionError,
    SchemaDefinitionError,
    SchemaDepthError,
    ValidationError,
    ValidationResult,
)
from mesh_schema.core.cache import ValidationContext, ValidatorCache
from mesh_schema.core.model import (
    Channel,
    Message,
    Operation,
    SchemaKind,
    SchemaNode,
    SecurityScheme,
    schema_from_dict,
)
from mesh_schema.core.validator import (
    validate,
    validate_channel_parameters,
    validate_json_schema,
    validate_security_requirements,
)
from mesh_schema.core.catalog import SchemaCatalog
from mesh_schema.core.compiler import MessageValidator, ValidatorCompiler
from mesh_schema.core.compat import BreakingChange, check_catalog_compatibility, check_compatibility

__all__ = [
    "CatalogError",
    "Constraint",
    "MeshSchemaError",
    "ResolutionError",
    "SchemaDefinitionError",
    "SchemaDepthError",
    "ValidationError",
    "ValidationResult",
    "ValidationContext",
    "ValidatorCache",
    "Channel",
    "Message",
    "Operation",
    "SchemaKind",
    "SchemaNode",
    "SecurityScheme",
    "schema_from_dict",
    "validate",
    "validate_channel_parameters",
    "validate_json_schema",
    "validate_security_requirements",
    "SchemaCatalog",
    "MessageValidator",
    "ValidatorCompiler",
    "BreakingChange",
    "check_catalog_compatibility",
    "check_compatibility",
]
