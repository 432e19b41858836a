"""mesh-schema - Runtime message payload validation for Mesh message catalogs."""

__version__ = "0.3.0"

from mesh_schema.core.catalog import SchemaCatalog
from mesh_schema.core.compiler import MessageValidator, ValidatorCompiler
from mesh_schema.core.errors import Constraint, ValidationError, ValidationResult
from mesh_schema.core.model import SchemaKind, SchemaNode, schema_from_dict
from mesh_schema.core.validator import validate, validate_json_schema
from mesh_schema.config.project import ValidatorConfig
from mesh_schema.generators.edge_case_gen import NegativeCase, generate_negative_cases
from mesh_schema.generators.example_gen import generate_example

__all__ = [
    "SchemaCatalog",
    "ValidatorCompiler",
    "MessageValidator",
    "Constraint",
    "ValidationError",
    "ValidationResult",
    "SchemaKind",
    "SchemaNode",
    "schema_from_dict",
    "validate",
    "validate_json_schema",
    "ValidatorConfig",
    "NegativeCase",
    "generate_negative_cases",
    "generate_example",
]
