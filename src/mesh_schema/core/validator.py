"""Mesh Payload Validator

Recursive conformance check of a dynamic value against a SchemaNode.

Each node is checked in four phases whose errors are concatenated in this
order:

1. type        - runtime kind vs. schema kind (one TypeMismatch at most)
2. required    - object schemas only, and only when the value is a mapping
3. properties  - declared properties present in the value, in declaration order
4. constraints - kind-specific rules, only when the runtime kind matches

Malformed payloads are reported as errors, never raised. Anything raised from
inside the machinery (a broken schema, an invalid regex, a schema nested past
the depth limit) is converted at the entry point into a single INTERNAL error.
"""

import logging
import re
from collections.abc import Mapping, Sequence
from functools import lru_cache
from typing import Any

from mesh_schema.core.cache import DEFAULT_VALIDATION_CONTEXT, ValidationContext
from mesh_schema.core.errors import (
    Constraint,
    SchemaDepthError,
    ValidationError,
    ValidationResult,
)
from mesh_schema.core.model import (
    SchemaKind,
    SchemaNode,
    SecurityRequirement,
    conforms_to_kind,
    kind_of,
    schema_from_dict,
)


logger = logging.getLogger(__name__)

Path = list[str | int]

_CHANNEL_PARAM_RE = re.compile(r"\{([^}]+)\}")


def validate(
    value: Any,
    schema: SchemaNode,
    path: Path | None = None,
    context: ValidationContext | None = None,
) -> ValidationResult:
    """Validate ``value`` against ``schema``.

    Returns a ValidationResult; ``errors`` keeps phase order (type, required,
    properties, constraints) at every level of nesting.
    """
    base_path = list(path or [])
    ctx = context or DEFAULT_VALIDATION_CONTEXT
    try:
        errors = _validate_node(value, schema, base_path, ctx, 0)
    except SchemaDepthError as e:
        logger.warning("validation aborted: %s", e)
        return ValidationResult.failed([_internal_error(base_path, value, e)])
    except Exception as e:
        logger.exception("internal fault while validating at %s", base_path)
        return ValidationResult.failed([_internal_error(base_path, value, e)])
    return ValidationResult.failed(errors)


def validate_json_schema(
    value: Any,
    schema: Mapping[str, Any],
    definitions: Mapping[str, Any] | None = None,
    context: ValidationContext | None = None,
) -> ValidationResult:
    """Validate against a JSON-Schema-like dict instead of a SchemaNode.

    The dict is converted with schema_from_dict; a schema that cannot be
    converted yields a single INTERNAL error.
    """
    try:
        node = schema_from_dict(schema, definitions)
    except Exception as e:
        logger.warning("cannot build schema for validation: %s", e)
        return ValidationResult.failed([_internal_error([], value, e)])
    return validate(value, node, [], context)


def validate_channel_parameters(address: str, params: Any) -> ValidationResult:
    """Check that every ``{name}`` placeholder of a channel address has a value"""
    if not isinstance(params, Mapping):
        return ValidationResult.failed([ValidationError(
            path=[],
            message=f"Expected object, got {kind_of(params)}",
            value=params,
            constraint=Constraint.TYPE_MISMATCH,
        )])

    errors = []
    for name in channel_parameter_names(address):
        if not _has_key(params, name):
            errors.append(ValidationError(
                path=[name],
                message=f"Required parameter '{name}' is missing",
                value=params,
                constraint=Constraint.REQUIRED,
            ))
    return ValidationResult.failed(errors)


def channel_parameter_names(address: str) -> list[str]:
    """Placeholder names of a channel address, in order of appearance"""
    return _CHANNEL_PARAM_RE.findall(address or "")


def validate_security_requirements(
    requirements: Sequence[SecurityRequirement],
    schemes: Mapping[str, Any],
    auth_data: Any,
) -> ValidationResult:
    """Check that auth data covers every scheme an operation requires.

    Each scheme is reported at ``[scheme]``: NOT_FOUND when ``schemes`` does
    not define it, MISSING_AUTH when ``auth_data`` has no entry for it. Scopes
    are carried but not checked.
    """
    if not isinstance(auth_data, Mapping):
        return ValidationResult.failed([ValidationError(
            path=[],
            message=f"Expected object, got {kind_of(auth_data)}",
            value=auth_data,
            constraint=Constraint.TYPE_MISMATCH,
        )])

    errors = []
    for requirement in requirements:
        for scheme_name, _scopes in requirement:
            if scheme_name not in schemes:
                errors.append(ValidationError(
                    path=[scheme_name],
                    message=f"Security scheme '{scheme_name}' not found",
                    value=scheme_name,
                    constraint=Constraint.NOT_FOUND,
                ))
            elif not _has_key(auth_data, scheme_name):
                errors.append(ValidationError(
                    path=[scheme_name],
                    message=f"Authentication data for '{scheme_name}' not provided",
                    value=auth_data,
                    constraint=Constraint.MISSING_AUTH,
                ))
    return ValidationResult.failed(errors)


# =========================================================================
# Recursive engine
# =========================================================================

def _validate_node(
    value: Any, schema: SchemaNode, path: Path, ctx: ValidationContext, depth: int
) -> list[ValidationError]:
    if depth > ctx.max_depth:
        raise SchemaDepthError(ctx.max_depth, path)

    errors: list[ValidationError] = []
    kind = schema.kind
    kind_matches = conforms_to_kind(value, kind)

    # 1. Type
    if not kind_matches:
        errors.append(ValidationError(
            path=list(path),
            message=f"Expected {kind.value}, got {kind_of(value)}",
            value=value,
            constraint=Constraint.TYPE_MISMATCH,
        ))

    if kind is SchemaKind.OBJECT and isinstance(value, Mapping):
        # 2. Required
        errors.extend(_check_required(value, schema, path))
        # 3. Properties
        errors.extend(_check_properties(value, schema, path, ctx, depth))

    # 4. Constraints
    if kind_matches:
        if kind is SchemaKind.STRING:
            errors.extend(_check_string(value, schema, path, ctx))
        elif kind in (SchemaKind.INTEGER, SchemaKind.NUMBER):
            errors.extend(_check_number(value, schema, path))
        elif kind is SchemaKind.ARRAY:
            errors.extend(_check_array(value, schema, path, ctx, depth))

        if kind not in (SchemaKind.ARRAY, SchemaKind.OBJECT):
            errors.extend(_check_literals(value, schema, path))

    return errors


def _check_required(value: Mapping, schema: SchemaNode, path: Path) -> list[ValidationError]:
    errors = []
    for name in schema.required:
        if not _has_key(value, name):
            errors.append(ValidationError(
                path=path + [name],
                message=f"Required field '{name}' is missing",
                value=value,
                constraint=Constraint.REQUIRED,
            ))
    return errors


def _check_properties(
    value: Mapping, schema: SchemaNode, path: Path, ctx: ValidationContext, depth: int
) -> list[ValidationError]:
    errors = []
    for name, prop_schema in schema.properties:
        prop_value = _lookup(value, name)
        # Absent (or null) properties are the required phase's concern
        if prop_value is None:
            continue
        errors.extend(_validate_node(prop_value, prop_schema, path + [name], ctx, depth + 1))
    return errors


def _check_string(value: str, schema: SchemaNode, path: Path, ctx: ValidationContext) -> list[ValidationError]:
    errors = []
    length = len(value)

    if schema.min_length is not None and length < schema.min_length:
        errors.append(ValidationError(
            path=list(path),
            message=f"String must be at least {schema.min_length} characters long",
            value=value,
            constraint=Constraint.MIN_LENGTH,
        ))

    if schema.max_length is not None and length > schema.max_length:
        errors.append(ValidationError(
            path=list(path),
            message=f"String must be at most {schema.max_length} characters long",
            value=value,
            constraint=Constraint.MAX_LENGTH,
        ))

    if schema.pattern is not None:
        regex = _compile_pattern(schema.pattern)
        matcher = regex.fullmatch if ctx.pattern_mode == "fullmatch" else regex.search
        if matcher(value) is None:
            errors.append(ValidationError(
                path=list(path),
                message=f"String does not match required pattern {schema.pattern}",
                value=value,
                constraint=Constraint.PATTERN,
            ))

    return errors


def _check_number(value: int | float, schema: SchemaNode, path: Path) -> list[ValidationError]:
    errors = []
    if schema.minimum is not None and value < schema.minimum:
        errors.append(ValidationError(
            path=list(path),
            message=f"Number must be at least {schema.minimum}",
            value=value,
            constraint=Constraint.MINIMUM,
        ))
    if schema.maximum is not None and value > schema.maximum:
        errors.append(ValidationError(
            path=list(path),
            message=f"Number must be at most {schema.maximum}",
            value=value,
            constraint=Constraint.MAXIMUM,
        ))
    return errors


def _check_array(
    value: list | tuple, schema: SchemaNode, path: Path, ctx: ValidationContext, depth: int
) -> list[ValidationError]:
    errors = []
    count = len(value)

    if schema.min_items is not None and count < schema.min_items:
        errors.append(ValidationError(
            path=list(path),
            message=f"Array must have at least {schema.min_items} items",
            value=value,
            constraint=Constraint.MIN_ITEMS,
        ))
    if schema.max_items is not None and count > schema.max_items:
        errors.append(ValidationError(
            path=list(path),
            message=f"Array must have at most {schema.max_items} items",
            value=value,
            constraint=Constraint.MAX_ITEMS,
        ))

    if schema.items is not None:
        for index, item in enumerate(value):
            errors.extend(_validate_node(item, schema.items, path + [index], ctx, depth + 1))

    return errors


def _check_literals(value: Any, schema: SchemaNode, path: Path) -> list[ValidationError]:
    """enum, then const"""
    errors = []
    if schema.enum is not None and not any(same_literal(value, option) for option in schema.enum):
        errors.append(ValidationError(
            path=list(path),
            message=f"Value must be one of: {', '.join(str(v) for v in schema.enum)}",
            value=value,
            constraint=Constraint.ENUM,
        ))
    if schema.has_const and not same_literal(value, schema.const):
        errors.append(ValidationError(
            path=list(path),
            message=f"Value must be {schema.const!r}",
            value=value,
            constraint=Constraint.ENUM,
        ))
    return errors


# =========================================================================
# Helpers
# =========================================================================

def same_literal(value: Any, literal: Any) -> bool:
    """Equality that keeps booleans apart from 0/1"""
    if isinstance(value, bool) or isinstance(literal, bool):
        return isinstance(value, bool) and isinstance(literal, bool) and value is literal
    return value == literal


def _has_key(mapping: Mapping, name: Any) -> bool:
    if name in mapping:
        return True
    return not isinstance(name, str) and str(name) in mapping


def _lookup(mapping: Mapping, name: Any) -> Any:
    found = mapping.get(name)
    if found is None and not isinstance(name, str):
        found = mapping.get(str(name))
    return found


@lru_cache(maxsize=512)
def _compile_pattern(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def _internal_error(path: Path, value: Any, exc: BaseException) -> ValidationError:
    return ValidationError(
        path=list(path),
        message=f"Validation error: {exc}",
        value=value,
        constraint=Constraint.INTERNAL,
    )
