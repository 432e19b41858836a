"""Schema model for message payload validation.

A schema graph is built once (by a catalog document, a JSON-Schema-like dict
or directly in code) and then shared read-only between any number of
validators. Nodes are frozen; properties keep their declaration order because
it decides the order in which errors are reported.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mesh_schema.core.errors import SchemaDefinitionError


SCHEMA_REF_PREFIX = "#/components/schemas/"


class SchemaKind(str, Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


SCALAR_KINDS = frozenset({
    SchemaKind.NULL, SchemaKind.BOOLEAN, SchemaKind.INTEGER, SchemaKind.NUMBER, SchemaKind.STRING,
})


class _Unset:
    """Marker for an absent ``const`` (``None`` is a legal constant)"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


def kind_of(value: Any) -> str:
    """Runtime kind name of a dynamic value"""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return "unknown"


def conforms_to_kind(value: Any, kind: SchemaKind) -> bool:
    """True when the value's runtime kind satisfies ``kind``.

    Integers are numbers; booleans are never integers or numbers.
    """
    actual = kind_of(value)
    if kind is SchemaKind.NUMBER:
        return actual in ("integer", "number")
    return actual == kind.value


@dataclass(frozen=True)
class SchemaNode:
    """A single node of a schema graph.

    Only the constraint fields relevant to ``kind`` are consulted; the others
    are carried but ignored.
    """

    kind: SchemaKind
    name: str | None = None
    description: str | None = None

    # Common
    enum: tuple | None = None
    const: Any = UNSET

    # String
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    format: str | None = None  # generator hint only

    # Integer / Number (inclusive)
    minimum: int | float | None = None
    maximum: int | float | None = None

    # Array
    items: "SchemaNode | None" = None
    min_items: int | None = None
    max_items: int | None = None

    # Object
    properties: tuple[tuple[str, "SchemaNode"], ...] = field(default_factory=tuple)
    required: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        try:
            kind = SchemaKind(self.kind)
        except ValueError:
            raise SchemaDefinitionError(f"Unknown schema kind '{self.kind}'") from None
        object.__setattr__(self, "kind", kind)

        if self.enum is not None:
            object.__setattr__(self, "enum", tuple(self.enum))

        if isinstance(self.properties, Mapping):
            props = tuple(self.properties.items())
        else:
            props = tuple(tuple(p) for p in self.properties)
        for entry in props:
            if len(entry) != 2 or not isinstance(entry[0], str) or not isinstance(entry[1], SchemaNode):
                raise SchemaDefinitionError(f"Invalid property entry {entry!r}")
        object.__setattr__(self, "properties", props)

        if isinstance(self.required, str):
            raise SchemaDefinitionError("'required' must be a sequence of names, not a string")
        object.__setattr__(self, "required", tuple(self.required))

        if self.items is not None and not isinstance(self.items, SchemaNode):
            raise SchemaDefinitionError(f"'items' must be a SchemaNode, got {type(self.items).__name__}")

        for attr in ("min_length", "max_length", "min_items", "max_items"):
            bound = getattr(self, attr)
            if bound is not None and (isinstance(bound, bool) or not isinstance(bound, int) or bound < 0):
                raise SchemaDefinitionError(f"'{attr}' must be a non-negative integer, got {bound!r}")

    # ------------------------------------------------------------------
    # Convenience constructors
    # ------------------------------------------------------------------

    @classmethod
    def null(cls, **kwargs) -> "SchemaNode":
        return cls(SchemaKind.NULL, **kwargs)

    @classmethod
    def boolean(cls, **kwargs) -> "SchemaNode":
        return cls(SchemaKind.BOOLEAN, **kwargs)

    @classmethod
    def integer(cls, **kwargs) -> "SchemaNode":
        return cls(SchemaKind.INTEGER, **kwargs)

    @classmethod
    def number(cls, **kwargs) -> "SchemaNode":
        return cls(SchemaKind.NUMBER, **kwargs)

    @classmethod
    def string(cls, **kwargs) -> "SchemaNode":
        return cls(SchemaKind.STRING, **kwargs)

    @classmethod
    def array(cls, items: "SchemaNode | None" = None, **kwargs) -> "SchemaNode":
        return cls(SchemaKind.ARRAY, items=items, **kwargs)

    @classmethod
    def object(cls, properties=(), required=(), **kwargs) -> "SchemaNode":
        return cls(SchemaKind.OBJECT, properties=properties, required=required, **kwargs)

    # ------------------------------------------------------------------

    @property
    def has_const(self) -> bool:
        return self.const is not UNSET

    def property_names(self) -> list[str]:
        return [name for name, _ in self.properties]

    def property_schema(self, name: str) -> "SchemaNode | None":
        for prop_name, prop_schema in self.properties:
            if prop_name == name:
                return prop_schema
        return None


@dataclass(frozen=True)
class Message:
    """A named message and the schema reference of its payload"""
    name: str
    payload: str | None  # bare schema name or "#/components/schemas/<name>"
    description: str | None = None

    @property
    def schema_name(self) -> str | None:
        return schema_name_from_ref(self.payload)


@dataclass(frozen=True)
class Channel:
    """A channel address, possibly parameterized: ``user/{user_id}/events``"""
    name: str
    address: str | None = None

    @property
    def effective_address(self) -> str:
        return self.address or self.name


@dataclass(frozen=True)
class SecurityScheme:
    """A named authentication scheme (``userPassword``, ``apiKey``, ``oauth2`` ...)"""
    name: str
    type: str
    description: str | None = None


# One requirement: (scheme name, required scopes) pairs that must all be met
SecurityRequirement = tuple[tuple[str, tuple[str, ...]], ...]


@dataclass(frozen=True)
class Operation:
    name: str
    channel: str
    action: str = "send"
    messages: tuple[str, ...] = ()
    security: tuple[SecurityRequirement, ...] = ()

    def security_scheme_names(self) -> list[str]:
        """Scheme names across all requirements, first occurrence order"""
        names: list[str] = []
        for requirement in self.security:
            for scheme_name, _ in requirement:
                if scheme_name not in names:
                    names.append(scheme_name)
        return names


def security_requirements_from(raw: Any) -> tuple[SecurityRequirement, ...]:
    """Normalize ``[{"apiKey": []}, "userPassword", ...]`` into requirement tuples"""
    if raw is None:
        return ()
    if isinstance(raw, (str, Mapping)):
        raw = [raw]
    requirements = []
    for entry in raw:
        if isinstance(entry, str):
            requirements.append(((entry, ()),))
        elif isinstance(entry, Mapping):
            requirements.append(tuple((str(name), tuple(scopes or ())) for name, scopes in entry.items()))
        elif isinstance(entry, tuple) and all(isinstance(pair, tuple) for pair in entry):
            requirements.append(tuple((str(name), tuple(scopes)) for name, scopes in entry))
        else:
            raise SchemaDefinitionError(f"Invalid security requirement {entry!r}")
    return tuple(requirements)


def schema_name_from_ref(ref: Any) -> str | None:
    """Extract the schema name from a payload reference.

    Accepts a bare name, ``#/components/schemas/<name>`` or ``{"$ref": ...}``.
    """
    if isinstance(ref, Mapping):
        ref = ref.get("$ref")
    if not isinstance(ref, str) or not ref:
        return None
    if ref.startswith(SCHEMA_REF_PREFIX):
        return ref[len(SCHEMA_REF_PREFIX):] or None
    if ref.startswith("#/"):
        # Only local component references are supported
        return None
    return ref


# ======================================================================
# JSON-Schema-like dict -> SchemaNode
# ======================================================================

# camelCase JSON Schema keyword -> SchemaNode field
_KEYWORD_FIELDS = {
    "minLength": "min_length",
    "maxLength": "max_length",
    "minItems": "min_items",
    "maxItems": "max_items",
    "min_length": "min_length",
    "max_length": "max_length",
    "min_items": "min_items",
    "max_items": "max_items",
    "pattern": "pattern",
    "format": "format",
    "minimum": "minimum",
    "maximum": "maximum",
    "description": "description",
}


def schema_from_dict(
    doc: Mapping[str, Any],
    definitions: Mapping[str, Any] | None = None,
    name: str | None = None,
    _path: Sequence[str | int] = (),
    _expanding: frozenset[str] = frozenset(),
) -> SchemaNode:
    """Build a SchemaNode from a JSON-Schema-like mapping.

    ``$ref`` values of the form ``#/components/schemas/<name>`` (or a bare name)
    are looked up once in ``definitions``. Definitions may be raw mappings or
    already-built SchemaNodes. A reference chain that returns to a definition
    being expanded raises SchemaDefinitionError, since schema graphs are trees.
    """
    path = list(_path)
    if isinstance(doc, SchemaNode):
        return doc
    if not isinstance(doc, Mapping):
        raise SchemaDefinitionError(f"Schema must be a mapping, got {type(doc).__name__}", path)

    if "$ref" in doc:
        ref_name = schema_name_from_ref(doc["$ref"])
        if ref_name is None or definitions is None or ref_name not in definitions:
            raise SchemaDefinitionError(f"Unresolvable reference '{doc['$ref']}'", path)
        if ref_name in _expanding:
            raise SchemaDefinitionError(f"Cyclic reference to '{ref_name}'", path)
        return schema_from_dict(
            definitions[ref_name], definitions, name=ref_name,
            _path=path, _expanding=_expanding | {ref_name},
        )

    kind = doc.get("type")
    if kind is None:
        if "properties" in doc or "required" in doc:
            kind = "object"
        elif "items" in doc:
            kind = "array"
        else:
            raise SchemaDefinitionError("Schema is missing 'type'", path)
    if not isinstance(kind, str):
        raise SchemaDefinitionError(f"'type' must be a single kind name, got {kind!r}", path)

    kwargs: dict[str, Any] = {"kind": kind, "name": doc.get("name", name)}
    for keyword, attr in _KEYWORD_FIELDS.items():
        if keyword in doc:
            kwargs[attr] = doc[keyword]
    if "enum" in doc:
        kwargs["enum"] = tuple(doc["enum"])
    if "const" in doc:
        kwargs["const"] = doc["const"]

    if "items" in doc and doc["items"] is not None:
        kwargs["items"] = schema_from_dict(
            doc["items"], definitions, _path=path + ["items"], _expanding=_expanding
        )

    raw_props = doc.get("properties") or {}
    properties: list[tuple[str, SchemaNode]] = []
    if isinstance(raw_props, Mapping):
        entries = list(raw_props.items())
    elif isinstance(raw_props, list):
        # DSL style: [{"name": "id", "type": "string"}, ...]
        entries = []
        for i, entry in enumerate(raw_props):
            if not isinstance(entry, Mapping) or "name" not in entry:
                raise SchemaDefinitionError("Property entries need a 'name'", path + ["properties", i])
            entries.append((entry["name"], {k: v for k, v in entry.items() if k != "name"}))
    else:
        raise SchemaDefinitionError("'properties' must be a mapping or a list", path)
    for prop_name, prop_doc in entries:
        properties.append((
            str(prop_name),
            schema_from_dict(
                prop_doc, definitions, name=str(prop_name),
                _path=path + ["properties", str(prop_name)], _expanding=_expanding,
            ),
        ))
    kwargs["properties"] = tuple(properties)

    required = doc.get("required") or ()
    if isinstance(required, str) or not isinstance(required, Sequence):
        raise SchemaDefinitionError("'required' must be a list of names", path)
    kwargs["required"] = tuple(str(r) for r in required)

    try:
        return SchemaNode(**kwargs)
    except SchemaDefinitionError as e:
        if e.path:
            raise
        raise SchemaDefinitionError(str(e), path) from None
    except TypeError as e:
        raise SchemaDefinitionError(str(e), path) from e


def schema_to_dict(schema: SchemaNode) -> dict[str, Any]:
    """Inverse of schema_from_dict (camelCase keywords), for display and export"""
    doc: dict[str, Any] = {"type": schema.kind.value}
    if schema.description:
        doc["description"] = schema.description
    for keyword, attr in (
        ("minLength", "min_length"), ("maxLength", "max_length"), ("pattern", "pattern"),
        ("format", "format"), ("minimum", "minimum"), ("maximum", "maximum"),
        ("minItems", "min_items"), ("maxItems", "max_items"),
    ):
        value = getattr(schema, attr)
        if value is not None:
            doc[keyword] = value
    if schema.enum is not None:
        doc["enum"] = list(schema.enum)
    if schema.has_const:
        doc["const"] = schema.const
    if schema.items is not None:
        doc["items"] = schema_to_dict(schema.items)
    if schema.properties:
        doc["properties"] = {name: schema_to_dict(sub) for name, sub in schema.properties}
    if schema.required:
        doc["required"] = list(schema.required)
    return doc
