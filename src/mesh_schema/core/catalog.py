"""Message catalog: resolves message names to payload schemas.

A catalog is the registry the validator compiler looks messages up in. It can
be filled in code or built from an AsyncAPI-like document::

    components:
      schemas:
        User:
          type: object
          required: [id]
          properties:
            id: {type: string, format: uuid}
      messages:
        userCreated:
          payload: "#/components/schemas/User"
      securitySchemes:
        apiKey:
          type: httpApiKey
    channels:
      "user/{user_id}/events": {}
    operations:
      publishUser:
        action: send
        channel: "user/{user_id}/events"
        messages: [userCreated]
        security:
          - apiKey: []
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator

from mesh_schema.core.errors import CatalogError, Constraint, ResolutionError, SchemaDefinitionError
from mesh_schema.core.model import (
    Channel,
    Message,
    Operation,
    SchemaNode,
    SecurityScheme,
    schema_from_dict,
    schema_name_from_ref,
    schema_to_dict,
    security_requirements_from,
)


logger = logging.getLogger(__name__)

CATALOG_SCHEMA_PATH = Path(__file__).parent.parent / "schemas" / "catalog.schema.json"


def _load_catalog_schema() -> dict:
    with open(CATALOG_SCHEMA_PATH) as f:
        return json.load(f)


class SchemaCatalog:
    """In-memory registry of schemas, messages, channels and operations.

    The catalog is filled once and then only read. Schemas stored here are
    immutable SchemaNodes and can be shared by any number of validators.
    """

    def __init__(self):
        self.schemas: dict[str, SchemaNode] = {}
        self.messages: dict[str, Message] = {}
        self.channels: dict[str, Channel] = {}
        self.operations: dict[str, Operation] = {}
        self.security_schemes: dict[str, SecurityScheme] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_schema(self, name: str, schema: SchemaNode | Mapping[str, Any]) -> SchemaNode:
        if not isinstance(schema, SchemaNode):
            schema = schema_from_dict(schema, self.schemas, name=name)
        self.schemas[name] = schema
        return schema

    def add_message(self, name: str, payload: Any, description: str | None = None) -> Message:
        """Register a message whose payload is a schema name or a local reference"""
        if isinstance(payload, Mapping):
            payload = payload.get("$ref")
        message = Message(name=name, payload=payload, description=description)
        self.messages[name] = message
        return message

    def add_channel(self, name: str, address: str | None = None) -> Channel:
        channel = Channel(name=name, address=address)
        self.channels[name] = channel
        return channel

    def add_operation(self, name: str, channel: str, action: str = "send",
                      messages: list[str] | tuple[str, ...] = (), security: Any = None) -> Operation:
        """Register an operation; ``security`` is a list of ``{scheme: [scopes]}`` or scheme names"""
        operation = Operation(
            name=name,
            channel=channel,
            action=action,
            messages=tuple(messages),
            security=security_requirements_from(security),
        )
        self.operations[name] = operation
        return operation

    def add_security_scheme(self, name: str, type: str, description: str | None = None) -> SecurityScheme:
        scheme = SecurityScheme(name=name, type=type, description=description)
        self.security_schemes[name] = scheme
        return scheme

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def get_message(self, message_name: str) -> Message | None:
        return self.messages.get(message_name)

    def get_schema(self, schema_name: str | None) -> SchemaNode | None:
        if schema_name is None:
            return None
        return self.schemas.get(schema_name)

    def message_schema(self, message: Message) -> SchemaNode | None:
        """Schema a message's payload reference points at, if any"""
        return self.get_schema(schema_name_from_ref(message.payload))

    def resolve(self, message_name: str) -> SchemaNode | None:
        """Payload schema for a message name, or None"""
        message = self.get_message(message_name)
        if message is None:
            return None
        return self.message_schema(message)

    def require(self, message_name: str) -> SchemaNode:
        """Like resolve, but raises ResolutionError naming what is missing"""
        message = self.get_message(message_name)
        if message is None:
            raise ResolutionError(f"Message '{message_name}' not found", Constraint.NOT_FOUND)
        schema = self.message_schema(message)
        if schema is None:
            raise ResolutionError(f"No schema found for message '{message_name}'", Constraint.NO_SCHEMA)
        return schema

    def resolve_reference(self, ref: Any) -> SchemaNode | None:
        """Resolve a bare schema name or ``#/components/schemas/<name>``"""
        return self.get_schema(schema_name_from_ref(ref))

    def get_operation(self, operation_name: str) -> Operation | None:
        return self.operations.get(operation_name)

    def get_channel(self, channel_name: str) -> Channel | None:
        return self.channels.get(channel_name)

    def get_security_scheme(self, scheme_name: str) -> SecurityScheme | None:
        return self.security_schemes.get(scheme_name)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "SchemaCatalog":
        """Build a catalog from a parsed catalog document.

        Raises CatalogError listing every structural problem found.
        """
        if not isinstance(doc, Mapping):
            raise CatalogError(f"Catalog document must be a mapping, got {type(doc).__name__}")

        validator = Draft202012Validator(_load_catalog_schema())
        problems = []
        for error in sorted(validator.iter_errors(doc), key=lambda e: [str(p) for p in e.absolute_path]):
            path = ".".join(str(p) for p in error.absolute_path)
            problems.append(f"{path or 'root'}: {error.message}")
        if problems:
            raise CatalogError("Invalid catalog document", problems)

        catalog = cls()
        components = doc.get("components") or {}
        raw_schemas = components.get("schemas") or {}

        for name, schema_doc in raw_schemas.items():
            try:
                catalog.schemas[name] = schema_from_dict(schema_doc, raw_schemas, name=name)
            except SchemaDefinitionError as e:
                raise CatalogError(f"Invalid schema '{name}'", [str(e)]) from e

        for name, scheme_doc in (components.get("securitySchemes") or {}).items():
            catalog.add_security_scheme(name, scheme_doc["type"], scheme_doc.get("description"))

        for name, message_doc in (components.get("messages") or {}).items():
            catalog.add_message(name, message_doc["payload"], message_doc.get("description"))

        for name, channel_doc in (doc.get("channels") or {}).items():
            channel_doc = channel_doc or {}
            catalog.add_channel(name, channel_doc.get("address"))

        for name, op_doc in (doc.get("operations") or {}).items():
            catalog.add_operation(
                name,
                channel=op_doc["channel"],
                action=op_doc.get("action", "send"),
                messages=op_doc.get("messages", ()),
                security=op_doc.get("security"),
            )

        logger.debug(
            "catalog loaded: %d schemas, %d messages, %d channels, %d operations, %d security schemes",
            len(catalog.schemas), len(catalog.messages), len(catalog.channels), len(catalog.operations),
            len(catalog.security_schemes),
        )
        return catalog

    @classmethod
    def load(cls, path: str | Path) -> "SchemaCatalog":
        """Load a catalog from a ``.json``, ``.yaml`` or ``.yml`` file"""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Catalog file not found: {path}")
        text = path.read_text(encoding="utf-8")
        try:
            if path.suffix in (".yaml", ".yml"):
                doc = yaml.safe_load(text)
            else:
                doc = json.loads(text)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise CatalogError(f"Cannot parse catalog {path}", [str(e)]) from e
        logger.info("loading catalog from %s", path)
        return cls.from_document(doc or {})

    def to_document(self) -> dict[str, Any]:
        """Inverse of from_document"""
        return {
            "components": {
                "schemas": {name: schema_to_dict(s) for name, s in self.schemas.items()},
                "messages": {
                    name: {"payload": m.payload} for name, m in self.messages.items()
                },
                "securitySchemes": {
                    name: ({"type": s.type, "description": s.description} if s.description else {"type": s.type})
                    for name, s in self.security_schemes.items()
                },
            },
            "channels": {
                name: ({"address": c.address} if c.address else {}) for name, c in self.channels.items()
            },
            "operations": {
                name: _operation_document(op) for name, op in self.operations.items()
            },
        }


def _operation_document(operation: Operation) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "action": operation.action,
        "channel": operation.channel,
        "messages": list(operation.messages),
    }
    if operation.security:
        doc["security"] = [
            {name: list(scopes) for name, scopes in requirement}
            for requirement in operation.security
        ]
    return doc
