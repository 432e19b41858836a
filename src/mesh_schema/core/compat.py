"""Backward-compatibility check between two versions of a schema."""

from dataclasses import dataclass

from mesh_schema.core.catalog import SchemaCatalog
from mesh_schema.core.model import SchemaKind, SchemaNode


@dataclass
class BreakingChange:
    schema: str
    kind: str  # "required_added", "property_removed", "type_changed", "schema_removed"
    message: str
    property: str | None = None

    def to_dict(self) -> dict:
        return {
            "schema": self.schema,
            "kind": self.kind,
            "message": self.message,
            "property": self.property,
        }


def check_compatibility(
    schema_name: str,
    old: SchemaNode,
    new: SchemaNode,
    allow_property_removal: bool = False,
) -> list[BreakingChange]:
    """List changes that would reject payloads valid under ``old``.

    Checks top-level kind, newly required names, removed properties and
    property kind changes. Nested schemas are compared by kind only.
    """
    changes: list[BreakingChange] = []

    if old.kind is not new.kind:
        changes.append(BreakingChange(
            schema=schema_name,
            kind="type_changed",
            message=f"Schema '{schema_name}' type changed from {old.kind.value} to {new.kind.value}",
        ))
        return changes

    if old.kind is not SchemaKind.OBJECT:
        return changes

    for name in new.required:
        if name not in old.required:
            changes.append(BreakingChange(
                schema=schema_name,
                kind="required_added",
                message=f"New required field '{name}' in schema '{schema_name}'",
                property=name,
            ))

    for name, old_prop in old.properties:
        new_prop = new.property_schema(name)
        if new_prop is None:
            if not allow_property_removal:
                changes.append(BreakingChange(
                    schema=schema_name,
                    kind="property_removed",
                    message=f"Property '{name}' was removed from schema '{schema_name}'",
                    property=name,
                ))
            continue
        if old_prop.kind is not new_prop.kind:
            changes.append(BreakingChange(
                schema=schema_name,
                kind="type_changed",
                message=(
                    f"Property '{name}' of schema '{schema_name}' type changed "
                    f"from {old_prop.kind.value} to {new_prop.kind.value}"
                ),
                property=name,
            ))

    return changes


def check_catalog_compatibility(
    old: SchemaCatalog,
    new: SchemaCatalog,
    allow_schema_removal: bool = False,
    allow_property_removal: bool = False,
) -> list[BreakingChange]:
    """Compare every schema of ``old`` with its counterpart in ``new``"""
    changes: list[BreakingChange] = []
    for name, old_schema in old.schemas.items():
        new_schema = new.get_schema(name)
        if new_schema is None:
            if not allow_schema_removal:
                changes.append(BreakingChange(
                    schema=name,
                    kind="schema_removed",
                    message=f"Schema '{name}' was removed",
                ))
            continue
        changes.extend(check_compatibility(
            name, old_schema, new_schema, allow_property_removal=allow_property_removal
        ))
    return changes
