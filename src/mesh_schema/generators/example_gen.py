"""Example Generator Module

Generates conforming example payloads from schema nodes.
"""

import math
import random
import re
from typing import Any, Callable

import rstr

from mesh_schema.core.cache import DEFAULT_MAX_DEPTH, ValidationContext
from mesh_schema.core.catalog import SchemaCatalog
from mesh_schema.core.errors import SchemaDefinitionError, SchemaDepthError
from mesh_schema.core.model import SchemaKind, SchemaNode
from mesh_schema.core.validator import validate


# Fixed default so generated payloads are reproducible across runs.
# Pass seed=None for a fresh random source.
DEFAULT_SEED = 0

# Sample values for format hints
FORMAT_SAMPLES: dict[str, str] = {
    "email": "user@example.com",
    "uuid": "550e8400-e29b-41d4-a716-446655440000",
    "date-time": "2024-01-01T12:00:00Z",
    "date": "2024-01-15",
    "time": "12:00:00",
    "uri": "https://example.com",
    "url": "https://example.com",
    "hostname": "example.com",
    "ipv4": "192.0.2.1",
}

# Common pattern mappings
PATTERN_SAMPLES: dict[str, str] = {
    r"^[A-Z0-9_-]+$": "ABC-123",
    r"^[a-z]+$": "abc",
    r"^[A-Z]+$": "ABC",
    r"^[0-9]+$": "12345",
    r"^\d+$": "12345",
    r"^[a-zA-Z0-9]+$": "Abc123",
    r"^[a-z0-9_]+$": "abc_123",
}

DEFAULT_STRING = "example"
DEFAULT_INTEGER = 42
DEFAULT_NUMBER = 3.14
DEFAULT_ARRAY_ITEM = "example_item"
PAD_CHAR = "x"

# Draws from the pattern itself before giving up on a string schema
PATTERN_ATTEMPTS = 50


class ExampleGenerator:
    """Synthesizes values that satisfy a schema.

    Objects get a value for every declared property (and a placeholder for
    required names without a property schema); arrays get one element unless
    min_items asks for more; strings use format hints, then known pattern
    samples, then a placeholder padded to min_length, then random strings
    drawn from the pattern. A string schema nothing can satisfy raises
    SchemaDefinitionError.
    """

    def __init__(
        self,
        seed: int | None = DEFAULT_SEED,
        max_depth: int = DEFAULT_MAX_DEPTH,
        rng: random.Random | None = None,
    ):
        self.rng = rng or random.Random(seed)
        self._xeger = rstr.Rstr(self.rng)
        self.max_depth = max_depth
        self._context = ValidationContext(max_depth=max_depth)

    def generate(self, schema: SchemaNode) -> Any:
        return self._generate(schema, [], 0)

    def _generate(self, schema: SchemaNode, path: list, depth: int) -> Any:
        if depth > self.max_depth:
            raise SchemaDepthError(self.max_depth, path)

        if schema.has_const:
            return schema.const
        if schema.enum:
            return self._pick_enum(schema)

        kind = schema.kind
        if kind is SchemaKind.NULL:
            return None
        if kind is SchemaKind.BOOLEAN:
            return True
        if kind is SchemaKind.INTEGER:
            return self._integer(schema)
        if kind is SchemaKind.NUMBER:
            return self._number(schema)
        if kind is SchemaKind.STRING:
            return self._string(schema)
        if kind is SchemaKind.ARRAY:
            return self._array(schema, path, depth)
        return self._object(schema, path, depth)

    def _pick_enum(self, schema: SchemaNode) -> Any:
        """Random member, preferring members that also pass the other rules"""
        members = list(schema.enum)
        passing = [m for m in members if validate(m, schema, [], self._context).valid]
        return self.rng.choice(passing or members)

    def _integer(self, schema: SchemaNode) -> int:
        lo, hi = schema.minimum, schema.maximum
        if lo is not None:
            value = math.ceil(lo) + 1
            if hi is not None and value > hi:
                value = math.ceil(lo)
            return value
        if hi is not None:
            return math.floor(hi) - 1
        return DEFAULT_INTEGER

    def _number(self, schema: SchemaNode) -> float:
        lo, hi = schema.minimum, schema.maximum
        if lo is not None:
            value = lo + 0.1
            if hi is not None and value > hi:
                value = (lo + hi) / 2
            return value
        if hi is not None:
            return hi - 0.1
        return DEFAULT_NUMBER

    def _string(self, schema: SchemaNode) -> str:
        candidates = []
        if schema.format in FORMAT_SAMPLES:
            candidates.append(FORMAT_SAMPLES[schema.format])
        if schema.pattern is not None and schema.pattern in PATTERN_SAMPLES:
            candidates.append(PATTERN_SAMPLES[schema.pattern])
        candidates.append(f"example_{schema.name}" if schema.name else DEFAULT_STRING)

        for candidate in candidates:
            fitted = self._fit_length(candidate, schema)
            if self._conforms(fitted, schema):
                return fitted

        if schema.pattern is not None:
            for _ in range(PATTERN_ATTEMPTS):
                try:
                    drawn = self._xeger.xeger(schema.pattern)
                except (KeyError, ValueError, re.error) as e:
                    raise SchemaDefinitionError(
                        f"Cannot generate a string for pattern {schema.pattern!r}: {e}"
                    ) from e
                for candidate in (drawn, self._fit_length(drawn, schema)):
                    if self._conforms(candidate, schema):
                        return candidate

        raise SchemaDefinitionError(
            f"No string satisfies pattern={schema.pattern!r} "
            f"min_length={schema.min_length} max_length={schema.max_length}"
        )

    def _conforms(self, value: Any, schema: SchemaNode) -> bool:
        return validate(value, schema, [], self._context).valid

    @staticmethod
    def _fit_length(value: str, schema: SchemaNode) -> str:
        """Pad with the value's own last character, or truncate"""
        if schema.min_length is not None and len(value) < schema.min_length:
            value = value.ljust(schema.min_length, value[-1:] or PAD_CHAR)
        if schema.max_length is not None and len(value) > schema.max_length:
            value = value[:schema.max_length]
        return value

    def _array(self, schema: SchemaNode, path: list, depth: int) -> list:
        count = 1
        if schema.min_items is not None:
            count = max(count, schema.min_items)
        if schema.max_items is not None:
            count = min(count, schema.max_items)

        if schema.items is None:
            return [DEFAULT_ARRAY_ITEM] * count
        return [self._generate(schema.items, path + [i], depth + 1) for i in range(count)]

    def _object(self, schema: SchemaNode, path: list, depth: int) -> dict:
        result = {}
        for name, prop_schema in schema.properties:
            result[name] = self._generate(prop_schema, path + [name], depth + 1)
        for name in schema.required:
            if name not in result:
                result[name] = f"example_{name}"
        return result


def generate_example(schema: SchemaNode, seed: int | None = DEFAULT_SEED) -> Any:
    """Generate one value that validates against ``schema``"""
    return ExampleGenerator(seed=seed).generate(schema)


def generate_examples(schema: SchemaNode, count: int = 5, seed: int | None = DEFAULT_SEED) -> list[Any]:
    """Generate ``count`` examples from one random source (enum picks vary)"""
    generator = ExampleGenerator(seed=seed)
    return [generator.generate(schema) for _ in range(count)]


def create_generator(schema: SchemaNode, seed: int | None = DEFAULT_SEED) -> Callable[[], Any]:
    """Zero-argument callable producing a fresh example on each call"""
    generator = ExampleGenerator(seed=seed)

    def _next_example() -> Any:
        return generator.generate(schema)

    return _next_example


def generate_message_example(catalog: SchemaCatalog, message_name: str,
                             seed: int | None = DEFAULT_SEED) -> Any:
    """Example payload for a catalog message.

    Raises ResolutionError when the message or its schema is unknown.
    """
    return generate_example(catalog.require(message_name), seed=seed)
