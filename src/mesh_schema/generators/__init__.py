"""Test data generators.

- example_gen   - conforming example payloads
- edge_case_gen - counter-examples that must fail validation
"""

from mesh_schema.generators.example_gen import (
    ExampleGenerator,
    create_generator,
    generate_example,
    generate_examples,
    generate_message_example,
)
from mesh_schema.generators.edge_case_gen import (
    NegativeCase,
    generate_negative_cases,
    generate_negative_examples,
)

__all__ = [
    "ExampleGenerator",
    "create_generator",
    "generate_example",
    "generate_examples",
    "generate_message_example",
    "NegativeCase",
    "generate_negative_cases",
    "generate_negative_examples",
]
