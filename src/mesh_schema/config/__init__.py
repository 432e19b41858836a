"""Project configuration."""

from mesh_schema.config.project import ValidatorConfig

__all__ = ["ValidatorConfig"]
