"""Project Configuration for mesh-schema

Manages .mesh/validator.json (or .mesh/validator.yaml) settings for depth
limits, pattern matching, caching, batch workers and generator seeding.
"""

import copy
import json
from pathlib import Path
from typing import Any

import yaml

from mesh_schema.core.cache import ValidationContext


class ValidatorConfig:
    """Manages validator configuration for a project"""

    DEFAULT_CONFIG = {
        "max_depth": 64,
        "pattern_mode": "search",
        "cache": {
            "enabled": True,
        },
        "batch": {
            "max_workers": 1,
        },
        "generator": {
            "seed": 0,
            "include_boundaries": False,
        },
    }

    SECTIONS = ("cache", "batch", "generator")

    def __init__(self, base_dir: Path | None = None):
        self.base_dir = base_dir or Path.cwd()
        self.mesh_dir = self.base_dir / ".mesh"
        self.config_file = self.mesh_dir / "validator.json"
        self.yaml_file = self.mesh_dir / "validator.yaml"

    def exists(self) -> bool:
        """Check if a config file exists"""
        return self.config_file.exists() or self.yaml_file.exists()

    def load(self) -> dict:
        """Load config, returning defaults if not exists"""
        if self.config_file.exists():
            with open(self.config_file) as f:
                config = json.load(f)
        elif self.yaml_file.exists():
            with open(self.yaml_file) as f:
                config = yaml.safe_load(f) or {}
        else:
            return copy.deepcopy(self.DEFAULT_CONFIG)

        if not isinstance(config, dict):
            raise ValueError("configuration root must be a mapping")

        # Merge with defaults for missing keys
        merged = copy.deepcopy(self.DEFAULT_CONFIG)
        merged.update(config)
        for section in self.SECTIONS:
            if section in config:
                merged[section] = {**self.DEFAULT_CONFIG[section], **(config[section] or {})}

        return merged

    def save(self, config: dict) -> None:
        """Save config to file"""
        self.mesh_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, 'w') as f:
            json.dump(config, f, indent=2, ensure_ascii=False)

    def init(self, max_depth: int | None = None, pattern_mode: str | None = None,
             max_workers: int | None = None, seed: int | None = None) -> dict:
        """Initialize project config"""
        config = copy.deepcopy(self.DEFAULT_CONFIG)
        if max_depth is not None:
            config["max_depth"] = max_depth
        if pattern_mode is not None:
            config["pattern_mode"] = pattern_mode
        if max_workers is not None:
            config["batch"]["max_workers"] = max_workers
        if seed is not None:
            config["generator"]["seed"] = seed

        # Fail before writing anything invalid
        self._context_from(config)
        self.save(config)
        return config

    def validation_context(self) -> ValidationContext:
        """ValidationContext built from the current config"""
        return self._context_from(self.load())

    def max_workers(self) -> int:
        return int(self.load()["batch"]["max_workers"])

    def cache_enabled(self) -> bool:
        return bool(self.load()["cache"]["enabled"])

    def generator_seed(self) -> int | None:
        return self.load()["generator"]["seed"]

    def generator_options(self) -> dict[str, Any]:
        return dict(self.load()["generator"])

    @staticmethod
    def _context_from(config: dict) -> ValidationContext:
        return ValidationContext(
            max_depth=int(config["max_depth"]),
            pattern_mode=config["pattern_mode"],
        )
