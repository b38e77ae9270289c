"""Configuration loading and validation for the team hierarchy engine.

This module provides utilities to load system configuration from YAML files,
apply environment overrides from a ``.env`` file, resolve relative paths to
absolute paths based on project root, and validate the resulting settings.

Typical usage example:
    config = Config.load()
    errors = Config.validate(config)
    if errors:
        raise ConfigurationError(f"Configuration invalid: {errors}")
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv


ENV_DB_PATH = "TEAM_HIERARCHY_DB_PATH"
ENV_LOG_LEVEL = "TEAM_HIERARCHY_LOG_LEVEL"

VALID_MISSING_VIEW_POLICIES = ("rebuild", "fallback")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Resolve paths relative to project root (4 levels up from this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class SystemConfig:
    """Container for system configuration parameters.

    Attributes:
        database: Database configuration (path).
        hierarchy: Hierarchy query settings (use_materialized_view,
            on_missing_view, path_separator).
        layout: Layout engine sizes and spacings.
        logging: Logging configuration (level, log_dir).
        seed: Optional seeding defaults (team_count, parent_probability,
            random_seed).
    """

    def __init__(self, **config_dict: Dict[str, Any]) -> None:
        """Initialize SystemConfig from configuration dictionary.

        Args:
            **config_dict: Configuration dictionary with required keys:
                database, hierarchy, layout, logging. ``seed`` is optional.

        Raises:
            KeyError: If any required configuration section is missing.
        """
        required_keys = ["database", "hierarchy", "layout", "logging"]

        missing_keys = [key for key in required_keys if key not in config_dict]
        if missing_keys:
            raise KeyError(f"Missing required configuration sections: {missing_keys}")

        self.database: Dict[str, Any] = config_dict["database"]
        self.hierarchy: Dict[str, Any] = config_dict["hierarchy"]
        self.layout: Dict[str, Any] = config_dict["layout"]
        self.logging: Dict[str, Any] = config_dict["logging"]
        self.seed: Dict[str, Any] = config_dict.get("seed") or {}


class Config:
    """Static utility class for loading and validating configuration files.

    This class provides methods to load configuration from YAML files and
    validate that all required paths and settings are properly configured.
    """

    # Configuration keys that contain paths relative to the project root
    _RELATIVE_PATH_KEYS = [
        "database.path",
        "logging.log_dir",
    ]

    @staticmethod
    def _resolve_nested_path(
        config_dict: Dict[str, Any], key_path: str, project_root: Path
    ) -> None:
        """Resolve a nested config path to absolute path in-place.

        Absolute values are left as they are.

        Args:
            config_dict: Configuration dictionary to modify in-place.
            key_path: Dot-separated path to the key (e.g., "database.path").
            project_root: Project root directory for resolving relative paths.

        Raises:
            KeyError: If any key in the path doesn't exist in config_dict.
        """
        keys = key_path.split(".")
        current = config_dict

        for key in keys[:-1]:
            current = current[key]

        final_key = keys[-1]
        current[final_key] = str(project_root / current[final_key])

    @staticmethod
    def _apply_env_overrides(config_dict: Dict[str, Any]) -> None:
        """Apply TEAM_HIERARCHY_* environment variables in-place."""
        db_path = os.environ.get(ENV_DB_PATH)
        if db_path:
            config_dict.setdefault("database", {})["path"] = db_path

        log_level = os.environ.get(ENV_LOG_LEVEL)
        if log_level:
            config_dict.setdefault("logging", {})["level"] = log_level.upper()

    @staticmethod
    def from_dict(
        config_dict: Dict[str, Any], project_root: Path = PROJECT_ROOT
    ) -> SystemConfig:
        """Build a SystemConfig from an already parsed dictionary.

        Applies environment overrides and resolves relative paths.

        Args:
            config_dict: Parsed configuration dictionary.
            project_root: Base directory for relative paths.

        Returns:
            SystemConfig object containing the resolved configuration.

        Raises:
            KeyError: If required configuration keys are missing.
        """
        Config._apply_env_overrides(config_dict)

        for path_key in Config._RELATIVE_PATH_KEYS:
            try:
                Config._resolve_nested_path(config_dict, path_key, project_root)
            except KeyError as e:
                raise KeyError(
                    f"Missing required configuration path: {path_key}"
                ) from e

        return SystemConfig(**config_dict)

    @staticmethod
    def load(
        config_path: Optional[str] = "config/system_config.yaml",
        env_file: Optional[str] = None,
    ) -> SystemConfig:
        """Load system configuration from a YAML file.

        Loads ``.env`` first so environment overrides are visible, reads the
        YAML file and resolves all relative paths against the project root.

        Args:
            config_path: Path to the configuration YAML file, absolute or
                relative to the project root.
            env_file: Optional explicit ``.env`` path. When omitted the
                nearest ``.env`` file is used if there is one.

        Returns:
            SystemConfig object containing the loaded and resolved configuration.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            yaml.YAMLError: If the configuration file is not valid YAML.
            KeyError: If required configuration keys are missing.
            ValueError: If the configuration file doesn't contain a dictionary.
        """
        load_dotenv(dotenv_path=env_file, override=False)

        config_file_path = PROJECT_ROOT / config_path

        if not config_file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file_path}")

        try:
            with open(config_file_path, "r", encoding="utf-8") as f:
                config_dict = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(
                f"Failed to parse configuration file: {config_file_path}"
            ) from e

        if not isinstance(config_dict, dict):
            raise ValueError("Configuration file must contain a YAML dictionary")

        return Config.from_dict(config_dict)

    @staticmethod
    def validate(config: SystemConfig) -> List[str]:
        """Validate configuration values.

        Args:
            config: SystemConfig object to validate.

        Returns:
            List of error messages. Empty list if the configuration is valid.
        """
        errors: List[str] = []

        db_path = Path(config.database.get("path", ""))
        if db_path.is_dir():
            errors.append(
                f"Expected file for database.path, but found directory: {db_path}"
            )

        policy = config.hierarchy.get("on_missing_view", "rebuild")
        if policy not in VALID_MISSING_VIEW_POLICIES:
            errors.append(
                f"hierarchy.on_missing_view must be one of "
                f"{list(VALID_MISSING_VIEW_POLICIES)}, got {policy!r}"
            )

        if not config.hierarchy.get("path_separator", " > "):
            errors.append("hierarchy.path_separator cannot be empty")

        for key, value in config.layout.items():
            if not _is_number(value):
                errors.append(f"layout.{key} must be a number, got {value!r}")
                continue
            minimum_ok = value >= 0 if key == "padding" else value > 0
            if not minimum_ok:
                errors.append(f"layout.{key} must be a positive number, got {value!r}")

        level = str(config.logging.get("level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            errors.append(
                f"logging.level must be one of {list(VALID_LOG_LEVELS)}, got {level!r}"
            )

        probability = config.seed.get("parent_probability", 0.5)
        if not _is_number(probability) or not (0.0 <= probability <= 1.0):
            errors.append(
                f"seed.parent_probability must be between 0.0 and 1.0, "
                f"got {probability}"
            )

        team_count = config.seed.get("team_count", 0)
        if not isinstance(team_count, int) or isinstance(team_count, bool):
            errors.append(f"seed.team_count must be an integer, got {team_count!r}")
        elif team_count < 0:
            errors.append(f"seed.team_count must be non-negative, got {team_count}")

        return errors
