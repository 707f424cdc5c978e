"""Configuration loader for the statesync engine.

Configuration lives in ``config/<APP_ENV>.yaml`` (falling back to
``config/default.yaml``). String values may reference the environment as
``${VAR}`` or ``${VAR:-fallback}``; references are resolved before the
result is validated into :class:`~statesync.models.config.AppConfig`.
"""

import os
import re
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from statesync.models.config import AppConfig

log = structlog.stdlib.get_logger()

DEFAULT_CONFIG_DIR = Path(__file__).parent.parent.parent / "config"
MIN_RECOMMENDED_PART_SIZE = 1024


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


class ConfigLoader:
    """Loads and validates application configuration from YAML files and environment variables."""

    ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")

    def __init__(self, config_dir: str | Path | None = None) -> None:
        """Initialize the ConfigLoader.

        Args:
            config_dir: Directory holding <env>.yaml files. Defaults to the
                repository's config/ directory.
        """
        self.config_dir = Path(config_dir) if config_dir is not None else DEFAULT_CONFIG_DIR

    def load_config(self, config_path: str | None = None) -> AppConfig:
        """Load configuration from a YAML file.

        Args:
            config_path: Explicit file to load. If None, the file is chosen
                from APP_ENV inside ``config_dir``.

        Returns:
            AppConfig: Validated application configuration

        Raises:
            ConfigurationError: If the file is missing, unparsable, references
                an unset environment variable, or fails validation
        """
        path = Path(config_path) if config_path is not None else self.resolve_config_path()

        log.info("loading_configuration", config_path=str(path))

        raw = self._read_yaml(path)
        resolved = self._resolve_env_refs(raw)

        try:
            app_config = AppConfig(**resolved)
        except ValidationError as e:
            log.error("configuration_validation_failed", config_path=str(path), error=str(e))
            raise ConfigurationError(f"Configuration validation failed for {path}: {e}") from e

        log.info(
            "configuration_loaded_successfully",
            remote_store_type=app_config.remote_store.type,
            debounce_ms=app_config.sync.debounce_ms,
            part_size_bytes=app_config.sync.part_size_bytes,
        )
        return app_config

    def resolve_config_path(self) -> Path:
        """Pick ``<APP_ENV>.yaml`` if present, else ``default.yaml``.

        Raises:
            ConfigurationError: If neither file exists
        """
        env = os.getenv("APP_ENV", "default")
        candidates = [self.config_dir / f"{env}.yaml", self.config_dir / "default.yaml"]

        for candidate in candidates:
            if candidate.exists():
                return candidate

        raise ConfigurationError(
            f"Configuration file not found: {candidates[-1]}. "
            f"Create config/default.yaml or set APP_ENV to an environment with a config file."
        )

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML file {path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration file {path}: {e}") from e

        if data is None:
            raise ConfigurationError(f"Configuration file is empty: {path}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {path}")

        log.debug("yaml_file_loaded", config_path=str(path), sections=sorted(data))
        return data

    def _resolve_env_refs(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {key: self._resolve_env_refs(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._resolve_env_refs(item) for item in value]
        if isinstance(value, str):
            return self.ENV_VAR_PATTERN.sub(self._env_value, value)
        return value

    @staticmethod
    def _env_value(match: re.Match[str]) -> str:
        var_name, fallback = match.group(1), match.group(2)
        env_value = os.getenv(var_name)
        if env_value is not None:
            return env_value
        if fallback is not None:
            return fallback
        raise ConfigurationError(
            f"Required environment variable not set: {var_name}. "
            f"Set {var_name} or give a fallback as ${{{var_name}:-value}}."
        )

    def validate_config(self, config: AppConfig) -> list[str]:
        """Check a loaded configuration for settings that work but are probably unintended.

        Args:
            config: Application configuration to validate

        Returns:
            List of warning messages (empty if no warnings)
        """
        warnings = []

        if config.remote_store.type == "memory":
            warnings.append(
                "remote_store.type 'memory' keeps remote state in this process only; "
                "changes are not shared with other devices"
            )

        if config.local_store.state_directory is None:
            warnings.append(
                "local_store.state_directory is not set; device id and baseline "
                "will not survive a restart"
            )

        if config.sync.part_size_bytes < MIN_RECOMMENDED_PART_SIZE:
            warnings.append(
                f"sync.part_size_bytes ({config.sync.part_size_bytes}) is very small; "
                f"uploads will be split into many parts"
            )

        if warnings:
            log.warning("configuration_validation_warnings", warnings=warnings)

        return warnings
