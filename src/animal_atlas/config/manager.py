"""Configuration loading and saving."""

import logging
import os
import shutil
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from animal_atlas.config.models import ApiKeysConfig, AtlasConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/animal-atlas/animal_atlas.yaml")
CONFIG_PATH_ENV = "ANIMAL_ATLAS_CONFIG"
ENV_PREFIX = "ANIMAL_ATLAS_"


class ConfigManager:
    """Loads, validates and saves the Animal Atlas configuration."""

    def __init__(
        self, config_path: str | Path | None = None, environ: dict[str, str] | None = None
    ):
        """Initialize ConfigManager.

        Args:
            config_path: Path to the YAML file. Falls back to $ANIMAL_ATLAS_CONFIG, then
                the per-user default location.
            environ: Environment mapping used for overrides (defaults to os.environ)
        """
        self.environ = os.environ if environ is None else environ
        raw_path = config_path or self.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH
        self.config_path = Path(raw_path).expanduser()

    def load(self) -> AtlasConfig:
        """Load configuration from YAML with environment overrides applied.

        A missing file yields the defaults; it is not created on load.

        Returns:
            AtlasConfig: Loaded and validated configuration

        Raises:
            ValueError: If the file is not valid YAML or its content fails validation
        """
        raw_config = self._read_yaml()
        raw_config = self._apply_env_overrides(raw_config)

        try:
            return AtlasConfig.model_validate(raw_config)
        except ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e}") from e

    def save(self, config: AtlasConfig) -> None:
        """Save configuration to file, keeping a backup of the previous one.

        Args:
            config: Configuration to save
        """
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            backup_path = self.config_path.with_suffix(".yaml.backup")
            try:
                shutil.copy2(self.config_path, backup_path)
            except PermissionError:
                logger.warning("Could not create backup at %s", backup_path)

        config_yaml = yaml.dump(config.model_dump(), default_flow_style=False, sort_keys=False)
        self.config_path.write_text(config_yaml)
        logger.info("Configuration saved successfully to %s", self.config_path)

    def _read_yaml(self) -> dict[str, Any]:
        """Read the YAML config file, or return an empty mapping when absent."""
        if not self.config_path.exists():
            logger.debug("No configuration file at %s, using defaults", self.config_path)
            return {}

        try:
            raw = yaml.safe_load(self.config_path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Configuration file {self.config_path} is not valid YAML: {e}") from e
        if not isinstance(raw, dict):
            raise ValueError(f"Configuration file {self.config_path} must contain a mapping")
        return raw

    def _apply_env_overrides(self, raw_config: dict[str, Any]) -> dict[str, Any]:
        """Overlay API keys from ANIMAL_ATLAS_<SOURCE>_KEY environment variables."""
        api_keys = dict(raw_config.get("api_keys") or {})
        for field_name in ApiKeysConfig.model_fields:
            env_name = f"{ENV_PREFIX}{field_name.upper()}_KEY"
            if env_name in self.environ:
                api_keys[field_name] = self.environ[env_name]

        if api_keys:
            raw_config["api_keys"] = api_keys

        log_level = self.environ.get(f"{ENV_PREFIX}LOG_LEVEL")
        if log_level:
            raw_config["logging"] = {**(raw_config.get("logging") or {}), "level": log_level}

        return raw_config
