"""Tests for ConfigManager."""

from pathlib import Path

import pytest
import yaml

from animal_atlas.config import AtlasConfig, ConfigManager


class TestConfigManager:
    """Test ConfigManager functionality."""

    def test_load_missing_file_returns_defaults(self, tmp_path):
        """Should return defaults without creating the file."""
        config_path = tmp_path / "animal_atlas.yaml"

        config = ConfigManager(config_path, environ={}).load()

        assert isinstance(config, AtlasConfig)
        assert config == AtlasConfig()
        assert not config_path.exists()

    def test_load_existing_file(self, tmp_path):
        """Should load values from an existing YAML file."""
        config_path = tmp_path / "animal_atlas.yaml"
        config_path.write_text(
            yaml.dump(
                {
                    "api_keys": {"unsplash": "abc"},
                    "cache": {"backend": "file", "path": str(tmp_path / "cache.json")},
                    "enrichment": {"ebird_region": "CA"},
                }
            )
        )

        config = ConfigManager(config_path, environ={}).load()

        assert config.api_keys.unsplash == "abc"
        assert config.cache.backend == "file"
        assert config.enrichment.ebird_region == "CA"

    def test_path_from_environment(self, tmp_path):
        """Should fall back to $ANIMAL_ATLAS_CONFIG when no path is given."""
        config_path = tmp_path / "from_env.yaml"
        config_path.write_text(yaml.dump({"content": {"batch_delay_seconds": 0.5}}))

        manager = ConfigManager(environ={"ANIMAL_ATLAS_CONFIG": str(config_path)})

        assert manager.config_path == config_path
        assert manager.load().content.batch_delay_seconds == 0.5

    def test_env_key_overrides(self, tmp_path):
        """Should overlay API keys from ANIMAL_ATLAS_<SOURCE>_KEY variables."""
        config_path = tmp_path / "animal_atlas.yaml"
        config_path.write_text(yaml.dump({"api_keys": {"iucn": "from-file", "ebird": "keep"}}))

        config = ConfigManager(
            config_path,
            environ={"ANIMAL_ATLAS_IUCN_KEY": "from-env", "ANIMAL_ATLAS_THE_DOG_API_KEY": "dog"},
        ).load()

        assert config.api_keys.iucn == "from-env"
        assert config.api_keys.ebird == "keep"
        assert config.api_keys.the_dog_api == "dog"

    def test_env_log_level_override(self, tmp_path):
        """Should take the log level from ANIMAL_ATLAS_LOG_LEVEL."""
        config = ConfigManager(
            tmp_path / "missing.yaml", environ={"ANIMAL_ATLAS_LOG_LEVEL": "debug"}
        ).load()
        assert config.logging.level == "DEBUG"

    def test_invalid_values_raise_value_error(self, tmp_path):
        """Should wrap validation failures in a ValueError."""
        config_path = tmp_path / "animal_atlas.yaml"
        config_path.write_text(yaml.dump({"cache": {"backend": "floppy"}}))

        with pytest.raises(ValueError, match="Configuration validation failed"):
            ConfigManager(config_path, environ={}).load()

    def test_non_mapping_file_rejected(self, tmp_path):
        """Should reject a YAML document that is not a mapping."""
        config_path = tmp_path / "animal_atlas.yaml"
        config_path.write_text("- just\n- a list\n")

        with pytest.raises(ValueError, match="must contain a mapping"):
            ConfigManager(config_path, environ={}).load()

    def test_malformed_yaml_raises_value_error(self, tmp_path):
        """Should report a YAML syntax error as a ValueError."""
        config_path = tmp_path / "animal_atlas.yaml"
        config_path.write_text("api_keys: [unclosed\n")

        with pytest.raises(ValueError, match="is not valid YAML"):
            ConfigManager(config_path, environ={}).load()

    def test_save_and_reload(self, tmp_path):
        """Should round-trip a saved configuration and keep a backup."""
        config_path = tmp_path / "nested" / "animal_atlas.yaml"
        manager = ConfigManager(config_path, environ={})

        config = AtlasConfig()
        config.api_keys.unsplash = "saved-key"
        manager.save(config)
        manager.save(config)

        assert manager.load().api_keys.unsplash == "saved-key"
        assert config_path.with_suffix(".yaml.backup").exists()

    def test_shipped_template_loads(self):
        """Should load the shipped template with every keyed source unconfigured."""
        template = Path(__file__).parents[3] / "config_templates" / "animal_atlas.yaml"

        config = ConfigManager(template, environ={}).load()

        assert config.api_keys.unsplash == ""
        assert config.cache.backend == "memory"
        assert config.enrichment.ebird_region == "US"
