"""Tests for the TOML configuration layer."""

import toml

from regengraph_cli import config
from regengraph_cli.config_manager import load_config, load_full_config, load_log_level, save_config


class TestLoadConfig:
    """Tests for loading configuration."""

    def test_defaults_without_file(self):
        assert not config.CONFIG_FILE.exists()
        assert load_config() == {"default_tier": "local", "output": "text"}
        assert load_log_level() == "WARNING"
        assert load_full_config() == {}

    def test_reads_sections(self):
        config.CONFIG_FILE.parent.mkdir(parents=True)
        config.CONFIG_FILE.write_text(
            '[cli]\ndefault_tier = "global"\noutput = "json"\n\n[logging]\nlevel = "debug"\n', encoding="utf-8"
        )

        assert load_config() == {"default_tier": "global", "output": "json"}
        assert load_log_level() == "DEBUG"

    def test_invalid_values_fall_back(self):
        config.CONFIG_FILE.parent.mkdir(parents=True)
        config.CONFIG_FILE.write_text(
            '[cli]\ndefault_tier = "galactic"\noutput = "xml"\n\n[logging]\nlevel = "LOUD"\n', encoding="utf-8"
        )

        assert load_config() == {"default_tier": "local", "output": "text"}
        assert load_log_level() == "WARNING"

    def test_malformed_file_falls_back(self):
        config.CONFIG_FILE.parent.mkdir(parents=True)
        config.CONFIG_FILE.write_text("[cli\ndefault_tier = ", encoding="utf-8")

        assert load_config()["default_tier"] == "local"


class TestSaveConfig:
    """Tests for saving configuration."""

    def test_save_creates_file(self):
        assert save_config(default_tier="structural") is True

        assert load_config()["default_tier"] == "structural"
        assert load_config()["output"] == "text"

    def test_save_preserves_other_sections(self):
        config.CONFIG_FILE.parent.mkdir(parents=True)
        config.CONFIG_FILE.write_text('[logging]\nlevel = "INFO"\n', encoding="utf-8")

        save_config(output="json")

        data = toml.loads(config.CONFIG_FILE.read_text(encoding="utf-8"))
        assert data["logging"] == {"level": "INFO"}
        assert data["cli"] == {"output": "json"}

    def test_save_merges_cli_keys(self):
        save_config(default_tier="atomic")
        save_config(output="json")

        assert load_config() == {"default_tier": "atomic", "output": "json"}
