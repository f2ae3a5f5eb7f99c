# tests/test_config.py
"""
Tests for GeneratorConfig loading.
"""

import pytest

from vmgen.config import DEFAULT_CONFIG, GeneratorConfig, load_config
from vmgen.errors import ConfigError, VmgenErrorCodes


class TestGeneratorConfig:

    def test_defaults(self):
        assert DEFAULT_CONFIG.stack == "stack"
        assert DEFAULT_CONFIG.environment == "env"
        assert DEFAULT_CONFIG.accessor_prefix == "get_"
        assert DEFAULT_CONFIG.indent == "  "

    def test_from_mapping(self):
        cfg = GeneratorConfig.from_mapping({"stack": "st", "dump": "d"})
        assert cfg.stack == "st"
        assert cfg.dump == "d"
        assert cfg.code == "code"

    def test_unknown_key(self):
        with pytest.raises(ConfigError) as exc_info:
            GeneratorConfig.from_mapping({"stak": "st"})
        assert exc_info.value.code == VmgenErrorCodes.UNKNOWN_CONFIG_KEY
        assert "stak" in str(exc_info.value)

    def test_non_string_value(self):
        with pytest.raises(ConfigError):
            GeneratorConfig.from_mapping({"indent": 4})

    def test_non_mapping(self):
        with pytest.raises(ConfigError):
            GeneratorConfig.from_mapping(["stack"])


class TestLoadConfig:

    def test_load_yaml(self, write_file):
        path = write_file("vmgen.yaml", "stack: st\nindent: '    '\n")
        cfg = load_config(path)
        assert cfg.stack == "st"
        assert cfg.indent == "    "

    def test_empty_file_gives_defaults(self, write_file):
        assert load_config(write_file("empty.yaml", "")) == DEFAULT_CONFIG

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, write_file):
        with pytest.raises(ConfigError):
            load_config(write_file("bad.yaml", "stack: [st\n"))
