"""
Unit tests for configuration loading.

Tests cover:
- Bundled default config
- Merging partial files over defaults
- Dot-path lookup
- Error cases
"""

import pytest # pyright: ignore[reportMissingImports]
from pathlib import Path

# Import modules to test
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from utils.config_loader import (
    DEFAULT_CONFIG,
    DEFAULT_CONFIG_PATH,
    get_nested_config,
    load_config,
    load_default_config,
    merge_config,
)


class TestLoadConfig:
    """Test YAML loading."""

    def test_bundled_config(self):
        """configs/default.yaml loads with the documented values."""
        config = load_config(DEFAULT_CONFIG_PATH)

        assert config['recording']['max_attempts'] == 3
        assert config['storage']['recent_limit'] == 10
        assert config['storage']['backend'] in ('memory', 'sqlite')
        assert config['gemini']['api_key_env'] == 'GEMINI_API_KEY'

    def test_partial_file_merged(self, tmp_path):
        """Keys absent from the file keep their defaults."""
        path = tmp_path / "partial.yaml"
        path.write_text("server:\n  port: 9001\n")

        config = load_config(path)

        assert config['server']['port'] == 9001
        assert config['server']['host'] == DEFAULT_CONFIG['server']['host']
        assert config['recording'] == DEFAULT_CONFIG['recording']

    def test_empty_file(self, tmp_path):
        """An empty file yields the defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_config(path) == DEFAULT_CONFIG

    def test_missing_file(self, tmp_path):
        """Missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_non_mapping_rejected(self, tmp_path):
        """A YAML list is not a valid config."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError):
            load_config(path)

    def test_default_without_file(self, tmp_path):
        """Missing bundled file falls back to built-in defaults."""
        config = load_default_config(tmp_path / "absent.yaml")

        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG


class TestHelpers:
    """Test merge and lookup helpers."""

    def test_merge_does_not_mutate(self):
        """Merging leaves the base untouched."""
        base = {'a': {'b': 1, 'c': 2}}
        merged = merge_config(base, {'a': {'b': 5}})

        assert merged == {'a': {'b': 5, 'c': 2}}
        assert base == {'a': {'b': 1, 'c': 2}}

    def test_nested_lookup(self):
        """Dot paths resolve nested keys."""
        assert get_nested_config(DEFAULT_CONFIG, 'recording.retry_delay_sec') == 1.0

    def test_nested_lookup_default(self):
        """Unknown paths return the default."""
        assert get_nested_config(DEFAULT_CONFIG, 'recording.missing', default=7) == 7
        assert get_nested_config(DEFAULT_CONFIG, 'server.port.value', default='x') == 'x'
