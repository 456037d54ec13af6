"""Tests for CLI configuration management."""

import json

import pytest

from cli.config import Config
from common.constants import DEFAULT_UPLOAD_CHUNK_SIZE_BYTES


def test_config_creates_default_file(temp_config_dir):
    """Test config file is created with defaults."""
    config_path = temp_config_dir / 'config.json'
    Config(config_path)

    assert config_path.exists()
    data = json.loads(config_path.read_text())
    assert data['chunk_size'] == DEFAULT_UPLOAD_CHUNK_SIZE_BYTES
    assert data['max_retries'] == 3


def test_config_loads_existing_values(temp_config_dir):
    config_path = temp_config_dir / 'config.json'
    config_path.write_text(json.dumps({'server_host': 'files.internal', 'server_port': 8080}))

    config = Config(config_path)

    assert config.get_base_url() == 'http://files.internal:8080'
    assert config.get_timeout() == 30


def test_corrupt_config_falls_back_to_defaults(temp_config_dir):
    config_path = temp_config_dir / 'config.json'
    config_path.write_text('{broken')

    config = Config(config_path)

    assert config.get_chunk_size() == DEFAULT_UPLOAD_CHUNK_SIZE_BYTES
    assert (temp_config_dir / 'config.json.bak').exists()


def test_retry_config(temp_config):
    assert temp_config.get_retry_config() == {'max_retries': 3, 'retry_backoff_multiplier': 2}


def test_set_chunk_size_persists(temp_config):
    temp_config.set_chunk_size(1024)

    reloaded = Config(temp_config.config_path)
    assert reloaded.get_chunk_size() == 1024


def test_set_chunk_size_rejects_non_positive(temp_config):
    with pytest.raises(ValueError):
        temp_config.set_chunk_size(0)
