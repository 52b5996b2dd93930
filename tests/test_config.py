"""Tests for config loading."""

import os
import tempfile

import pytest

from valdor.config import (
    DEFAULT_ALLOWED_TYPES,
    APIConfig,
    CacheConfig,
    ValdorConfig,
    load_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("VALDOR_API_URL", "VALDOR_API_TOKEN", "ANTHROPIC_API_KEY", "GEMINI_API_KEY"):
        monkeypatch.delenv(name, raising=False)


def _load_toml(content: bytes) -> ValdorConfig:
    with tempfile.NamedTemporaryFile(suffix=".toml", delete=False) as f:
        f.write(content)
        f.flush()
        config = load_config(f.name)
    os.unlink(f.name)
    return config


def test_load_config_defaults():
    """Loading with no path returns all defaults."""
    config = load_config()
    assert isinstance(config, ValdorConfig)
    assert config.api == APIConfig()
    assert config.api.base_url == "http://localhost:5000/api"
    assert config.extraction.backend == "remote"
    assert config.extraction.allowed_types == DEFAULT_ALLOWED_TYPES
    assert config.extraction.allow_heic is False
    assert config.extraction.max_upload_bytes == 10 * 1024 * 1024
    assert config.extraction.default_category == "Main Course"
    assert config.tasks.default_cancel_reason == "Staff did not accept task"
    assert config.cache == CacheConfig()
    assert config.log_level == "WARNING"


def test_load_config_nonexistent_file():
    """Loading a nonexistent file returns defaults."""
    config = load_config("/nonexistent/path.toml")
    assert config.extraction.backend == "remote"


def test_load_config_from_toml():
    """Loading a valid TOML file populates config."""
    config = _load_toml(b"""\
log_level = "info"

[api]
base_url = "https://hotel.example.com/api/"
token = "file-token"
timeout = 15

[extraction]
backend = "gemini"
max_upload_mb = 5
allowed_types = ["IMAGE/PNG"]
allow_heic = true
use_batch_endpoint = true

[extraction.gemini]
api_key = "test-key-123"
model = "gemini-pro"

[tasks]
default_cancel_reason = "Reassigning"

[cache]
enabled = false
ttl_seconds = 60
""")

    assert config.api.base_url == "https://hotel.example.com/api"
    assert config.api.token == "file-token"
    assert config.api.timeout == 15.0
    assert config.extraction.backend == "gemini"
    assert config.extraction.max_upload_bytes == 5 * 1024 * 1024
    assert config.extraction.allowed_types == ["image/png"]
    assert config.extraction.allow_heic is True
    assert config.extraction.use_batch_endpoint is True
    assert config.extraction.gemini.api_key == "test-key-123"
    assert config.extraction.gemini.model == "gemini-pro"
    assert config.tasks.default_cancel_reason == "Reassigning"
    assert config.cache.enabled is False
    assert config.cache.ttl_seconds == 60
    assert config.log_level == "INFO"


def test_load_config_env_overrides_endpoint(monkeypatch):
    """VALDOR_API_URL / VALDOR_API_TOKEN win over the config file."""
    monkeypatch.setenv("VALDOR_API_URL", "http://env-host/api")
    monkeypatch.setenv("VALDOR_API_TOKEN", "env-token")

    config = _load_toml(b"""\
[api]
base_url = "http://file-host/api"
token = "file-token"
""")
    assert config.api.base_url == "http://env-host/api"
    assert config.api.token == "env-token"


def test_load_config_env_fills_model_keys(monkeypatch):
    """Environment variables fill empty model API keys."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-anthropic-key")
    monkeypatch.setenv("GEMINI_API_KEY", "env-gemini-key")

    config = load_config()
    assert config.extraction.claude.api_key == "env-anthropic-key"
    assert config.extraction.gemini.api_key == "env-gemini-key"


def test_load_config_file_key_takes_precedence(monkeypatch):
    """Config file API key takes precedence over env var."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")

    config = _load_toml(b"""\
[extraction.claude]
api_key = "file-key"
""")
    assert config.extraction.claude.api_key == "file-key"


def test_load_config_partial_toml():
    """Partial TOML uses defaults for missing sections."""
    config = _load_toml(b"""\
[cache]
path = "/tmp/valdor-cache.db"
""")
    assert config.cache.path == "/tmp/valdor-cache.db"
    assert config.cache.enabled is True
    assert config.extraction.backend == "remote"
    assert config.api.timeout == 60.0
