"""TOML configuration loader for the Valdor operations client."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

DEFAULT_ALLOWED_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/webp"]


@dataclass
class APIConfig:
    base_url: str = "http://localhost:5000/api"
    token: str = ""
    timeout: float = 60.0


@dataclass
class ClaudeExtractionConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class GeminiExtractionConfig:
    api_key: str = ""
    model: str = "gemini-2.0-flash"


@dataclass
class ExtractionConfig:
    backend: str = "remote"
    max_upload_mb: float = 10.0
    allowed_types: list[str] = field(
        default_factory=lambda: list(DEFAULT_ALLOWED_TYPES)
    )
    allow_heic: bool = False
    default_category: str = "Main Course"
    use_batch_endpoint: bool = False
    claude: ClaudeExtractionConfig = field(default_factory=ClaudeExtractionConfig)
    gemini: GeminiExtractionConfig = field(default_factory=GeminiExtractionConfig)

    @property
    def max_upload_bytes(self) -> int:
        return int(self.max_upload_mb * 1024 * 1024)


@dataclass
class TasksConfig:
    default_cancel_reason: str = "Staff did not accept task"


@dataclass
class CacheConfig:
    enabled: bool = True
    path: str = "~/.config/valdor/cache.db"
    ttl_seconds: int = 300


@dataclass
class ValdorConfig:
    api: APIConfig = field(default_factory=APIConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    tasks: TasksConfig = field(default_factory=TasksConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    log_level: str = "WARNING"


def load_config(path: str | Path | None = None) -> ValdorConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    The API endpoint, token and model API keys can be supplied through
    environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    api = raw.get("api", {})
    ext = raw.get("extraction", {})
    tsk = raw.get("tasks", {})
    cch = raw.get("cache", {})

    claude_cfg = ext.get("claude", {})
    gemini_cfg = ext.get("gemini", {})

    # Endpoint and token: environment → config file → default
    base_url = os.environ.get("VALDOR_API_URL", "") or api.get(
        "base_url", "http://localhost:5000/api"
    )
    token = os.environ.get("VALDOR_API_TOKEN", "") or api.get("token", "")

    # Model API keys: config file → environment variable
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )
    gemini_api_key = gemini_cfg.get("api_key", "") or os.environ.get(
        "GEMINI_API_KEY", ""
    )

    allowed_types = ext.get("allowed_types", list(DEFAULT_ALLOWED_TYPES))
    allowed_types = [t.lower() for t in allowed_types]

    return ValdorConfig(
        api=APIConfig(
            base_url=base_url.rstrip("/"),
            token=token,
            timeout=float(api.get("timeout", 60.0)),
        ),
        extraction=ExtractionConfig(
            backend=ext.get("backend", "remote"),
            max_upload_mb=float(ext.get("max_upload_mb", 10.0)),
            allowed_types=allowed_types,
            allow_heic=ext.get("allow_heic", False),
            default_category=ext.get("default_category", "Main Course"),
            use_batch_endpoint=ext.get("use_batch_endpoint", False),
            claude=ClaudeExtractionConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
            gemini=GeminiExtractionConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-2.0-flash"),
            ),
        ),
        tasks=TasksConfig(
            default_cancel_reason=tsk.get(
                "default_cancel_reason", "Staff did not accept task"
            ),
        ),
        cache=CacheConfig(
            enabled=cch.get("enabled", True),
            path=cch.get("path", "~/.config/valdor/cache.db"),
            ttl_seconds=int(cch.get("ttl_seconds", 300)),
        ),
        log_level=str(raw.get("log_level", "WARNING")).upper(),
    )
