"""TOML configuration loader for receiptchef."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class DatabaseConfig:
    path: str = "~/.config/receiptchef/canon_cache.db"


@dataclass
class GeminiLLMConfig:
    api_key: str = ""
    model: str = "gemini-2.5-flash"
    temperature: float = 0.2


@dataclass
class ClaudeLLMConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class LLMConfig:
    backend: str = "gemini"
    timeout_seconds: float = 60.0
    gemini: GeminiLLMConfig = field(default_factory=GeminiLLMConfig)
    claude: ClaudeLLMConfig = field(default_factory=ClaudeLLMConfig)


@dataclass
class GuardsConfig:
    max_per_day: int = 30
    max_items: int = 0  # 0 disables the item cap
    max_chars: int = 1800


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8787


@dataclass
class ReceiptChefConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    guards: GuardsConfig = field(default_factory=GuardsConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def load_config(path: str | Path | None = None) -> ReceiptChefConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    dbs = raw.get("database", {})
    llm = raw.get("llm", {})
    grd = raw.get("guards", {})
    srv = raw.get("server", {})

    gemini_cfg = llm.get("gemini", {})
    claude_cfg = llm.get("claude", {})

    # Resolve API keys: config file → environment variable
    gemini_api_key = gemini_cfg.get("api_key", "") or os.environ.get(
        "GEMINI_API_KEY", ""
    )
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )

    return ReceiptChefConfig(
        database=DatabaseConfig(
            path=dbs.get("path", "~/.config/receiptchef/canon_cache.db"),
        ),
        llm=LLMConfig(
            backend=llm.get("backend", "gemini"),
            timeout_seconds=float(llm.get("timeout_seconds", 60.0)),
            gemini=GeminiLLMConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-2.5-flash"),
                temperature=float(gemini_cfg.get("temperature", 0.2)),
            ),
            claude=ClaudeLLMConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
        ),
        guards=GuardsConfig(
            max_per_day=grd.get("max_per_day", 30),
            max_items=grd.get("max_items", 0),
            max_chars=grd.get("max_chars", 1800),
        ),
        server=ServerConfig(
            host=srv.get("host", "127.0.0.1"),
            port=srv.get("port", 8787),
        ),
    )
