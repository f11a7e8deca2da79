from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    if val in {"1", "true", "yes", "y", "on"}:
        return True
    if val in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_path(name: str) -> Path | None:
    raw = os.environ.get(name)
    return Path(raw).expanduser() if raw else None


@dataclass(frozen=True)
class Settings:
    """Startup defaults for the MCP server.

    Every field can be overridden by a ``STRATA_MCP_*`` environment variable;
    command-line flags override both.
    """

    read_only: bool = _env_bool("STRATA_MCP_READ_ONLY", False)
    auto_embed: bool = _env_bool("STRATA_MCP_AUTO_EMBED", False)
    branch: str = os.environ.get("STRATA_MCP_BRANCH", "default")
    space: str = os.environ.get("STRATA_MCP_SPACE", "default")

    # Logging always goes to stderr; stdout carries the protocol.
    log_level: str = os.environ.get("STRATA_MCP_LOG_LEVEL", "WARNING")
    log_path: Path | None = _env_path("STRATA_MCP_LOG_FILE")
    log_max_bytes: int = int(os.environ.get("STRATA_MCP_LOG_MAX_BYTES", str(1_000_000)))
    log_backup_count: int = int(os.environ.get("STRATA_MCP_LOG_BACKUP_COUNT", "3"))

    models_dir: Path | None = _env_path("STRATA_MCP_MODELS_DIR")

    # Optional generation endpoint (Ollama-compatible).
    model_endpoint: str | None = os.environ.get("STRATA_MCP_MODEL_ENDPOINT")
    model_name: str | None = os.environ.get("STRATA_MCP_MODEL")
    model_timeout_ms: int = int(os.environ.get("STRATA_MCP_MODEL_TIMEOUT_MS", "60000"))


settings = Settings()
