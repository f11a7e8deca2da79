"""Command-line entry point: ``python -m strata_mcp`` or ``strata-mcp``."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from . import __version__
from .errors import BranchNotFoundError
from .logging_setup import configure_logging
from .server import McpServer
from .session import DEFAULT_BRANCH, Session
from .settings import settings
from .store import AccessMode, MemoryStore, ModelConfig
from .tools import ToolRegistry

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="strata-mcp",
        description="Serve a Strata database to MCP clients over stdio.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--read-only",
        action="store_true",
        default=settings.read_only,
        help="Reject every write",
    )
    parser.add_argument(
        "--auto-embed",
        action="store_true",
        default=settings.auto_embed,
        help="Embed written text for semantic and hybrid search",
    )
    parser.add_argument("--branch", default=settings.branch, help="Initial branch (default: %(default)s)")
    parser.add_argument("--space", default=settings.space, help="Initial space (default: %(default)s)")
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Log level for stderr and the log file (default: %(default)s)",
    )
    parser.add_argument("--log-file", type=Path, default=settings.log_path, help="Also log to this file")
    parser.add_argument(
        "--models-dir",
        type=Path,
        default=settings.models_dir,
        help="Directory for locally pulled models",
    )
    return parser


def _model_config() -> ModelConfig | None:
    if not settings.model_endpoint or not settings.model_name:
        return None
    return ModelConfig(
        endpoint=settings.model_endpoint,
        model=settings.model_name,
        timeout_ms=settings.model_timeout_ms,
    )


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        configure_logging(
            args.log_level,
            log_path=args.log_file,
            max_bytes=settings.log_max_bytes,
            backup_count=settings.log_backup_count,
        )
    except ValueError as e:
        parser.error(str(e))

    store = MemoryStore(
        access_mode=AccessMode.READ_ONLY if args.read_only else AccessMode.READ_WRITE,
        auto_embed=args.auto_embed,
        models_dir=args.models_dir,
        model=_model_config(),
    )
    session = Session(store, space=args.space)
    if args.branch != DEFAULT_BRANCH:
        try:
            session.switch_branch(args.branch)
        except BranchNotFoundError as e:
            parser.error(e.message)

    logger.info(
        "strata-mcp %s starting (branch=%s space=%s read_only=%s)",
        __version__,
        args.branch,
        args.space,
        args.read_only,
    )
    McpServer(session, ToolRegistry.agent()).run_stdio()


if __name__ == "__main__":
    main()
