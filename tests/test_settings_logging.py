from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

import pytest

from strata_mcp.logging_setup import configure_logging
from strata_mcp.settings import _env_bool, _env_path


@pytest.fixture
def package_logger():
    logger = logging.getLogger("strata_mcp")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    handlers, level, propagate = saved
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("yes", True), (" ON ", True), ("0", False), ("off", False), ("maybe", True)],
)
def test_env_bool(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("STRATA_MCP_TEST_FLAG", raw)
    assert _env_bool("STRATA_MCP_TEST_FLAG", True) is expected


def test_env_bool_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("STRATA_MCP_TEST_FLAG", raising=False)
    assert _env_bool("STRATA_MCP_TEST_FLAG") is False


def test_env_path(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("STRATA_MCP_TEST_PATH", str(tmp_path / "models"))
    assert _env_path("STRATA_MCP_TEST_PATH") == tmp_path / "models"
    monkeypatch.setenv("STRATA_MCP_TEST_PATH", "")
    assert _env_path("STRATA_MCP_TEST_PATH") is None


def test_stderr_only(package_logger: logging.Logger) -> None:
    logger = configure_logging("info")
    assert logger is package_logger
    assert logger.level == logging.INFO
    assert logger.propagate is False
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.StreamHandler)


def test_file_handler_writes(package_logger: logging.Logger, tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "server.log"
    logger = configure_logging("DEBUG", log_path=log_path, max_bytes=4096, backup_count=2)

    rotating = [h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
    assert len(rotating) == 1
    assert rotating[0].maxBytes == 4096
    assert rotating[0].backupCount == 2

    logging.getLogger("strata_mcp.store.memory").debug("forked %s", "feature")
    rotating[0].flush()
    assert "forked feature" in log_path.read_text(encoding="utf-8")


def test_reconfigure_replaces_handlers(package_logger: logging.Logger, tmp_path: Path) -> None:
    configure_logging("INFO", log_path=tmp_path / "a.log")
    logger = configure_logging("WARNING")
    assert len(logger.handlers) == 1


def test_unknown_level(package_logger: logging.Logger) -> None:
    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging("CHATTY")
