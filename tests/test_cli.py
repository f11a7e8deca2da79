from __future__ import annotations

import io
import json
import logging
from unittest.mock import patch

import pytest

from strata_mcp import __version__
from strata_mcp.__main__ import main


@pytest.fixture(autouse=True)
def _restore_logger():
    logger = logging.getLogger("strata_mcp")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handlers, level, propagate = saved
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


def _run(argv: list[str], stdin: str) -> list[dict]:
    with patch("sys.stdin", io.StringIO(stdin)), patch("sys.stdout", new_callable=io.StringIO) as stdout:
        main(argv)
    return [json.loads(line) for line in stdout.getvalue().splitlines() if line.strip()]


def test_version(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_unknown_branch_is_a_usage_error(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["--branch", "missing"])
    assert exc.value.code == 2
    assert "missing" in capsys.readouterr().err


def test_bad_log_level(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["--log-level", "LOUD"])
    assert exc.value.code == 2


def test_serves_agent_tools_until_eof() -> None:
    requests = [
        {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}},
        {"jsonrpc": "2.0", "method": "notifications/initialized"},
        {"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
    ]
    responses = _run([], "".join(json.dumps(r) + "\n" for r in requests))

    assert [r["id"] for r in responses] == [1, 2]
    names = {t["name"] for t in responses[1]["result"]["tools"]}
    assert "strata_store" in names and len(names) == 8


def test_read_only_flag() -> None:
    request = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "tools/call",
        "params": {"name": "strata_store", "arguments": {"key": "a", "value": 1}},
    }
    (response,) = _run(["--read-only"], json.dumps(request) + "\n")
    assert response["error"]["data"]["kind"] == "access_denied"
