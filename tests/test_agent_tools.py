"""End-to-end tests for the eight agent tools over an in-memory store."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from conftest import CallTool

from strata_mcp.errors import (
    AccessDeniedError,
    BranchNotFoundError,
    InvalidArgError,
    MissingArgError,
    StoreError,
    UnknownToolError,
)
from strata_mcp.session import Session
from strata_mcp.store import outputs as out
from strata_mcp.store.records import DatabaseInfoData
from strata_mcp.tools import ToolRegistry

AGENT_TOOLS = {
    "strata_store",
    "strata_recall",
    "strata_search",
    "strata_forget",
    "strata_log",
    "strata_branch",
    "strata_history",
    "strata_status",
}


class TestCatalogue:
    def test_exactly_eight_tools(self, agent_registry: ToolRegistry) -> None:
        assert {t.name for t in agent_registry.tools()} == AGENT_TOOLS
        assert len(agent_registry) == 8

    def test_schemas_are_objects(self, agent_registry: ToolRegistry) -> None:
        for tool in agent_registry.tools():
            rendered = tool.to_dict()
            assert rendered["inputSchema"]["type"] == "object"
            assert rendered["description"]

    def test_unknown_tool(self, agent_registry: ToolRegistry, session: Session) -> None:
        with pytest.raises(UnknownToolError) as exc:
            agent_registry.dispatch(session, "strata_kv_put", {})
        assert exc.value.name == "strata_kv_put"


class TestStoreRecallForget:
    def test_scenario(self, call: CallTool) -> None:
        assert call("strata_store", key="a", value={"x": 1}) == {"key": "a", "version": 1, "stored": True}

        recalled = call("strata_recall", key="a")
        assert recalled["value"] == {"x": 1}
        assert recalled["version"] == 1
        assert isinstance(recalled["timestamp"], int)

        assert call("strata_forget", key="a") == {"deleted": True}
        assert call("strata_recall", key="a") is None

    def test_versions_increase(self, call: CallTool) -> None:
        first = call("strata_store", key="k", value=1)["version"]
        second = call("strata_store", key="k", value=2)["version"]
        assert second > first

    def test_recall_is_idempotent(self, call: CallTool) -> None:
        call("strata_store", key="k", value="v")
        assert call("strata_recall", key="k") == call("strata_recall", key="k")

    def test_missing_key(self, call: CallTool) -> None:
        assert call("strata_recall", key="ghost") is None
        assert call("strata_forget", key="ghost") == {"deleted": False}

    def test_path_update(self, call: CallTool) -> None:
        call("strata_store", key="cfg", value={"theme": "dark", "size": 2})
        call("strata_store", key="cfg", path="$.theme", value="light")
        assert call("strata_recall", key="cfg", path="$.theme")["value"] == "light"
        assert call("strata_recall", key="cfg")["value"] == {"theme": "light", "size": 2}

    def test_as_of_reads_past_value(self, call: CallTool) -> None:
        call("strata_store", key="k", value="old")
        ts = call("strata_recall", key="k")["timestamp"]
        call("strata_store", key="k", value="new")
        assert call("strata_recall", key="k", as_of=ts)["value"] == "old"

    def test_history_survives_forget(self, call: CallTool) -> None:
        call("strata_store", key="k", value=1)
        call("strata_store", key="k", value=2)
        call("strata_forget", key="k")
        history = call("strata_history", key="k")
        assert [h["value"] for h in history] == [2, 1]

    def test_missing_value(self, call: CallTool) -> None:
        with pytest.raises(MissingArgError) as exc:
            call("strata_store", key="k")
        assert exc.value.name == "value"

    def test_null_is_a_storable_value(self, call: CallTool) -> None:
        assert call("strata_store", key="n", value=None)["stored"] is True
        assert call("strata_recall", key="n")["value"] is None

        call("strata_store", key="doc", value={"x": 1})
        call("strata_store", key="doc", path="$.x", value=None)
        assert call("strata_recall", key="doc")["value"] == {"x": None}

        assert call("strata_log", event="cleared", data=None)["logged"] is True

    def test_wrong_key_type(self, call: CallTool) -> None:
        with pytest.raises(InvalidArgError) as exc:
            call("strata_store", key=12, value=1)
        assert exc.value.name == "key"

    def test_empty_key_is_store_error(self, call: CallTool) -> None:
        with pytest.raises(StoreError) as exc:
            call("strata_store", key="", value=1)
        assert exc.value.code == "INVALID_KEY"


class TestLogAndSearch:
    def test_log_sequences(self, call: CallTool) -> None:
        assert call("strata_log", event="decision", data={"pick": "a"}) == {"sequence": 0, "logged": True}
        assert call("strata_log", event="decision", data={"pick": "b"}) == {"sequence": 1, "logged": True}

    def test_keyword_search(self, call: CallTool) -> None:
        call("strata_store", key="recipe", value={"dish": "pancakes with maple syrup"})
        call("strata_store", key="car", value={"make": "volvo"})
        hits = call("strata_search", query="maple pancakes")
        assert hits[0]["key"] == "recipe"
        assert set(hits[0]) == {"key", "score", "snippet"}
        assert all(h["key"] != "car" for h in hits)

    def test_search_k(self, call: CallTool) -> None:
        for i in range(5):
            call("strata_store", key=f"note{i}", value=f"apple note {i}")
        assert len(call("strata_search", query="apple", k=2)) == 2

    def test_search_finds_events(self, call: CallTool) -> None:
        call("strata_log", event="observation", data={"text": "the build is flaky"})
        hits = call("strata_search", query="flaky build")
        assert hits and hits[0]["key"] == "observation#0"

    def test_hybrid_when_auto_embed(self, embed_session: Session, agent_registry: ToolRegistry) -> None:
        agent_registry.dispatch(embed_session, "strata_store", {"key": "a", "value": "quantum physics lecture"})
        hits = agent_registry.dispatch(embed_session, "strata_search", {"query": "quantum"})
        assert hits[0]["key"] == "a"


class TestBranch:
    def test_create_switch_list(self, call: CallTool, session: Session) -> None:
        created = call("strata_branch", action="create", name="exp")
        assert created["id"] == "exp"
        assert call("strata_branch", action="switch", name="exp") == {"switched": True, "branch": "exp"}
        assert session.branch == "exp"
        assert {b["id"] for b in call("strata_branch", action="list")} == {"default", "exp"}

    def test_switch_missing(self, call: CallTool, session: Session) -> None:
        with pytest.raises(BranchNotFoundError):
            call("strata_branch", action="switch", name="missing")
        assert session.branch == "default"

    def test_fork_merge_workflow(self, call: CallTool) -> None:
        call("strata_store", key="shared", value=1)
        fork = call("strata_branch", action="fork", name="trial")
        assert fork == {"forked": True, "source": "default", "destination": "trial", "keys_copied": 1}

        call("strata_branch", action="switch", name="trial")
        call("strata_store", key="new", value="from trial")
        call("strata_branch", action="switch", name="default")
        assert call("strata_recall", key="new") is None

        merged = call("strata_branch", action="merge", source="trial")
        assert merged == {"merged": True, "keys_applied": 1, "spaces_merged": 1, "conflicts": []}
        assert call("strata_recall", key="new")["value"] == "from trial"

    def test_merge_reports_conflicts(self, call: CallTool) -> None:
        call("strata_store", key="k", value="base")
        call("strata_branch", action="fork", name="other")
        call("strata_branch", action="switch", name="other")
        call("strata_store", key="k", value="theirs")
        call("strata_branch", action="switch", name="default")
        merged = call("strata_branch", action="merge", source="other")
        assert merged["conflicts"] == [{"key": "k", "space": "default"}]
        # the source write is newer, so it wins
        assert call("strata_recall", key="k")["value"] == "theirs"

    def test_diff(self, call: CallTool) -> None:
        call("strata_store", key="a", value=1)
        call("strata_store", key="b", value=1)
        call("strata_branch", action="fork", name="other")
        call("strata_branch", action="switch", name="other")
        call("strata_store", key="b", value=2)
        call("strata_store", key="c", value=3)
        call("strata_forget", key="a")
        call("strata_branch", action="switch", name="default")
        assert call("strata_branch", action="diff", compare="other") == {
            "current_branch": "default",
            "compare_branch": "other",
            "added": 1,
            "removed": 1,
            "modified": 1,
        }

    def test_delete(self, call: CallTool) -> None:
        call("strata_branch", action="create", name="tmp")
        assert call("strata_branch", action="delete", name="tmp") is None
        with pytest.raises(StoreError) as exc:
            call("strata_branch", action="delete", name="tmp")
        assert exc.value.code == "BRANCH_NOT_FOUND"

    def test_current_branch_cannot_be_deleted(self, call: CallTool, session: Session) -> None:
        call("strata_branch", action="create", name="exp")
        call("strata_branch", action="switch", name="exp")
        with pytest.raises(StoreError) as exc:
            call("strata_branch", action="delete", name="exp")
        assert exc.value.code == "CONSTRAINT_VIOLATION"
        assert session.branch == "exp"
        assert call("strata_store", key="k", value=1)["stored"] is True

        call("strata_branch", action="switch", name="default")
        assert call("strata_branch", action="delete", name="exp") is None

    def test_unknown_action(self, call: CallTool) -> None:
        with pytest.raises(InvalidArgError) as exc:
            call("strata_branch", action="rebase")
        assert exc.value.name == "action"
        assert exc.value.reason == (
            "Unknown action 'rebase'. Use: create, switch, list, fork, merge, diff, or delete."
        )

    def test_fork_on_read_only(self, read_only_session: Session, agent_registry: ToolRegistry) -> None:
        with pytest.raises(AccessDeniedError):
            agent_registry.dispatch(read_only_session, "strata_branch", {"action": "fork", "name": "x"})


class TestHistoryAndStatus:
    def test_time_range(self, call: CallTool) -> None:
        empty = call("strata_history")
        assert empty == {"branch": "default", "oldest": None, "latest": None}
        call("strata_store", key="a", value=1)
        call("strata_store", key="b", value=2)
        spans = call("strata_history")
        assert spans["oldest"] < spans["latest"]

    def test_history_of_unknown_key(self, call: CallTool) -> None:
        assert call("strata_history", key="never") is None

    def test_status(self, call: CallTool) -> None:
        call("strata_store", key="a", value=1)
        status = call("strata_status")
        assert status["branch"] == "default"
        assert status["namespace"] == "default"
        assert status["branches"] == 1
        assert status["keys"] == 1
        assert status["auto_embed"] is False

    def test_status_without_embed_status(self, agent_registry: ToolRegistry) -> None:
        """A failing EmbedStatus only drops the auto_embed field."""
        store = MagicMock()
        executor = store.session.return_value

        def execute(command):
            if type(command).__name__ == "Info":
                return out.DatabaseInfo(
                    DatabaseInfoData(version="1.0", uptime_secs=3, branch_count=2, total_keys=5)
                )
            raise StoreError("EMBED_DISABLED", "no embedder")

        executor.execute.side_effect = execute
        status = agent_registry.dispatch(Session(store), "strata_status", {})
        assert status == {
            "version": "1.0",
            "branch": "default",
            "namespace": "default",
            "branches": 2,
            "keys": 5,
            "uptime_secs": 3,
        }


class TestReadOnlyAgent:
    def test_writes_rejected(self, read_only_session: Session, agent_registry: ToolRegistry) -> None:
        for name, args in (
            ("strata_store", {"key": "k", "value": 1}),
            ("strata_forget", {"key": "k"}),
            ("strata_log", {"event": "e", "data": 1}),
        ):
            with pytest.raises(AccessDeniedError):
                agent_registry.dispatch(read_only_session, name, args)

    def test_reads_work(self, read_only_session: Session, agent_registry: ToolRegistry) -> None:
        assert agent_registry.dispatch(read_only_session, "strata_recall", {"key": "k"}) is None
