"""Tests for Session: context stamping, read-only enforcement, transactions."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from strata_mcp.errors import AccessDeniedError, BranchNotFoundError, InternalError, StoreError
from strata_mcp.session import Session
from strata_mcp.store import AccessMode, MemoryStore
from strata_mcp.store import commands as cmd
from strata_mcp.store import outputs as out
from strata_mcp.store.records import MergeStrategy
from strata_mcp.store.values import Int, String


def _mock_store(access_mode: AccessMode = AccessMode.READ_WRITE) -> tuple[MagicMock, MagicMock]:
    store = MagicMock()
    executor = MagicMock()
    store.session.return_value = executor
    store.access_mode.return_value = access_mode
    return store, executor


class TestContext:
    def test_defaults(self, session: Session) -> None:
        assert session.branch == "default"
        assert session.space == "default"
        assert session.in_transaction is False
        assert session.is_read_only() is False

    def test_switch_branch(self, session: Session) -> None:
        session.execute(cmd.BranchCreate(branch_id="feature"))
        session.switch_branch("feature")
        assert session.branch == "feature"
        assert session.branch_id() == "feature"

    def test_switch_to_missing_branch_keeps_context(self, session: Session) -> None:
        with pytest.raises(BranchNotFoundError) as exc:
            session.switch_branch("nope")
        assert exc.value.branch == "nope"
        assert session.branch == "default"

    def test_switch_branch_unexpected_output(self) -> None:
        store, executor = _mock_store()
        executor.execute.return_value = out.Unit()
        session = Session(store)
        with pytest.raises(InternalError):
            session.switch_branch("x")
        assert session.branch == "default"

    def test_switch_space_needs_no_store_call(self) -> None:
        store, executor = _mock_store()
        session = Session(store)
        session.switch_space("notes")
        assert session.space_id() == "notes"
        executor.execute.assert_not_called()

    def test_space_isolation(self, session: Session) -> None:
        session.execute(cmd.KvPut(branch="default", space="default", key="k", value=Int(1)))
        session.switch_space("other")
        got = session.execute(cmd.KvGet(branch=session.branch_id(), space=session.space_id(), key="k"))
        assert got == out.MaybeVersioned(None)


class TestReadOnly:
    def test_write_never_reaches_executor(self) -> None:
        store, executor = _mock_store(AccessMode.READ_ONLY)
        session = Session(store)
        with pytest.raises(AccessDeniedError) as exc:
            session.execute(cmd.KvPut(key="k", value=Int(1)))
        assert exc.value.operation == "KvPut"
        assert exc.value.code == "ACCESS_DENIED"
        executor.execute.assert_not_called()

    def test_reads_are_forwarded(self) -> None:
        store, executor = _mock_store(AccessMode.READ_ONLY)
        executor.execute.return_value = out.MaybeVersioned(None)
        session = Session(store)
        assert session.execute(cmd.KvGet(key="k")) == out.MaybeVersioned(None)
        executor.execute.assert_called_once()

    def test_state_unchanged_after_rejected_write(self, store: MemoryStore, read_only_session: Session) -> None:
        Session(store).execute(cmd.KvPut(branch="default", space="default", key="k", value=String("before")))
        with pytest.raises(AccessDeniedError):
            read_only_session.execute(cmd.KvPut(branch="default", space="default", key="k", value=String("after")))
        got = read_only_session.execute(cmd.KvGet(branch="default", space="default", key="k"))
        assert isinstance(got, out.MaybeVersioned)
        assert got.value.value == String("before")

    def test_fork_and_merge_are_guarded(self) -> None:
        store, _ = _mock_store(AccessMode.READ_ONLY)
        session = Session(store)
        with pytest.raises(AccessDeniedError) as fork_exc:
            session.fork_branch("copy")
        with pytest.raises(AccessDeniedError) as merge_exc:
            session.merge_branch("copy", MergeStrategy.LAST_WRITER_WINS)
        assert fork_exc.value.operation == "BranchFork"
        assert merge_exc.value.operation == "BranchMerge"
        store.branches.assert_not_called()

    def test_diff_is_allowed(self) -> None:
        store, _ = _mock_store(AccessMode.READ_ONLY)
        Session(store).diff_branches("a", "b")
        store.branches.return_value.diff.assert_called_once_with("a", "b")


class TestTransactions:
    def test_begin_commit_toggles(self, session: Session) -> None:
        session.execute(cmd.TxnBegin(branch="default"))
        assert session.in_transaction is True
        session.execute(cmd.KvPut(branch="default", space="default", key="k", value=Int(1)))
        committed = session.execute(cmd.TxnCommit())
        assert isinstance(committed, out.TxnCommitted)
        assert session.in_transaction is False

    def test_rollback_discards_writes(self, session: Session) -> None:
        session.execute(cmd.TxnBegin(branch="default"))
        session.execute(cmd.KvPut(branch="default", space="default", key="k", value=Int(1)))
        session.execute(cmd.TxnRollback())
        assert session.in_transaction is False
        assert session.execute(cmd.KvGet(branch="default", space="default", key="k")) == out.MaybeVersioned(None)

    def test_error_inside_transaction_leaves_it_open(self, session: Session) -> None:
        session.execute(cmd.TxnBegin(branch="default"))
        with pytest.raises(StoreError):
            session.execute(cmd.KvPut(branch="default", space="default", key="", value=Int(1)))
        assert session.in_transaction is True
        session.execute(cmd.TxnRollback())
        assert session.in_transaction is False

    def test_failed_commit_does_not_change_flag(self, session: Session) -> None:
        with pytest.raises(StoreError) as exc:
            session.execute(cmd.TxnCommit())
        assert exc.value.code == "NO_TRANSACTION"
        assert session.in_transaction is False

    def test_double_begin(self, session: Session) -> None:
        session.execute(cmd.TxnBegin(branch="default"))
        with pytest.raises(StoreError) as exc:
            session.execute(cmd.TxnBegin(branch="default"))
        assert exc.value.code == "TRANSACTION_ACTIVE"
        assert session.in_transaction is True

    def test_rollback_keeps_branches_forked_meanwhile(self, session: Session) -> None:
        session.execute(cmd.TxnBegin(branch="default"))
        session.execute(cmd.KvPut(branch="default", space="default", key="k", value=Int(1)))
        session.fork_branch("exp")
        session.switch_branch("exp")
        session.execute(cmd.TxnRollback())

        assert session.branch == "exp"
        assert session.execute(cmd.BranchExists(branch="exp")) == out.Bool(True)
        kept = session.execute(cmd.KvGet(branch="exp", space="default", key="k"))
        assert kept.value.value == Int(1)  # type: ignore[union-attr]
        assert session.execute(cmd.KvGet(branch="default", space="default", key="k")) == out.MaybeVersioned(None)

    def test_rollback_leaves_other_branches_alone(self, session: Session) -> None:
        session.execute(cmd.BranchCreate(branch_id="side"))
        session.execute(cmd.TxnBegin(branch="default"))
        session.execute(cmd.KvPut(branch="side", space="default", key="k", value=Int(2)))
        session.execute(cmd.TxnRollback())
        kept = session.execute(cmd.KvGet(branch="side", space="default", key="k"))
        assert kept.value.value == Int(2)  # type: ignore[union-attr]


class TestDeleteBranch:
    def test_current_branch_is_refused(self, session: Session) -> None:
        session.execute(cmd.BranchCreate(branch_id="exp"))
        session.switch_branch("exp")
        with pytest.raises(StoreError) as exc:
            session.delete_branch("exp")
        assert exc.value.code == "CONSTRAINT_VIOLATION"
        assert session.branch == "exp"
        assert session.execute(cmd.BranchExists(branch="exp")) == out.Bool(True)

    def test_other_branch_is_deleted(self, session: Session) -> None:
        session.execute(cmd.BranchCreate(branch_id="exp"))
        assert session.delete_branch("exp") == out.Unit()
        assert session.execute(cmd.BranchExists(branch="exp")) == out.Bool(False)

    def test_read_only_is_checked_first(self) -> None:
        store, executor = _mock_store(AccessMode.READ_ONLY)
        with pytest.raises(AccessDeniedError):
            Session(store).delete_branch("default")
        executor.execute.assert_not_called()
