"""Tests for the transaction coordinator."""

from __future__ import annotations

import pytest

from arcadex import (
    ArcadexError,
    Conn,
    Err,
    ErrorKind,
    Ok,
    begin,
    command,
    command_or_raise,
    commit,
    rollback_transaction,
    run_transaction,
    run_transaction_or_raise,
    transaction,
)
from fakes import SESSION_ID, FakeServer, error_response, json_response

BEGIN = "/api/v1/begin/testdb"
COMMIT = "/api/v1/commit/testdb"
ROLLBACK = "/api/v1/rollback/testdb"
COMMAND = "/api/v1/command/testdb"


def _insert_ok(server: FakeServer) -> None:
    server.on("POST", COMMAND, json_response(200, {"result": [{"@rid": "#1:0"}]}))


def test_begin_returns_session_id(server: FakeServer, conn: Conn) -> None:
    assert begin(conn) == Ok(SESSION_ID)
    assert server.paths == [BEGIN]


def test_begin_without_session_id_is_malformed(server: FakeServer, conn: Conn) -> None:
    server.on("POST", BEGIN, json_response(204))

    outcome = begin(conn)

    assert isinstance(outcome, Err)
    assert outcome.error.kind is ErrorKind.SERVER


def test_commit_requires_a_session(server: FakeServer, conn: Conn) -> None:
    outcome = commit(conn)

    assert isinstance(outcome, Err)
    assert outcome.error.kind is ErrorKind.VALIDATION
    assert server.calls == []


def test_rollback_on_stateless_handle_is_a_no_op(server: FakeServer, conn: Conn) -> None:
    assert rollback_transaction(conn) == Ok(None)
    assert server.calls == []


def test_success_commits_exactly_once(server: FakeServer, conn: Conn) -> None:
    _insert_ok(server)

    def work(tx: Conn):  # type: ignore[no-untyped-def]
        return command_or_raise(tx, "INSERT INTO User SET name = 'Jane'")

    outcome = run_transaction(conn, work)

    assert outcome == Ok([{"@rid": "#1:0"}])
    assert server.paths == [BEGIN, COMMAND, COMMIT]
    assert all(call.session_id == SESSION_ID for call in server.calls[1:])
    assert server.calls[0].session_id is None


def test_work_returning_ok_is_unwrapped(server: FakeServer, conn: Conn) -> None:
    _insert_ok(server)

    outcome = run_transaction(conn, lambda tx: command(tx, "INSERT INTO User SET name = 'Jane'"))

    assert outcome == Ok([{"@rid": "#1:0"}])
    assert server.count(COMMIT) == 1


def test_raised_exception_rolls_back_and_is_returned(server: FakeServer, conn: Conn) -> None:
    _insert_ok(server)
    boom = RuntimeError("boom")

    def work(tx: Conn) -> None:
        command_or_raise(tx, "INSERT INTO User SET name = 'Jane'")
        raise boom

    outcome = run_transaction(conn, work)

    assert isinstance(outcome, Err)
    assert outcome.error is boom
    assert outcome.secondary is None
    assert server.paths == [BEGIN, COMMAND, ROLLBACK]
    assert server.count(COMMIT) == 0


def test_returned_err_rolls_back(server: FakeServer, conn: Conn) -> None:
    server.on("POST", COMMAND, error_response(409, "Conflict", "duplicate key"))

    outcome = run_transaction(conn, lambda tx: command(tx, "INSERT INTO User SET uid = 1"))

    assert isinstance(outcome, Err)
    assert outcome.error.kind is ErrorKind.CONFLICT
    assert server.paths == [BEGIN, COMMAND, ROLLBACK]


def test_failed_rollback_keeps_original_error(server: FakeServer, conn: Conn) -> None:
    server.on("POST", ROLLBACK, error_response(500, "Session expired"))
    boom = ValueError("bad input")

    def work(tx: Conn) -> None:
        raise boom

    outcome = run_transaction(conn, work)

    assert isinstance(outcome, Err)
    assert outcome.error is boom
    assert isinstance(outcome.secondary, ArcadexError)
    assert outcome.secondary.message == "Session expired"


def test_failed_begin_runs_no_work(server: FakeServer, conn: Conn) -> None:
    server.on("POST", BEGIN, error_response(503, "Server busy"))
    ran: list[Conn] = []

    outcome = run_transaction(conn, ran.append)

    assert isinstance(outcome, Err)
    assert outcome.error.kind is ErrorKind.SERVER
    assert ran == []
    assert server.paths == [BEGIN]


def test_failed_commit_is_returned(server: FakeServer, conn: Conn) -> None:
    server.on("POST", COMMIT, error_response(409, "Concurrent modification"))

    outcome = run_transaction(conn, lambda tx: "done")

    assert isinstance(outcome, Err)
    assert outcome.error.kind is ErrorKind.CONFLICT
    assert server.paths == [BEGIN, COMMIT]


def test_nested_transaction_is_rejected_without_requests(server: FakeServer, conn: Conn) -> None:
    tx = conn.with_session(SESSION_ID)

    outcome = run_transaction(tx, lambda inner: "never")

    assert isinstance(outcome, Err)
    assert outcome.error.kind is ErrorKind.VALIDATION
    assert server.calls == []


def test_nested_begin_is_rejected(server: FakeServer, conn: Conn) -> None:
    outcome = begin(conn.with_session(SESSION_ID))

    assert isinstance(outcome, Err)
    assert outcome.error.kind is ErrorKind.VALIDATION
    assert server.calls == []


def test_interrupt_rolls_back_and_propagates(server: FakeServer, conn: Conn) -> None:
    def work(tx: Conn) -> None:
        raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        run_transaction(conn, work)

    assert server.paths == [BEGIN, ROLLBACK]


def test_or_raise_returns_value(server: FakeServer, conn: Conn) -> None:
    assert run_transaction_or_raise(conn, lambda tx: 42) == 42


def test_or_raise_raises_original_error(server: FakeServer, conn: Conn) -> None:
    def work(tx: Conn) -> None:
        raise LookupError("missing")

    with pytest.raises(LookupError, match="missing"):
        run_transaction_or_raise(conn, work)


def test_or_raise_notes_failed_rollback(server: FakeServer, conn: Conn) -> None:
    server.on("POST", ROLLBACK, error_response(500, "Session expired"))

    def work(tx: Conn) -> None:
        raise ValueError("bad input")

    with pytest.raises(ValueError, match="bad input") as info:
        run_transaction_or_raise(conn, work)

    assert info.value.__notes__ == ["rollback also failed: Session expired"]


def test_unwrap_adds_the_rollback_note_once() -> None:
    outcome = Err(ValueError("bad input"), secondary=RuntimeError("Session expired"))

    for _ in range(2):
        with pytest.raises(ValueError) as info:
            outcome.unwrap()

    assert info.value.__notes__ == ["rollback also failed: Session expired"]


def test_context_manager_commits_on_clean_exit(server: FakeServer, conn: Conn) -> None:
    _insert_ok(server)

    with transaction(conn) as tx:
        assert tx.session_id == SESSION_ID
        command_or_raise(tx, "INSERT INTO User SET name = 'Bob'")

    assert server.paths == [BEGIN, COMMAND, COMMIT]


def test_context_manager_rolls_back_on_error(server: FakeServer, conn: Conn) -> None:
    with pytest.raises(RuntimeError, match="boom"):
        with transaction(conn):
            raise RuntimeError("boom")

    assert server.paths == [BEGIN, ROLLBACK]


def test_context_manager_notes_failed_rollback(server: FakeServer, conn: Conn) -> None:
    server.on("POST", ROLLBACK, error_response(500, "Session expired"))

    with pytest.raises(RuntimeError) as info:
        with transaction(conn):
            raise RuntimeError("boom")

    assert any("Session expired" in note for note in info.value.__notes__)


def test_context_manager_raises_commit_failure(server: FakeServer, conn: Conn) -> None:
    server.on("POST", COMMIT, error_response(409, "Concurrent modification"))

    with pytest.raises(ArcadexError) as info:
        with transaction(conn):
            pass

    assert info.value.kind is ErrorKind.CONFLICT
