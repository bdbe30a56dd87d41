"""Transaction support on top of server-side sessions.

A transaction is a remote session opened with ``begin`` and closed by exactly
one ``commit`` or ``rollback``. The session id travels on an immutable,
transaction-scoped `Conn`; nothing is kept in globals or thread-locals.

Examples:
    >>> conn = arcadex.connect("http://localhost:2480", "mydb")
    >>>
    >>> def work(tx):
    ...     user = arcadex.command_or_raise(tx, "INSERT INTO User SET name = 'Jane'")
    ...     arcadex.command_or_raise(tx, "INSERT INTO Log SET user = :rid", {"rid": user[0]["@rid"]})
    ...     return user
    >>>
    >>> outcome = arcadex.run_transaction(conn, work)   # Ok([...]) or Err(...)
    >>>
    >>> with arcadex.transaction(conn) as tx:            # raising form
    ...     arcadex.command_or_raise(tx, "INSERT INTO User SET name = 'Bob'")

A session that was begun but never finished (the process died between begin
and commit) stays open on the server until the server's own timeout reclaims
it. Begin, commit and rollback are never retried automatically.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar, Union

from . import client
from .errors import ArcadexError, ErrorKind, validation_error
from .models import Conn
from .result import Err, Ok, Result

LOG = logging.getLogger(__name__)

T = TypeVar("T")

Work = Callable[[Conn], Union[T, Ok[T], Err]]


def begin(conn: Conn) -> Result[str]:
    """Open a session and return its id."""

    if conn.in_transaction:
        return Err(_nested_error())
    outcome = client.post(conn, f"/api/v1/begin/{conn.database}", {})
    if isinstance(outcome, Err):
        return outcome
    session_id = outcome.value.get("result")
    if not isinstance(session_id, str) or not session_id:
        return Err(
            ArcadexError(ErrorKind.SERVER, "Malformed response", detail="begin returned no session id")
        )
    LOG.debug("Transaction begun", extra={"database": conn.database, "session_id": session_id})
    return Ok(session_id)


def commit(conn: Conn) -> Result[None]:
    """Commit the session carried by `conn`."""

    if not conn.in_transaction:
        return Err(validation_error("No active transaction"))
    outcome = client.post(conn, f"/api/v1/commit/{conn.database}", {})
    if isinstance(outcome, Err):
        LOG.debug(
            "Commit failed",
            extra={"database": conn.database, "session_id": conn.session_id},
        )
        return outcome
    LOG.debug("Transaction committed", extra={"database": conn.database, "session_id": conn.session_id})
    return Ok(None)


def rollback(conn: Conn) -> Result[None]:
    """Roll back the session carried by `conn`; a stateless handle is a no-op."""

    if not conn.in_transaction:
        return Ok(None)
    outcome = client.post(conn, f"/api/v1/rollback/{conn.database}", {})
    if isinstance(outcome, Err):
        LOG.warning(
            "Rollback failed",
            extra={
                "database": conn.database,
                "session_id": conn.session_id,
                "error": str(outcome.error),
            },
        )
        return outcome
    LOG.debug("Transaction rolled back", extra={"database": conn.database, "session_id": conn.session_id})
    return Ok(None)


def run_transaction(conn: Conn, work: Work[T]) -> Result[T]:
    """Run `work` inside a fresh session and finish it exactly once.

    `work` receives the transaction-scoped handle. Returning a value (or an
    `Ok`) commits; raising an exception or returning an `Err` rolls back and
    hands the original failure back. A rollback that also fails is reported
    as `Err.secondary`. Interrupts and other non-`Exception` errors trigger a
    best-effort rollback and then propagate unchanged.
    """

    if conn.in_transaction:
        return Err(_nested_error())
    started = begin(conn)
    if isinstance(started, Err):
        return started
    tx_conn = conn.with_session(started.value)
    try:
        value = work(tx_conn)
    except Exception as exc:
        return _abort(tx_conn, Err(exc))
    except BaseException:
        _rollback_on_interrupt(tx_conn)
        raise
    if isinstance(value, Err):
        return _abort(tx_conn, value)
    if isinstance(value, Ok):
        value = value.value
    committed = commit(tx_conn)
    if isinstance(committed, Err):
        return committed
    return Ok(value)


def run_transaction_or_raise(conn: Conn, work: Work[T]) -> T:
    return run_transaction(conn, work).unwrap()


@contextmanager
def transaction(conn: Conn) -> Iterator[Conn]:
    """Context manager form: commit on clean exit, roll back on exception.

    Errors from begin and commit are raised as `ArcadexError`; exceptions
    from the block propagate after the rollback.
    """

    if conn.in_transaction:
        raise _nested_error()
    tx_conn = conn.with_session(begin(conn).unwrap())
    try:
        yield tx_conn
    except Exception as exc:
        rolled = rollback(tx_conn)
        if isinstance(rolled, Err):
            exc.add_note(f"rollback also failed: {rolled.error}")
        raise
    except BaseException:
        _rollback_on_interrupt(tx_conn)
        raise
    commit(tx_conn).unwrap()


def _abort(tx_conn: Conn, failure: Err) -> Err:
    rolled = rollback(tx_conn)
    if isinstance(rolled, Err):
        return Err(failure.error, secondary=rolled.error)
    return failure


def _rollback_on_interrupt(tx_conn: Conn) -> None:
    try:
        rollback(tx_conn)
    except Exception:  # pragma: no cover - the interrupt wins
        LOG.exception("Rollback after interrupt failed", extra={"session_id": tx_conn.session_id})


def _nested_error() -> ArcadexError:
    return validation_error(
        "Nested transactions are not supported",
        detail="use the transaction-scoped handle directly",
    )


__all__ = [
    "Work",
    "begin",
    "commit",
    "rollback",
    "run_transaction",
    "run_transaction_or_raise",
    "transaction",
]
