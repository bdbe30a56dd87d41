"""Connection handle shared by the query, transaction and migration modules."""

from __future__ import annotations

from dataclasses import dataclass, replace

DEFAULT_AUTH: tuple[str, str] = ("root", "root")
DEFAULT_POOL = "default"


@dataclass(frozen=True, slots=True)
class Conn:
    """Immutable description of where and as whom requests are sent.

    A handle carrying `session_id` is transaction-scoped: every request made
    through it joins that server-side session. Such handles must not be used
    from more than one thread at a time; the server processes a session
    serially and the client does not lock on the caller's behalf.
    """

    base_url: str
    database: str
    auth: tuple[str, str] = DEFAULT_AUTH
    pool: str = DEFAULT_POOL
    session_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @property
    def in_transaction(self) -> bool:
        return self.session_id is not None

    def with_database(self, database: str) -> Conn:
        """Return a copy pointing at another database on the same pool.

        Sessions belong to a single database, so the copy is stateless.
        """

        return replace(self, database=database, session_id=None)

    def with_session(self, session_id: str) -> Conn:
        """Return a transaction-scoped copy bound to `session_id`."""

        return replace(self, session_id=session_id)

    def __repr__(self) -> str:
        # Keep passwords out of logs and tracebacks.
        return (
            f"Conn(base_url={self.base_url!r}, database={self.database!r}, "
            f"user={self.auth[0]!r}, pool={self.pool!r}, session_id={self.session_id!r})"
        )


def connect(
    base_url: str,
    database: str,
    *,
    auth: tuple[str, str] = DEFAULT_AUTH,
    pool: str = DEFAULT_POOL,
) -> Conn:
    """Create a stateless connection handle."""

    return Conn(base_url=base_url, database=database, auth=tuple(auth), pool=pool)  # type: ignore[arg-type]


def with_database(conn: Conn, database: str) -> Conn:
    return conn.with_database(database)


__all__ = ["Conn", "DEFAULT_AUTH", "DEFAULT_POOL", "connect", "with_database"]
