"""Query and command execution against the database endpoints."""

from __future__ import annotations

from typing import Any, Mapping

from . import client
from .errors import ArcadexError, ErrorKind, validation_error
from .models import Conn
from .result import Err, Ok, Result

LANGUAGES = frozenset({"sql", "sqlscript", "cypher", "gremlin", "graphql", "mongo"})
SERIALIZERS = frozenset({"record", "graph", "studio"})


def build_body(
    language: str,
    command: str,
    params: Mapping[str, Any] | None = None,
    *,
    limit: int | None = None,
    retries: int | None = None,
    serializer: str | None = None,
    await_response: bool | None = None,
) -> dict[str, Any]:
    """Assemble the JSON request body.

    Empty params are omitted, and ``awaitResponse`` is only sent when it is
    explicitly false since the server already defaults to true.
    """

    body: dict[str, Any] = {"language": language, "command": command}
    if params:
        body["params"] = dict(params)
    if limit is not None:
        body["limit"] = limit
    if retries is not None:
        body["retries"] = retries
    if serializer is not None:
        body["serializer"] = serializer
    if await_response is False:
        body["awaitResponse"] = False
    return body


def query(
    conn: Conn,
    sql: str,
    params: Mapping[str, Any] | None = None,
    *,
    limit: int | None = None,
    serializer: str | None = None,
) -> Result[list[Any]]:
    """Run a read-only SQL query."""

    return _run(conn, "query", "sql", sql, params, limit=limit, serializer=serializer)


def query_or_raise(
    conn: Conn,
    sql: str,
    params: Mapping[str, Any] | None = None,
    *,
    limit: int | None = None,
    serializer: str | None = None,
) -> list[Any]:
    return query(conn, sql, params, limit=limit, serializer=serializer).unwrap()


def command(
    conn: Conn,
    sql: str,
    params: Mapping[str, Any] | None = None,
    *,
    limit: int | None = None,
    retries: int | None = None,
    serializer: str | None = None,
) -> Result[list[Any]]:
    """Run a SQL write command (INSERT/UPDATE/DELETE/DDL)."""

    return _run(
        conn, "command", "sql", sql, params, limit=limit, retries=retries, serializer=serializer
    )


def command_or_raise(
    conn: Conn,
    sql: str,
    params: Mapping[str, Any] | None = None,
    *,
    limit: int | None = None,
    retries: int | None = None,
    serializer: str | None = None,
) -> list[Any]:
    return command(conn, sql, params, limit=limit, retries=retries, serializer=serializer).unwrap()


def script(
    conn: Conn,
    text: str,
    params: Mapping[str, Any] | None = None,
    *,
    limit: int | None = None,
    retries: int | None = None,
    serializer: str | None = None,
) -> Result[list[Any]]:
    """Run a multi-statement ``sqlscript`` (LET/RETURN)."""

    return execute(
        conn, "sqlscript", text, params, limit=limit, retries=retries, serializer=serializer
    )


def script_or_raise(
    conn: Conn,
    text: str,
    params: Mapping[str, Any] | None = None,
    *,
    limit: int | None = None,
    retries: int | None = None,
    serializer: str | None = None,
) -> list[Any]:
    return script(conn, text, params, limit=limit, retries=retries, serializer=serializer).unwrap()


def execute(
    conn: Conn,
    language: str,
    text: str,
    params: Mapping[str, Any] | None = None,
    *,
    limit: int | None = None,
    retries: int | None = None,
    serializer: str | None = None,
) -> Result[list[Any]]:
    """Run `text` in any supported language through the command endpoint."""

    if language not in LANGUAGES:
        return Err(
            validation_error(
                f"Unsupported language '{language}'",
                detail=f"expected one of {', '.join(sorted(LANGUAGES))}",
            )
        )
    return _run(
        conn, "command", language, text, params, limit=limit, retries=retries, serializer=serializer
    )


def execute_or_raise(
    conn: Conn,
    language: str,
    text: str,
    params: Mapping[str, Any] | None = None,
    *,
    limit: int | None = None,
    retries: int | None = None,
    serializer: str | None = None,
) -> list[Any]:
    return execute(
        conn, language, text, params, limit=limit, retries=retries, serializer=serializer
    ).unwrap()


def command_async(
    conn: Conn,
    sql: str,
    params: Mapping[str, Any] | None = None,
    *,
    limit: int | None = None,
    retries: int | None = None,
    serializer: str | None = None,
) -> Result[None]:
    """Submit a SQL command without waiting for it to run.

    The server acknowledges the request immediately; the command outcome is
    only visible in the server log.
    """

    outcome = _run(
        conn,
        "command",
        "sql",
        sql,
        params,
        limit=limit,
        retries=retries,
        serializer=serializer,
        await_response=False,
        require_result=False,
    )
    if isinstance(outcome, Err):
        return outcome
    return Ok(None)


def command_async_or_raise(
    conn: Conn,
    sql: str,
    params: Mapping[str, Any] | None = None,
    *,
    limit: int | None = None,
    retries: int | None = None,
    serializer: str | None = None,
) -> None:
    command_async(conn, sql, params, limit=limit, retries=retries, serializer=serializer).unwrap()


def _run(
    conn: Conn,
    endpoint: str,
    language: str,
    text: str,
    params: Mapping[str, Any] | None,
    *,
    limit: int | None = None,
    retries: int | None = None,
    serializer: str | None = None,
    await_response: bool | None = None,
    require_result: bool = True,
) -> Result[list[Any]]:
    statement = text.strip()
    if not statement:
        return Err(validation_error("Provide a command to execute."))
    if serializer is not None and serializer not in SERIALIZERS:
        return Err(validation_error(f"Unsupported serializer '{serializer}'"))
    body = build_body(
        language,
        statement,
        params,
        limit=limit,
        retries=retries,
        serializer=serializer,
        await_response=await_response,
    )
    outcome = client.post(conn, f"/api/v1/{endpoint}/{conn.database}", body)
    if isinstance(outcome, Err):
        return outcome
    payload = outcome.value
    if "result" not in payload:
        if not require_result:
            return Ok([])
        return Err(
            ArcadexError(ErrorKind.SERVER, "Malformed response", detail="missing 'result' field")
        )
    return Ok(payload["result"])


__all__ = [
    "LANGUAGES",
    "SERIALIZERS",
    "build_body",
    "command",
    "command_async",
    "command_async_or_raise",
    "command_or_raise",
    "execute",
    "execute_or_raise",
    "query",
    "query_or_raise",
    "script",
    "script_or_raise",
]
