"""HTTP request executors and the response handling shared by all endpoints."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

import httpx

from . import errors
from .models import Conn
from .result import Err, Ok, Result

LOG = logging.getLogger(__name__)

SESSION_HEADER = "arcadedb-session-id"


@dataclass(frozen=True, slots=True)
class Response:
    """Raw response handed back by an executor."""

    status: int
    text: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


@runtime_checkable
class RequestExecutor(Protocol):
    """Interface implemented by request executors.

    Implementations raise `httpx.TransportError` (or `OSError`) when no
    response could be obtained; every received response is returned as-is.
    """

    def execute(
        self,
        method: str,
        url: str,
        *,
        auth: tuple[str, str],
        session_id: str | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Response:
        """Send one request and return the response."""

    def close(self) -> None:
        """Release pooled connections."""


class HttpxRequestExecutor:
    """Sends requests through a pooled `httpx.Client`."""

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        max_connections: int = 50,
        max_keepalive_connections: int = 10,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_keepalive_connections,
            ),
            transport=transport,
        )

    def execute(
        self,
        method: str,
        url: str,
        *,
        auth: tuple[str, str],
        session_id: str | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Response:
        headers: dict[str, str] = {}
        if session_id:
            headers[SESSION_HEADER] = session_id
        response = self._client.request(
            method,
            url,
            json=dict(body) if body is not None else None,
            headers=headers,
            auth=httpx.BasicAuth(*auth),
        )
        return Response(
            status=response.status_code,
            text=response.text,
            headers=dict(response.headers),
        )

    def close(self) -> None:
        self._client.close()


ExecutorFactory = Callable[[str], RequestExecutor]


def _default_factory(name: str) -> RequestExecutor:
    from .config import load_config

    config = load_config()
    LOG.debug("Creating HTTP pool", extra={"pool": name})
    return HttpxRequestExecutor(
        timeout=config.timeout,
        max_connections=config.max_connections,
        max_keepalive_connections=config.max_keepalive_connections,
    )


class PoolRegistry:
    """Maps pool identifiers to request executors, creating them on demand."""

    def __init__(self, factory: ExecutorFactory | None = None) -> None:
        self._factory = factory or _default_factory
        self._executors: dict[str, RequestExecutor] = {}
        self._lock = threading.Lock()

    def register(self, name: str, executor: RequestExecutor) -> None:
        """Install `executor` under `name`, replacing any previous one."""

        with self._lock:
            self._executors[name] = executor

    def get(self, name: str) -> RequestExecutor:
        with self._lock:
            executor = self._executors.get(name)
            if executor is None:
                executor = self._factory(name)
                self._executors[name] = executor
            return executor

    def names(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._executors))

    def close_all(self) -> None:
        """Close and forget every executor."""

        with self._lock:
            executors = list(self._executors.values())
            self._executors.clear()
        for executor in executors:
            executor.close()


POOLS = PoolRegistry()


def register_pool(name: str, executor: RequestExecutor) -> None:
    POOLS.register(name, executor)


def close_pools() -> None:
    POOLS.close_all()


def post(conn: Conn, path: str, body: Mapping[str, Any]) -> Result[dict[str, Any]]:
    """POST a JSON body and return the decoded payload."""

    return request(conn, "POST", path, body)


def get(conn: Conn, path: str) -> Result[dict[str, Any]]:
    """GET `path`; the session id is never sent on GET endpoints."""

    return request(conn, "GET", path, send_session=False)


def request(
    conn: Conn,
    method: str,
    path: str,
    body: Mapping[str, Any] | None = None,
    *,
    send_session: bool = True,
    pools: PoolRegistry | None = None,
) -> Result[dict[str, Any]]:
    executor = (pools or POOLS).get(conn.pool)
    url = f"{conn.base_url}{path}"
    try:
        response = executor.execute(
            method,
            url,
            auth=conn.auth,
            session_id=conn.session_id if send_session else None,
            body=body,
        )
    except (httpx.TransportError, OSError) as exc:
        LOG.debug("Request failed", extra={"method": method, "path": path, "error": str(exc)})
        return Err(errors.from_transport(exc))
    return handle_response(response)


def handle_response(response: Response) -> Result[dict[str, Any]]:
    """Turn an executor response into a payload or a structured error."""

    session_id = response.header(SESSION_HEADER)
    if response.status in (202, 204):
        return Ok({"result": session_id} if session_id else {})
    if response.status == 200:
        try:
            payload = json.loads(response.text) if response.text.strip() else {}
        except ValueError:
            return Err(errors.malformed_response(response.status, response.text))
        if not isinstance(payload, dict):
            return Err(errors.malformed_response(response.status, response.text))
        if session_id and not payload:
            return Ok({"result": session_id})
        return Ok(payload)
    try:
        body: Any = json.loads(response.text) if response.text.strip() else None
    except ValueError:
        body = response.text
    return Err(errors.from_response(response.status, body))


__all__ = [
    "HttpxRequestExecutor",
    "POOLS",
    "PoolRegistry",
    "RequestExecutor",
    "Response",
    "SESSION_HEADER",
    "close_pools",
    "get",
    "handle_response",
    "post",
    "register_pool",
    "request",
]
