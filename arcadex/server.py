"""Server management: create, drop and probe databases."""

from __future__ import annotations

import logging
import re

from . import client
from .errors import validation_error
from .models import Conn
from .result import Err, Ok, Result

LOG = logging.getLogger(__name__)

_DATABASE_NAME = re.compile(r"^[A-Za-z0-9_\-]+$")


def create_database(conn: Conn, name: str) -> Result[None]:
    """Create database `name` on the server `conn` points at."""

    return _server_command(conn, "create database", name)


def create_database_or_raise(conn: Conn, name: str) -> None:
    create_database(conn, name).unwrap()


def drop_database(conn: Conn, name: str) -> Result[None]:
    """Drop database `name`."""

    return _server_command(conn, "drop database", name)


def drop_database_or_raise(conn: Conn, name: str) -> None:
    drop_database(conn, name).unwrap()


def database_exists(conn: Conn, name: str) -> bool:
    """Return True when `name` exists; any failure counts as absent."""

    outcome = client.get(conn, f"/api/v1/exists/{name}")
    if isinstance(outcome, Err):
        LOG.debug("Existence check failed", extra={"database": name, "error": str(outcome.error)})
        return False
    return outcome.value.get("result") is True


def _server_command(conn: Conn, verb: str, name: str) -> Result[None]:
    if not _DATABASE_NAME.match(name or ""):
        return Err(validation_error(f"Invalid database name '{name}'"))
    outcome = client.post(conn, "/api/v1/server", {"command": f"{verb} {name}"})
    if isinstance(outcome, Err):
        return outcome
    LOG.info("Server command applied", extra={"command": verb, "database": name})
    return Ok(None)


__all__ = [
    "create_database",
    "create_database_or_raise",
    "database_exists",
    "drop_database",
    "drop_database_or_raise",
]
