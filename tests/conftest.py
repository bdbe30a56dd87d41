"""Shared fixtures: a fake server registered as a pool and a handle bound to it."""

from __future__ import annotations

from typing import Iterator

import pytest

from arcadex import Conn, close_pools, connect, register_pool
from fakes import POOL, FakeServer


@pytest.fixture
def server() -> Iterator[FakeServer]:
    fake = FakeServer()
    register_pool(POOL, fake)
    yield fake
    close_pools()


@pytest.fixture
def conn(server: FakeServer) -> Conn:
    return connect("http://arcade.test:2480/", "testdb", auth=("root", "secret"), pool=POOL)
