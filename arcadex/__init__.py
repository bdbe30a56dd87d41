"""ArcadeDB client.

A lean wrapper over ArcadeDB's REST API with pooled HTTP connections,
transactions, database switching and schema migrations.

Every operation returns an `Ok` or an `Err`; its ``*_or_raise`` twin returns
the bare value or raises `ArcadexError`.

Quick start::

    import arcadex

    conn = arcadex.connect("http://localhost:2480", "mydb", auth=("root", "password"))

    users = arcadex.query_or_raise(conn, "SELECT FROM User WHERE active = true")

    outcome = arcadex.command(conn, "INSERT INTO User SET name = :name", {"name": "John"})
    if outcome.ok:
        print(outcome.value)

    def work(tx):
        user = arcadex.command_or_raise(tx, "INSERT INTO User SET name = 'Jane'")
        arcadex.command_or_raise(tx, "INSERT INTO Log SET user = :rid", {"rid": user[0]["@rid"]})
        return user

    user = arcadex.run_transaction_or_raise(conn, work)

    arcadex.create_database_or_raise(conn, "newdb")
    other = arcadex.with_database(conn, "newdb")
"""

from .client import (
    HttpxRequestExecutor,
    PoolRegistry,
    RequestExecutor,
    Response,
    close_pools,
    register_pool,
)
from .config import ClientConfig, ServerProfileConfig, load_config, save_config
from .errors import ArcadexError, ErrorKind, MigrationFailedError
from .migration import Migration, MigrationRegistry, load_registry
from .migrator import (
    MigrationState,
    MigrationStatus,
    migrate,
    migrate_or_raise,
    reset,
    reset_or_raise,
    rollback,
    rollback_or_raise,
    rollback_to,
    rollback_to_or_raise,
    status,
    status_or_raise,
)
from .models import Conn, connect, with_database
from .result import Err, Ok, Result
from .server import (
    create_database,
    create_database_or_raise,
    database_exists,
    drop_database,
    drop_database_or_raise,
)
from .statements import (
    build_body,
    command,
    command_async,
    command_async_or_raise,
    command_or_raise,
    execute,
    execute_or_raise,
    query,
    query_or_raise,
    script,
    script_or_raise,
)
from .transactions import (
    begin,
    commit,
    rollback as rollback_transaction,
    run_transaction,
    run_transaction_or_raise,
    transaction,
)

__version__ = "0.1.0"

__all__ = [
    "ArcadexError",
    "ClientConfig",
    "Conn",
    "Err",
    "ErrorKind",
    "HttpxRequestExecutor",
    "Migration",
    "MigrationFailedError",
    "MigrationRegistry",
    "MigrationState",
    "MigrationStatus",
    "Ok",
    "PoolRegistry",
    "RequestExecutor",
    "Response",
    "Result",
    "ServerProfileConfig",
    "begin",
    "build_body",
    "close_pools",
    "command",
    "command_async",
    "command_async_or_raise",
    "command_or_raise",
    "commit",
    "connect",
    "create_database",
    "create_database_or_raise",
    "database_exists",
    "drop_database",
    "drop_database_or_raise",
    "execute",
    "execute_or_raise",
    "load_config",
    "load_registry",
    "migrate",
    "migrate_or_raise",
    "query",
    "query_or_raise",
    "register_pool",
    "reset",
    "reset_or_raise",
    "rollback",
    "rollback_or_raise",
    "rollback_to",
    "rollback_to_or_raise",
    "rollback_transaction",
    "run_transaction",
    "run_transaction_or_raise",
    "save_config",
    "script",
    "script_or_raise",
    "status",
    "status_or_raise",
    "transaction",
    "with_database",
]
