"""Migration registry imported by name in the tests."""

from __future__ import annotations

from arcadex import Conn, Migration, MigrationRegistry, command, command_or_raise


class V001CreateUser(Migration):
    version = 1

    def up(self, conn: Conn) -> None:
        command_or_raise(conn, "CREATE DOCUMENT TYPE User")

    def down(self, conn: Conn) -> None:
        command_or_raise(conn, "DROP TYPE User IF EXISTS")


class V002AddEmail(Migration):
    version = 2

    def up(self, conn: Conn):  # type: ignore[no-untyped-def]
        return command(conn, "CREATE PROPERTY User.email STRING")

    def down(self, conn: Conn):  # type: ignore[no-untyped-def]
        return command(conn, "DROP PROPERTY User.email")


class V003IndexEmail(Migration):
    version = 3

    def up(self, conn: Conn) -> None:
        command_or_raise(conn, "CREATE INDEX ON User (email) UNIQUE")

    def down(self, conn: Conn) -> None:
        command_or_raise(conn, "DROP INDEX `User[email]`")


REGISTRY = MigrationRegistry([V001CreateUser, V002AddEmail, V003IndexEmail])

AS_LIST = [V001CreateUser, V002AddEmail]

NOT_A_REGISTRY = "nope"
