import re

from typing import List, Sequence, Tuple

from .constants import DB_VERSION_KEY
from .exceptions import MigrationFailure


# Statements are written once with numbered placeholders ($1, $2, ...)
NUMBERED_PLACEHOLDER_RE = re.compile(r"\$([0-9]+)")


def rewrite_placeholders(sql: str, params: Sequence = ()) -> Tuple[str, List]:
    """
    Rewrite numbered placeholders into the "format" style Django cursors take
    on every engine. Parameters are reordered to follow the placeholders, so
    "$2 ... $1 ... $2" becomes "%s ... %s ... %s" with (p2, p1, p2).
    """
    ordered = []

    def replace(match):
        number = int(match.group(1))
        if number < 1 or number > len(params):
            raise IndexError(f"No parameter for ${number}, {len(params)} given")
        ordered.append(params[number - 1])
        return "%s"

    rewritten = NUMBERED_PLACEHOLDER_RE.sub(replace, sql)
    return rewritten, ordered


class Dialect:
    vendor = None
    supports_add_column_if_not_exists = False
    supports_drop_column = False

    # rowid is implicit on SQLite, PostgreSQL needs it spelled out
    txt_table = """
        CREATE TABLE IF NOT EXISTS txt(
            subdomain TEXT NOT NULL,
            value TEXT NOT NULL DEFAULT '',
            last_update INT
        )"""

    # Taken at the start of a migration step so concurrent upgraders queue up
    lock_marker_sql = None

    def __init__(self, connection):
        self.connection = connection

    def execute(self, cursor, sql: str, params: Sequence = ()):
        rewritten, ordered = rewrite_placeholders(sql, params)
        cursor.execute(rewritten, ordered)
        return cursor

    def lock_marker(self, cursor):
        if self.lock_marker_sql:
            cursor.execute(self.lock_marker_sql)

    def column_names(self, cursor, table: str) -> List[str]:
        description = self.connection.introspection.get_table_description(cursor, table)
        return [column.name for column in description]

    def has_column(self, cursor, table: str, column: str) -> bool:
        return column.lower() in [name.lower() for name in self.column_names(cursor, table)]

    def add_column_sql(self, table: str, column: str, definition: str) -> str:
        if self.supports_add_column_if_not_exists:
            return f"ALTER TABLE {table} ADD COLUMN IF NOT EXISTS {column} {definition}"
        return f"ALTER TABLE {table} ADD COLUMN {column} {definition}"

    def drop_column_sql(self, table: str, column: str) -> str:
        assert self.supports_drop_column
        return f"ALTER TABLE {table} DROP COLUMN {column}"


class SqliteDialect(Dialect):
    vendor = "sqlite"
    # A write, even one matching nothing, takes the database write lock
    lock_marker_sql = f"UPDATE acmedns SET value = value WHERE name = '{DB_VERSION_KEY}'"

    @property
    def supports_drop_column(self) -> bool:
        return self.connection.features.can_alter_table_drop_column


class PostgresDialect(Dialect):
    vendor = "postgresql"
    supports_add_column_if_not_exists = True
    supports_drop_column = True

    txt_table = """
        CREATE TABLE IF NOT EXISTS txt(
            rowid SERIAL,
            subdomain TEXT NOT NULL,
            value TEXT NOT NULL DEFAULT '',
            last_update INT
        )"""

    # Blocks other upgraders, readers still get through
    lock_marker_sql = "LOCK TABLE acmedns IN SHARE ROW EXCLUSIVE MODE"

    def drop_column_sql(self, table: str, column: str) -> str:
        return f"ALTER TABLE {table} DROP COLUMN IF EXISTS {column}"


DIALECTS = {
    SqliteDialect.vendor: SqliteDialect,
    PostgresDialect.vendor: PostgresDialect,
}


def get_dialect(connection) -> Dialect:
    try:
        return DIALECTS[connection.vendor](connection)
    except KeyError:
        raise MigrationFailure(f"Unsupported database engine: {connection.vendor}")
