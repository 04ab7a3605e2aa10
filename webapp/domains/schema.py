"""
Schema ownership for the store tables.

The version lives in a single marker row (acmedns.name = 'db_version').
Databases created before versioning have no marker and are treated as
version 0. Upgrades are applied one version at a time, each inside its own
transaction that also advances the marker, so a crash leaves either the old
version or the new one and re-running a step is always safe.
"""
import logging

from typing import Callable, List, Tuple

from django.db import DatabaseError, transaction

from .constants import (
    DB_VERSION,
    DB_VERSION_KEY,
    LEGACY_RECORD_COLUMNS,
    TXT_SLOTS_PER_SUBDOMAIN,
)
from .dialects import Dialect, get_dialect
from .exceptions import MigrationFailure


MARKER_TABLE = """
    CREATE TABLE IF NOT EXISTS acmedns(
        name TEXT,
        value TEXT
    )"""

RECORDS_TABLE = """
    CREATE TABLE IF NOT EXISTS records(
        username TEXT UNIQUE NOT NULL PRIMARY KEY,
        password TEXT UNIQUE NOT NULL,
        subdomain TEXT UNIQUE NOT NULL,
        allowfrom TEXT,
        label TEXT DEFAULT '',
        created_at INT DEFAULT 0,
        updated_at INT DEFAULT 0
    )"""

# Added by the version 2 upgrade
LABEL_COLUMNS = [
    ("label", "TEXT DEFAULT ''"),
    ("created_at", "INT DEFAULT 0"),
    ("updated_at", "INT DEFAULT 0"),
]


def insert_txt_slots(cursor, dialect: Dialect, subdomain: str, count: int):
    for _ in range(count):
        dialect.execute(
            cursor,
            "INSERT INTO txt (subdomain, value, last_update) VALUES ($1, '', 0)",
            [subdomain],
        )


def create_tables(connection, dialect: Dialect):
    try:
        with transaction.atomic(using=connection.alias):
            with connection.cursor() as cursor:
                cursor.execute(MARKER_TABLE)
                cursor.execute(RECORDS_TABLE)
                cursor.execute(dialect.txt_table)
    except DatabaseError as e:
        logging.error(f"Unable to create tables: {e}")
        raise MigrationFailure("Unable to create tables") from e


def read_version(connection, dialect: Dialect) -> int:
    with connection.cursor() as cursor:
        return read_marker(cursor, dialect)


def read_marker(cursor, dialect: Dialect) -> int:
    dialect.execute(
        cursor, "SELECT value FROM acmedns WHERE name = $1", [DB_VERSION_KEY]
    )
    rows = cursor.fetchall()

    if not rows:
        # Pre-versioning database (or a fresh one)
        return 0
    if len(rows) > 1:
        raise MigrationFailure("Multiple schema version markers")
    try:
        return int(rows[0][0])
    except (TypeError, ValueError):
        # Don't guess, a corrupt marker could hide a schema of unknown shape
        raise MigrationFailure(f"Unreadable schema version: {rows[0][0]!r}")


def write_version(cursor, dialect: Dialect, version: int):
    dialect.execute(
        cursor,
        "UPDATE acmedns SET value = $1 WHERE name = $2",
        [str(version), DB_VERSION_KEY],
    )
    if cursor.rowcount == 0:
        dialect.execute(
            cursor,
            "INSERT INTO acmedns (name, value) VALUES ($1, $2)",
            [DB_VERSION_KEY, str(version)],
        )


def drop_legacy_column(connection, cursor, dialect: Dialect, table: str, column: str):
    if not dialect.has_column(cursor, table, column):
        return
    if not dialect.supports_drop_column:
        logging.warning(f"Keeping unused column {table}.{column}, unsupported by engine")
        return
    try:
        with transaction.atomic(using=connection.alias):
            cursor.execute(dialect.drop_column_sql(table, column))
    except DatabaseError as e:
        logging.warning(f"Keeping unused column {table}.{column}: {e}")


def add_column(connection, cursor, dialect: Dialect, table: str, column: str, definition: str):
    if dialect.has_column(cursor, table, column):
        return
    try:
        with transaction.atomic(using=connection.alias):
            cursor.execute(dialect.add_column_sql(table, column, definition))
    except DatabaseError as e:
        # A previous attempt got this far
        if "duplicate column" not in str(e).lower():
            logging.error(f"Error adding {column} column: {e}")
            raise
        logging.info(f"Column {table}.{column} already present")


def upgrade_to_1(connection, cursor, dialect: Dialect):
    dialect.execute(cursor, "SELECT subdomain FROM records")
    subdomains = [row[0] for row in cursor.fetchall() if row[0]]

    for subdomain in subdomains:
        dialect.execute(
            cursor, "SELECT COUNT(*) FROM txt WHERE subdomain = $1", [subdomain]
        )
        (existing,) = cursor.fetchone()
        insert_txt_slots(
            cursor, dialect, subdomain, max(0, TXT_SLOTS_PER_SUBDOMAIN - existing)
        )

    for column in LEGACY_RECORD_COLUMNS:
        drop_legacy_column(connection, cursor, dialect, "records", column)


def upgrade_to_2(connection, cursor, dialect: Dialect):
    for column, definition in LABEL_COLUMNS:
        add_column(connection, cursor, dialect, "records", column, definition)


# (target version, description, step), in order
MIGRATIONS: List[Tuple[int, str, Callable]] = [
    (1, "Two challenge slots per subdomain", upgrade_to_1),
    (2, "Adding label, created_at, updated_at columns", upgrade_to_2),
]


def apply_migration(
    connection, dialect: Dialect, version: int, description: str, step
) -> bool:
    """
    Run one step and advance the marker to ``version``. Returns False without
    touching anything when the marker is already there or past it, so a late
    or repeated step never moves the version backwards.
    """
    logging.info(f"Upgrading database to version {version}: {description}")
    try:
        with transaction.atomic(using=connection.alias):
            with connection.cursor() as cursor:
                dialect.lock_marker(cursor)
                current = read_marker(cursor, dialect)
                if current >= version:
                    logging.info(f"Database already at version {current}, skipping")
                    return False
                step(connection, cursor, dialect)
                write_version(cursor, dialect, version)
    except DatabaseError as e:
        logging.error(f"Error in DB upgrade to version {version}: {e}")
        raise MigrationFailure(f"Upgrade to version {version} failed") from e
    logging.info(f"Database upgraded to version {version}")
    return True


def current_version(connection, dialect: Dialect) -> int:
    try:
        return read_version(connection, dialect)
    except DatabaseError as e:
        logging.error(f"Unable to read schema version: {e}")
        raise MigrationFailure("Unable to read schema version") from e


def run_migrations(connection, dialect: Dialect = None, target: int = DB_VERSION) -> int:
    """
    Create missing tables and bring the schema to ``target``, returning the
    version reached. Raises MigrationFailure on anything unexpected.
    """
    if dialect is None:
        dialect = get_dialect(connection)

    create_tables(connection, dialect)
    version = current_version(connection, dialect)

    if version > DB_VERSION:
        raise MigrationFailure(
            f"Database version {version} is newer than supported version {DB_VERSION}"
        )

    steps = {to_version: (description, step) for to_version, description, step in MIGRATIONS}
    while version < target:
        description, step = steps[version + 1]
        apply_migration(connection, dialect, version + 1, description, step)
        version += 1

    # Another upgrader may have gone further meanwhile
    return current_version(connection, dialect)
