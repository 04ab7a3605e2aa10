from .dialects import (
    PostgresDialect,
    SqliteDialect,
    get_dialect,
    rewrite_placeholders,
)
from .exceptions import MigrationFailure
from django.db import connection
from django.test import SimpleTestCase, TestCase
from types import SimpleNamespace


class FakeConnection:
    def __init__(self, vendor, can_alter_table_drop_column=True):
        self.vendor = vendor
        self.features = SimpleNamespace(
            can_alter_table_drop_column=can_alter_table_drop_column
        )


class TestRewritePlaceholders(SimpleTestCase):
    def test_in_order(self):
        sql, params = rewrite_placeholders(
            "UPDATE txt SET value = $1, last_update = $2 WHERE rowid = $3",
            ["a", 1, 7],
        )
        self.assertEqual(
            "UPDATE txt SET value = %s, last_update = %s WHERE rowid = %s", sql
        )
        self.assertEqual(["a", 1, 7], params)

    def test_reordered_and_reused(self):
        sql, params = rewrite_placeholders(
            "SELECT $2, $1, $2", ["first", "second"]
        )
        self.assertEqual("SELECT %s, %s, %s", sql)
        self.assertEqual(["second", "first", "second"], params)

    def test_two_digit_placeholders(self):
        values = list(range(1, 12))
        sql, params = rewrite_placeholders(
            "VALUES (" + ", ".join(f"${n}" for n in values) + ")", values
        )
        self.assertEqual("VALUES (" + ", ".join(["%s"] * 11) + ")", sql)
        self.assertEqual(values, params)

    def test_no_placeholders(self):
        sql, params = rewrite_placeholders("SELECT subdomain FROM records")
        self.assertEqual("SELECT subdomain FROM records", sql)
        self.assertEqual([], params)

    def test_placeholder_without_parameter(self):
        # Numbering starts at 1
        with self.assertRaisesMessage(IndexError, "$0"):
            rewrite_placeholders("SELECT $0", ["only"])
        with self.assertRaisesMessage(IndexError, "$3"):
            rewrite_placeholders("SELECT $1, $3", ["a", "b"])


class TestGetDialect(SimpleTestCase):
    def test_known_vendors(self):
        self.assertIsInstance(get_dialect(FakeConnection("sqlite")), SqliteDialect)
        self.assertIsInstance(get_dialect(FakeConnection("postgresql")), PostgresDialect)

    def test_unknown_vendor(self):
        with self.assertRaisesMessage(MigrationFailure, "Unsupported database engine"):
            get_dialect(FakeConnection("oracle"))

    def test_postgres_sql(self):
        dialect = PostgresDialect(FakeConnection("postgresql"))
        self.assertIn("rowid SERIAL", dialect.txt_table)
        self.assertIn("LOCK TABLE acmedns", dialect.lock_marker_sql)
        self.assertEqual(
            "ALTER TABLE records ADD COLUMN IF NOT EXISTS label TEXT DEFAULT ''",
            dialect.add_column_sql("records", "label", "TEXT DEFAULT ''"),
        )
        self.assertEqual(
            "ALTER TABLE records DROP COLUMN IF EXISTS value",
            dialect.drop_column_sql("records", "value"),
        )

    def test_sqlite_sql(self):
        dialect = SqliteDialect(FakeConnection("sqlite"))
        self.assertNotIn("rowid", dialect.txt_table)
        self.assertIn("UPDATE acmedns", dialect.lock_marker_sql)
        self.assertEqual(
            "ALTER TABLE records ADD COLUMN label TEXT DEFAULT ''",
            dialect.add_column_sql("records", "label", "TEXT DEFAULT ''"),
        )
        self.assertEqual(
            "ALTER TABLE records DROP COLUMN value",
            dialect.drop_column_sql("records", "value"),
        )

    def test_drop_column_follows_engine_features(self):
        old_sqlite = SqliteDialect(
            FakeConnection("sqlite", can_alter_table_drop_column=False)
        )
        self.assertFalse(old_sqlite.supports_drop_column)
        with self.assertRaises(AssertionError):
            old_sqlite.drop_column_sql("records", "value")


class TestIntrospection(TestCase):
    def test_has_column(self):
        dialect = get_dialect(connection)
        with connection.cursor() as cursor:
            cursor.execute("CREATE TABLE sample(Subdomain TEXT, LastUpdate INT)")
            self.assertTrue(dialect.has_column(cursor, "sample", "subdomain"))
            self.assertTrue(dialect.has_column(cursor, "sample", "lastupdate"))
            self.assertFalse(dialect.has_column(cursor, "sample", "label"))

    def test_drop_column_support_comes_from_connection(self):
        dialect = get_dialect(connection)
        self.assertEqual(
            connection.features.can_alter_table_drop_column,
            dialect.supports_drop_column,
        )

    def test_execute_binds_numbered_params(self):
        dialect = get_dialect(connection)
        with connection.cursor() as cursor:
            dialect.execute(cursor, "SELECT $2 || $1", ["a", "b"])
            self.assertEqual("ba", cursor.fetchone()[0])
