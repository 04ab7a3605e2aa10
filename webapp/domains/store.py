"""
Account and challenge record storage.

Every operation runs inside one store-wide lock and one transaction, so a
registration (account row plus its two challenge rows) is never seen half
written and concurrent writers never interleave.
"""
import json
import logging
import threading

from django.db import DatabaseError, connections, transaction
from django.utils import timezone
from typing import List, Optional

from .constants import TXT_SLOTS_PER_SUBDOMAIN
from .dialects import get_dialect
from .exceptions import MigrationFailure, NotFound, StorageFailure
from .models import (
    Account,
    Slot,
    SlotPair,
    create_secret,
    create_subdomain,
    create_username,
    hash_secret,
)
from .schema import insert_txt_slots, run_migrations
from .validators import valid_allow_from_entries, validate_allow_from


def now_timestamp() -> int:
    return int(timezone.now().timestamp())


class ChallengeStore:
    def __init__(self, using: str = "default"):
        self.using = using
        self.lock = threading.Lock()
        self.dialect = None

    @property
    def connection(self):
        return connections[self.using]

    def init(self) -> int:
        """
        Bring the schema up to date. Must succeed before anything else runs.
        """
        with self.lock:
            self.dialect = get_dialect(self.connection)
            version = run_migrations(self.connection, self.dialect)
            logging.info(f"Database ready at version {version}")
            return version

    def _check_ready(self):
        if self.dialect is None:
            raise MigrationFailure("Store used before initialization")

    def _execute(self, cursor, sql: str, params=()):
        return self.dialect.execute(cursor, sql, params)

    def create_account(self, allow_from: Optional[List[str]] = None, label: str = "") -> Account:
        # Bad input never reaches the database
        validate_allow_from(allow_from)

        password = create_secret()
        now = now_timestamp()
        account = Account(
            username=create_username(),
            subdomain=create_subdomain(),
            allow_from=valid_allow_from_entries(allow_from),
            label=label or "",
            created_at=now,
            updated_at=now,
            password=password,
        )
        password_hash = hash_secret(password)

        with self.lock:
            self._check_ready()
            try:
                with transaction.atomic(using=self.using):
                    with self.connection.cursor() as cursor:
                        self._execute(
                            cursor,
                            """
                            INSERT INTO records(
                                username,
                                password,
                                subdomain,
                                allowfrom,
                                label,
                                created_at,
                                updated_at)
                            VALUES ($1, $2, $3, $4, $5, $6, $7)
                            """,
                            [
                                account.username,
                                password_hash,
                                account.subdomain,
                                json.dumps(account.allow_from),
                                account.label,
                                account.created_at,
                                account.updated_at,
                            ],
                        )
                        insert_txt_slots(
                            cursor, self.dialect, account.subdomain, TXT_SLOTS_PER_SUBDOMAIN
                        )
            except DatabaseError as e:
                logging.error(f"Database error in registration: {e}")
                raise StorageFailure() from e

        logging.info(f"Created account {account.username} for {account.subdomain}")
        return account

    def get_by_username(self, username: str) -> Account:
        with self.lock:
            self._check_ready()
            try:
                with self.connection.cursor() as cursor:
                    self._execute(
                        cursor,
                        """
                        SELECT username, password, subdomain, allowfrom,
                               COALESCE(label, ''), COALESCE(created_at, 0),
                               COALESCE(updated_at, 0)
                        FROM records
                        WHERE username = $1 LIMIT 1
                        """,
                        [str(username)],
                    )
                    row = cursor.fetchone()
            except DatabaseError as e:
                logging.error(f"Database error in lookup: {e}")
                raise StorageFailure() from e

        if row is None:
            raise NotFound("no user")
        account = self._account_from_row(row)
        account.password_hash = row[1]
        return account

    def get_all(self) -> List[Account]:
        with self.lock:
            self._check_ready()
            try:
                with self.connection.cursor() as cursor:
                    self._execute(
                        cursor,
                        """
                        SELECT username, password, subdomain, allowfrom,
                               COALESCE(label, ''), COALESCE(created_at, 0),
                               COALESCE(updated_at, 0)
                        FROM records
                        ORDER BY created_at, username
                        """,
                    )
                    rows = cursor.fetchall()
            except DatabaseError as e:
                logging.error(f"Database error in listing: {e}")
                raise StorageFailure() from e

        # Hashes stay behind
        return [self._account_from_row(row) for row in rows]

    def update_label(self, subdomain: str, label: str):
        with self.lock:
            self._check_ready()
            try:
                with transaction.atomic(using=self.using):
                    with self.connection.cursor() as cursor:
                        self._execute(
                            cursor,
                            "UPDATE records SET label = $1, updated_at = $2 WHERE subdomain = $3",
                            [label, now_timestamp(), subdomain.lower()],
                        )
                        updated = cursor.rowcount
            except DatabaseError as e:
                logging.error(f"Database error updating label: {e}")
                raise StorageFailure() from e

        if updated == 0:
            raise NotFound(f"No account for subdomain {subdomain}")

    def update_txt(self, subdomain: str, value: str):
        """
        Overwrite the least recently written of the two slots.
        Input is validated by the caller.
        """
        subdomain = subdomain.lower()
        with self.lock:
            self._check_ready()
            try:
                with transaction.atomic(using=self.using):
                    with self.connection.cursor() as cursor:
                        slots = self._load_slots(cursor, subdomain)
                        target = slots.oldest()
                        self._execute(
                            cursor,
                            "UPDATE txt SET value = $1, last_update = $2 WHERE rowid = $3",
                            [value, slots.next_stamp(now_timestamp()), target.rowid],
                        )
            except DatabaseError as e:
                logging.error(f"Database error updating TXT: {e}")
                raise StorageFailure() from e

    def get_txt(self, subdomain: str) -> List[str]:
        """
        Current values for a subdomain, newest first. This is what the DNS
        responder serves.
        """
        with self.lock:
            self._check_ready()
            try:
                with self.connection.cursor() as cursor:
                    self._execute(
                        cursor,
                        """
                        SELECT value FROM txt WHERE subdomain = $1
                        ORDER BY last_update DESC, rowid DESC LIMIT $2
                        """,
                        [subdomain.lower(), TXT_SLOTS_PER_SUBDOMAIN],
                    )
                    return [row[0] for row in cursor.fetchall()]
            except DatabaseError as e:
                logging.error(f"Database error reading TXT: {e}")
                raise StorageFailure() from e

    def _load_slots(self, cursor, subdomain: str) -> SlotPair:
        self._execute(
            cursor,
            "SELECT rowid, value, last_update FROM txt WHERE subdomain = $1 ORDER BY rowid",
            [subdomain],
        )
        rows = cursor.fetchall()
        if not rows:
            raise NotFound(f"No TXT records for subdomain {subdomain}")
        if len(rows) != TXT_SLOTS_PER_SUBDOMAIN:
            logging.error(f"Subdomain {subdomain} has {len(rows)} TXT records")
            raise StorageFailure()
        return SlotPair(
            tuple(Slot(rowid=row[0], value=row[1], last_update=row[2] or 0) for row in rows)
        )

    def _account_from_row(self, row) -> Account:
        try:
            allow_from = json.loads(row[3]) if row[3] else []
        except ValueError as e:
            logging.error(f"JSON unmarshall error for {row[0]}: {e}")
            raise StorageFailure() from e
        return Account(
            username=row[0],
            subdomain=row[2],
            allow_from=allow_from,
            label=row[4],
            created_at=row[5],
            updated_at=row[6],
        )


_store = None
_store_lock = threading.Lock()


def get_store() -> ChallengeStore:
    """
    The process wide store, migrated on first use before anyone can call it
    """
    global _store
    with _store_lock:
        if _store is None:
            store = ChallengeStore()
            store.init()
            _store = store
        return _store


def reset_store():
    global _store
    with _store_lock:
        _store = None
