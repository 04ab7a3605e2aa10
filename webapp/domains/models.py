import secrets
import uuid

import bcrypt

from dataclasses import dataclass, field
from django.conf import settings
from typing import List, Optional

from .constants import PASSWORD_BYTES, TXT_SLOTS_PER_SUBDOMAIN


@dataclass
class Account:
    username: str
    subdomain: str
    allow_from: List[str] = field(default_factory=list)
    label: str = ""
    created_at: int = 0
    updated_at: int = 0
    # Only set on the account returned by registration, shown to the user once
    password: Optional[str] = None
    # Only set by lookups used for authentication
    password_hash: Optional[str] = field(default=None, repr=False)

    def get_fulldomain(self) -> str:
        return f"{self.subdomain}.{settings.ACMEDNS_DOMAIN}"

    def check_password(self, provided_password: str) -> bool:
        if not self.password_hash or not provided_password:
            return False
        try:
            return bcrypt.checkpw(
                provided_password.encode("utf-8"), self.password_hash.encode("utf-8")
            )
        except ValueError:
            # Malformed hash
            return False


@dataclass(frozen=True)
class Slot:
    rowid: int
    value: str
    last_update: int


@dataclass(frozen=True)
class SlotPair:
    """
    The two challenge values of a subdomain. Writes always replace the slot
    that was written least recently.
    """

    slots: tuple

    def __post_init__(self):
        assert len(self.slots) == TXT_SLOTS_PER_SUBDOMAIN

    def oldest(self) -> Slot:
        # Ties go to the first slot in storage order
        return min(self.slots, key=lambda slot: (slot.last_update, slot.rowid))

    def newest(self) -> Slot:
        return max(self.slots, key=lambda slot: (slot.last_update, slot.rowid))

    def next_stamp(self, now: int) -> int:
        # Stay ahead of the other slot so writes within one second still rotate
        return max(now, self.newest().last_update + 1)


def create_username() -> str:
    return str(uuid.uuid4())


def create_subdomain() -> str:
    return str(uuid.uuid4())


def create_secret() -> str:
    return secrets.token_urlsafe(PASSWORD_BYTES)


def hash_secret(secret: str) -> str:
    rounds = settings.ACMEDNS_BCRYPT_ROUNDS
    return bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")
