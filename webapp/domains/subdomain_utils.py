import logging

from typing import Dict, List, Optional

from .models import Account
from .store import get_store
from .utils import remove_trailing_dot


class Credentials:
    def __init__(
        self,
        username: str,
        password: str,
        subdomain: str,
        fulldomain: str,
        allowfrom: List[str],
    ):
        assert fulldomain.startswith(f"{subdomain}.")
        self.username = username
        self.password = password
        self.subdomain = subdomain
        self.fulldomain = fulldomain
        self.allowfrom = allowfrom

    @classmethod
    def from_account(cls, account: Account) -> "Credentials":
        return cls(
            username=account.username,
            password=account.password,
            subdomain=account.subdomain,
            fulldomain=account.get_fulldomain(),
            allowfrom=account.allow_from,
        )

    # Same shape as the acme-dns register response
    def get_config(self) -> Dict[str, str]:
        return {
            "username": self.username,
            "password": self.password,
            "fulldomain": remove_trailing_dot(self.fulldomain),
            "subdomain": self.subdomain,
            "allowfrom": self.allowfrom,
        }


def register_account(allowfrom: Optional[List[str]], label: str) -> Credentials:
    account = get_store().create_account(allow_from=allowfrom, label=label)
    logging.info(f"Registered {account.get_fulldomain()}")
    return Credentials.from_account(account)


def describe_account(account: Account) -> Dict:
    return {
        "username": account.username,
        "fulldomain": account.get_fulldomain(),
        "subdomain": account.subdomain,
        "allowfrom": account.allow_from,
        "domain_name": account.label,
        "created_at": account.created_at,
        "updated_at": account.updated_at,
    }
