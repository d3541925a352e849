"""
Account table for the deployment environments.

Account ids live outside the repository in a dotenv-style file, one
environment per line:

    beta=111111111111
    gamma=222222222222
    prod=333333333333
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNTS_FILE = ".accounts.env"


@dataclass(frozen=True)
class Account:
    name: str
    account_id: str


class Accounts:
    """Named AWS accounts, looked up by environment name."""

    def __init__(self, accounts: Optional[Dict[str, Account]] = None):
        self._accounts = dict(accounts or {})

    @classmethod
    def from_mapping(cls, values: Dict[str, Optional[str]]) -> "Accounts":
        accounts = {}
        for name, account_id in values.items():
            if account_id is None or not account_id.strip():
                logger.warning(f"Ignoring blank account id for '{name}'")
                continue
            key = name.strip().lower()
            accounts[key] = Account(name=key, account_id=account_id.strip())
        return cls(accounts)

    @classmethod
    def load(cls, path: str = DEFAULT_ACCOUNTS_FILE) -> "Accounts":
        if not os.path.isfile(path):
            logger.warning(f"No accounts file found at {path}")
            return cls()
        accounts = cls.from_mapping(dotenv_values(path))
        logger.info(f"Loaded {len(accounts)} account(s) from {path}")
        return accounts

    def get(self, name: str) -> Optional[Account]:
        return self._accounts.get(name.lower())

    def __getattr__(self, name: str) -> Optional[Account]:
        if name.startswith("_"):
            raise AttributeError(name)
        return self.get(name)

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)
