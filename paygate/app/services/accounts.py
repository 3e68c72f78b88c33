"""Account records in the key-value store.

Redis/store key format:
- user:{token} - JSON-encoded Account
"""

from typing import Optional

from paygate.app.core.store import KeyValueStore
from paygate.app.services.models import Account

ACCOUNT_KEY_PREFIX = "user"


def account_key(token: str) -> str:
    return f"{ACCOUNT_KEY_PREFIX}:{token}"


class AccountStore:
    """Reads and writes Account records."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def get_raw(self, token: str) -> Optional[str]:
        return await self._store.get(account_key(token))

    async def get(self, token: str) -> Optional[Account]:
        """Look up an account by token.

        Raises:
            StoreError: If the store is unreachable or the record is corrupt
        """
        raw = await self.get_raw(token)
        if raw is None:
            return None
        return Account.from_json(account_key(token), raw)

    async def put(self, account: Account) -> Account:
        """Create or replace an account unconditionally."""
        await self._store.set(account_key(account.token), account.to_json())
        return account

    async def replace(self, token: str, expected_raw: str, account: Account) -> bool:
        """Write ``account`` only if the stored record still equals ``expected_raw``."""
        return await self._store.compare_and_set(
            account_key(token), expected_raw, account.to_json()
        )
