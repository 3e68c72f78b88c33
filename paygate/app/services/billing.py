"""Metered billing against account balances.

Every balance change is a compare-and-set against the raw record that was
read, retried when another request updated the account in between. Two
concurrent charges can therefore never both spend the same credits.
"""

from dataclasses import replace

from paygate.app.core.logging import get_log_context, get_logger
from paygate.app.exceptions import (
    AccountNotFoundError,
    ChargeConflictError,
    InsufficientBalanceError,
)
from paygate.app.services.accounts import AccountStore, account_key
from paygate.app.services.models import Account

logger = get_logger(__name__)


class Biller:
    """Deducts and adds credits on Account records."""

    def __init__(self, accounts: AccountStore, max_retries: int = 16) -> None:
        self._accounts = accounts
        self._max_retries = max_retries

    async def charge(self, identity: str, amount: int) -> Account:
        """Deduct ``amount`` credits from the account.

        Args:
            identity: Account token
            amount: Credits to deduct; always the full per-request price

        Returns:
            The updated account

        Raises:
            AccountNotFoundError: If the account no longer exists
            InsufficientBalanceError: If the balance does not cover the amount
            ChargeConflictError: If concurrent updates keep winning the race
            StoreError: If the store is unreachable
        """
        if amount < 0:
            raise ValueError("charge amount must not be negative")

        for _ in range(self._max_retries):
            raw, account = await self._read(identity)
            if account.balance < amount:
                raise InsufficientBalanceError(identity, account.balance, amount)

            updated = replace(account, balance=account.balance - amount)
            if await self._accounts.replace(identity, raw, updated):
                logger.debug(
                    f"Charged {amount} credits, balance now {updated.balance}",
                    extra=get_log_context(user_state="authenticated"),
                )
                return updated

        raise ChargeConflictError(identity, self._max_retries)

    async def credit(self, identity: str, amount: int) -> Account:
        """Add ``amount`` credits to the account (top-up after a payment).

        Raises:
            AccountNotFoundError: If the account does not exist
            ChargeConflictError: If concurrent updates keep winning the race
            StoreError: If the store is unreachable
        """
        if amount <= 0:
            raise ValueError("credit amount must be positive")

        for _ in range(self._max_retries):
            raw, account = await self._read(identity)
            updated = replace(account, balance=account.balance + amount)
            if await self._accounts.replace(identity, raw, updated):
                logger.info(f"Credited {amount} credits, balance now {updated.balance}")
                return updated

        raise ChargeConflictError(identity, self._max_retries)

    async def _read(self, identity: str) -> tuple[str, Account]:
        raw = await self._accounts.get_raw(identity)
        if raw is None:
            raise AccountNotFoundError(identity)
        return raw, Account.from_json(account_key(identity), raw)
