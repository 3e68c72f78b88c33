"""Classify the caller of a request into a UserState."""

from typing import Optional

from paygate.app.core.logging import get_log_context, get_logger
from paygate.app.exceptions import StoreError
from paygate.app.services.accounts import AccountStore
from paygate.app.services.models import (
    Anonymous,
    Authenticated,
    InsufficientBalance,
    UserState,
)

logger = get_logger(__name__)


class UserStateResolver:
    """Resolves a bearer token into Anonymous, Authenticated or InsufficientBalance.

    Lookup failures fail open: a token whose account cannot be read is
    treated as an anonymous identity and goes through the free tier.
    """

    def __init__(self, accounts: AccountStore, anonymous_client_id: str = "anonymous") -> None:
        self._accounts = accounts
        self._anonymous_client_id = anonymous_client_id

    async def resolve(self, token: Optional[str]) -> UserState:
        if not token:
            return Anonymous(identity=self._anonymous_client_id)

        try:
            account = await self._accounts.get(token)
        except StoreError as e:
            logger.warning(
                f"Account lookup failed, treating caller as anonymous: {e}",
                extra=get_log_context(user_state="anonymous"),
            )
            return Anonymous(identity=token)

        if account is None:
            return Anonymous(identity=token)
        if account.balance <= 0:
            return InsufficientBalance(account=account)
        return Authenticated(account=account)
