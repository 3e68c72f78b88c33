"""Admin API for accounts.

Stands in for the external registration and payment systems: seed an
account, inspect it, and credit it after a payment went through.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from paygate.app.api.dependencies import AccountsDep, BillerDep
from paygate.app.core.logging import get_logger
from paygate.app.exceptions import AccountNotFoundError
from paygate.app.middleware.auth import require_admin
from paygate.app.services.models import Account

logger = get_logger(__name__)

router = APIRouter(
    prefix="/_admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


class AccountIn(BaseModel):
    name: str = ""
    email: str = ""
    balance: int = Field(default=0, ge=0)
    billing_customer_id: Optional[str] = None


class CreditsIn(BaseModel):
    credits: int = Field(gt=0)


def _account_out(account: Account) -> dict[str, Any]:
    return {
        "name": account.name,
        "email": account.email,
        "balance": account.balance,
        "billing_customer_id": account.billing_customer_id,
    }


@router.put("/accounts/{token}")
async def put_account(token: str, body: AccountIn, accounts: AccountsDep) -> dict[str, Any]:
    """Create or replace an account."""
    account = await accounts.put(Account(token=token, **body.model_dump()))
    logger.info("Account stored via admin API")
    return _account_out(account)


@router.get("/accounts/{token}")
async def get_account(token: str, accounts: AccountsDep) -> dict[str, Any]:
    account = await accounts.get(token)
    if account is None:
        raise AccountNotFoundError(token)
    return _account_out(account)


@router.post("/accounts/{token}/credits")
async def add_credits(token: str, body: CreditsIn, biller: BillerDep) -> dict[str, Any]:
    """Top up an account after an external payment."""
    account = await biller.credit(token, body.credits)
    return _account_out(account)
