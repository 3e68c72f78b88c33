"""FastAPI dependencies for the components built by ``create_app``.

Usage:
    from paygate.app.api.dependencies import OrchestratorDep

    @router.get("/items")
    async def items(orchestrator: OrchestratorDep):
        ...
"""

from typing import Annotated

from fastapi import Depends, Request

from paygate.app.services.accounts import AccountStore
from paygate.app.services.billing import Biller
from paygate.app.services.orchestrator import Orchestrator


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


def get_accounts(request: Request) -> AccountStore:
    return AccountStore(request.app.state.store)


def get_biller(request: Request) -> Biller:
    return request.app.state.orchestrator.biller


OrchestratorDep = Annotated[Orchestrator, Depends(get_orchestrator)]
AccountsDep = Annotated[AccountStore, Depends(get_accounts)]
BillerDep = Annotated[Biller, Depends(get_biller)]

__all__ = ["OrchestratorDep", "AccountsDep", "BillerDep"]
