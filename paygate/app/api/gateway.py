"""Catch-all route: every request not claimed by another router is gated."""

from fastapi import APIRouter, Request, Response

from paygate.app.api.dependencies import OrchestratorDep

router = APIRouter(tags=["gateway"])

GATED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


@router.api_route("/{full_path:path}", methods=GATED_METHODS, include_in_schema=False)
async def gated(request: Request, orchestrator: OrchestratorDep) -> Response:
    return await orchestrator.handle(request)
