"""Business handler contract and the default handler.

A handler is an async callable ``handler(request, context)`` returning a
Starlette ``Response``, a ``str``, or a JSON-serialisable ``dict``/``list``.
It only runs after the gatekeeper has allowed (and, for paying accounts,
billed) the request.
"""

import importlib
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from paygate.app.core.config import Settings
from paygate.app.core.store import KeyValueStore
from paygate.app.services.models import Account

HandlerResult = Union[Response, str, dict, list]


@dataclass(frozen=True)
class HandlerContext:
    """What a handler gets to see besides the request.

    Attributes:
        account: The charged account for paying callers, the unbilled account
            for callers with no balance left, None for anonymous callers
        store: The gateway's key-value store
        settings: Active settings
    """
    account: Optional[Account]
    store: KeyValueStore
    settings: Settings


Handler = Callable[[Request, HandlerContext], Awaitable[HandlerResult]]


async def hello_world(request: Request, context: HandlerContext) -> Response:
    # Responses are cached for every caller, so nothing account-specific goes in
    return JSONResponse({"message": "Hello, world!"})


def load_handler(path: str) -> Handler:
    """Import a handler from a ``package.module:attribute`` path.

    Raises:
        ValueError: If the path is malformed or does not point to a callable
    """
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Invalid handler path: {path!r}")

    module = importlib.import_module(module_name)
    handler = getattr(module, attribute, None)
    if not callable(handler):
        raise ValueError(f"Handler {path!r} is not callable")
    return handler
