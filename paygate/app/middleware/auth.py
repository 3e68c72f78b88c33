import hmac

from fastapi import Request

from paygate.app.exceptions import AuthenticationError
from paygate.app.services.request_classifier import extract_bearer_token


def require_admin(request: Request) -> str:
    """Validate the admin token for protected endpoints.

    The expected token comes from ``settings.admin_token`` of the running
    app. An empty admin token disables the admin API entirely.

    Returns:
        Admin identifier if valid

    Raises:
        AuthenticationError: If the admin token is missing or invalid
    """
    expected_token = request.app.state.settings.admin_token
    if not expected_token:
        raise AuthenticationError("Admin API is disabled")

    # Use empty string if token is None to prevent timing differences
    token = extract_bearer_token(request.headers.get("Authorization")) or ""

    # Use constant-time comparison to prevent timing attacks
    if not hmac.compare_digest(token.encode(), expected_token.encode()):
        # Use consistent error message to prevent token enumeration
        raise AuthenticationError()

    return "admin"
