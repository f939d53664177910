"""
API key principal resolution.
"""

from typing import Any, Dict, Mapping, Optional

from fastapi import Request

from shared.errors import AuthenticationError
from shared.logging import clear_context, get_logger, set_user_context


class ApiKeyPrincipalResolver:
    """Maps the X-API-Key header onto ``request.state.user_info``.

    Unknown or missing keys leave the request anonymous; routes that need a
    principal depend on :func:`require_user`.
    """

    def __init__(self, api_keys: Mapping[str, str]):
        self.api_keys = dict(api_keys)
        self.logger = get_logger("tasks.auth")

    def resolve(self, request: Request) -> Optional[Dict[str, Any]]:
        api_key = request.headers.get("X-API-Key")
        if not api_key:
            return None

        user_id = self.api_keys.get(api_key)
        if user_id is None:
            self.logger.warning("Unknown API key", api_key=api_key[:8] + "...")
            return None

        user_info = {"user_id": user_id, "auth_method": "api_key"}
        request.state.user_info = user_info
        set_user_context(user_id)
        return user_info

    async def __call__(self, request: Request, call_next):
        try:
            self.resolve(request)
            return await call_next(request)
        finally:
            clear_context()


def current_user_id(request: Request) -> Optional[str]:
    """User id of the resolved principal, if any."""
    user_info = getattr(request.state, "user_info", None)
    if not user_info:
        return None
    return user_info.get("user_id")


async def require_user(request: Request) -> str:
    """FastAPI dependency for routes that need an authenticated user."""
    user_id = current_user_id(request)
    if user_id is None:
        raise AuthenticationError("X-API-Key header with a known key required")
    return user_id
