"""FastAPI dependencies: capabilities and the authenticated caller."""

from fastapi import Depends, Header, Request

from .capabilities import Capabilities
from .errors import ApiError, ErrorCode


def get_capabilities(request: Request) -> Capabilities:
    return request.app.state.capabilities


def _presented_key(x_api_key: str | None, authorization: str | None) -> str | None:
    if x_api_key:
        return x_api_key
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


async def get_optional_user_id(
    x_api_key: str | None = Header(None, alias="X-API-Key"),
    authorization: str | None = Header(None),
    caps: Capabilities = Depends(get_capabilities),
) -> str | None:
    """User id for a valid key; None when no key was presented.

    Raises 401 if a key was presented but is not valid.
    """
    key = _presented_key(x_api_key, authorization)
    if key is None:
        return None
    user_id = await caps.users.authenticate(key)
    if user_id is None:
        raise ApiError(ErrorCode.UNAUTHORIZED, "Invalid API key")
    return user_id


async def get_current_user_id(
    user_id: str | None = Depends(get_optional_user_id),
) -> str:
    """Require an API key (``X-API-Key`` or ``Authorization: Bearer``)."""
    if user_id is None:
        raise ApiError(ErrorCode.UNAUTHORIZED, "API key is required")
    return user_id
