"""Simple token-based auth helpers for the LandGuard API."""

from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, status

from landguard.settings import get_settings

# Minimal token -> caller mapping; the configured ``api.key`` is accepted as a client token too.
_API_TOKENS = {
    "dev-client-token": {"username": "client_1", "role": "client"},
    "dev-admin-token": {"username": "admin", "role": "admin"},
}


def _lookup(token: str) -> Optional[dict]:
    user = _API_TOKENS.get(token)
    if user:
        return user
    configured = get_settings().api_key
    if configured and token == configured:
        return {"username": "api_client", "role": "client"}
    return None


def require_token(x_api_key: Optional[str] = Header(None)):
    """Validate the API key header and return caller info.

    Args:
        x_api_key: Value of the `X-API-KEY` header.

    Returns:
        dict: caller info with 'username' and 'role'.

    Raises:
        HTTPException: 401 if missing, 403 if unknown.
    """
    if not x_api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-API-KEY")
    user = _lookup(x_api_key)
    if not user:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid API key")
    return user


def require_role(required_role: str) -> Callable:
    """Dependency factory that enforces a required role (client/admin)."""

    def _checker(user=Depends(require_token)):
        role = user.get("role")
        if role == required_role or role == "admin":
            return user
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")

    return _checker
