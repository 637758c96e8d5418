from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import APIKeyHeader
from fastapi_limiter.depends import RateLimiter
from jose import jwt, JWTError

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)


def _decode_user_id(request: Request, token: str) -> int:
    settings = request.app.state.settings
    scheme, jwt_token = token.split()
    if scheme.lower() != "bearer":
        raise ValueError("Unsupported authorization scheme")
    payload = jwt.decode(jwt_token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    return int(payload.get("sub"))


async def get_key_by_user_id_or_ip(request: Request) -> str:
    """
    Tries to get the user ID from the JWT token.
    If it fails (no token, invalid token), it falls back to the client's IP.
    """
    try:
        return str(_decode_user_id(request, request.headers.get("Authorization")))
    except (JWTError, ValueError, AttributeError, TypeError):
        # If token is invalid, missing, or malformed, limit by IP
        return request.client.host


async def get_current_user_id(
        request: Request,
        token: Annotated[Optional[str], Depends(api_key_header)],
) -> int:
    """
    Decodes the JWT from the 'Authorization: Bearer ...' header to get the user ID.
    """
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return _decode_user_id(request, token)
    except (JWTError, ValueError, AttributeError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


def rate_limit(times: int, minutes: int):
    """
    Per-route limiter keyed by user or IP. A no-op when RATE_LIMIT_ENABLED is off,
    in which case FastAPILimiter is never initialised.
    """
    limiter = RateLimiter(times=times, minutes=minutes, identifier=get_key_by_user_id_or_ip)

    async def dependency(request: Request, response: Response):
        if request.app.state.settings.RATE_LIMIT_ENABLED:
            await limiter(request, response)

    return dependency
