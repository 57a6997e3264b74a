"""
Bearer token verification.

Tokens are issued by the external auth provider; this service only checks
the signature and reads the ``sub`` claim as the owning user id.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from core.config import settings
from core.exceptions import AuthenticationException
from core.logging import get_logger

logger = get_logger("security")

# HTTP Bearer token scheme; missing headers are turned into 401 below
security = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT.

    Args:
        data: Claims to encode, usually ``{"sub": user_id}``
        expires_delta: Optional custom expiration time (default one hour)

    Returns:
        str: The encoded JWT token
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))
    to_encode.update({"exp": expire})
    if settings.jwt_audience:
        to_encode.setdefault("aud", settings.jwt_audience)
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Verify a token and return its claims, raising AuthenticationException."""
    options = {"verify_aud": bool(settings.jwt_audience)}
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except JWTError as e:
        logger.warning("JWT verification failed", error=str(e))
        raise AuthenticationException()


async def get_current_user_id(
    token: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Get the caller's user id from the bearer token.

    Raises:
        AuthenticationException: If the header is missing or the token is invalid
    """
    if token is None or not token.credentials:
        logger.warning("Missing bearer token")
        raise AuthenticationException("Not authenticated")

    payload = decode_token(token.credentials)
    user_id = payload.get("sub")
    if not user_id:
        logger.warning("Token missing subject claim")
        raise AuthenticationException()
    return str(user_id)
