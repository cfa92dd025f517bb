import logging

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError

from bookstudio.api.settings import get_settings

logger = logging.getLogger(__name__)

# Tokens are issued by the auth service; this API only verifies them.
security = HTTPBearer()


def decode_principal(token: str) -> str | None:
    """Return the ``sub`` claim of a valid token, or None."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except InvalidTokenError as e:
        logger.error(f"JWT decode error: {e}")
        return None

    principal_id = payload.get("sub")
    if principal_id is None:
        logger.error("No 'sub' field in token payload")
    return principal_id


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> str:
    """Get the billing principal id from the bearer token."""
    principal_id = decode_principal(credentials.credentials)
    if principal_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal_id
