"""Authentication for the API.

Bearer JWTs are signed with the secret key from configuration. The token
subject (``sub``) is the user id committed time entries are attributed to.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from timeflow.core.config import ConfigManager

ALGORITHM = "HS256"

# Missing credentials are reported by verify_token so that disabled
# authentication can still accept unauthenticated requests
security = HTTPBearer(auto_error=False)


def create_access_token(
    data: dict[str, Any], secret_key: str, expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT access token.

    Args:
        data: Claims to encode in the token
        secret_key: Secret key for signing
        expires_delta: Token lifetime (default: 24 hours)

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token(
        ...     data={"sub": "alice"},
        ...     secret_key="your-secret-key",
        ...     expires_delta=timedelta(hours=24)
        ... )
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=24))
    to_encode.update({"exp": expire, "iat": now})

    encoded_jwt: str = jwt.encode(to_encode, secret_key, algorithm=ALGORITHM)
    return encoded_jwt


def verify_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict[str, Any]:
    """Verify the bearer token of a request.

    Args:
        request: Incoming request (its app holds the configuration)
        credentials: HTTP authorization credentials (injected by FastAPI)

    Returns:
        Decoded token payload

    Raises:
        HTTPException: If the token is missing, invalid or expired
    """
    config: ConfigManager = request.app.state.config

    if not config.get("api.authentication.enabled", True):
        return {"sub": config.get_user_id() or "anonymous"}

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    secret_key = config.get("api.authentication.secret_key")
    if not secret_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API secret key not configured",
        )

    try:
        payload: dict[str, Any] = jwt.decode(
            credentials.credentials, secret_key, algorithms=[ALGORITHM]
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def create_token_for_user(
    config: ConfigManager, user_id: str, expires_delta: Optional[timedelta] = None
) -> dict[str, Any]:
    """Create a complete token response.

    Args:
        config: Configuration manager
        user_id: User the token authenticates
        expires_delta: Token lifetime (default: api.authentication.token_expiry_hours)

    Returns:
        Dictionary with access_token, token_type and expires_in
    """
    secret_key = config.ensure_api_secret_key()

    if expires_delta is None:
        expires_delta = timedelta(hours=config.get("api.authentication.token_expiry_hours", 24))

    access_token = create_access_token(
        data={"sub": user_id}, secret_key=secret_key, expires_delta=expires_delta
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in": int(expires_delta.total_seconds()),
    }
