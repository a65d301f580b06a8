# ==== JWT TOKEN HANDLING ==== #

"""
JWT issue and verification for EasyBill.

Access tokens carry the user id, tenant id and roles; refresh tokens only
identify the user. Both are HS256-signed with ``JWT_SECRET``.
"""

import datetime as dt
from typing import Any, Dict, Iterable, Optional

import jwt

from easybill.errors import ErrorCodes, UnauthorizedError
from easybill.settings import settings


ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"
PLATFORM_TENANT = "platform"


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def create_access_token(
    user_id: str,
    tenant_id: str,
    roles: Iterable[str],
    username: Optional[str] = None,
) -> str:
    """Create a signed access token.

    Args:
        user_id: Subject of the token
        tenant_id: Tenant the user belongs to
        roles: Role names granted to the user
        username: Optional display claim

    Returns:
        Encoded JWT string
    """
    issued = _now()
    payload: Dict[str, Any] = {
        "sub": user_id,
        "userId": user_id,
        "tenantId": tenant_id,
        "roles": sorted(set(roles)),
        "type": ACCESS_TOKEN,
        "iat": issued,
        "exp": issued + dt.timedelta(seconds=settings.ACCESS_TOKEN_TTL_SECONDS),
    }
    if username:
        payload["username"] = username
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(user_id: str) -> str:
    issued = _now()
    payload = {
        "sub": user_id,
        "type": REFRESH_TOKEN,
        "iat": issued,
        "exp": issued + dt.timedelta(seconds=settings.REFRESH_TOKEN_TTL_SECONDS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_platform_admin_token(user_id: str, expires_in_hours: int = 24) -> str:
    """Create a token for platform operators who manage tenants.

    Args:
        user_id: Operator identifier
        expires_in_hours: Token expiration time in hours

    Returns:
        JWT token string
    """
    issued = _now()
    payload = {
        "sub": user_id,
        "userId": user_id,
        "tenantId": PLATFORM_TENANT,
        "roles": ["ROLE_SUPER_ADMIN"],
        "type": ACCESS_TOKEN,
        "iat": issued,
        "exp": issued + dt.timedelta(hours=expires_in_hours),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry and return the claims.

    Raises:
        UnauthorizedError: TOKEN_EXPIRED or INVALID_TOKEN
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired", ErrorCodes.TOKEN_EXPIRED)
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token", ErrorCodes.INVALID_TOKEN)


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    """Return the token part of a ``Bearer`` header, or None."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None
