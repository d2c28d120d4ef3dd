"""
Token verification.

Access tokens are issued by Supabase GoTrue and signed with the project's
JWT secret (HS256). This module only verifies them; it never mints tokens for
real sessions.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from .config import get_settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify and decode a Supabase access token.

    Args:
        token: Encoded JWT

    Returns:
        Token claims, or None if the token is invalid or expired
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[ALGORITHM],
            audience=settings.supabase_jwt_audience,
        )
    except ExpiredSignatureError:
        logger.info("Rejected expired access token")
        return None
    except JWTError as e:
        logger.warning(f"Rejected invalid access token: {e}")
        return None


def create_access_token(
    user_id: str,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Sign a token with the same claims GoTrue issues.

    Used by local tooling and tests that need a session without a running
    Supabase instance.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=1))
    payload = {
        "sub": str(user_id),
        "email": email,
        "aud": settings.supabase_jwt_audience,
        "role": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(payload, settings.supabase_jwt_secret, algorithm=ALGORITHM)
