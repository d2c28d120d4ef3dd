"""
Dependency Injection
FastAPI dependencies for database sessions, authentication and role guards.
"""

import logging
from typing import Generator, Optional
from uuid import UUID

from fastapi import Cookie, Depends, Header, Path
from sqlalchemy.orm import Session

from .errors import AuthenticationError, PermissionDeniedError, ResourceNotFoundError
from .security import verify_token
from ..db.models import Matchmaker, User
from ..db.session import get_session_factory

logger = logging.getLogger(__name__)

INACTIVE_STATUSES = ("suspended", "deleted")


def get_db() -> Generator[Session, None, None]:
    """
    Get database session.

    Use as FastAPI dependency:
        @app.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            ...
    """
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def extract_token(authorization: Optional[str], access_token: Optional[str]) -> Optional[str]:
    """Bearer header (mobile) wins over the cookie (web)."""
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return access_token


def _load_user(token: str, db: Session) -> Optional[User]:
    payload = verify_token(token)
    if not payload:
        return None

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        return None

    return db.query(User).filter(User.id == user_id).first()


def get_current_user(
    authorization: Optional[str] = Header(None),
    access_token: Optional[str] = Cookie(None),
    db: Session = Depends(get_db),
) -> User:
    """
    Get the authenticated user from the Supabase access token.

    Use as FastAPI dependency to protect routes:
        @app.get("/endpoint")
        def endpoint(current_user: User = Depends(get_current_user)):
            ...

    Raises:
        AuthenticationError: 401 if the token is missing, invalid or unknown
        PermissionDeniedError: 403 if the account is suspended or deleted
    """
    token = extract_token(authorization, access_token)
    if not token:
        raise AuthenticationError("Not authenticated")

    user = _load_user(token, db)
    if not user:
        raise AuthenticationError("Invalid or expired session")

    if user.status in INACTIVE_STATUSES:
        raise PermissionDeniedError(f"Account is {user.status}")

    return user


def get_current_user_optional(
    authorization: Optional[str] = Header(None),
    access_token: Optional[str] = Cookie(None),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Get current authenticated user, or None.

    Used by the session check and event listings, which answer anonymous
    callers too.
    """
    token = extract_token(authorization, access_token)
    if not token:
        return None

    user = _load_user(token, db)
    if user is None or user.status in INACTIVE_STATUSES:
        return None
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Allow admins and moderators only."""
    if not current_user.is_admin:
        logger.warning(f"Non-admin user {current_user.id} attempted an admin action")
        raise PermissionDeniedError("Admin access required")
    return current_user


def get_owned_matchmaker(
    matchmaker_id: UUID = Path(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Matchmaker:
    """Resolve the matchmaker in the path and check the caller owns it."""
    matchmaker = db.query(Matchmaker).filter(Matchmaker.id == matchmaker_id).first()
    if not matchmaker:
        raise ResourceNotFoundError("Matchmaker", matchmaker_id)
    if matchmaker.user_id != current_user.id:
        raise PermissionDeniedError("Not authorized")
    return matchmaker
