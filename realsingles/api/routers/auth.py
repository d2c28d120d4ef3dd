"""
Authentication routes.
Signup, login, logout, session check and token refresh, all forwarded to
Supabase Auth. The API only mirrors the account into the users table and
manages the session cookies for web clients.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Cookie, Depends, Header, Response, status
from sqlalchemy.orm import Session

from ...db.models import Profile, User, utcnow
from ..config import get_settings
from ..dependencies import extract_token, get_current_user_optional, get_db
from ..errors import AuthenticationError, ConflictError, InvalidRequestError, PermissionDeniedError
from ..schemas.auth import LoginRequest, RefreshRequest, SessionResponse, SignupRequest, UserResponse
from ..schemas.common import ERROR_RESPONSES, ok
from ..services.formatting import capitalize_name
from ..services.referrals import ReferralService, generate_referral_code
from ..services.supabase_auth import AuthSession, SupabaseAuthClient, get_auth_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

REFRESH_COOKIE_MAX_AGE = 7 * 24 * 60 * 60  # 7 days
REFERRAL_COOKIE = "referral_code"


def get_cookie_settings() -> dict:
    """
    Get cookie settings based on environment.

    In production (HTTPS), use secure=True and samesite="none" for cross-origin requests.
    In development, use secure=False and samesite="lax" for localhost.
    """
    is_production = get_settings().is_production

    return {
        "httponly": True,
        "secure": is_production,
        "samesite": "none" if is_production else "lax",
        "path": "/",
    }


def set_session_cookies(response: Response, session: AuthSession) -> None:
    cookie_settings = get_cookie_settings()
    response.set_cookie(
        key="access_token",
        value=session.access_token,
        max_age=session.expires_in,
        **cookie_settings,
    )
    if session.refresh_token:
        response.set_cookie(
            key="refresh_token",
            value=session.refresh_token,
            max_age=REFRESH_COOKIE_MAX_AGE,
            **cookie_settings,
        )


def clear_session_cookies(response: Response) -> None:
    cookie_settings = get_cookie_settings()
    response.delete_cookie("access_token", **cookie_settings)
    response.delete_cookie("refresh_token", **cookie_settings)


def session_payload(user: User, session: AuthSession) -> dict:
    return SessionResponse(
        user=UserResponse.model_validate(user),
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
    ).model_dump(mode="json")


def provision_user(db: Session, user_id: UUID, email: str, display_name: Optional[str] = None) -> User:
    """Create the local account and an empty profile for a Supabase user."""
    user = User(
        id=user_id,
        email=email,
        display_name=capitalize_name(display_name) or None,
        referral_code=generate_referral_code(db),
    )
    db.add(user)
    db.add(Profile(user_id=user_id))
    db.flush()
    logger.info(f"Provisioned local account for {user_id}")
    return user


@router.post("/signup", status_code=status.HTTP_201_CREATED, responses=ERROR_RESPONSES)
async def signup(
    request: SignupRequest,
    response: Response,
    referral_cookie: Optional[str] = Cookie(None, alias=REFERRAL_COOKIE),
    db: Session = Depends(get_db),
    auth: SupabaseAuthClient = Depends(get_auth_client),
):
    """
    Register a new account.

    The account is created in Supabase Auth first; a users row and an empty
    profile are then created with the same id. A referral code from the body
    must be valid; one from the capture cookie is applied when it is.
    """
    email = request.email.lower()
    if db.query(User.id).filter(User.email == email).first():
        raise ConflictError("Email address already registered")

    if request.referral_code:
        code = request.referral_code.strip().upper()
        if not db.query(User.id).filter(User.referral_code == code).first():
            raise InvalidRequestError("Invalid referral code")

    session = await auth.sign_up(email, request.password, {"display_name": request.display_name})
    user = provision_user(db, UUID(session.user_id), email, request.display_name)

    referrals = ReferralService(db)
    if request.referral_code:
        referrals.apply_code(user, request.referral_code)
    elif referral_cookie:
        try:
            referrals.apply_code(user, referral_cookie)
        except InvalidRequestError as e:
            logger.warning(f"Ignoring referral cookie for {user.id}: {e.message}")

    user.last_active_at = utcnow()
    db.commit()
    db.refresh(user)

    if session.access_token:
        set_session_cookies(response, session)
    if referral_cookie:
        response.delete_cookie(REFERRAL_COOKIE, path="/")

    logger.info(f"User signed up: {user.id}")
    return ok(session_payload(user, session), msg="Account created")


@router.post("/login", responses=ERROR_RESPONSES)
async def login(
    request: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    auth: SupabaseAuthClient = Depends(get_auth_client),
):
    """
    Log in with email and password.

    Sets httpOnly `access_token` and `refresh_token` cookies and also returns
    the tokens for mobile clients.
    """
    session = await auth.sign_in_with_password(request.email.lower(), request.password)

    user_id = UUID(session.user_id)
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        # Accounts created directly against Supabase get their row on first login
        user = provision_user(db, user_id, session.email or request.email.lower())

    if user.status in ("suspended", "deleted"):
        logger.warning(f"Login refused for {user.status} account {user.id}")
        raise PermissionDeniedError(f"Account is {user.status}")

    user.last_active_at = utcnow()
    db.commit()
    db.refresh(user)

    set_session_cookies(response, session)
    logger.info(f"User logged in: {user.id}")
    return ok(session_payload(user, session))


@router.post("/logout")
async def logout(
    response: Response,
    authorization: Optional[str] = Header(None),
    access_token: Optional[str] = Cookie(None),
    auth: SupabaseAuthClient = Depends(get_auth_client),
):
    """Revoke the Supabase session (best effort) and clear auth cookies."""
    token = extract_token(authorization, access_token)
    if token:
        await auth.sign_out(token)
    clear_session_cookies(response)
    return ok(msg="Successfully logged out")


@router.get("/session")
async def get_session(current_user: Optional[User] = Depends(get_current_user_optional)):
    """Report whether the caller is signed in. Never fails for anonymous callers."""
    if current_user is None:
        return ok({"authenticated": False})
    return ok({
        "authenticated": True,
        "user": UserResponse.model_validate(current_user).model_dump(mode="json"),
    })


@router.post("/refresh", responses=ERROR_RESPONSES)
async def refresh_session(
    response: Response,
    body: Optional[RefreshRequest] = None,
    refresh_token: Optional[str] = Cookie(None),
    db: Session = Depends(get_db),
    auth: SupabaseAuthClient = Depends(get_auth_client),
):
    """Exchange a refresh token for a new session and reset the cookies."""
    token = (body.refresh_token if body else None) or refresh_token
    if not token:
        raise AuthenticationError("Refresh token not found")

    session = await auth.refresh_session(token)
    user = db.query(User).filter(User.id == UUID(session.user_id)).first()
    if user is None or user.status in ("suspended", "deleted"):
        raise AuthenticationError("User not found or inactive")

    set_session_cookies(response, session)
    return ok(session_payload(user, session))
