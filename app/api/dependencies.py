# ============================================================================
# FILE: app/api/dependencies.py
# Authentication dependencies and the per-request caller context
# ============================================================================
import hmac
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.config.settings import get_settings
from app.core.context import RequestContext
from app.models.user import User
from app.services.business.business_service import BusinessService
from app.services.subscription.subscription_service import SubscriptionService

# ============================================================================
# Security Schemes
# ============================================================================

jwt_security = HTTPBearer(
    scheme_name="JWT Bearer Token",
    description="Enter your JWT access token"
)

optional_jwt_security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ============================================================================
# JWT Token Functions
# ============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims; must include 'sub' with the user id
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()
    to_encode = data.copy()

    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode.update({
        "exp": expire,
        "iat": now,
        "type": "access"
    })

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str) -> dict:
    """
    Verify and decode a JWT access token.

    Raises:
        HTTPException 401: token invalid, expired or of the wrong type
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise _unauthorized(f"Could not validate credentials: {str(e)}")

    if payload.get("type") != "access":
        raise _unauthorized("Invalid token type")

    return payload


def _load_user(db: Session, payload: dict) -> User:
    user_id_str: Optional[str] = payload.get("sub")
    if user_id_str is None:
        raise _unauthorized("Could not validate credentials")

    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise _unauthorized("Invalid user ID in token")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user account")

    return user


# ============================================================================
# JWT Authentication Dependencies
# ============================================================================

async def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(jwt_security),
        db: Session = Depends(get_db)
) -> User:
    """
    Dependency to get the current authenticated user from JWT access token.

    Raises:
        HTTPException 401: If token is invalid or user not found
    """
    payload = verify_access_token(credentials.credentials)
    return _load_user(db, payload)


async def optional_current_user(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_jwt_security),
        db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Returns the User if a token was sent, None for anonymous callers.
    A token that was sent but does not verify is still rejected.
    """
    if not credentials:
        return None

    payload = verify_access_token(credentials.credentials)
    return _load_user(db, payload)


# ============================================================================
# Request Context
# ============================================================================

def _build_context(request: Request, db: Session, user: Optional[User]) -> RequestContext:
    correlation_id = getattr(request.state, "correlation_id", None)
    if user is None:
        return RequestContext.anonymous(correlation_id=correlation_id)

    business_id = None
    if user.is_professional():
        business = BusinessService.get_business_for_owner(db, user.id)
        business_id = business.id if business else None

    return RequestContext(
        user_id=user.id,
        role=user.role,
        business_id=business_id,
        correlation_id=correlation_id,
    )


async def get_request_context(
        request: Request,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
) -> RequestContext:
    """Caller context for endpoints that require authentication"""
    return _build_context(request, db, current_user)


async def optional_request_context(
        request: Request,
        current_user: Optional[User] = Depends(optional_current_user),
        db: Session = Depends(get_db)
) -> RequestContext:
    """Caller context for public endpoints; anonymous callers get an empty context"""
    return _build_context(request, db, current_user)


async def require_professional(
        ctx: RequestContext = Depends(get_request_context)
) -> RequestContext:
    if not ctx.is_professional:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Professional account required"
        )
    return ctx


async def require_active_subscription(
        ctx: RequestContext = Depends(require_professional),
        db: Session = Depends(get_db)
) -> RequestContext:
    """
    Professional endpoints behind the subscription gate.
    Raises AccessDeniedError (402) with the denial reason.
    """
    SubscriptionService.enforce_access(db, ctx)
    return ctx


# ============================================================================
# Collaborator callbacks
# ============================================================================

async def verify_payment_callback_secret(
        x_callback_secret: Optional[str] = Header(None, alias="X-Callback-Secret")
) -> None:
    """Payment collaborator presents the shared secret on every callback"""
    expected = get_settings().PAYMENT_CALLBACK_SECRET
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment callbacks are not configured"
        )

    if not x_callback_secret or not hmac.compare_digest(x_callback_secret, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid callback secret"
        )
