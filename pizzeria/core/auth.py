# pizzeria/core/auth.py
"""
Bearer-token identity for the API.

Anonymous requests are allowed through as guests (checkout, quotes);
endpoints that need a signed-in user or a staff role declare it with the
dependencies below.
"""
import uuid
from collections.abc import Callable
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session

from pizzeria.core.config import get_settings
from pizzeria.database import get_session
from pizzeria.models.user import User

settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)

CUSTOMER_ROLE = "customer"
STAFF_ROLES = ("admin", "delivery")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify signature and expiry of a JWT signed with JWT_SECRET.

    Raises:
        HTTPException(401): if the token is invalid or expired.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise _unauthorized("Invalid or expired token")


def identity_from_claims(claims: dict[str, Any]) -> tuple[uuid.UUID, str]:
    """
    (user id, email) carried by the token.

    Raises:
        HTTPException(401): if `sub` or `email` is missing, or `sub` is not a UUID.
    """
    sub, email = claims.get("sub"), claims.get("email")
    if not sub or not email:
        raise _unauthorized("Token missing sub/email")
    try:
        return uuid.UUID(str(sub)), email
    except ValueError:
        raise _unauthorized("Invalid sub in token")


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    The signed-in user, or None for guests.

    First sight of a valid token creates a customer profile; staff roles
    are granted out of band.
    """
    if credentials is None:
        return None

    user_id, email = identity_from_claims(decode_access_token(credentials.credentials))

    user = session.get(User, user_id)
    if user is None:
        user = User(id=user_id, email=email, name=email.partition("@")[0], role=CUSTOMER_ROLE)
        session.add(user)
        session.commit()
        session.refresh(user)
    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    if user is None:
        raise _unauthorized("Authentication required")
    return user


def require_roles(*roles: str, label: str) -> Callable[[User], User]:
    """
    Dependency accepting only signed-in users holding one of `roles`.

    Raises (from the returned dependency):
        HTTPException(401): guest.
        HTTPException(403): any other role.
    """

    def dependency(user: User = Depends(require_auth)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{label} access required",
            )
        return user

    return dependency


require_admin = require_roles("admin", label="Admin")

# Which transitions each staff role may perform is decided by the order service
require_staff = require_roles(*STAFF_ROLES, label="Staff")
