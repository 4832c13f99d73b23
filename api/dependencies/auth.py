"""Request identity: bearer JWT for users, bcrypt-checked header for the admin panel."""

import logging
from dataclasses import dataclass

import bcrypt
import jwt  # PyJWT
from fastapi import Header, HTTPException, status

from config import settings

logger = logging.getLogger(__name__)


@dataclass
class CurrentUser:
    user_id: str
    email: str | None = None


def get_current_user(authorization: str | None = Header(None)) -> CurrentUser:
    """
    Decode the bearer token issued by the identity service.

    Claims used: `userId` (required) and `email`. Expiry is enforced by PyJWT.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
        )

    token = authorization.replace("Bearer ", "", 1).strip()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.info("Token verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    user_id = payload.get("userId")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no user id",
        )
    return CurrentUser(user_id=str(user_id), email=payload.get("email"))


def verify_admin(x_admin_password: str | None = Header(None)) -> None:
    if not x_admin_password or not settings.ADMIN_PASSWORD_HASH:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin password")
    try:
        ok = bcrypt.checkpw(x_admin_password.encode(), settings.ADMIN_PASSWORD_HASH.encode())
    except ValueError:
        logger.error("ADMIN_PASSWORD_HASH is not a valid bcrypt hash")
        ok = False
    if not ok:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin password")
