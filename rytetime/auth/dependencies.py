"""FastAPI dependencies for authentication."""

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from rytetime.auth.jwt import decode_access_token
from rytetime.database.database import get_db
from rytetime.database.user_repository import UserRepository
from rytetime.engine.timezones import utc_now
from rytetime.models.user import User

logger = logging.getLogger(__name__)

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the token subject to a user.

    A valid token for an unknown subject provisions the user when the
    token carries an ``email`` claim.

    Raises:
        HTTPException: 401 if the token is missing, invalid or names no user
    """
    if not credentials:
        raise _unauthorized("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    user_id = payload.get("sub") if payload else None
    if not user_id:
        raise _unauthorized("Invalid or expired token")

    users = UserRepository(db)
    user = users.get(user_id)
    if user:
        return user

    email = payload.get("email")
    if not email:
        raise _unauthorized("User not found")
    now = utc_now()
    logger.info(f"Provisioning user {user_id} from token claims")
    return users.create_or_update(User(id=user_id, email=email, created_at=now, updated_at=now))
