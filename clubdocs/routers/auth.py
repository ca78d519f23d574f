import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.athlete import Athlete
from ..models.user import STAFF_ROLES, User, UserRole
from ..services.auth import AuthService

logger = logging.getLogger(__name__)

# Tokens are minted by the club's identity service (or `clubdocs.cli token`).
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    if not token:
        return None
    payload = AuthService.decode_token(token)
    if not payload:
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    try:
        user = AuthService.get_user_by_id(db, int(user_id))
    except ValueError:
        return None
    if not user or not user.is_active:
        return None
    return user


def require_auth(
    current_user: Optional[User] = Depends(get_current_user),
) -> User:
    if not current_user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current_user


def require_admin(
    current_user: User = Depends(require_auth),
) -> User:
    if current_user.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


def require_staff(
    current_user: User = Depends(require_auth),
) -> User:
    if current_user.role not in STAFF_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Staff access required",
        )
    return current_user


def is_staff(user: User) -> bool:
    return user.role in STAFF_ROLES


def get_current_athlete(
    current_user: User = Depends(require_auth),
    db: Session = Depends(get_db),
) -> Optional[Athlete]:
    """The athlete profile of the caller, or None when they have none."""
    return AuthService.get_athlete_for_user(db, current_user)
