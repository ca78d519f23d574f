from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from ..config import get_settings
from ..models.athlete import Athlete
from ..models.user import User, UserRole

settings = get_settings()


class AuthService:
    """Identity lookups for the document service.

    Tokens are issued elsewhere in the club platform; this service only
    verifies them and resolves the caller (and, for athletes, their athlete
    profile by email).
    """

    @staticmethod
    def get_password_hash(password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(minutes=settings.jwt_access_token_expire_minutes)
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    @staticmethod
    def create_token_for_user(user: User) -> str:
        return AuthService.create_access_token({"sub": str(user.id), "email": user.email, "role": user.role})

    @staticmethod
    def decode_token(token: str) -> Optional[dict]:
        try:
            return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        except JWTError:
            return None

    @staticmethod
    def create_user(
        db: Session,
        email: str,
        password: str,
        role: UserRole = UserRole.ATHLETE,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        user = User(
            email=email,
            password_hash=AuthService.get_password_hash(password),
            role=role.value,
            first_name=first_name,
            last_name=last_name,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_athlete_for_user(db: Session, user: User) -> Optional[Athlete]:
        if not user.email:
            return None
        return db.query(Athlete).filter(Athlete.email == user.email).first()
