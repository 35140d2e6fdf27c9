from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union
import logging
import bcrypt
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from rifaria.config import get_settings
from rifaria.database import get_db
from rifaria.exceptions import AuthError, ConflictError, ValidationError
from rifaria.models.user import User
from rifaria.schemas.user import TokenData

settings = get_settings()
logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)

# bcrypt only looks at the first 72 bytes and newer releases refuse longer input.
MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class Anonymous:
    pass


@dataclass(frozen=True)
class Authenticated:
    user_id: int
    email: Optional[str] = None


RequestContext = Union[Anonymous, Authenticated]


class AuthService:
    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )

    @staticmethod
    def check_password_length(password: str) -> None:
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

    @staticmethod
    def get_password_hash(password: str) -> str:
        return bcrypt.hashpw(
            password.encode('utf-8'),
            bcrypt.gensalt()
        ).decode('utf-8')

    @staticmethod
    def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
        expire = datetime.utcnow() + (
            expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
        )
        to_encode = {"sub": str(user.id), "email": user.email, "exp": expire}
        return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)

    @staticmethod
    def decode_token(token: str) -> Optional[TokenData]:
        try:
            payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
            user_id = payload.get("sub")
            if user_id is None:
                return None
            return TokenData(user_id=int(user_id), email=payload.get("email"))
        except (JWTError, ValueError):
            return None

    @staticmethod
    def verify_token(token: str) -> TokenData:
        token_data = AuthService.decode_token(token)
        if token_data is None:
            raise AuthError("Invalid or expired token")
        return token_data

    @staticmethod
    def register(db: Session, email: Optional[str], password: Optional[str]) -> tuple[User, str]:
        """Create an account and return it with a fresh session token."""
        if not email or not password:
            raise ValidationError("Email and password are required")
        AuthService.check_password_length(password)

        if AuthService.get_user_by_email(db, email):
            raise ConflictError("Email already registered")

        user = User(email=email, hashed_password=AuthService.get_password_hash(password))
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Email already registered")
        db.refresh(user)

        logger.info(f"Registered user {user.id}")
        return user, AuthService.create_access_token(user)

    @staticmethod
    def login(db: Session, email: Optional[str], password: Optional[str]) -> tuple[User, str]:
        if not email or not password:
            raise ValidationError("Email and password are required")
        AuthService.check_password_length(password)

        user = AuthService.authenticate_user(db, email, password)
        if not user:
            raise AuthError("Invalid email or password")
        return user, AuthService.create_access_token(user)

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
        user = AuthService.get_user_by_email(db, email)
        if not user:
            return None
        if not AuthService.verify_password(password, user.hashed_password):
            return None
        return user

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()


def get_request_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> RequestContext:
    """Soft authentication: a missing or bad token means an anonymous caller."""
    if credentials is None:
        return Anonymous()

    token_data = AuthService.decode_token(credentials.credentials)
    if token_data is None:
        return Anonymous()
    return Authenticated(user_id=token_data.user_id, email=token_data.email)


def get_current_user_required(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    if credentials is None:
        raise AuthError("Token not provided")

    token_data = AuthService.verify_token(credentials.credentials)
    user = AuthService.get_user_by_id(db, token_data.user_id)
    if user is None:
        raise AuthError("Invalid or expired token")
    return user
