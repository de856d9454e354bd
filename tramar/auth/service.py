# tramar/auth/service.py

from datetime import timedelta, datetime, timezone
from typing import Annotated, Optional
from uuid import UUID, uuid4
import logging

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
import jwt
from jwt import PyJWTError

from . import models
from ..core.config import settings
from ..core.exceptions import AuthenticationError, AdminRequiredError, ValidationError, ErrorCode
from ..database.core import get_db
from ..users.models import User, UserRole
from ..utils.password_utils import verify_password, get_password_hash

logger = logging.getLogger(__name__)

oauth2_bearer = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/token")


def register_user(db: Session, register_request: models.RegisterUserRequest) -> User:
    """Creates a new user with the default role."""
    email = register_request.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise ValidationError(
            "User already exists",
            context={"email": email},
            code=ErrorCode.EMAIL_ALREADY_REGISTERED
        )

    try:
        user = User(
            id=uuid4(),
            name=register_request.name,
            email=email,
            password_hash=get_password_hash(register_request.password),
            role=UserRole.USER,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"Registered new user: {user.email}")
        return user
    except Exception as e:
        logger.error(f"Failed to register user {email}: {e}")
        db.rollback()
        raise


def authenticate_user(email: str, password: str, db: Session) -> Optional[User]:
    """Authenticates a user with email and password."""
    user = db.query(User).filter(User.email == email.lower()).first()
    if not user or not verify_password(password, user.password_hash):
        logger.warning(f"Failed login attempt for {email}")
        return None
    return user


def create_access_token(email: str, user_id: UUID, expires_delta: Optional[timedelta] = None) -> str:
    """Creates a new JWT access token with a unique ID (jti)."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    encode = {
        'sub': email,
        'id': str(user_id),
        'exp': expire,
        'scope': 'access_token',
        'jti': str(uuid4()),
    }
    return jwt.encode(encode, settings.ENCODING_SECRET_KEY, algorithm=settings.ENCODING_ALGORITHM)


def verify_token(token: str) -> models.TokenData:
    """Decodes and verifies an access token."""
    try:
        payload = jwt.decode(token, settings.ENCODING_SECRET_KEY, algorithms=[settings.ENCODING_ALGORITHM])
    except PyJWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise AuthenticationError()

    if payload.get('scope') != 'access_token':
        raise AuthenticationError(message="Invalid token scope")

    user_id = payload.get('id')
    if not user_id:
        raise AuthenticationError(message="User ID not found in token.")

    return models.TokenData(user_id=user_id)


def get_current_user(
    token: Annotated[str, Depends(oauth2_bearer)],
    db: Session = Depends(get_db)
) -> User:
    """FastAPI dependency resolving the bearer token to the calling user."""
    token_data = verify_token(token)
    try:
        user_id = token_data.get_uuid()
    except ValueError:
        raise AuthenticationError()

    user = db.get(User, user_id)
    if user is None:
        raise AuthenticationError(message="Not authorized, user not found")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_current_admin(current_user: CurrentUser) -> User:
    """FastAPI dependency that only lets admins through."""
    if not current_user.is_admin:
        logger.warning(f"Non-admin user {current_user.id} attempted an admin action")
        raise AdminRequiredError()
    return current_user


AdminUser = Annotated[User, Depends(get_current_admin)]
