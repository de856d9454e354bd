# tramar/auth/controller.py
from typing import Annotated
from datetime import timedelta

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from starlette import status

from . import models
from . import service
from ..core.config import settings
from ..core.exceptions import AuthenticationError
from ..database.core import DbSession

router = APIRouter(prefix='/auth', tags=['auth'])


@router.post("/register", response_model=models.UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(db: DbSession, register_user_request: models.RegisterUserRequest):
    """Register a new customer account."""
    return service.register_user(db, register_user_request)


@router.post("/token", response_model=models.Token)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: DbSession
):
    """Exchange email (as ``username``) and password for a bearer token."""
    user = service.authenticate_user(form_data.username, form_data.password, db)
    if not user:
        raise AuthenticationError(message="Invalid email or password")

    access_token = service.create_access_token(
        email=user.email,
        user_id=user.id,
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return models.Token(access_token=access_token, token_type="bearer")


@router.get("/me", response_model=models.UserResponse)
async def read_current_user(current_user: service.CurrentUser):
    """Return the authenticated user's profile."""
    return current_user
