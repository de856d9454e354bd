from uuid import UUID
from pydantic import BaseModel, EmailStr, Field
from typing import Optional

from ..users.models import UserRole
from ..utils.password_utils import MIN_PASSWORD_LENGTH, MAX_PASSWORD_LENGTH


class RegisterUserRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH)


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole

    model_config = {"from_attributes": True}


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    user_id: Optional[str] = None

    def get_uuid(self) -> Optional[UUID]:
        if self.user_id:
            return UUID(self.user_id)
        return None
