from pydantic import BaseModel, Field
from typing import Optional

from community_watch.models.user import UserRole
from community_watch.schemas.base import CamelModel


class UserLogin(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    token: str
    role: str


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)
    role: Optional[UserRole] = UserRole.ADMIN


class UserCreatedResponse(CamelModel):
    message: str
    user_id: int
