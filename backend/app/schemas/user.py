"""
Pydantic schemas for user-related request/response validation.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional
from pydantic import BaseModel, EmailStr, Field, StringConstraints, field_validator

UserRole = Literal["user", "admin"]

# Stripped before the 3-30 bound is checked
Username = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=30)]


class UserCreate(BaseModel):
    email: EmailStr
    username: Username
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class UserLogin(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class UserUpdate(BaseModel):
    """Admin-side profile edits. Passwords are deliberately not editable here."""

    username: Optional[Username] = None
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value


class UserResponse(BaseModel):
    id: int
    email: str
    username: str
    role: str
    created_at: datetime

    model_config = {"from_attributes": True}


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AuthResponse(Token):
    user: UserResponse


class UserListResponse(BaseModel):
    users: list[UserResponse]
    count: int
    total: int
    page: int
    pages: int


class UserStats(BaseModel):
    total_users: int
    total_admins: int
    total_regular_users: int
    recent_users: int
