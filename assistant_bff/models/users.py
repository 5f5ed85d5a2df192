# assistant_bff/models/users.py
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictBool


class UserRole(str, Enum):
    user = "user"
    admin = "admin"


# Input schema for signup (request body)
class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str = Field(alias="fullName", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


# Input schema for login (request body)
class UserLogin(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


# Authenticated principal handed to routes
class CurrentUser(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    role: str = UserRole.user.value

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or "User"


# Admin request body for enabling/disabling an account
class UserStatusUpdate(BaseModel):
    active: StrictBool
