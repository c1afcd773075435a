"""Auth schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=4)
    full_name: str = Field(min_length=1, max_length=100)
    phone_number: str | None = Field(default=None, pattern=r"^\+[1-9]\d{6,14}$")
    is_checker: bool = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserMe(BaseModel):
    id: int
    email: str
    full_name: str
    phone_number: str | None = None
    is_checker: bool
    is_active: bool
    last_known_address: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PushTokenRequest(BaseModel):
    token: str = Field(min_length=1)
    platform: str = Field(default="ios", pattern=r"^(ios|android)$")


class PushTokenResponse(BaseModel):
    id: int
    token: str
    platform: str

    model_config = {"from_attributes": True}
