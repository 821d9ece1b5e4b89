"""
DevCamper Backend — Auth Schemas
==================================

Request bodies for /auth/* and the token response.
"""

from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

# admin cannot be chosen at registration
RegistrableRole = Literal["user", "publisher"]


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    role: RegistrableRole = "user"

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class LoginRequest(BaseModel):
    # Presence is checked by the auth service (400); a wrong pair is a 401
    email: str = Field(default="")
    password: str = Field(default="")


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str = Field(min_length=6, max_length=128)


class UpdateDetailsRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class UpdatePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=128)


class TokenResponse(BaseModel):
    success: bool = True
    token: str
