"""Pydantic schemas for authentication and account management"""
from typing import Optional

from pydantic import BaseModel, EmailStr, model_validator

from videotube.schemas.common import NonBlankStr


class LoginRequest(BaseModel):
    email: Optional[EmailStr] = None
    username: Optional[str] = None
    password: NonBlankStr

    @model_validator(mode="after")
    def require_identity(self):
        if not self.email and not (self.username and self.username.strip()):
            raise ValueError("Username or email is required")
        return self


class RefreshTokenRequest(BaseModel):
    refresh_token: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    old_password: NonBlankStr
    new_password: NonBlankStr


class UpdateAccountRequest(BaseModel):
    full_name: NonBlankStr
    email: EmailStr


class RegisterRequest(BaseModel):
    """Text fields of the multipart registration form"""
    full_name: NonBlankStr
    email: EmailStr
    username: NonBlankStr
    password: NonBlankStr
