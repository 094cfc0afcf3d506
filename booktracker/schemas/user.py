from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr
from pydantic.alias_generators import to_camel

from booktracker.models.user import AuthProvider

class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

class RegisterRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

class RegisterResponse(CamelModel):
    message: str
    email: str
    user_id: int

class VerifyOTPRequest(CamelModel):
    user_id: int
    otp: str

class ResendOTPRequest(CamelModel):
    user_id: int

class LoginRequest(CamelModel):
    email: str
    password: str

class ForgotPasswordRequest(CamelModel):
    email: EmailStr

class VerifyResetOTPRequest(CamelModel):
    email: EmailStr
    otp: str

class ResetPasswordRequest(CamelModel):
    email: EmailStr
    otp: str
    new_password: str
    confirm_password: Optional[str] = None

class UserPublic(CamelModel):
    id: int
    name: str
    email: str
    auth_provider: AuthProvider
    profile_pic: Optional[str] = None
    avatar_gradient: int
    email_verified: bool
    created_at: datetime
