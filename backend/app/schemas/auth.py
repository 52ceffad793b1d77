"""
Request/response bodies of the /auth endpoints.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from backend.app.models.enums import UserRole


class UserLogin(BaseModel):
    # Either the username or the email of the account
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    username: str
    email: str
    full_name: Optional[str] = None
    role: UserRole


class UserResponse(BaseModel):
    """The signed-in account, as returned by GET /auth/me."""
    id: int
    email: str
    username: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    is_superuser: bool
    has_pin: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LogoutResponse(BaseModel):
    success: bool
    message: str


class PinVerifyRequest(BaseModel):
    """Bill creator sign-off: the creator's account and 4-6 digit PIN."""
    user_id: int = Field(..., gt=0)
    pin: str = Field(..., min_length=4, max_length=6, pattern=r"^\d+$")


class PinVerifyResponse(BaseModel):
    verified: bool
    user_id: int
    username: str
    # Name printed on the document as its creator
    name: str
