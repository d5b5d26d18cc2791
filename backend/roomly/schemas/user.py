"""
Roomly Backend - User & Auth Schemas
=====================================

Request bodies default every field to an empty value so that a missing
field reaches the service validator and comes back as a per-field 422
message rather than a generic schema error.
"""

from datetime import datetime
from typing import Optional

from roomly.schemas.common import CamelModel


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(CamelModel):
    email: str = ""
    name: str = ""
    password: str = ""


class VerifyRequest(CamelModel):
    code: str = ""


class LoginRequest(CamelModel):
    email: str = ""
    password: str = ""


class PasswordResetRequest(CamelModel):
    email: str = ""


class NewPasswordRequest(CamelModel):
    reset_token: str = ""
    new_password: str = ""


class UpdateProfileRequest(CamelModel):
    name: str = ""
    # None leaves the image untouched; "" removes it
    image: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    old_password: str = ""
    new_password: str = ""


class ChangeEmailRequest(CamelModel):
    reset_token: str = ""
    new_email: str = ""


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserResponse(CamelModel):
    """Public view of a user. Password hash and one-time codes are never exposed."""
    id: int
    created_at: datetime
    name: Optional[str] = None
    email: str
    image: Optional[str] = None
    activated: bool


class UserEnvelope(CamelModel):
    user: UserResponse


class RegisterResponse(CamelModel):
    user_id: int


class SessionResponse(CamelModel):
    token: str


class EmailResponse(CamelModel):
    email: str
