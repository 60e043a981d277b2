"""
User Data Models

This module contains models related to users, authentication and licensing.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from app.models.shared import FirestoreBaseModel

USERS_COLLECTION = "users"


class LicenseStatus(str, Enum):
    """License status enumeration."""

    FREE = "free"
    ACTIVE = "active"


class UserRecord(FirestoreBaseModel):
    """User document model for the users collection (document ID = uid)."""

    id: Optional[str] = Field(None, description="Firestore document ID")
    uid: str = Field(..., description="Identity provider user ID")
    name: Optional[str] = Field(None, description="Display name")
    email: str = Field(..., description="User email address")
    hashed_password: Optional[str] = Field(None, description="bcrypt password hash")
    license_status: LicenseStatus = Field(
        LicenseStatus.FREE, description="Access level for paid content"
    )
    email_verified: bool = Field(False, description="Whether the email is verified")
    created_at: Optional[datetime] = Field(None, description="Account creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")
    last_login: Optional[datetime] = Field(None, description="Last login timestamp")
    license_activated_at: Optional[datetime] = Field(
        None, description="When the license became active"
    )


class UserProfile(BaseModel):
    """Public view of a user (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    uid: str
    name: Optional[str] = None
    email: str
    license_status: LicenseStatus = LicenseStatus.FREE
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: UserRecord) -> "UserProfile":
        return cls(
            uid=record.uid,
            name=record.name,
            email=record.email,
            license_status=record.license_status,
            created_at=record.created_at,
        )


# Request models
class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    id_token: str = Field(..., min_length=1, alias="idToken")

    model_config = ConfigDict(populate_by_name=True)


# Response models
class AuthResponse(BaseModel):
    message: str
    user: UserProfile
    access_token: str
    token_type: str = "bearer"
