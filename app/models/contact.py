"""
Contact Data Models

Models for the contact form relay.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ContactEmailRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    subject: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


class ContactEmailResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    email_id: str = Field(..., alias="emailId")
