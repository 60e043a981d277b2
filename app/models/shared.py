"""
Shared Data Models

This module contains shared Pydantic models and base classes that are used
across multiple Firestore collections or for API responses.
"""

from datetime import datetime
from typing import Optional

from google.cloud.firestore import DocumentReference
from pydantic import BaseModel, ConfigDict, Field


class FirestoreBaseModel(BaseModel):
    """Base model for all Firestore documents with common configuration."""

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        # Convert datetime objects to timestamps for Firestore
        json_encoders={
            datetime: lambda dt: dt,  # Firestore handles datetime conversion
            DocumentReference: lambda ref: ref.path,  # Convert refs to paths
        },
        # Validate assignments
        validate_assignment=True,
        # Use enum values instead of names
        use_enum_values=True,
    )


# API Response Models
class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str = Field(..., description="Human readable error summary")
    message: Optional[str] = Field(None, description="Underlying error detail")


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime

