"""
Models Package

This package contains the data models organized by domain:
- payments.py: Payment records, gateway orders and payment API models
- users.py: User records, licensing and authentication models
- youtube.py: Video and playlist shapes for the metadata proxy
- contact.py: Contact form models
- shared.py: Common base models and API responses
"""

# Import all models for easy access
from app.models.contact import ContactEmailRequest, ContactEmailResponse
from app.models.payments import (
    BasePaymentRecord,
    GatewayOrder,
    PaymentRecord,
    PaymentStatus,
    WebhookEvent,
)
from app.models.shared import ErrorResponse, FirestoreBaseModel, HealthResponse
from app.models.users import LicenseStatus, UserProfile, UserRecord
from app.models.youtube import Playlist, Video

# Collection model mappings for Firestore operations
COLLECTION_MODELS = {
    "payments": PaymentRecord,
    "users": UserRecord,
}

__all__ = [
    # Base models
    "FirestoreBaseModel",
    # Payment models
    "BasePaymentRecord",
    "GatewayOrder",
    "PaymentRecord",
    "PaymentStatus",
    "WebhookEvent",
    # User models
    "LicenseStatus",
    "UserProfile",
    "UserRecord",
    # YouTube models
    "Playlist",
    "Video",
    # Contact models
    "ContactEmailRequest",
    "ContactEmailResponse",
    # Shared API Response models
    "ErrorResponse",
    "HealthResponse",
    # Collection mappings
    "COLLECTION_MODELS",
]
