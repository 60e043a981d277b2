"""
Payment Data Models

This module contains models related to payment records, gateway orders,
and the payment tracking API.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from app.models.shared import FirestoreBaseModel

PAYMENTS_COLLECTION = "payments"

DEFAULT_CURRENCY = "INR"
DEFAULT_PLAN_NAME = "Music License"


class PaymentStatus(str, Enum):
    """Payment lifecycle status enumeration."""

    INITIATED = "initiated"
    CREATED = "created"
    PROCESSING = "processing"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


SUCCESS_STATUSES = frozenset({PaymentStatus.CAPTURED, PaymentStatus.COMPLETED})


def is_success_status(status) -> bool:
    """Whether a status (enum member or stored string) is a success terminal."""
    return PaymentStatus(status) in SUCCESS_STATUSES


class WebhookEvent(str, Enum):
    """Razorpay webhook event types handled by the dispatcher."""

    PAYMENT_CAPTURED = "payment.captured"
    PAYMENT_FAILED = "payment.failed"
    PAYMENT_AUTHORIZED = "payment.authorized"
    ORDER_PAID = "order.paid"


class BasePaymentRecord(BaseModel):
    """Base payment record model shared between Firestore and API."""

    order_id: str = Field(..., description="Gateway order identifier")
    payment_id: Optional[str] = Field(None, description="Gateway payment identifier")
    user_id: Optional[str] = Field(None, description="Owning user ID")
    amount: int = Field(..., ge=0, description="Amount in minor currency units")
    currency: str = Field(DEFAULT_CURRENCY, description="Payment currency code")
    status: PaymentStatus = Field(..., description="Payment status")
    plan_id: Optional[str] = Field(None, description="Purchased plan identifier")
    plan_name: Optional[str] = Field(None, description="Purchased plan name")
    receipt: Optional[str] = Field(None, description="Gateway receipt reference")
    notes: Dict[str, Any] = Field(default_factory=dict, description="Free-form notes")
    error_message: Optional[str] = Field(None, description="Last failure message")
    error_timestamp: Optional[datetime] = Field(
        None, description="When the last failure was recorded"
    )
    created_at: Optional[datetime] = Field(None, description="Record creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")


class PaymentRecord(BasePaymentRecord, FirestoreBaseModel):
    """Payment record document model for the payments collection.

    The document ID is the gateway order ID. Metadata written by the webhook
    and verification paths is kept as extra fields.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = Field(None, description="Firestore document ID")

    @property
    def is_successful(self) -> bool:
        return is_success_status(self.status)


class GatewayOrder(BaseModel):
    """Subset of a Razorpay order entity."""

    model_config = ConfigDict(extra="ignore")

    id: str
    amount: int
    amount_paid: int = 0
    currency: str = DEFAULT_CURRENCY
    receipt: Optional[str] = None
    status: str
    # Razorpay returns an empty list when an order has no notes
    notes: Any = None

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"


# Request models
class CreateOrderRequest(BaseModel):
    amount: float = Field(..., ge=1, description="Amount in major currency units")
    currency: str = Field(DEFAULT_CURRENCY, min_length=3, max_length=3)
    receipt: Optional[str] = None


class VerifyPaymentRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    payment_id: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)
    amount: Optional[int] = None
    currency: str = DEFAULT_CURRENCY


class TrackPaymentRequest(BaseModel):
    """Client call recording the start (or restart) of a payment attempt."""

    order_id: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0, description="Amount in minor currency units")
    currency: str = Field(DEFAULT_CURRENCY, min_length=3, max_length=3)
    plan_id: Optional[str] = None
    plan_name: Optional[str] = None
    status: PaymentStatus = PaymentStatus.INITIATED
    error_message: Optional[str] = None


class UpdatePaymentRequest(BaseModel):
    """Client call moving an existing payment record to a new status."""

    order_id: Optional[str] = None
    payment_id: Optional[str] = None
    status: PaymentStatus
    error_message: Optional[str] = None
    payment_details: Dict[str, Any] = Field(default_factory=dict)
    license_details: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _require_identifier(self) -> "UpdatePaymentRequest":
        if not self.order_id and not self.payment_id:
            raise ValueError("order_id or payment_id is required")
        return self


class WebhookEnvelope(BaseModel):
    event: str
    payload: Dict[str, Any] = Field(default_factory=dict)


# Response models
class CreateOrderResponse(BaseModel):
    success: bool = True
    order_id: str
    amount: int
    currency: str
    key_id: str


class OrderDetails(BaseModel):
    order_id: str
    payment_id: str
    amount: int
    currency: str
    status: PaymentStatus


class VerifyPaymentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    payment_record_id: str = Field(..., alias="paymentId")
    order_details: OrderDetails = Field(..., alias="orderDetails")


class TrackPaymentResponse(BaseModel):
    success: bool = True
    message: str
    record_id: str
    order_id: str
    status: PaymentStatus


class PaymentStatusResponse(BaseModel):
    success: bool = True
    payment: Dict[str, Any]


class PaymentHistoryItem(BaseModel):
    """A payment as listed in the user's history (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    user_id: Optional[str] = None
    order_id: str
    payment_id: Optional[str] = None
    amount: int
    currency: str
    status: PaymentStatus
    receipt: Optional[str] = None
    plan_name: Optional[str] = None
    created_at: Optional[datetime] = None
    notes: Dict[str, Any] = Field(default_factory=dict)


class Pagination(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_page: int
    total_pages: int
    total_payments: int
    has_next_page: bool
    has_previous_page: bool


class PaymentHistoryResponse(BaseModel):
    """Response model for payment history."""

    success: bool = True
    payments: List[PaymentHistoryItem]
    pagination: Pagination


class WebhookResponse(BaseModel):
    success: bool = True
