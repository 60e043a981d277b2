"""
Payment Reconciler

Keeps a payment record consistent across the three independent triggers that
can touch it: the client's tracking calls, the client's checkout callback
(verify-payment), and the gateway's webhooks. Every path writes to the single
record keyed by the order ID; field writes are last-write-wins.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from pydantic import ValidationError

from app.models.payments import (
    DEFAULT_PLAN_NAME,
    GatewayOrder,
    PaymentRecord,
    PaymentStatus,
    TrackPaymentRequest,
    UpdatePaymentRequest,
    is_success_status,
)
from app.models.users import LicenseStatus
from app.services.payments.payment_store import IMMUTABLE_FIELDS, PaymentStore

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _without_none(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}


def _mergeable(details: Dict[str, Any]) -> Dict[str, Any]:
    """Client-supplied detail blobs may not rewrite identity or creation fields."""
    # Firestore reads dotted keys as nested field paths
    nested = sorted(key for key in details if not key or "." in key)
    if nested:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid payment detail keys: {nested}",
        )
    dropped = IMMUTABLE_FIELDS.intersection(details)
    if dropped:
        logger.warning(f"Ignoring protected fields in payment details: {sorted(dropped)}")
    return {k: v for k, v in details.items() if k not in IMMUTABLE_FIELDS}


class PaymentReconciler:
    """Computes and applies the next state of a payment record for each event."""

    def __init__(self, store: PaymentStore):
        self.store = store

    # Client tracking calls
    async def track(self, user_id: str, request: TrackPaymentRequest) -> PaymentRecord:
        """Record a payment attempt, creating the record or overwriting its status."""
        fields = {
            "user_id": user_id,
            "amount": request.amount,
            "currency": request.currency,
            "status": request.status.value,
            "plan_id": request.plan_id,
            "plan_name": request.plan_name or DEFAULT_PLAN_NAME,
        }
        if request.error_message:
            fields["error_message"] = request.error_message
            fields["error_timestamp"] = datetime.now(timezone.utc)

        create_data = {
            **fields,
            "payment_id": None,
            "receipt": None,
            "notes": {},
        }

        record = await self.store.create_or_update(
            request.order_id, create_data=create_data, update_data=fields
        )
        logger.info(f"Tracked payment for order {request.order_id} as {record.status}")
        return record

    async def update(self, request: UpdatePaymentRequest) -> PaymentRecord:
        """Move an existing record to the caller-supplied status."""
        record = None
        if request.order_id:
            record = await self.store.find_by_order(request.order_id)
        if record is None and request.payment_id:
            record = await self.store.find_by_payment(request.payment_id)
        if record is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found"
            )

        fields = {
            **_mergeable(request.payment_details),
            **_mergeable(request.license_details),
            "status": request.status.value,
        }
        if request.payment_id:
            fields["payment_id"] = request.payment_id
        if request.error_message:
            fields["error_message"] = request.error_message
            fields["error_timestamp"] = datetime.now(timezone.utc)

        # Reject writes that would leave the stored record unreadable
        try:
            PaymentRecord.model_validate({**record.model_dump(), **fields})
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"])
            logger.warning(f"Rejected update for order {record.order_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{field}: {error['msg']}" if field else error["msg"],
            )

        await self.store.update(record.order_id, fields)
        logger.info(f"Updated payment for order {record.order_id} to {request.status.value}")
        return await self.store.find_by_order(record.order_id)

    # Client checkout callback
    async def complete_verified(
        self,
        user_id: str,
        order: GatewayOrder,
        payment_id: str,
        signature: str,
    ) -> PaymentRecord:
        """
        Mark a payment completed after its signature was verified and the gateway
        reported the order as paid.

        Args:
            user_id: The paying user
            order: Authoritative order fetched from the gateway
            payment_id: Gateway payment ID from the checkout callback
            signature: The verified checkout signature

        Returns:
            The completed payment record
        """
        existing = await self.store.find_by_order(order.id)
        if (
            existing is not None
            and existing.status == PaymentStatus.COMPLETED
            and existing.payment_id == payment_id
        ):
            logger.info(f"Payment {payment_id} for order {order.id} already verified")
            return existing

        now = datetime.now(timezone.utc)
        update_data = {
            "payment_id": payment_id,
            "status": PaymentStatus.COMPLETED.value,
            "receipt": order.receipt,
            "signature": signature,
            "verified_at": now,
            "license_status": LicenseStatus.ACTIVE.value,
            "activated_at": now,
        }
        if existing is None or not existing.user_id:
            update_data["user_id"] = user_id

        create_data = {
            **update_data,
            "user_id": user_id,
            "amount": order.amount,
            "currency": order.currency,
            "plan_name": DEFAULT_PLAN_NAME,
            "notes": {},
        }

        record = await self.store.create_or_update(
            order.id, create_data=create_data, update_data=update_data
        )
        logger.info(f"Verified payment {payment_id} for order {order.id}")
        return record

    # Gateway webhooks
    async def _apply_gateway_update(
        self,
        event: str,
        order_id: Optional[str],
        new_status: PaymentStatus,
        fields: Dict[str, Any],
    ) -> Optional[PaymentRecord]:
        if not order_id:
            logger.warning(f"Webhook {event} carried no order ID, ignoring")
            return None

        record = await self.store.find_by_order(order_id)
        if record is None:
            logger.info(f"Payment record not found for order {order_id}, ignoring {event}")
            return None

        # Redelivered or out-of-order events never undo a successful payment
        if record.is_successful and not is_success_status(new_status):
            logger.info(
                f"Order {order_id} is already {record.status}, ignoring {event}"
            )
            return record

        await self.store.update(order_id, {**fields, "status": new_status.value})
        logger.info(f"Applied {event} to order {order_id}: {new_status.value}")
        return await self.store.find_by_order(order_id)

    async def payment_captured(self, payment: Dict[str, Any]) -> Optional[PaymentRecord]:
        fields = _without_none(
            {
                "payment_id": payment.get("id"),
                "amount": payment.get("amount"),
                "currency": payment.get("currency"),
                "payment_method": payment.get("method"),
                "bank": payment.get("bank"),
                "wallet": payment.get("wallet"),
                "vpa": payment.get("vpa"),
                "captured_at": datetime.now(timezone.utc),
            }
        )
        return await self._apply_gateway_update(
            "payment.captured", payment.get("order_id"), PaymentStatus.COMPLETED, fields
        )

    async def payment_failed(self, payment: Dict[str, Any]) -> Optional[PaymentRecord]:
        fields = _without_none(
            {
                "payment_id": payment.get("id"),
                "amount": payment.get("amount"),
                "currency": payment.get("currency"),
                "failure_reason": payment.get("error_description")
                or payment.get("reason"),
                "failed_at": datetime.now(timezone.utc),
            }
        )
        return await self._apply_gateway_update(
            "payment.failed", payment.get("order_id"), PaymentStatus.FAILED, fields
        )

    async def payment_authorized(
        self, payment: Dict[str, Any]
    ) -> Optional[PaymentRecord]:
        fields = _without_none(
            {
                "payment_id": payment.get("id"),
                "amount": payment.get("amount"),
                "currency": payment.get("currency"),
                "authorized_at": datetime.now(timezone.utc),
            }
        )
        return await self._apply_gateway_update(
            "payment.authorized",
            payment.get("order_id"),
            PaymentStatus.AUTHORIZED,
            fields,
        )

    async def order_paid(self, order: Dict[str, Any]) -> Optional[PaymentRecord]:
        fields = _without_none(
            {
                "amount": order.get("amount"),
                "currency": order.get("currency"),
                "order_paid_at": datetime.now(timezone.utc),
            }
        )
        return await self._apply_gateway_update(
            "order.paid", order.get("id"), PaymentStatus.COMPLETED, fields
        )
