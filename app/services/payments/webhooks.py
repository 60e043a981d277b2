import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from app.models.payments import PaymentRecord, WebhookEvent
from app.services.payments.reconciler import PaymentReconciler

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

EventHandler = Callable[[Dict[str, Any]], Awaitable[Optional[PaymentRecord]]]


def extract_entity(payload: Dict[str, Any], name: str) -> Dict[str, Any]:
    """
    Pull an entity out of a webhook payload.

    Razorpay wraps entities as ``{"payment": {"entity": {...}}}``; older
    integrations post the entity directly under its name. Both are accepted.
    """
    wrapper = payload.get(name) or {}
    if not isinstance(wrapper, dict):
        return {}
    entity = wrapper.get("entity")
    return entity if isinstance(entity, dict) else wrapper


class WebhookDispatcher:
    """Routes gateway webhook events to the matching reconciler branch."""

    def __init__(self, reconciler: PaymentReconciler):
        self.reconciler = reconciler
        self._handlers: Dict[str, tuple[str, EventHandler]] = {
            WebhookEvent.PAYMENT_CAPTURED.value: ("payment", reconciler.payment_captured),
            WebhookEvent.PAYMENT_FAILED.value: ("payment", reconciler.payment_failed),
            WebhookEvent.PAYMENT_AUTHORIZED.value: (
                "payment",
                reconciler.payment_authorized,
            ),
            WebhookEvent.ORDER_PAID.value: ("order", reconciler.order_paid),
        }

    def handles(self, event: str) -> bool:
        return event in self._handlers

    async def dispatch(
        self, event: str, payload: Dict[str, Any]
    ) -> Optional[PaymentRecord]:
        """
        Apply one webhook event.

        Returns:
            The updated record, or None when the event was ignored
        """
        if event not in self._handlers:
            logger.info(f"Unhandled webhook event: {event}")
            return None

        entity_name, handler = self._handlers[event]
        return await handler(extract_entity(payload, entity_name))
