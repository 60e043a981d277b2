"""
Payment Record Store

Read/write access to the payments collection. Records are keyed by the
gateway order ID, so at most one record can exist per order; creation uses
Firestore's insert-if-absent primitive.
"""

import logging
from typing import Any, Dict, List, Optional

from app.models.payments import PAYMENTS_COLLECTION, PaymentRecord
from app.services.firestore_service import FirestoreService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Fields that are set once, on creation
IMMUTABLE_FIELDS = frozenset({"id", "order_id", "created_at"})


class PaymentStore:
    """Adapter over FirestoreService for payment records."""

    def __init__(self, firestore_service: FirestoreService):
        self.firestore_service = firestore_service

    async def find_by_order(self, order_id: str) -> Optional[PaymentRecord]:
        return await self.firestore_service.get_document(
            collection_name=PAYMENTS_COLLECTION,
            document_id=order_id,
            model_class=PaymentRecord,
        )

    async def find_by_payment(self, payment_id: str) -> Optional[PaymentRecord]:
        payments = await self.firestore_service.query_collection(
            collection_name=PAYMENTS_COLLECTION,
            filters=[("payment_id", "==", payment_id)],
            limit=1,
            model_class=PaymentRecord,
        )
        return payments[0] if payments else None

    async def create(self, record_data: Dict[str, Any]) -> bool:
        """
        Insert a new payment record unless one exists for its order.

        Args:
            record_data: Record fields, must include order_id

        Returns:
            True if created, False if a record for the order already existed
        """
        return await self.firestore_service.create_document_if_absent(
            collection_name=PAYMENTS_COLLECTION,
            document_id=record_data["order_id"],
            document_data=dict(record_data),
        )

    async def update(self, order_id: str, fields: Dict[str, Any]) -> None:
        """Merge fields into an existing record; updated_at is always stamped."""
        update_data = {k: v for k, v in fields.items() if k not in IMMUTABLE_FIELDS}
        await self.firestore_service.update_document(
            collection_name=PAYMENTS_COLLECTION,
            document_id=order_id,
            update_data=update_data,
        )

    async def create_or_update(
        self,
        order_id: str,
        create_data: Dict[str, Any],
        update_data: Dict[str, Any],
    ) -> PaymentRecord:
        """
        Create the record for an order, or merge update_data into it if another
        writer got there first.

        Returns:
            The record as stored after the write
        """
        created = await self.create({**create_data, "order_id": order_id})
        if not created:
            await self.update(order_id, update_data)

        record = await self.find_by_order(order_id)
        if record is None:
            # Deleted between the write and the read; nothing in this service deletes
            raise RuntimeError(f"Payment record for order {order_id} disappeared")
        return record

    async def list_for_user(
        self, user_id: str, limit: int, offset: int = 0
    ) -> List[PaymentRecord]:
        return await self.firestore_service.query_collection(
            collection_name=PAYMENTS_COLLECTION,
            filters=[("user_id", "==", user_id)],
            order_by="created_at",
            descending=True,
            limit=limit,
            offset=offset,
            model_class=PaymentRecord,
        )

    async def count_for_user(self, user_id: str) -> int:
        return await self.firestore_service.count_documents(
            collection_name=PAYMENTS_COLLECTION,
            filters=[("user_id", "==", user_id)],
        )
