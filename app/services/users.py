"""
User Service

Reads and writes user documents, including the license flag that a verified
payment switches on.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from app.models.users import USERS_COLLECTION, LicenseStatus, UserRecord
from app.services.firestore_service import FirestoreService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class UserService:
    """User document operations."""

    def __init__(self, firestore_service: FirestoreService):
        self.firestore_service = firestore_service

    async def get_user(self, uid: str) -> Optional[UserRecord]:
        return await self.firestore_service.get_document(
            collection_name=USERS_COLLECTION,
            document_id=uid,
            model_class=UserRecord,
        )

    async def create_user(
        self,
        uid: str,
        name: str,
        email: str,
        hashed_password: str,
        email_verified: bool = False,
    ) -> UserRecord:
        """
        Store a newly registered user with a free license.

        Returns:
            UserRecord: The stored user
        """
        user_data = {
            "uid": uid,
            "name": name,
            "email": email,
            "hashed_password": hashed_password,
            "license_status": LicenseStatus.FREE.value,
            "email_verified": email_verified,
        }
        await self.firestore_service.create_document(
            collection_name=USERS_COLLECTION,
            document_data=user_data,
            document_id=uid,
        )
        return await self.get_user(uid)

    async def activate_license(self, uid: str) -> bool:
        """
        Switch a user's license to active.

        Args:
            uid: The user to activate

        Returns:
            bool: True if the flag changed, False if it was already active
        """
        user = await self.get_user(uid)
        if user is not None and user.license_status == LicenseStatus.ACTIVE:
            logger.info(f"License already active for user {uid}")
            return False

        await self.firestore_service.update_document(
            collection_name=USERS_COLLECTION,
            document_id=uid,
            update_data={
                "license_status": LicenseStatus.ACTIVE.value,
                "license_activated_at": datetime.now(timezone.utc),
            },
        )
        logger.info(f"Activated license for user {uid}")
        return True

    async def update_last_login(self, uid: str) -> bool:
        """
        Update the last_login timestamp for a user.

        Returns:
            bool: True if update was successful, False otherwise
        """
        try:
            await self.firestore_service.update_document(
                collection_name=USERS_COLLECTION,
                document_id=uid,
                update_data={"last_login": datetime.now(timezone.utc)},
            )
            return True
        except Exception as e:
            logger.error(f"Failed to update last_login for user {uid}: {str(e)}")
            return False
