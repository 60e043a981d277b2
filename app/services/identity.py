import logging
from traceback import format_exc
from typing import Optional

from fastapi import HTTPException, status
from firebase_admin import auth
from pydantic import BaseModel

from app.services.firestore_service import get_firebase_app

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class Identity(BaseModel):
    """A user as known to the identity provider."""

    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    email_verified: bool = False


class IdentityProvider:
    """Firebase Authentication lookups used by login and registration."""

    def verify_id_token(self, id_token: str) -> Identity:
        """
        Verify a Firebase ID token issued to the browser.

        Raises:
            HTTPException: 401 if the token is expired or invalid
        """
        try:
            decoded = auth.verify_id_token(id_token, app=get_firebase_app())
        except auth.ExpiredIdTokenError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="ID token expired"
            )
        except (auth.InvalidIdTokenError, ValueError):
            logger.error(f"Invalid ID token\n{format_exc()}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid ID token"
            )

        return Identity(
            uid=decoded["uid"],
            email=decoded.get("email"),
            name=decoded.get("name"),
            email_verified=decoded.get("email_verified", False),
        )

    def get_user_by_email(self, email: str) -> Optional[Identity]:
        """Look up a user by email; None if the provider does not know it."""
        try:
            user = auth.get_user_by_email(email, app=get_firebase_app())
        except auth.UserNotFoundError:
            return None

        return Identity(
            uid=user.uid,
            email=user.email,
            name=user.display_name,
            email_verified=user.email_verified,
        )
