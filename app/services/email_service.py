import logging
from datetime import datetime
from traceback import format_exc
from typing import Optional
from zoneinfo import ZoneInfo

import requests
from fastapi import HTTPException, status
from starlette.concurrency import run_in_threadpool

from app.models.contact import ContactEmailRequest

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CONTACT_TIMEZONE = ZoneInfo("Asia/Calcutta")

# EmailJS status -> (status returned to the caller, error message)
UPSTREAM_ERRORS = {
    400: (
        status.HTTP_400_BAD_REQUEST,
        "Invalid email data or template configuration",
    ),
    401: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Email service authentication failed",
    ),
    403: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Email service access forbidden",
    ),
    429: (
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Too many email requests. Please try again later.",
    ),
}


class EmailJSService:
    """Relays contact form messages through the EmailJS REST API."""

    API_URL = "https://api.emailjs.com/api/v1.0/email/send"
    TIMEOUT = 15  # seconds

    def __init__(
        self,
        public_key: str,
        service_id: str,
        template_id: str,
        recipient: str,
        private_key: Optional[str] = None,
        expose_errors: bool = False,
    ):
        self.public_key = public_key
        self.service_id = service_id
        self.template_id = template_id
        self.recipient = recipient
        self.private_key = private_key
        self.expose_errors = expose_errors

    def build_template_params(self, request: ContactEmailRequest) -> dict:
        return {
            "from_name": request.name,
            "from_email": request.email,
            "subject": request.subject,
            "category": request.category,
            "message": request.message,
            "time": datetime.now(CONTACT_TIMEZONE).strftime("%m/%d/%Y, %I:%M:%S %p"),
            "to_email": self.recipient,
        }

    async def send_contact_email(self, request: ContactEmailRequest) -> str:
        """
        Send a contact form message.

        Args:
            request: The validated contact form

        Returns:
            str: EmailJS response text (used as the email ID)

        Raises:
            HTTPException: With the upstream status mapped to a caller-facing one
        """
        payload = {
            "service_id": self.service_id,
            "template_id": self.template_id,
            "user_id": self.public_key,
            "template_params": self.build_template_params(request),
        }
        if self.private_key:
            payload["accessToken"] = self.private_key

        try:
            response = await run_in_threadpool(
                requests.post, self.API_URL, json=payload, timeout=self.TIMEOUT
            )
        except requests.RequestException as e:
            logger.error(f"Error sending email: {str(e)}\n{format_exc()}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=self._failure_detail(str(e)),
            )

        if response.status_code != 200:
            logger.error(
                f"EmailJS rejected message: {response.status_code} - {response.text}"
            )
            if response.status_code in UPSTREAM_ERRORS:
                status_code, error = UPSTREAM_ERRORS[response.status_code]
                raise HTTPException(status_code=status_code, detail=error)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=self._failure_detail(response.text),
            )

        logger.info(f"Email sent: {response.status_code} - {response.text}")
        return response.text

    def _failure_detail(self, message: str) -> dict:
        return {
            "error": "Failed to send email",
            "message": message
            if self.expose_errors
            else "An error occurred while sending email",
        }
