import logging
from traceback import format_exc
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from app.models.contact import ContactEmailRequest, ContactEmailResponse
from app.server.dependencies import get_email_service
from app.services.email_service import EmailJSService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create a router for the contact form
contact_router = APIRouter()


@contact_router.post("/send-email", response_model=ContactEmailResponse)
async def send_email(
    request: ContactEmailRequest,
    email_service: Annotated[EmailJSService, Depends(get_email_service)],
) -> ContactEmailResponse:
    """Relay a contact form message to the site owner."""
    try:
        email_id = await email_service.send_contact_email(request)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error sending email: {str(e)}\n{format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to send email", "message": str(e)},
        )

    logger.info(f"Contact email sent for {request.email} ({request.category})")
    return ContactEmailResponse(message="Email sent successfully", email_id=email_id)
