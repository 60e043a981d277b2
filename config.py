import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Load environment variables from .env file
load_dotenv()

# Environment configuration
ENV = os.getenv("YOBAEXO_ENV", "p").lower()
if ENV not in ["d", "p"]:
    raise ValueError("YOBAEXO_ENV must be either 'd' (development) or 'p' (production)")

# Project root directory
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))

DEFAULT_CONTACT_EMAIL = "info@yobaexo.com"


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Process-wide configuration, read once from the environment."""

    model_config = ConfigDict(frozen=True)

    env: str = "p"
    auth_jwt_key: str

    # Firestore
    firestore_database: str = "(default)"

    # Razorpay
    razorpay_key_id: Optional[str] = None
    razorpay_key_secret: Optional[str] = None
    razorpay_webhook_secret: Optional[str] = None
    # NOTE: Only for local testing against unsigned webhook payloads
    razorpay_webhook_allow_unverified: bool = False

    # YouTube Data API
    youtube_api_key: Optional[str] = None
    youtube_channel_id: Optional[str] = None

    # EmailJS
    emailjs_public_key: Optional[str] = None
    emailjs_private_key: Optional[str] = None
    emailjs_service_id: Optional[str] = None
    emailjs_template_id: Optional[str] = None
    contact_email: str = DEFAULT_CONTACT_EMAIL

    @property
    def is_development(self) -> bool:
        return self.env == "d"

    @property
    def razorpay_configured(self) -> bool:
        return bool(self.razorpay_key_id and self.razorpay_key_secret)

    @property
    def youtube_configured(self) -> bool:
        return bool(self.youtube_api_key and self.youtube_channel_id)

    @property
    def emailjs_configured(self) -> bool:
        return bool(
            self.emailjs_public_key
            and self.emailjs_service_id
            and self.emailjs_template_id
        )

    def missing_integrations(self) -> list[str]:
        """Names of the optional integrations that lack credentials."""
        missing = []
        if not self.razorpay_configured:
            missing.append("razorpay")
        if not self.razorpay_webhook_secret:
            missing.append("razorpay-webhook")
        if not self.youtube_configured:
            missing.append("youtube")
        if not self.emailjs_configured:
            missing.append("emailjs")
        return missing


def load_settings() -> Settings:
    # API Keys
    auth_jwt_key = os.getenv("YOBAEXO_AUTH_JWT_KEY")
    if not auth_jwt_key:
        raise ValueError("YOBAEXO_AUTH_JWT_KEY environment variable is not set")

    return Settings(
        env=ENV,
        auth_jwt_key=auth_jwt_key,
        firestore_database=os.getenv("FIRESTORE_DATABASE", "(default)"),
        razorpay_key_id=os.getenv("RAZORPAY_KEY_ID"),
        razorpay_key_secret=os.getenv("RAZORPAY_KEY_SECRET"),
        razorpay_webhook_secret=os.getenv("RAZORPAY_WEBHOOK_SECRET"),
        razorpay_webhook_allow_unverified=_flag("RAZORPAY_WEBHOOK_ALLOW_UNVERIFIED"),
        youtube_api_key=os.getenv("YOUTUBE_API_KEY"),
        youtube_channel_id=os.getenv("YOUTUBE_CHANNEL_ID"),
        emailjs_public_key=os.getenv("EMAILJS_PUBLIC_KEY"),
        emailjs_private_key=os.getenv("EMAILJS_PRIVATE_KEY"),
        emailjs_service_id=os.getenv("EMAILJS_SERVICE_ID"),
        emailjs_template_id=os.getenv("EMAILJS_TEMPLATE_ID"),
        contact_email=os.getenv("CONTACT_EMAIL") or DEFAULT_CONTACT_EMAIL,
    )


settings = load_settings()
