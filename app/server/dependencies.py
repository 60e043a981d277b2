"""
FastAPI dependencies wiring configuration and services into the routers.

Tests replace any of these through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status

import config
from app.services.email_service import EmailJSService
from app.services.firestore_service import FirestoreService, get_firestore_service
from app.services.identity import IdentityProvider
from app.services.payments.payment_store import PaymentStore
from app.services.payments.razorpay import RazorpayClient
from app.services.payments.reconciler import PaymentReconciler
from app.services.payments.webhooks import WebhookDispatcher
from app.services.users import UserService
from app.services.youtube import YouTubeService


def not_configured(service: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"{service} not configured",
    )


def get_settings() -> config.Settings:
    return config.settings


SettingsDep = Annotated[config.Settings, Depends(get_settings)]


def get_firestore(settings: SettingsDep) -> FirestoreService:
    return get_firestore_service(settings.firestore_database)


FirestoreDep = Annotated[FirestoreService, Depends(get_firestore)]


def get_user_service(firestore_service: FirestoreDep) -> UserService:
    return UserService(firestore_service)


def get_payment_store(firestore_service: FirestoreDep) -> PaymentStore:
    return PaymentStore(firestore_service)


def get_reconciler(
    store: Annotated[PaymentStore, Depends(get_payment_store)],
) -> PaymentReconciler:
    return PaymentReconciler(store)


def get_webhook_dispatcher(
    reconciler: Annotated[PaymentReconciler, Depends(get_reconciler)],
) -> WebhookDispatcher:
    return WebhookDispatcher(reconciler)


def get_identity_provider() -> IdentityProvider:
    return IdentityProvider()


def get_gateway(settings: SettingsDep) -> RazorpayClient:
    if not settings.razorpay_configured:
        raise not_configured("Payment gateway")
    return RazorpayClient(settings.razorpay_key_id, settings.razorpay_key_secret)


def get_youtube_service(settings: SettingsDep) -> YouTubeService:
    if not settings.youtube_channel_id:
        raise not_configured("YouTube channel ID")
    if not settings.youtube_api_key:
        raise not_configured("YouTube API key")
    return YouTubeService(settings.youtube_api_key, settings.youtube_channel_id)


def get_email_service(settings: SettingsDep) -> EmailJSService:
    if not settings.emailjs_configured:
        raise not_configured("Email service")
    return EmailJSService(
        public_key=settings.emailjs_public_key,
        service_id=settings.emailjs_service_id,
        template_id=settings.emailjs_template_id,
        recipient=settings.contact_email,
        private_key=settings.emailjs_private_key,
        expose_errors=settings.is_development,
    )
