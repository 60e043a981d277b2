import logging
import math
import time
from traceback import format_exc
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from pydantic import ValidationError

from app.models.payments import (
    CreateOrderRequest,
    CreateOrderResponse,
    OrderDetails,
    Pagination,
    PaymentHistoryItem,
    PaymentHistoryResponse,
    PaymentStatus,
    PaymentStatusResponse,
    TrackPaymentRequest,
    TrackPaymentResponse,
    UpdatePaymentRequest,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
    WebhookEnvelope,
    WebhookResponse,
)
from app.server.dependencies import (
    SettingsDep,
    get_gateway,
    get_payment_store,
    get_reconciler,
    get_user_service,
    get_webhook_dispatcher,
    not_configured,
)
from app.server.routers.auth_routes import CurrentUser
from app.services.payments.payment_store import PaymentStore
from app.services.payments.razorpay import RazorpayClient
from app.services.payments.reconciler import PaymentReconciler
from app.services.payments.signatures import (
    verify_payment_signature,
    verify_webhook_signature,
)
from app.services.payments.webhooks import WebhookDispatcher
from app.services.users import UserService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create payment router
payment_router = APIRouter()

GatewayDep = Annotated[RazorpayClient, Depends(get_gateway)]
StoreDep = Annotated[PaymentStore, Depends(get_payment_store)]
ReconcilerDep = Annotated[PaymentReconciler, Depends(get_reconciler)]


@payment_router.post("/create-order", response_model=CreateOrderResponse)
async def create_order(
    request: CreateOrderRequest,
    current_user: CurrentUser,
    gateway: GatewayDep,
) -> CreateOrderResponse:
    """Create a Razorpay order for the current user."""
    try:
        order = await gateway.create_order(
            amount=round(request.amount * 100),  # Convert to paise
            currency=request.currency,
            receipt=request.receipt or f"receipt_{int(time.time() * 1000)}",
            notes={"userId": current_user.uid},
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create order error: {str(e)}\n{format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to create order", "message": str(e)},
        )

    return CreateOrderResponse(
        order_id=order.id,
        amount=order.amount,
        currency=order.currency,
        key_id=gateway.key_id,
    )


@payment_router.post("/verify-payment", response_model=VerifyPaymentResponse)
async def verify_payment(
    request: VerifyPaymentRequest,
    current_user: CurrentUser,
    settings: SettingsDep,
    gateway: GatewayDep,
    reconciler: ReconcilerDep,
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> VerifyPaymentResponse:
    """Verify a checkout callback, complete the payment and activate the license."""
    if not verify_payment_signature(
        request.order_id,
        request.payment_id,
        request.signature,
        settings.razorpay_key_secret,
    ):
        logger.warning(f"Invalid payment signature for order {request.order_id}")
        raise HTTPException(status_code=400, detail="Invalid payment signature")

    try:
        order = await gateway.fetch_order(request.order_id)
        if not order.is_paid:
            logger.warning(f"Order {request.order_id} is {order.status}, not paid")
            raise HTTPException(status_code=400, detail="Order not found or not paid")

        record = await reconciler.complete_verified(
            user_id=current_user.uid,
            order=order,
            payment_id=request.payment_id,
            signature=request.signature,
        )
        await user_service.activate_license(current_user.uid)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Payment verification error: {str(e)}\n{format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Payment verification failed", "message": str(e)},
        )

    return VerifyPaymentResponse(
        message="Payment verified and recorded successfully",
        payment_record_id=record.id or record.order_id,
        order_details=OrderDetails(
            order_id=request.order_id,
            payment_id=request.payment_id,
            amount=order.amount,
            currency=order.currency,
            status=PaymentStatus.COMPLETED,
        ),
    )


@payment_router.get("/payment-history", response_model=PaymentHistoryResponse)
async def get_payment_history(
    current_user: CurrentUser,
    store: StoreDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> PaymentHistoryResponse:
    """Get payment history for the current user, newest first."""
    try:
        payments = await store.list_for_user(
            current_user.uid, limit=limit, offset=(page - 1) * limit
        )
        total_payments = await store.count_for_user(current_user.uid)
    except Exception as e:
        logger.error(f"Failed to get payment history: {str(e)}\n{format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to fetch payment history", "message": str(e)},
        )

    total_pages = math.ceil(total_payments / limit)
    return PaymentHistoryResponse(
        payments=[
            PaymentHistoryItem(
                id=payment.id or payment.order_id,
                user_id=payment.user_id,
                order_id=payment.order_id,
                payment_id=payment.payment_id,
                amount=payment.amount,
                currency=payment.currency,
                status=payment.status,
                receipt=payment.receipt,
                plan_name=payment.plan_name,
                created_at=payment.created_at,
                notes=payment.notes or {},
            )
            for payment in payments
        ],
        pagination=Pagination(
            current_page=page,
            total_pages=total_pages,
            total_payments=total_payments,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        ),
    )


@payment_router.post("/track-payment", response_model=TrackPaymentResponse)
async def track_payment(
    request: TrackPaymentRequest,
    current_user: CurrentUser,
    reconciler: ReconcilerDep,
) -> TrackPaymentResponse:
    """Record the start of a payment attempt (or overwrite an existing one)."""
    try:
        record = await reconciler.track(current_user.uid, request)
    except Exception as e:
        logger.error(f"Track payment error: {str(e)}\n{format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to process payment tracking", "message": str(e)},
        )

    return TrackPaymentResponse(
        message="Payment tracked successfully",
        record_id=record.id or record.order_id,
        order_id=record.order_id,
        status=record.status,
    )


@payment_router.put("/track-payment", response_model=TrackPaymentResponse)
async def update_tracked_payment(
    request: UpdatePaymentRequest,
    current_user: CurrentUser,
    reconciler: ReconcilerDep,
) -> TrackPaymentResponse:
    """Move a tracked payment to a new status."""
    try:
        record = await reconciler.update(request)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update payment error: {str(e)}\n{format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to process payment tracking", "message": str(e)},
        )

    logger.info(f"User {current_user.uid} updated payment for order {record.order_id}")
    return TrackPaymentResponse(
        message="Payment status updated successfully",
        record_id=record.id or record.order_id,
        order_id=record.order_id,
        status=record.status,
    )


@payment_router.get("/track-payment", response_model=PaymentStatusResponse)
async def get_tracked_payment(
    store: StoreDep,
    order_id: Optional[str] = None,
    payment_id: Optional[str] = None,
) -> PaymentStatusResponse:
    """Look up a payment record by order ID or payment ID."""
    if not order_id and not payment_id:
        raise HTTPException(status_code=400, detail="order_id or payment_id is required")

    try:
        if order_id:
            record = await store.find_by_order(order_id)
        else:
            record = await store.find_by_payment(payment_id)
    except Exception as e:
        logger.error(f"Payment lookup error: {str(e)}\n{format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to process payment tracking", "message": str(e)},
        )

    if record is None:
        raise HTTPException(status_code=404, detail="Payment not found")

    return PaymentStatusResponse(payment=record.model_dump(mode="json"))


@payment_router.post("/payment-webhook", response_model=WebhookResponse)
async def handle_payment_webhook(
    request: Request,
    settings: SettingsDep,
    dispatcher: Annotated[WebhookDispatcher, Depends(get_webhook_dispatcher)],
    razorpay_signature: Annotated[
        Optional[str], Header(alias="X-Razorpay-Signature")
    ] = None,
) -> WebhookResponse:
    """Handle Razorpay webhook events for orders and payments."""
    if not razorpay_signature:
        raise HTTPException(status_code=400, detail="Missing signature")
    if not settings.razorpay_webhook_secret:
        raise not_configured("Webhook secret")

    body = await request.body()

    if not verify_webhook_signature(
        body, razorpay_signature, settings.razorpay_webhook_secret
    ):
        if not settings.razorpay_webhook_allow_unverified:
            logger.error("Webhook signature verification failed")
            raise HTTPException(status_code=400, detail="Invalid signature")
        logger.warning("Webhook signature verification failed, processing anyway")

    try:
        envelope = WebhookEnvelope.model_validate_json(body)
    except ValidationError:
        logger.error("Invalid payload in webhook")
        raise HTTPException(status_code=400, detail="Invalid payload")

    logger.info(f"Payment webhook received: {envelope.event}")

    try:
        await dispatcher.dispatch(envelope.event, envelope.payload)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Webhook error: {str(e)}\n{format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Webhook processing failed", "message": str(e)},
        )

    return WebhookResponse()
