import logging
from traceback import format_exc
from typing import Any, Dict, Optional

import requests
from fastapi import HTTPException, status
from starlette.concurrency import run_in_threadpool

from app.models.payments import GatewayOrder

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class RazorpayClient:
    """Minimal client for the Razorpay Orders API."""

    API_URL = "https://api.razorpay.com/v1"
    TIMEOUT = 15  # seconds

    def __init__(self, key_id: str, key_secret: str):
        self.key_id = key_id
        self._auth = (key_id, key_secret)

    def _request(
        self, method: str, path: str, json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        url = f"{self.API_URL}{path}"
        try:
            response = requests.request(
                method, url, json=json, auth=self._auth, timeout=self.TIMEOUT
            )
            response.raise_for_status()
            return response.json()

        except requests.HTTPError as e:
            description = ""
            try:
                description = e.response.json()["error"]["description"]
            except (ValueError, KeyError, TypeError):
                description = e.response.text if e.response is not None else str(e)
            logger.error(f"Razorpay API error on {method} {path}: {description}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"error": "Payment gateway error", "message": description},
            )
        except requests.RequestException as e:
            logger.error(f"Razorpay request failed: {str(e)}\n{format_exc()}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"error": "Payment gateway unreachable", "message": str(e)},
            )

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, str]] = None,
    ) -> GatewayOrder:
        """
        Create a Razorpay order.

        Args:
            amount: Amount in minor currency units (paise for INR)
            currency: ISO currency code
            receipt: Merchant receipt reference
            notes: Key-value notes attached to the order

        Returns:
            GatewayOrder: The created order
        """
        data = await run_in_threadpool(
            self._request,
            "POST",
            "/orders",
            json={
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            },
        )
        order = GatewayOrder(**data)
        logger.info(f"Created Razorpay order {order.id} for {amount} {currency}")
        return order

    async def fetch_order(self, order_id: str) -> GatewayOrder:
        """Fetch the authoritative state of an order."""
        data = await run_in_threadpool(self._request, "GET", f"/orders/{order_id}")
        return GatewayOrder(**data)
