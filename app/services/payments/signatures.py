"""
Razorpay signature verification.

Two independent checks, each keyed by its own secret:
- the checkout callback signature, over ``order_id|payment_id`` with the key secret
- the webhook signature, over the raw request body with the webhook secret
"""

import hashlib
import hmac
from typing import Optional, Union


def _hmac_sha256_hex(secret: str, message: Union[str, bytes]) -> str:
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def compute_payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    return _hmac_sha256_hex(secret, f"{order_id}|{payment_id}")


def compute_webhook_signature(body: bytes, secret: str) -> str:
    return _hmac_sha256_hex(secret, body)


def verify_payment_signature(
    order_id: str, payment_id: str, signature: Optional[str], secret: str
) -> bool:
    """
    Check a checkout callback signature.

    Args:
        order_id: Gateway order ID
        payment_id: Gateway payment ID
        signature: Signature supplied by the client
        secret: Razorpay key secret

    Returns:
        True if the signature matches, False otherwise
    """
    if not signature:
        return False
    expected = compute_payment_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


def verify_webhook_signature(
    body: bytes, signature: Optional[str], secret: str
) -> bool:
    """
    Check the X-Razorpay-Signature header of a webhook delivery.

    Args:
        body: Raw request body exactly as received
        signature: Value of the signature header
        secret: Razorpay webhook secret

    Returns:
        True if the signature matches, False otherwise
    """
    if not signature:
        return False
    expected = compute_webhook_signature(body, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
