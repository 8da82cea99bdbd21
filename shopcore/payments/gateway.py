import hashlib
import hmac
from typing import Any, Dict, Optional
import httpx
from shopcore.common.errors import PaymentError, PaymentErrorCode
from shopcore.config.settings import config_settings
from shopcore.payments.constants import logger


class RazorpayGateway:
    """Server side half of the Razorpay order flow.

    ``create_remote_order`` registers the amount with Razorpay before the client
    opens checkout; ``verify_signature`` checks the callback the client posts back.
    No call is retried, a failure surfaces as ``GATEWAY_ORDER_FAILED``.
    """

    def __init__(self, key_id: str, key_secret: str, base_url: str, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.key_id = key_id
        self._key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "RazorpayGateway":
        return cls(
            key_id=config_settings.RZPAY_KEY,
            key_secret=config_settings.RZPAY_SECRET,
            base_url=config_settings.RZPAY_GATEWAY_URL,
            timeout=config_settings.RZPAY_TIMEOUT_SECONDS,
        )

    async def create_remote_order(self, amount_minor_units: int, currency: str, receipt: str,
                                  notes: Optional[Dict[str, Any]] = None) -> str:
        payload = {
            "amount": amount_minor_units,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, auth=(self.key_id, self._key_secret),
                                         transport=self._transport) as client:
                resp = await client.post(f"{self.base_url}/orders", json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error("razorpay.order.rejected", extra={
                "http_status": exc.response.status_code,
                "receipt": receipt,
            })
            raise PaymentError(PaymentErrorCode.GATEWAY_ORDER_FAILED,
                               details={"http_status": exc.response.status_code}) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("razorpay.order.unreachable", extra={"receipt": receipt, "error": type(exc).__name__})
            raise PaymentError(PaymentErrorCode.GATEWAY_ORDER_FAILED) from exc

        remote_order_id = data.get("id")
        if not remote_order_id:
            logger.error("razorpay.order.missing_id", extra={"receipt": receipt})
            raise PaymentError(PaymentErrorCode.GATEWAY_ORDER_FAILED, message="gateway response carried no order id")

        logger.info("razorpay.order.created", extra={"razorpay_order_id": remote_order_id, "receipt": receipt})
        return remote_order_id

    def expected_signature(self, order_id: str, payment_id: str) -> str:
        message = f"{order_id}|{payment_id}".encode()
        return hmac.new(self._key_secret.encode(), message, hashlib.sha256).hexdigest()

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> None:
        if not signature or not hmac.compare_digest(self.expected_signature(order_id, payment_id), signature):
            logger.warning("razorpay.signature.invalid", extra={"razorpay_order_id": order_id})
            raise PaymentError(PaymentErrorCode.INVALID_SIGNATURE, message="invalid signature")


def get_gateway() -> RazorpayGateway:
    return RazorpayGateway.from_settings()
