"""
Payment gateway clients - Razorpay and Cashfree PG over their REST APIs
Plus the router that picks a configured gateway and falls back on failure
"""
import base64
import hashlib
import hmac
import logging
from typing import Dict, Any, List, Optional, Tuple

import requests

from core.config import settings

logger = logging.getLogger(__name__)

CASHFREE_PG_URLS = {
    "sandbox": "https://sandbox.cashfree.com/pg",
    "production": "https://api.cashfree.com/pg",
}


class PaymentGatewayError(Exception):
    """Raised when a gateway call fails or a gateway is not configured"""

    def __init__(self, message: str, gateway: str, original_error: Optional[Exception] = None):
        self.message = message
        self.gateway = gateway
        self.original_error = original_error
        super().__init__(f"{gateway}: {message}")


def _hmac_sha256(secret: str, message: bytes) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


class RazorpayClient:
    """Razorpay Orders API (amounts are sent in paise)"""

    name = "razorpay"

    def __init__(self, key_id: str = None, key_secret: str = None, webhook_secret: str = None, base_url: str = None):
        self.key_id = key_id if key_id is not None else settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret if key_secret is not None else settings.RAZORPAY_KEY_SECRET
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.RAZORPAY_WEBHOOK_SECRET
        self.base_url = base_url or settings.RAZORPAY_API_URL

    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def _request(self, method: str, path: str, payload: Dict[str, Any] = None) -> Dict[str, Any]:
        try:
            response = requests.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                auth=(self.key_id, self.key_secret),
                timeout=30,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Razorpay {method} {path} failed: {str(e)}")
            raise PaymentGatewayError(str(e), self.name, e)

    def create_order(self, order_id: str, amount: float, currency: str, customer: Dict[str, Any],
                     notes: Dict[str, Any] = None) -> Dict[str, Any]:
        data = self._request("POST", "/orders", {
            "amount": int(round(amount * 100)),
            "currency": currency,
            "receipt": order_id,
            "notes": notes or {},
        })
        return {
            "gateway": self.name,
            "gatewayOrderId": data.get("id"),
            "keyId": self.key_id,
            "amount": amount,
            "currency": currency,
            "raw": data,
        }

    def verify_signature(self, gateway_order_id: str, payment_id: str, signature: str) -> bool:
        expected = _hmac_sha256(self.key_secret, f"{gateway_order_id}|{payment_id}".encode("utf-8")).hex()
        return hmac.compare_digest(expected, signature or "")

    def verify_payment(self, gateway_order_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Check the checkout signature against the order stored for this payment.
        A payload naming a different razorpay_order_id is rejected outright.
        """
        payment_id = payload.get("razorpay_payment_id") or payload.get("paymentId")
        signature = payload.get("razorpay_signature") or payload.get("signature")
        claimed_order_id = payload.get("razorpay_order_id")

        if not gateway_order_id or (claimed_order_id and claimed_order_id != gateway_order_id):
            return {
                "verified": False,
                "paymentId": payment_id,
                "signature": signature,
                "reason": "Order id does not match this payment",
            }

        verified = bool(payment_id and signature) and self.verify_signature(gateway_order_id, payment_id, signature)
        return {
            "verified": verified,
            "paymentId": payment_id,
            "signature": signature,
            "reason": None if verified else "Invalid payment signature",
        }

    def verify_webhook_signature(self, body: bytes, headers: Dict[str, str]) -> bool:
        signature = headers.get("x-razorpay-signature")
        if not signature or not self.webhook_secret:
            return False
        expected = _hmac_sha256(self.webhook_secret, body).hex()
        return hmac.compare_digest(expected, signature)

    def parse_webhook(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """Reduce a webhook event to {receipt, paymentId, paid}"""
        entity = event.get("payload", {}).get("payment", {}).get("entity", {})
        order_entity = event.get("payload", {}).get("order", {}).get("entity", {})
        return {
            "gatewayOrderId": entity.get("order_id") or order_entity.get("id"),
            "orderId": order_entity.get("receipt"),
            "paymentId": entity.get("id"),
            "paid": event.get("event") in ("payment.captured", "order.paid"),
            "failed": event.get("event") == "payment.failed",
            "reason": entity.get("error_description"),
        }

    def refund(self, payment_id: str, amount: float, order_id: str, reason: str = None) -> Dict[str, Any]:
        data = self._request("POST", f"/payments/{payment_id}/refund", {
            "amount": int(round(amount * 100)),
            "notes": {"reason": reason or ""},
        })
        return {"refundId": data.get("id"), "raw": data}


class CashfreeClient:
    """Cashfree PG Orders API (x-api-version 2023-08-01)"""

    name = "cashfree"

    def __init__(self, app_id: str = None, secret_key: str = None, environment: str = None):
        self.app_id = app_id if app_id is not None else settings.CASHFREE_APP_ID
        self.secret_key = secret_key if secret_key is not None else settings.CASHFREE_SECRET_KEY
        self.environment = environment or settings.CASHFREE_ENVIRONMENT
        self.base_url = CASHFREE_PG_URLS.get(self.environment, CASHFREE_PG_URLS["sandbox"])

    def is_configured(self) -> bool:
        return bool(self.app_id and self.secret_key)

    def _headers(self) -> Dict[str, str]:
        return {
            "x-client-id": self.app_id,
            "x-client-secret": self.secret_key,
            "x-api-version": settings.CASHFREE_API_VERSION,
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, payload: Dict[str, Any] = None) -> Dict[str, Any]:
        try:
            response = requests.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                headers=self._headers(),
                timeout=30,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Cashfree {method} {path} failed: {str(e)}")
            raise PaymentGatewayError(str(e), self.name, e)

    def create_order(self, order_id: str, amount: float, currency: str, customer: Dict[str, Any],
                     notes: Dict[str, Any] = None) -> Dict[str, Any]:
        data = self._request("POST", "/orders", {
            "order_id": order_id,
            "order_amount": round(amount, 2),
            "order_currency": currency,
            "customer_details": {
                "customer_id": str(customer.get("id")),
                "customer_name": customer.get("name"),
                "customer_email": customer.get("email"),
                "customer_phone": customer.get("phone") or "9999999999",
            },
            "order_meta": {
                "return_url": f"{settings.APP_URL}/payment/callback?order_id={order_id}",
            },
            "order_note": (notes or {}).get("description"),
        })
        return {
            "gateway": self.name,
            "gatewayOrderId": data.get("cf_order_id"),
            "paymentSessionId": data.get("payment_session_id"),
            "amount": amount,
            "currency": currency,
            "raw": data,
        }

    def get_order(self, order_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/orders/{order_id}")

    def verify_payment(self, order_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Cashfree has no client-side signature; ask the API for the order status"""
        order = self.get_order(order_id)
        order_status = order.get("order_status")
        verified = order_status == "PAID"
        payment_id = payload.get("cf_payment_id") or order.get("cf_order_id")
        return {
            "verified": verified,
            "paymentId": str(payment_id) if payment_id is not None else None,
            "signature": None,
            "reason": None if verified else f"Order status is {order_status}",
        }

    def verify_webhook_signature(self, body: bytes, headers: Dict[str, str]) -> bool:
        signature = headers.get("x-webhook-signature")
        timestamp = headers.get("x-webhook-timestamp", "")
        if not signature or not self.secret_key:
            return False
        expected = base64.b64encode(_hmac_sha256(self.secret_key, timestamp.encode("utf-8") + body)).decode("utf-8")
        return hmac.compare_digest(expected, signature)

    def parse_webhook(self, event: Dict[str, Any]) -> Dict[str, Any]:
        data = event.get("data", {})
        payment = data.get("payment", {})
        status = payment.get("payment_status")
        return {
            "gatewayOrderId": None,
            "orderId": data.get("order", {}).get("order_id"),
            "paymentId": payment.get("cf_payment_id"),
            "paid": status == "SUCCESS",
            "failed": status in ("FAILED", "USER_DROPPED"),
            "reason": payment.get("payment_message"),
        }

    def refund(self, payment_id: str, amount: float, order_id: str, reason: str = None) -> Dict[str, Any]:
        refund_id = f"refund_{order_id}_{int(round(amount * 100))}"
        data = self._request("POST", f"/orders/{order_id}/refunds", {
            "refund_amount": round(amount, 2),
            "refund_id": refund_id,
            "refund_note": reason or "",
        })
        return {"refundId": data.get("refund_id", refund_id), "raw": data}


class PaymentGatewayRouter:
    """
    Creates orders on the first available gateway.

    Gateways are tried in PAYMENT_GATEWAY_PRIORITY order (a preferred gateway
    goes first); unconfigured ones are skipped and a failing one falls through
    to the next.
    """

    def __init__(self, clients: List = None, priority: List[str] = None):
        clients = clients if clients is not None else [CashfreeClient(), RazorpayClient()]
        self.clients = {client.name: client for client in clients}
        self.priority = priority or list(settings.PAYMENT_GATEWAY_PRIORITY)

    def get(self, name: str):
        client = self.clients.get(name)
        if client is None:
            raise PaymentGatewayError("Unknown payment gateway", name)
        return client

    def available_gateways(self) -> List[str]:
        return [name for name in self.priority if name in self.clients and self.clients[name].is_configured()]

    def _ordered(self, preferred: Optional[str]) -> List[str]:
        names = self.available_gateways()
        if preferred in names:
            names.remove(preferred)
            names.insert(0, preferred)
        return names

    def create_order(self, order_id: str, amount: float, currency: str, customer: Dict[str, Any],
                     notes: Dict[str, Any] = None, preferred: str = None) -> Tuple[str, Dict[str, Any]]:
        names = self._ordered(preferred)
        if not names:
            raise PaymentGatewayError("No payment gateway is configured", "router")

        last_error = None
        for name in names:
            try:
                result = self.clients[name].create_order(order_id, amount, currency, customer, notes)
                logger.info(f"Order {order_id} created on {name}")
                return name, result
            except PaymentGatewayError as e:
                logger.warning(f"Gateway {name} failed for order {order_id}, trying next: {e.message}")
                last_error = e

        raise PaymentGatewayError(f"All gateways failed: {last_error.message}", "router", last_error)


# Global router instance
gateway_router = PaymentGatewayRouter()
