"""
Payment tests: order creation, checkout verification, webhooks, refunds and reporting
Gateway HTTP calls are replaced with canned responses.
"""
import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
import requests

from models.batch import BatchEnrollment
from models.payment import Payment, PaymentStatus, PaymentGateway
from services.payment_gateways import gateway_router
from conftest import create_payment, create_test_user_in_db, get_auth_header

RAZORPAY_SECRET = "rzp_test_secret"
RAZORPAY_WEBHOOK_SECRET = "rzp_webhook_secret"
CASHFREE_SECRET = "cf_test_secret"


def _fake_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


@pytest.fixture
def razorpay(monkeypatch):
    """Configure the Razorpay client with test credentials"""
    client = gateway_router.clients["razorpay"]
    monkeypatch.setattr(client, "key_id", "rzp_test_key")
    monkeypatch.setattr(client, "key_secret", RAZORPAY_SECRET)
    monkeypatch.setattr(client, "webhook_secret", RAZORPAY_WEBHOOK_SECRET)
    return client


@pytest.fixture
def cashfree(monkeypatch):
    client = gateway_router.clients["cashfree"]
    monkeypatch.setattr(client, "app_id", "cf_test_app")
    monkeypatch.setattr(client, "secret_key", CASHFREE_SECRET)
    return client


@pytest.fixture
def gateway_http(monkeypatch):
    """Record gateway HTTP calls and answer them with `gateway_http.reply`"""
    calls = []

    def fake_request(method, url, **kwargs):
        calls.append({"method": method, "url": url, **kwargs})
        return _fake_response(fake_request.reply)

    fake_request.reply = {}
    fake_request.calls = calls
    monkeypatch.setattr(requests, "request", fake_request)
    return fake_request


def _razorpay_signature(order_id: str, payment_id: str) -> str:
    return hmac.new(RAZORPAY_SECRET.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


class TestCreateOrder:
    """Test POST /api/payments/create-order"""

    def test_no_gateway_configured(self, client, paid_batch, student_headers):
        response = client.post("/api/payments/create-order", json={"batchId": paid_batch.id}, headers=student_headers)
        assert response.status_code == 503

    def test_create_razorpay_order(self, client, test_db, paid_batch, student_headers, razorpay, gateway_http):
        gateway_http.reply = {"id": "order_RZP123", "amount": 150000}

        response = client.post("/api/payments/create-order", json={"batchId": paid_batch.id}, headers=student_headers)
        assert response.status_code == 201

        data = response.json()["data"]
        assert data["checkout"]["gateway"] == "razorpay"
        assert data["checkout"]["gatewayOrderId"] == "order_RZP123"
        assert data["checkout"]["keyId"] == "rzp_test_key"

        payment = data["payment"]
        assert payment["amount"] == 1500.0
        assert payment["status"] == "created"
        assert payment["platformFee"] == 600.0
        assert payment["teacherEarnings"] == 900.0
        assert payment["orderId"].startswith("order_")

        # Razorpay expects paise
        assert gateway_http.calls[0]["json"]["amount"] == 150000

    def test_teacher_sourced_commission(self, client, paid_batch, student_headers, razorpay, gateway_http):
        gateway_http.reply = {"id": "order_RZP124"}

        response = client.post(
            "/api/payments/create-order",
            json={"batchId": paid_batch.id, "source": "teacher"},
            headers=student_headers,
        )
        payment = response.json()["data"]["payment"]
        assert payment["commissionRate"] == 0.6
        assert payment["platformFee"] == 900.0
        assert payment["teacherEarnings"] == 600.0

    def test_teacher_commission_override(self, client, test_db, paid_batch, test_teacher, student_headers,
                                         razorpay, gateway_http):
        test_teacher.commission_rate = 0.2
        test_db.commit()
        gateway_http.reply = {"id": "order_RZP125"}

        response = client.post("/api/payments/create-order", json={"batchId": paid_batch.id}, headers=student_headers)
        assert response.json()["data"]["payment"]["platformFee"] == 300.0

    def test_free_batch_falls_back_to_course_price(self, client, test_batch, student_headers, razorpay, gateway_http):
        gateway_http.reply = {"id": "order_RZP126"}

        response = client.post("/api/payments/create-order", json={"batchId": test_batch.id}, headers=student_headers)
        assert response.json()["data"]["payment"]["amount"] == 2000.0

    def test_free_batch_of_free_course(self, client, test_db, test_batch, test_course, student_headers, razorpay):
        test_course.price = 0
        test_db.commit()

        response = client.post("/api/payments/create-order", json={"batchId": test_batch.id}, headers=student_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid payment amount"

    def test_preferred_gateway_goes_first(self, client, paid_batch, student_headers, razorpay, cashfree, gateway_http):
        gateway_http.reply = {"cf_order_id": 98765, "payment_session_id": "session_abc"}

        response = client.post(
            "/api/payments/create-order",
            json={"batchId": paid_batch.id, "gateway": "cashfree"},
            headers=student_headers,
        )
        checkout = response.json()["data"]["checkout"]
        assert checkout["gateway"] == "cashfree"
        assert checkout["paymentSessionId"] == "session_abc"
        assert response.json()["data"]["payment"]["gatewayOrderId"] == "98765"

    def test_fallback_when_first_gateway_fails(self, client, paid_batch, student_headers, razorpay, cashfree,
                                               monkeypatch):
        def fake_request(method, url, **kwargs):
            if "cashfree" in url:
                raise requests.exceptions.ConnectionError("cashfree down")
            return _fake_response({"id": "order_RZP127"})

        monkeypatch.setattr(requests, "request", fake_request)

        response = client.post("/api/payments/create-order", json={"batchId": paid_batch.id}, headers=student_headers)
        assert response.status_code == 201
        assert response.json()["data"]["checkout"]["gateway"] == "razorpay"

    def test_teacher_cannot_create_order(self, client, paid_batch, teacher_headers):
        response = client.post("/api/payments/create-order", json={"batchId": paid_batch.id}, headers=teacher_headers)
        assert response.status_code == 403


class TestVerifyPayment:
    """Test POST /api/payments/verify"""

    def test_valid_razorpay_signature(self, client, test_db, paid_batch, test_student, test_teacher,
                                      student_headers, razorpay):
        payment = create_payment(test_db, paid_batch, test_student, PaymentStatus.CREATED, gateway_order_id="order_RZP1")

        payload = {
            "orderId": payment.order_id,
            "razorpay_order_id": "order_RZP1",
            "razorpay_payment_id": "pay_001",
            "razorpay_signature": _razorpay_signature("order_RZP1", "pay_001"),
        }
        response = client.post("/api/payments/verify", json=payload, headers=student_headers)
        assert response.status_code == 200
        assert response.json()["data"]["payment"]["status"] == "paid"
        assert response.json()["data"]["payment"]["gatewayPaymentId"] == "pay_001"

        enrollment = test_db.query(BatchEnrollment).filter(
            BatchEnrollment.batch_id == paid_batch.id,
            BatchEnrollment.student_id == test_student.id,
        ).first()
        assert enrollment is not None

        test_db.refresh(test_teacher)
        assert test_teacher.total_earnings == 900.0

    def test_invalid_signature_marks_failed(self, client, test_db, paid_batch, test_student, student_headers, razorpay):
        payment = create_payment(test_db, paid_batch, test_student, PaymentStatus.CREATED, gateway_order_id="order_RZP2")

        payload = {
            "orderId": payment.order_id,
            "razorpay_payment_id": "pay_002",
            "razorpay_signature": "forged",
        }
        response = client.post("/api/payments/verify", json=payload, headers=student_headers)
        assert response.status_code == 400

        test_db.refresh(payment)
        assert payment.status == PaymentStatus.FAILED
        assert payment.failure_reason == "Invalid payment signature"

    def test_already_paid(self, client, test_db, paid_batch, test_student, student_headers):
        payment = create_payment(test_db, paid_batch, test_student)

        response = client.post("/api/payments/verify", json={"orderId": payment.order_id}, headers=student_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Payment already verified"

    def test_signature_for_another_order_is_rejected(self, client, test_db, paid_batch, test_student,
                                                     test_teacher, student_headers, razorpay):
        payment = create_payment(
            test_db, paid_batch, test_student, PaymentStatus.CREATED, gateway_order_id="order_EXPENSIVE"
        )

        payload = {
            "orderId": payment.order_id,
            "razorpay_order_id": "order_CHEAP",
            "razorpay_payment_id": "pay_cheap",
            "razorpay_signature": _razorpay_signature("order_CHEAP", "pay_cheap"),
        }
        response = client.post("/api/payments/verify", json=payload, headers=student_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Order id does not match this payment"

        del payload["razorpay_order_id"]
        response = client.post("/api/payments/verify", json=payload, headers=student_headers)
        assert response.status_code == 400

        test_db.refresh(test_teacher)
        test_db.refresh(payment)
        assert payment.status != PaymentStatus.PAID
        assert test_teacher.total_earnings == 0.0

    def test_expired_order(self, client, test_db, paid_batch, test_student, student_headers, razorpay):
        payment = create_payment(
            test_db, paid_batch, test_student, PaymentStatus.CREATED,
            gateway_order_id="order_RZP_LATE", expires_at=datetime.utcnow() - timedelta(minutes=1),
        )

        payload = {
            "orderId": payment.order_id,
            "razorpay_order_id": "order_RZP_LATE",
            "razorpay_payment_id": "pay_late",
            "razorpay_signature": _razorpay_signature("order_RZP_LATE", "pay_late"),
        }
        response = client.post("/api/payments/verify", json=payload, headers=student_headers)
        assert response.status_code == 400

        test_db.refresh(payment)
        assert payment.status == PaymentStatus.FAILED
        assert payment.failure_reason == "Payment order expired"

    def test_other_student_forbidden(self, client, test_db, paid_batch, test_student):
        payment = create_payment(test_db, paid_batch, test_student, PaymentStatus.CREATED)
        intruder = create_test_user_in_db(test_db, "intruder@example.com", "Intruder Student")

        response = client.post(
            "/api/payments/verify", json={"orderId": payment.order_id}, headers=get_auth_header(intruder)
        )
        assert response.status_code == 403

    def test_cashfree_verification_asks_gateway(self, client, test_db, paid_batch, test_student, student_headers,
                                                cashfree, gateway_http):
        payment = create_payment(
            test_db, paid_batch, test_student, PaymentStatus.CREATED, payment_gateway=PaymentGateway.CASHFREE
        )
        gateway_http.reply = {"order_status": "PAID", "cf_order_id": 555}

        response = client.post("/api/payments/verify", json={"orderId": payment.order_id}, headers=student_headers)
        assert response.status_code == 200
        assert gateway_http.calls[0]["url"].endswith(f"/orders/{payment.order_id}")


class TestWebhooks:
    """Test POST /api/payments/webhook/{gateway}"""

    def _razorpay_event(self, gateway_order_id):
        return json.dumps({
            "event": "payment.captured",
            "payload": {"payment": {"entity": {"id": "pay_hook", "order_id": gateway_order_id}}},
        }).encode()

    def _sign(self, body: bytes) -> str:
        return hmac.new(RAZORPAY_WEBHOOK_SECRET.encode(), body, hashlib.sha256).hexdigest()

    def test_razorpay_captured(self, client, test_db, paid_batch, test_student, test_teacher, razorpay):
        payment = create_payment(test_db, paid_batch, test_student, PaymentStatus.CREATED, gateway_order_id="order_WH1")
        body = self._razorpay_event("order_WH1")

        response = client.post(
            "/api/payments/webhook/razorpay", content=body, headers={"x-razorpay-signature": self._sign(body)}
        )
        assert response.status_code == 200

        test_db.refresh(payment)
        assert payment.status == PaymentStatus.PAID
        assert payment.gateway_payment_id == "pay_hook"

    def test_replayed_webhook_is_idempotent(self, client, test_db, paid_batch, test_student, test_teacher, razorpay):
        create_payment(test_db, paid_batch, test_student, PaymentStatus.CREATED, gateway_order_id="order_WH2")
        body = self._razorpay_event("order_WH2")
        headers = {"x-razorpay-signature": self._sign(body)}

        client.post("/api/payments/webhook/razorpay", content=body, headers=headers)
        client.post("/api/payments/webhook/razorpay", content=body, headers=headers)

        test_db.refresh(test_teacher)
        assert test_teacher.total_earnings == 900.0
        assert test_db.query(BatchEnrollment).filter(BatchEnrollment.student_id == test_student.id).count() == 1

    def test_replay_after_refund_does_not_credit_again(self, client, test_db, paid_batch, test_student,
                                                       test_teacher, razorpay, admin_headers, student_headers,
                                                       monkeypatch):
        payment = create_payment(test_db, paid_batch, test_student, PaymentStatus.CREATED, gateway_order_id="order_WH4")
        body = self._razorpay_event("order_WH4")
        headers = {"x-razorpay-signature": self._sign(body)}

        client.post("/api/payments/webhook/razorpay", content=body, headers=headers)
        # Unconfigured gateway: the refund is recorded without a gateway call
        monkeypatch.setattr(razorpay, "key_secret", "")
        client.post(f"/api/payments/{payment.id}/refund", json={}, headers=admin_headers)

        client.post("/api/payments/webhook/razorpay", content=body, headers=headers)
        response = client.post("/api/payments/verify", json={"orderId": payment.order_id}, headers=student_headers)
        assert response.json()["message"] == "Payment already verified"

        test_db.refresh(payment)
        test_db.refresh(test_teacher)
        assert payment.status == PaymentStatus.REFUNDED
        assert test_teacher.total_earnings == 900.0
        assert test_teacher.available_for_payout == 0.0

    def test_invalid_signature(self, client, razorpay):
        body = self._razorpay_event("order_WH3")
        response = client.post(
            "/api/payments/webhook/razorpay", content=body, headers={"x-razorpay-signature": "bogus"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid webhook signature"

    def test_unknown_order(self, client, razorpay):
        body = self._razorpay_event("order_missing")
        response = client.post(
            "/api/payments/webhook/razorpay", content=body, headers={"x-razorpay-signature": self._sign(body)}
        )
        assert response.status_code == 404

    def test_cashfree_failed_payment(self, client, test_db, paid_batch, test_student, cashfree):
        payment = create_payment(
            test_db, paid_batch, test_student, PaymentStatus.CREATED, payment_gateway=PaymentGateway.CASHFREE
        )
        body = json.dumps({
            "data": {
                "order": {"order_id": payment.order_id},
                "payment": {"cf_payment_id": 777, "payment_status": "FAILED", "payment_message": "Card declined"},
            }
        }).encode()
        timestamp = "1700000000"
        signature = base64.b64encode(
            hmac.new(CASHFREE_SECRET.encode(), timestamp.encode() + body, hashlib.sha256).digest()
        ).decode()

        response = client.post(
            "/api/payments/webhook/cashfree",
            content=body,
            headers={"x-webhook-signature": signature, "x-webhook-timestamp": timestamp},
        )
        assert response.status_code == 200

        test_db.refresh(payment)
        assert payment.status == PaymentStatus.FAILED
        assert payment.failure_reason == "Card declined"


class TestRefundsAndAdminActions:
    """Test refunds, manual status changes and retries"""

    def test_partial_then_full_refund(self, client, test_db, paid_batch, test_student, test_teacher, admin_headers):
        payment = create_payment(test_db, paid_batch, test_student)
        test_teacher.available_for_payout = 900.0
        test_db.commit()

        response = client.post(
            f"/api/payments/{payment.id}/refund", json={"amount": 500, "reason": "Missed classes"}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["payment"]["status"] == "partial_refund"

        test_db.refresh(test_teacher)
        assert test_teacher.available_for_payout == 600.0

        response = client.post(f"/api/payments/{payment.id}/refund", json={"amount": 1500}, headers=admin_headers)
        assert response.status_code == 400

        response = client.post(f"/api/payments/{payment.id}/refund", json={}, headers=admin_headers)
        data = response.json()["data"]["payment"]
        assert data["status"] == "refunded"
        assert data["refundAmount"] == 1500.0

    def test_refund_through_gateway(self, client, test_db, paid_batch, test_student, admin_headers,
                                    razorpay, gateway_http):
        payment = create_payment(test_db, paid_batch, test_student, gateway_payment_id="pay_refundable")
        gateway_http.reply = {"id": "rfnd_001"}

        response = client.post(f"/api/payments/{payment.id}/refund", json={"amount": 100}, headers=admin_headers)
        assert response.status_code == 200
        assert gateway_http.calls[0]["url"].endswith("/payments/pay_refundable/refund")
        assert gateway_http.calls[0]["json"]["amount"] == 10000

        test_db.refresh(payment)
        assert payment.refund_id == "rfnd_001"

    def test_refund_unpaid_payment(self, client, test_db, paid_batch, test_student, admin_headers):
        payment = create_payment(test_db, paid_batch, test_student, PaymentStatus.CREATED)

        response = client.post(f"/api/payments/{payment.id}/refund", json={}, headers=admin_headers)
        assert response.status_code == 400

    def test_status_cannot_be_set_to_refunded(self, client, test_db, paid_batch, test_student, admin_headers):
        payment = create_payment(test_db, paid_batch, test_student)

        response = client.put(f"/api/payments/{payment.id}/status", json={"status": "refunded"}, headers=admin_headers)
        assert response.status_code == 400

    def test_manual_mark_paid_enrolls(self, client, test_db, paid_batch, test_student, admin_headers):
        payment = create_payment(test_db, paid_batch, test_student, PaymentStatus.CREATED)

        response = client.put(f"/api/payments/{payment.id}/status", json={"status": "paid"}, headers=admin_headers)
        assert response.status_code == 200
        assert test_db.query(BatchEnrollment).filter(BatchEnrollment.student_id == test_student.id).count() == 1

    def test_retry_failed_payment(self, client, test_db, paid_batch, test_student, admin_headers,
                                  razorpay, gateway_http):
        payment = create_payment(
            test_db, paid_batch, test_student, PaymentStatus.FAILED, gateway_order_id="order_RZP_OLD"
        )
        old_order_id = payment.order_id
        gateway_http.reply = {"id": "order_RZP_NEW", "amount": 150000}

        response = client.post(f"/api/payments/{payment.id}/retry", headers=admin_headers)
        assert response.status_code == 200

        data = response.json()["data"]["payment"]
        assert data["status"] == "created"
        assert data["retryCount"] == 1
        assert data["orderId"] != old_order_id
        assert data["gatewayOrderId"] == "order_RZP_NEW"
        assert response.json()["data"]["checkout"]["gatewayOrderId"] == "order_RZP_NEW"
        assert gateway_http.calls[0]["json"]["receipt"] == data["orderId"]

    def test_retried_order_can_be_verified(self, client, test_db, paid_batch, test_student, admin_headers,
                                           student_headers, razorpay, gateway_http):
        payment = create_payment(test_db, paid_batch, test_student, PaymentStatus.FAILED)
        gateway_http.reply = {"id": "order_RZP_RETRY"}
        response = client.post(f"/api/payments/{payment.id}/retry", headers=admin_headers)
        order_id = response.json()["data"]["payment"]["orderId"]

        payload = {
            "orderId": order_id,
            "razorpay_order_id": "order_RZP_RETRY",
            "razorpay_payment_id": "pay_retry",
            "razorpay_signature": _razorpay_signature("order_RZP_RETRY", "pay_retry"),
        }
        response = client.post("/api/payments/verify", json=payload, headers=student_headers)
        assert response.status_code == 200
        assert response.json()["data"]["payment"]["status"] == "paid"

    def test_retry_without_gateway(self, client, test_db, paid_batch, test_student, admin_headers):
        payment = create_payment(test_db, paid_batch, test_student, PaymentStatus.FAILED)

        response = client.post(f"/api/payments/{payment.id}/retry", headers=admin_headers)
        assert response.status_code == 503

        test_db.refresh(payment)
        assert payment.status == PaymentStatus.FAILED
        assert payment.retry_count == 0

    def test_paid_payment_cannot_be_reopened(self, client, test_db, paid_batch, test_student, test_teacher,
                                             admin_headers):
        payment = create_payment(test_db, paid_batch, test_student, PaymentStatus.CREATED)
        client.put(f"/api/payments/{payment.id}/status", json={"status": "paid"}, headers=admin_headers)

        response = client.put(f"/api/payments/{payment.id}/status", json={"status": "created"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Cannot change payment status from paid to created"

        response = client.put(f"/api/payments/{payment.id}/status", json={"status": "cancelled"}, headers=admin_headers)
        assert response.status_code == 400

        test_db.refresh(test_teacher)
        test_db.refresh(payment)
        assert payment.status == PaymentStatus.PAID
        assert test_teacher.total_earnings == 900.0

    def test_cancel_open_order(self, client, test_db, paid_batch, test_student, admin_headers):
        payment = create_payment(test_db, paid_batch, test_student, PaymentStatus.CREATED)

        response = client.put(f"/api/payments/{payment.id}/status", json={"status": "cancelled"}, headers=admin_headers)
        assert response.status_code == 200

        test_db.refresh(payment)
        assert payment.cancelled_at is not None

    def test_retry_limit(self, client, test_db, paid_batch, test_student, admin_headers):
        payment = create_payment(test_db, paid_batch, test_student, PaymentStatus.FAILED, retry_count=3)

        response = client.post(f"/api/payments/{payment.id}/retry", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Maximum retry attempts exceeded"

    def test_student_cannot_refund(self, client, test_db, paid_batch, test_student, student_headers):
        payment = create_payment(test_db, paid_batch, test_student)

        response = client.post(f"/api/payments/{payment.id}/refund", json={}, headers=student_headers)
        assert response.status_code == 403


class TestPaymentReporting:
    """Test the student, teacher and admin reports"""

    def test_my_payments(self, client, test_db, paid_batch, test_student, student_headers):
        create_payment(test_db, paid_batch, test_student)
        create_payment(test_db, paid_batch, test_student, PaymentStatus.FAILED)

        response = client.get("/api/payments/my-payments", headers=student_headers)
        data = response.json()["data"]
        assert data["pagination"]["total"] == 2
        assert data["totalAmount"] == 1500.0

    def test_teacher_earnings(self, client, test_db, paid_batch, test_student, teacher_headers):
        create_payment(test_db, paid_batch, test_student)

        response = client.get("/api/payments/earnings", headers=teacher_headers)
        data = response.json()["data"]
        assert data["totalEarnings"] == 900.0
        assert data["thisMonth"] == 900.0
        assert data["availableForPayout"] == 900.0
        assert data["batchEarnings"][0]["batchName"] == paid_batch.name

    def test_admin_stats(self, client, test_db, paid_batch, test_student, admin_headers):
        create_payment(test_db, paid_batch, test_student)
        create_payment(test_db, paid_batch, test_student, amount=500.0)

        response = client.get("/api/payments/stats", headers=admin_headers)
        data = response.json()["data"]
        assert data["totalRevenue"] == 2000.0
        assert data["platformEarnings"] == 800.0
        assert data["teacherEarnings"] == 1200.0
        assert data["totalPayments"] == 2
        assert data["averagePayment"] == 1000.0
        assert data["bySource"] == [{"source": "platform", "count": 2, "total": 2000.0}]
        assert data["monthly"][-1]["total"] == 2000.0

    def test_get_payment_access(self, client, test_db, paid_batch, test_student, teacher_headers):
        payment = create_payment(test_db, paid_batch, test_student)
        outsider = create_test_user_in_db(test_db, "outsider@example.com", "Outsider Student")

        assert client.get(f"/api/payments/{payment.id}", headers=teacher_headers).status_code == 200
        assert client.get(f"/api/payments/{payment.id}", headers=get_auth_header(outsider)).status_code == 403

    def test_gateways_list(self, client, student_headers, razorpay):
        response = client.get("/api/payments/gateways", headers=student_headers)
        assert response.json()["data"]["gateways"] == ["razorpay"]

    def test_payment_row_defaults(self, test_db, paid_batch, test_student):
        payment = create_payment(test_db, paid_batch, test_student)
        stored = test_db.query(Payment).filter(Payment.id == payment.id).first()
        assert stored.receipt.startswith("receipt_")
        assert stored.refundable_amount() == 1500.0
