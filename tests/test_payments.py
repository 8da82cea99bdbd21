import hashlib
import hmac
import httpx
import pytest
from shopcore.common.errors import PaymentError, PaymentErrorCode
from shopcore.payments.gateway import RazorpayGateway
from tests.factories import ready_checkout, seed_address, seed_cart_item, seed_product, seed_user, url_prefix, user_headers


async def _razorpay_order(ac, session, name="Kanjivaram Silk"):
    user = await seed_user(session)
    product = await seed_product(session, name, "1800.00")
    address = await seed_address(session, user.id)
    await seed_cart_item(session, user.id, product, 1)
    checkout_id = await ready_checkout(ac, user.id, address.id)
    resp = await ac.post(f"{url_prefix}/checkout/{checkout_id}/place-order/razorpay", headers=user_headers(user.id))
    assert resp.status_code == 201, resp.text
    return user, resp.json()["data"]


@pytest.mark.asyncio
async def test_verified_payment_confirms_order(ac_client, db_session, fake_gateway):
    user, order = await _razorpay_order(ac_client, db_session)
    rzp_order_id = order["razorpay"]["razorpay_order_id"]
    payload = {
        "razorpay_order_id": rzp_order_id,
        "razorpay_payment_id": "pay_Q1",
        "razorpay_signature": fake_gateway.expected_signature(rzp_order_id, "pay_Q1"),
    }

    resp = await ac_client.post(f"{url_prefix}/payments/razorpay/verify", json=payload,
                                headers=user_headers(user.id))
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["status"] == "paid"
    assert data["order_status"] == "confirmed"
    assert data["razorpay_payment_id"] == "pay_Q1"
    assert data["paid_at"] is not None

    resp = await ac_client.post(f"{url_prefix}/payments/razorpay/verify", json=payload,
                                headers=user_headers(user.id))
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "PAYMENT_ALREADY_PROCESSED"


@pytest.mark.asyncio
async def test_bad_signature_changes_nothing(ac_client, db_session):
    user, order = await _razorpay_order(ac_client, db_session)
    payload = {
        "razorpay_order_id": order["razorpay"]["razorpay_order_id"],
        "razorpay_payment_id": "pay_Q2",
        "razorpay_signature": "0" * 64,
    }

    resp = await ac_client.post(f"{url_prefix}/payments/razorpay/verify", json=payload,
                                headers=user_headers(user.id))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_SIGNATURE"

    resp = await ac_client.get(f"{url_prefix}/payments/orders/{order['order_id']}", headers=user_headers(user.id))
    assert resp.status_code == 200
    payment = resp.json()["data"]
    assert payment["status"] == "awaiting_payment"
    assert payment["razorpay_payment_id"] is None

    resp = await ac_client.get(f"{url_prefix}/orders/{order['order_id']}", headers=user_headers(user.id))
    assert resp.json()["data"]["order_status"] == "pending_payment"


@pytest.mark.asyncio
async def test_verify_unknown_or_foreign_payment(ac_client, db_session, fake_gateway):
    user, order = await _razorpay_order(ac_client, db_session)
    intruder = await seed_user(db_session, "intruder")

    resp = await ac_client.post(f"{url_prefix}/payments/razorpay/verify", json={
        "razorpay_order_id": "order_missing",
        "razorpay_payment_id": "pay_x",
        "razorpay_signature": fake_gateway.expected_signature("order_missing", "pay_x"),
    }, headers=user_headers(user.id))
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "PAYMENT_NOT_FOUND"

    rzp_order_id = order["razorpay"]["razorpay_order_id"]
    resp = await ac_client.post(f"{url_prefix}/payments/razorpay/verify", json={
        "razorpay_order_id": rzp_order_id,
        "razorpay_payment_id": "pay_y",
        "razorpay_signature": fake_gateway.expected_signature(rzp_order_id, "pay_y"),
    }, headers=user_headers(intruder.id))
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_key_endpoint_exposes_only_the_key_id(ac_client, db_session):
    user = await seed_user(db_session)
    resp = await ac_client.get(f"{url_prefix}/payments/razorpay/key", headers=user_headers(user.id))
    assert resp.status_code == 200
    assert resp.json()["data"] == {"key_id": "rzp_test_key", "currency": "INR"}


# ---------------------------------------------------------------------------- gateway adapter

def _gateway(handler):
    return RazorpayGateway("rzp_key", "shh", "https://gateway.test/v1", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_create_remote_order_posts_amount_in_minor_units():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = request.content
        return httpx.Response(200, json={"id": "order_abc", "status": "created"})

    remote_id = await _gateway(handler).create_remote_order(123456, "INR", receipt="order_1")
    assert remote_id == "order_abc"
    assert seen["url"] == "https://gateway.test/v1/orders"
    assert seen["auth"].startswith("Basic ")
    assert b"123456" in seen["body"]


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(500, json={"error": {"code": "SERVER_ERROR"}}),
    httpx.Response(200, json={"status": "created"}),
])
async def test_create_remote_order_failures(response):
    with pytest.raises(PaymentError) as exc_info:
        await _gateway(lambda request: response).create_remote_order(100, "INR", receipt="r")
    assert exc_info.value.code == PaymentErrorCode.GATEWAY_ORDER_FAILED


@pytest.mark.asyncio
async def test_create_remote_order_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PaymentError) as exc_info:
        await _gateway(handler).create_remote_order(100, "INR", receipt="r")
    assert exc_info.value.code == PaymentErrorCode.GATEWAY_ORDER_FAILED


def test_signature_is_hmac_sha256_of_order_and_payment():
    gateway = RazorpayGateway("rzp_key", "shh", "https://gateway.test/v1")
    expected = hmac.new(b"shh", b"order_1|pay_1", hashlib.sha256).hexdigest()

    gateway.verify_signature("order_1", "pay_1", expected)

    with pytest.raises(PaymentError) as exc_info:
        gateway.verify_signature("order_1", "pay_2", expected)
    assert exc_info.value.code == PaymentErrorCode.INVALID_SIGNATURE
