import pytest
from shopcore.common.errors import OrderError, OrderErrorCode
from shopcore.orders.state_machine import ADMIN_SETTABLE, CANCELLABLE, TRANSITIONS, can_transition, ensure_transition
from shopcore.schema.full_schema import OrderStatus
from tests.factories import (place_cod, ready_checkout, seed_address, seed_cart_item, seed_product, seed_user,
                             set_status, url_prefix, user_headers)


async def _order(ac, session):
    user = await seed_user(session)
    admin = await seed_user(session, "admin")
    product = await seed_product(session, "Terracotta Planter", "250.00")
    address = await seed_address(session, user.id)
    await seed_cart_item(session, user.id, product, 1)
    checkout_id = await ready_checkout(ac, user.id, address.id)
    return user, admin, await place_cod(ac, user.id, checkout_id)


@pytest.mark.asyncio
async def test_cod_order_delivery_marks_payment_paid(ac_client, db_session):
    user, admin, order = await _order(ac_client, db_session)
    order_id = order["order_id"]

    resp = await set_status(ac_client, admin.id, order_id, "confirmed")
    assert resp.json()["data"]["order_status"] == "confirmed"

    resp = await set_status(ac_client, admin.id, order_id, "shipped")
    assert resp.json()["data"]["delivery_status"] == "in_transit"

    resp = await set_status(ac_client, admin.id, order_id, "delivered")
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["order_status"] == "delivered"
    assert data["delivery_status"] == "delivered"
    assert data["delivered_at"] is not None

    resp = await ac_client.get(f"{url_prefix}/payments/orders/{order_id}", headers=user_headers(user.id))
    payment = resp.json()["data"]
    assert payment["status"] == "paid"
    assert payment["paid_at"] is not None

    resp = await set_status(ac_client, admin.id, order_id, "processing")
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "ORDER_ALREADY_DELIVERED"


@pytest.mark.asyncio
async def test_status_update_rejections(ac_client, db_session):
    _, admin, order = await _order(ac_client, db_session)
    order_id = order["order_id"]

    for target in ("refunded", "teleported", "cancelled"):
        resp = await set_status(ac_client, admin.id, order_id, target)
        assert resp.status_code == 400, target
        assert resp.json()["error"]["code"] == "INVALID_ORDER_STATUS"

    resp = await set_status(ac_client, admin.id, order_id, "shipped")
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

    resp = await set_status(ac_client, admin.id, "0199a984-e686-71e6-ac75-b6a39394adc9", "confirmed")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "ORDER_NOT_FOUND"


@pytest.mark.asyncio
async def test_order_listings(ac_client, db_session):
    user, admin, order = await _order(ac_client, db_session)

    resp = await ac_client.get(f"{url_prefix}/orders", headers=user_headers(user.id))
    data = resp.json()["data"]
    assert data["total"] == 1
    assert data["orders"][0]["order_id"] == order["order_id"]

    resp = await ac_client.get(f"{url_prefix}/orders", params={"status": "delivered"}, headers=user_headers(user.id))
    assert resp.json()["data"]["total"] == 0

    resp = await ac_client.get(f"{url_prefix}/admin/orders", params={"status": "pending_payment"},
                               headers=user_headers(admin.id, admin=True))
    assert resp.json()["data"]["total"] == 1

    resp = await ac_client.get(f"{url_prefix}/orders/{order['order_id']}", headers=user_headers(admin.id))
    assert resp.status_code == 403


# ---------------------------------------------------------------------------- transition table

def test_terminal_states_have_no_exits():
    assert TRANSITIONS[OrderStatus.CANCELLED] == frozenset()
    assert TRANSITIONS[OrderStatus.REFUNDED] == frozenset()


def test_cancelling_a_cancelled_order_reports_already_cancelled():
    with pytest.raises(OrderError) as exc_info:
        ensure_transition("cancelled", OrderStatus.CANCELLED)
    assert exc_info.value.code == OrderErrorCode.ORDER_ALREADY_CANCELLED


def test_illegal_move_is_typed():
    with pytest.raises(OrderError) as exc_info:
        ensure_transition("shipped", OrderStatus.PENDING_CANCELLATION)
    assert exc_info.value.code == OrderErrorCode.INVALID_STATUS_TRANSITION
    assert exc_info.value.details == {"from": "shipped", "to": "pending_cancellation"}


def test_cancellable_states_can_reach_cancelled():
    for status in CANCELLABLE:
        assert can_transition(status, OrderStatus.CANCELLED)
    assert not can_transition(OrderStatus.SHIPPED, OrderStatus.CANCELLED)
    assert OrderStatus.CANCELLED not in ADMIN_SETTABLE


@pytest.mark.asyncio
async def test_unpaid_gateway_order_cannot_be_moved_by_admin(ac_client, db_session, fake_gateway):
    user = await seed_user(db_session)
    admin = await seed_user(db_session, "admin")
    product = await seed_product(db_session, "Madhubani Print", "1200.00")
    address = await seed_address(db_session, user.id)
    await seed_cart_item(db_session, user.id, product, 1)
    checkout_id = await ready_checkout(ac_client, user.id, address.id)
    resp = await ac_client.post(f"{url_prefix}/checkout/{checkout_id}/place-order/razorpay",
                                headers=user_headers(user.id))
    order = resp.json()["data"]

    for target in ("confirmed", "processing", "delivered"):
        resp = await set_status(ac_client, admin.id, order["order_id"], target)
        assert resp.status_code == 409, target
        assert resp.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

    # the real callback still lands
    rzp_order_id = order["razorpay"]["razorpay_order_id"]
    resp = await ac_client.post(f"{url_prefix}/payments/razorpay/verify", json={
        "razorpay_order_id": rzp_order_id,
        "razorpay_payment_id": "pay_late",
        "razorpay_signature": fake_gateway.expected_signature(rzp_order_id, "pay_late"),
    }, headers=user_headers(user.id))
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["order_status"] == "confirmed"

    resp = await set_status(ac_client, admin.id, order["order_id"], "shipped")
    assert resp.status_code == 200
