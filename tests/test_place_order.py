import pytest
from sqlalchemy import func, select, update
import shopcore.orders.services as orders_services
from shopcore.common.errors import InventoryError, InventoryErrorCode
from shopcore.schema.full_schema import CartItem, CheckoutSession, OrderItem, Orders, Payment, Product
from tests.factories import (place_cod, ready_checkout, scalar, seed_address, seed_cart_item, seed_product, seed_user,
                             url_prefix, user_headers)


async def _order_count(session_factory):
    return await scalar(session_factory, select(func.count(Orders.id)))


async def _stock(session_factory, product_id):
    return await scalar(session_factory, select(Product.stock_qty).where(Product.id == product_id))


@pytest.mark.asyncio
async def test_cod_order_happy_path(ac_client, db_session, session_factory):
    user = await seed_user(db_session)
    product = await seed_product(db_session, "Herbal Hair Oil", "200.00", stock=5)
    address = await seed_address(db_session, user.id)
    await seed_cart_item(db_session, user.id, product, 2)
    checkout_id = await ready_checkout(ac_client, user.id, address.id)

    data = await place_cod(ac_client, user.id, checkout_id)
    assert data["order_status"] == "pending_payment"
    assert data["payment_method"] == "cod"
    assert data["payment_status"] == "pending"
    assert data["final_amount"] == 400.0
    assert data["items"][0]["quantity"] == 2

    assert await _stock(session_factory, product.id) == 3
    assert await scalar(session_factory, select(func.count(CartItem.id)).where(CartItem.user_id == user.id)) == 0
    status = await scalar(session_factory, select(CheckoutSession.status))
    assert status == "completed"
    frozen_price = await scalar(session_factory, select(OrderItem.price))
    assert float(frozen_price) == 200.0

    resp = await ac_client.get(f"{url_prefix}/orders/{data['order_id']}", headers=user_headers(user.id))
    assert resp.status_code == 200
    details = resp.json()["data"]
    assert details["payment"]["status"] == "pending"
    assert details["items"][0]["name"] == "Herbal Hair Oil"

    resp = await ac_client.post(f"{url_prefix}/checkout/{checkout_id}/place-order/cod",
                                headers=user_headers(user.id))
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "ORDER_ALREADY_PLACED"


@pytest.mark.asyncio
async def test_order_needs_shipping_address(ac_client, db_session, session_factory):
    user = await seed_user(db_session)
    product = await seed_product(db_session, "Sandalwood Paste", "150.00")
    await seed_cart_item(db_session, user.id, product)
    checkout_id = await ready_checkout(ac_client, user.id, None)

    resp = await ac_client.post(f"{url_prefix}/checkout/{checkout_id}/place-order/cod",
                                headers=user_headers(user.id))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_ADDRESS"
    assert await _order_count(session_factory) == 0


@pytest.mark.asyncio
async def test_cod_limit(ac_client, db_session, session_factory):
    user = await seed_user(db_session)
    product = await seed_product(db_session, "Brass Lamp", "600.00", stock=4)
    address = await seed_address(db_session, user.id)
    await seed_cart_item(db_session, user.id, product, 2)
    checkout_id = await ready_checkout(ac_client, user.id, address.id)

    resp = await ac_client.post(f"{url_prefix}/checkout/{checkout_id}/place-order/cod",
                                headers=user_headers(user.id))
    assert resp.status_code == 409
    body = resp.json()
    assert body["status"] == "error"
    assert body["error"]["code"] == "COD_LIMIT_EXCEEDED"

    assert await _order_count(session_factory) == 0
    assert await _stock(session_factory, product.id) == 4


@pytest.mark.asyncio
async def test_placement_rolls_back_when_a_decrement_fails(monkeypatch, ac_client, db_session, session_factory):
    user = await seed_user(db_session)
    first = await seed_product(db_session, "Jaggery Block", "80.00", stock=5)
    second = await seed_product(db_session, "Coconut Oil", "110.00", stock=5)
    address = await seed_address(db_session, user.id)
    await seed_cart_item(db_session, user.id, first, 1)
    await seed_cart_item(db_session, user.id, second, 1)
    checkout_id = await ready_checkout(ac_client, user.id, address.id)

    real_decrement = orders_services.decrement_stock
    decremented = []

    async def decrement_then_fail(session, product_id, quantity):
        if decremented:
            raise InventoryError(InventoryErrorCode.INSUFFICIENT_STOCK,
                                 details={"items": [{"product_id": product_id}]})
        await real_decrement(session, product_id, quantity)
        decremented.append(product_id)

    monkeypatch.setattr(orders_services, "decrement_stock", decrement_then_fail)

    resp = await ac_client.post(f"{url_prefix}/checkout/{checkout_id}/place-order/cod",
                                headers=user_headers(user.id))
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INSUFFICIENT_STOCK"
    assert decremented == [first.id]

    assert await _order_count(session_factory) == 0
    assert await scalar(session_factory, select(func.count(Payment.id))) == 0
    assert await _stock(session_factory, first.id) == 5
    assert await _stock(session_factory, second.id) == 5
    assert await scalar(session_factory, select(CheckoutSession.status)) == "pending"
    assert await scalar(session_factory, select(func.count(CartItem.id))) == 2


@pytest.mark.asyncio
async def test_stock_taken_after_checkout(ac_client, db_session, session_factory):
    user = await seed_user(db_session)
    product = await seed_product(db_session, "Kumkumadi Serum", "900.00", stock=2)
    address = await seed_address(db_session, user.id)
    await seed_cart_item(db_session, user.id, product, 1)
    checkout_id = await ready_checkout(ac_client, user.id, address.id)

    await db_session.execute(update(Product).where(Product.id == product.id).values(stock_qty=0))
    await db_session.commit()

    resp = await ac_client.post(f"{url_prefix}/checkout/{checkout_id}/place-order/cod",
                                headers=user_headers(user.id))
    assert resp.status_code == 409
    error = resp.json()["error"]
    assert error["code"] == "INSUFFICIENT_STOCK"
    assert error["details"]["items"][0]["product_id"] == product.id
    assert await _order_count(session_factory) == 0


@pytest.mark.asyncio
async def test_cart_edit_after_checkout_blocks_placement(ac_client, db_session, session_factory):
    user = await seed_user(db_session)
    product = await seed_product(db_session, "Vetiver Mat", "350.00")
    address = await seed_address(db_session, user.id)
    item = await seed_cart_item(db_session, user.id, product, 1)
    checkout_id = await ready_checkout(ac_client, user.id, address.id)

    resp = await ac_client.patch(f"{url_prefix}/cart/items/{item.id}", json={"quantity": 2},
                                 headers=user_headers(user.id))
    assert resp.status_code == 200

    resp = await ac_client.post(f"{url_prefix}/checkout/{checkout_id}/place-order/cod",
                                headers=user_headers(user.id))
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "CART_UPDATED_AFTER_CREATING_CHECKOUT_SESSION"
    assert await _order_count(session_factory) == 0


@pytest.mark.asyncio
async def test_razorpay_order_registers_remote_order(ac_client, db_session, session_factory, fake_gateway):
    user = await seed_user(db_session)
    product = await seed_product(db_session, "Silk Saree", "1500.00")
    address = await seed_address(db_session, user.id)
    await seed_cart_item(db_session, user.id, product, 1)
    checkout_id = await ready_checkout(ac_client, user.id, address.id)

    resp = await ac_client.post(f"{url_prefix}/checkout/{checkout_id}/place-order/razorpay",
                                headers=user_headers(user.id))
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    assert data["payment_status"] == "awaiting_payment"
    assert data["order_status"] == "pending_payment"
    assert data["razorpay"] == {
        "key_id": "rzp_test_key",
        "razorpay_order_id": "order_test_1",
        "amount": 150000,
        "currency": "INR",
    }
    assert fake_gateway.calls[0]["amount"] == 150000

    stored = await scalar(session_factory, select(Payment.razorpay_order_id))
    assert stored == "order_test_1"
    assert await _stock(session_factory, product.id) == 9


@pytest.mark.asyncio
async def test_gateway_failure_leaves_nothing_behind(ac_client, db_session, session_factory, fake_gateway):
    user = await seed_user(db_session)
    product = await seed_product(db_session, "Pashmina Shawl", "2500.00", stock=3)
    address = await seed_address(db_session, user.id)
    await seed_cart_item(db_session, user.id, product, 1)
    checkout_id = await ready_checkout(ac_client, user.id, address.id)
    fake_gateway.fail = True

    resp = await ac_client.post(f"{url_prefix}/checkout/{checkout_id}/place-order/razorpay",
                                headers=user_headers(user.id))
    assert resp.status_code == 502
    assert resp.json()["error"]["code"] == "GATEWAY_ORDER_FAILED"
    assert await _order_count(session_factory) == 0
    assert await _stock(session_factory, product.id) == 3
    assert await scalar(session_factory, select(CheckoutSession.status)) == "pending"


@pytest.mark.asyncio
async def test_placing_someone_elses_checkout(ac_client, db_session):
    user = await seed_user(db_session, "first")
    other = await seed_user(db_session, "second")
    product = await seed_product(db_session, "Incense Sticks", "50.00")
    address = await seed_address(db_session, user.id)
    await seed_cart_item(db_session, user.id, product)
    checkout_id = await ready_checkout(ac_client, user.id, address.id)

    resp = await ac_client.post(f"{url_prefix}/checkout/{checkout_id}/place-order/cod",
                                headers=user_headers(other.id))
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"
