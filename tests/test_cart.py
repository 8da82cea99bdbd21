import pytest
from sqlalchemy import select
from shopcore.schema.full_schema import CartItem
from tests.factories import scalars, seed_product, seed_user, url_prefix, user_headers


@pytest.mark.asyncio
async def test_add_to_cart_creates_then_merges_line(ac_client, db_session, session_factory):
    user = await seed_user(db_session)
    product = await seed_product(db_session, "Tulsi Green Tea", "99.50", stock=8)
    headers = user_headers(user.id)

    resp = await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": product.id, "quantity": 2},
                                headers=headers)
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["status"] == "ok"
    assert body["data"]["created"] is True
    assert body["data"]["item"]["quantity"] == 2

    resp = await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": product.id, "quantity": 3},
                                headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["item"]["quantity"] == 5

    rows = await scalars(session_factory, select(CartItem).where(CartItem.user_id == user.id))
    assert len(rows) == 1
    assert rows[0].quantity == 5

    resp = await ac_client.get(f"{url_prefix}/cart", headers=headers)
    assert resp.status_code == 200
    cart = resp.json()["data"]
    assert cart["item_count"] == 1
    assert cart["total_amount"] == 497.5


@pytest.mark.asyncio
async def test_add_to_cart_rejections(ac_client, db_session):
    user = await seed_user(db_session)
    product = await seed_product(db_session, "Ashwagandha Root", "450.00", stock=3)
    headers = user_headers(user.id)

    resp = await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": product.id, "quantity": 0},
                                headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_QUANTITY"

    resp = await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": product.id, "quantity": 11},
                                headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "EXCEEDS_MAX_QUANTITY"

    resp = await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": product.id, "quantity": 4},
                                headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INSUFFICIENT_STOCK"

    resp = await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": 9999, "quantity": 1},
                                headers=headers)
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "PRODUCT_NOT_FOUND"


@pytest.mark.asyncio
async def test_cart_item_belongs_to_its_owner(ac_client, db_session):
    owner = await seed_user(db_session, "owner")
    other = await seed_user(db_session, "other")
    product = await seed_product(db_session, "Neem Soap", "60.00")

    resp = await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": product.id},
                                headers=user_headers(owner.id))
    item_id = resp.json()["data"]["item"]["id"]

    resp = await ac_client.patch(f"{url_prefix}/cart/items/{item_id}", json={"quantity": 2},
                                 headers=user_headers(other.id))
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"

    resp = await ac_client.delete(f"{url_prefix}/cart/items/{item_id}", headers=user_headers(other.id))
    assert resp.status_code == 403

    resp = await ac_client.patch(f"{url_prefix}/cart/items/{item_id}", json={"quantity": 3},
                                 headers=user_headers(owner.id))
    assert resp.status_code == 200
    assert resp.json()["data"]["item"]["subtotal"] == 180.0

    resp = await ac_client.delete(f"{url_prefix}/cart/items/{item_id}", headers=user_headers(owner.id))
    assert resp.status_code == 200

    resp = await ac_client.delete(f"{url_prefix}/cart/items/{item_id}", headers=user_headers(owner.id))
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "CART_ITEM_NOT_FOUND"


@pytest.mark.asyncio
async def test_clear_cart(ac_client, db_session):
    user = await seed_user(db_session)
    headers = user_headers(user.id)
    for name in ("Amla Juice", "Brahmi Oil"):
        product = await seed_product(db_session, name, "120.00")
        await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": product.id}, headers=headers)

    resp = await ac_client.delete(f"{url_prefix}/cart", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["removed_items"] == 2

    resp = await ac_client.get(f"{url_prefix}/cart", headers=headers)
    assert resp.json()["data"]["items"] == []


@pytest.mark.asyncio
async def test_cart_requires_caller_identity(ac_client):
    resp = await ac_client.get(f"{url_prefix}/cart")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "HTTP_401"
