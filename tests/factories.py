"""Row builders shared by the test modules. Every helper commits so the app's own sessions see the rows."""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from shopcore.schema.full_schema import Address, CartItem, Coupon, Product, Users

url_prefix = "/api/v1"


def user_headers(user_id: int, admin: bool = False) -> dict:
    headers = {"X-User-Id": str(user_id)}
    if admin:
        headers["X-User-Roles"] = "admin"
    return headers


async def seed_user(session, name: str = "asha") -> Users:
    user = Users(email=f"{name}@example.com", name=name)
    session.add(user)
    await session.commit()
    return user


async def seed_product(session, name: str, price: str, stock: int = 10) -> Product:
    product = Product(name=name, price=Decimal(price), stock_qty=stock)
    session.add(product)
    await session.commit()
    return product


async def seed_address(session, user_id: int, city: str = "Kochi") -> Address:
    address = Address(user_id=user_id, name="Home", line1="12 MG Road", city=city, state="Kerala",
                      postal_code="682001", country="IN", phone="9876543210")
    session.add(address)
    await session.commit()
    return address


async def seed_coupon(session, code: str, pct: str, min_order: str = "0",
                      expires_at: Optional[datetime] = None, is_active: bool = True) -> Coupon:
    coupon = Coupon(code=code, discount_percentage=Decimal(pct), min_order_amount=Decimal(min_order),
                    expires_at=expires_at, is_active=is_active)
    session.add(coupon)
    await session.commit()
    return coupon


async def seed_cart_item(session, user_id: int, product: Product, quantity: int = 1) -> CartItem:
    item = CartItem(user_id=user_id, product_id=product.id, quantity=quantity, price=product.price,
                    subtotal=product.price * quantity)
    session.add(item)
    await session.commit()
    return item


async def ready_checkout(ac, user_id: int, address_id: Optional[int]) -> str:
    """Open a checkout for the user's current cart and attach ``address_id`` when given."""
    headers = user_headers(user_id)
    resp = await ac.post(f"{url_prefix}/checkout", headers=headers)
    assert resp.status_code == 201, resp.text
    checkout_id = resp.json()["data"]["checkout_id"]

    if address_id is not None:
        resp = await ac.put(f"{url_prefix}/checkout/{checkout_id}/address",
                            json={"address_id": address_id}, headers=headers)
        assert resp.status_code == 200, resp.text
    return checkout_id


async def place_cod(ac, user_id: int, checkout_id: str) -> dict:
    resp = await ac.post(f"{url_prefix}/checkout/{checkout_id}/place-order/cod", headers=user_headers(user_id))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def set_status(ac, admin_id: int, order_id: str, status: str):
    return await ac.patch(f"{url_prefix}/admin/orders/{order_id}/status", json={"status": status},
                          headers=user_headers(admin_id, admin=True))


async def scalar(session_factory, stmt):
    """Run ``stmt`` on a fresh session so rows written by the app are read as committed."""
    async with session_factory() as session:
        res = await session.execute(stmt)
        return res.scalar_one_or_none()


async def scalars(session_factory, stmt):
    async with session_factory() as session:
        res = await session.execute(stmt)
        return list(res.scalars().all())
