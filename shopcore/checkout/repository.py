import uuid
from typing import Any, Dict, List, Optional
from uuid6 import uuid7
from sqlalchemy import delete, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from shopcore.common.errors import CheckoutError, CheckoutErrorCode
from shopcore.common.utils import now
from shopcore.schema.full_schema import ZERO, Address, CheckoutItem, CheckoutSession, CheckoutStatus, Product, ShippingAddress

SNAPSHOT_FIELDS = ("name", "line1", "line2", "city", "state", "landmark", "postal_code", "country", "phone")


def _dialect_insert(session):
    # ON CONFLICT DO NOTHING lives on the dialect specific insert constructs
    if session.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


async def get_pending_checkout(session, user_id: int, lock: bool = False) -> Optional[CheckoutSession]:
    stmt = select(CheckoutSession).where(
        CheckoutSession.user_id == user_id,
        CheckoutSession.status == CheckoutStatus.PENDING.value,
    )
    if lock:
        stmt = stmt.with_for_update()
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def get_checkout_by_public_id(session, public_id: uuid.UUID, lock: bool = False) -> Optional[CheckoutSession]:
    stmt = select(CheckoutSession).where(CheckoutSession.public_id == public_id)
    if lock:
        stmt = stmt.with_for_update()
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def get_or_create_pending_checkout(session, user_id: int) -> CheckoutSession:
    """Return the user's pending session, creating it if there is none.

    A concurrent request may insert first; the partial unique index makes the
    losing insert a no-op and the winner's row is returned instead.
    """
    cs = await get_pending_checkout(session, user_id, lock=True)
    if cs is not None:
        return cs

    ts = now()
    values = {
        "public_id": uuid7(),
        "user_id": user_id,
        "total_amount": ZERO,
        "discount_amount": ZERO,
        "final_amount": ZERO,
        "item_count": 0,
        "coupon_applied": False,
        "status": CheckoutStatus.PENDING.value,
        "created_at": ts,
        "updated_at": ts,
    }
    insert_stmt = (
        _dialect_insert(session)(CheckoutSession)
        .values(**values)
        .on_conflict_do_nothing(
            index_elements=["user_id"],
            index_where=text("status = 'pending'"),
        )
    )
    await session.execute(insert_stmt)

    cs = await get_pending_checkout(session, user_id, lock=True)
    if cs is None:
        # other txn completed the winner's session between insert and read
        raise CheckoutError(CheckoutErrorCode.CHECKOUT_CREATE_CONFLICT,
                            message="checkout session changed concurrently, retry")
    return cs


async def get_checkout_items(session, checkout_id: int) -> List[Dict[str, Any]]:
    stmt = (
        select(CheckoutItem.product_id, CheckoutItem.quantity, CheckoutItem.price,
               CheckoutItem.subtotal, Product.name)
        .join(Product, Product.id == CheckoutItem.product_id)
        .where(CheckoutItem.checkout_id == checkout_id)
        .order_by(CheckoutItem.product_id)
    )
    res = await session.execute(stmt)
    return [
        {"product_id": r.product_id, "name": r.name, "quantity": int(r.quantity),
         "price": r.price, "subtotal": r.subtotal}
        for r in res.all()
    ]


async def replace_checkout_items(session, checkout_id: int, lines: List[Dict[str, Any]]) -> None:
    await session.execute(delete(CheckoutItem).where(CheckoutItem.checkout_id == checkout_id))
    session.add_all([
        CheckoutItem(checkout_id=checkout_id, product_id=ln["product_id"], quantity=ln["quantity"],
                     price=ln["price"], subtotal=ln["subtotal"])
        for ln in lines
    ])
    await session.flush()


async def get_address(session, address_id: int) -> Optional[Address]:
    stmt = select(Address).where(Address.id == address_id, Address.deleted_at.is_(None))
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def resolve_shipping_snapshot(session, address: Address) -> ShippingAddress:
    """Reuse the newest snapshot of ``address`` if it still matches, else write a new one."""
    stmt = (
        select(ShippingAddress)
        .where(ShippingAddress.user_id == address.user_id, ShippingAddress.address_id == address.id)
        .order_by(ShippingAddress.id.desc())
        .limit(1)
    )
    res = await session.execute(stmt)
    latest = res.scalar_one_or_none()

    current = {f: getattr(address, f) for f in SNAPSHOT_FIELDS}
    if latest is not None and all(getattr(latest, f) == v for f, v in current.items()):
        return latest

    snapshot = ShippingAddress(user_id=address.user_id, address_id=address.id, created_at=now(), **current)
    session.add(snapshot)
    await session.flush()
    return snapshot


async def get_shipping_address(session, shipping_address_id: Optional[int]) -> Optional[ShippingAddress]:
    if shipping_address_id is None:
        return None
    return await session.get(ShippingAddress, shipping_address_id)
