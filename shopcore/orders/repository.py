import uuid
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import case, func, select
from shopcore.schema.full_schema import (CancellationRequest, CancellationStatus, OrderItem, Orders, Payment,
                                         Product)


async def get_order_by_public_id(session, public_id: uuid.UUID, lock: bool = False) -> Optional[Orders]:
    stmt = select(Orders).where(Orders.public_id == public_id)
    if lock:
        stmt = stmt.with_for_update()
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def get_order(session, order_id: int, lock: bool = False) -> Optional[Orders]:
    stmt = select(Orders).where(Orders.id == order_id)
    if lock:
        stmt = stmt.with_for_update()
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def insert_order_items(session, order_id: int, items: List[Dict[str, Any]]) -> None:
    session.add_all([
        OrderItem(order_id=order_id, product_id=it["product_id"], quantity=it["quantity"], price=it["price"])
        for it in items
    ])
    await session.flush()


async def load_order_items(session, order_id: int) -> List[Dict[str, Any]]:
    stmt = (
        select(OrderItem.product_id, OrderItem.quantity, OrderItem.price, Product.name)
        .join(Product, Product.id == OrderItem.product_id)
        .where(OrderItem.order_id == order_id)
        .order_by(OrderItem.id)
    )
    res = await session.execute(stmt)
    return [
        {"product_id": r.product_id, "name": r.name, "quantity": int(r.quantity), "price": r.price,
         "subtotal": r.price * int(r.quantity)}
        for r in res.all()
    ]


async def get_payment_for_order(session, order_id: int, lock: bool = False) -> Optional[Payment]:
    stmt = select(Payment).where(Payment.order_id == order_id)
    if lock:
        stmt = stmt.with_for_update()
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def list_orders(session, offset: int, limit: int, user_id: Optional[int] = None,
                      status: Optional[str] = None) -> Tuple[List[Orders], int]:
    conds = []
    if user_id is not None:
        conds.append(Orders.user_id == user_id)
    if status:
        conds.append(Orders.order_status == status)

    total = (await session.execute(select(func.count(Orders.id)).where(*conds))).scalar_one()
    stmt = select(Orders).where(*conds).order_by(Orders.created_at.desc(), Orders.id.desc()).offset(offset).limit(limit)
    res = await session.execute(stmt)
    return list(res.scalars().all()), int(total)


async def get_cancellation_request(session, order_id: int, lock: bool = False) -> Optional[CancellationRequest]:
    stmt = select(CancellationRequest).where(CancellationRequest.order_id == order_id)
    if lock:
        stmt = stmt.with_for_update()
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def list_cancellation_requests(session, offset: int, limit: int,
                                     status: Optional[str] = None) -> Tuple[List[Tuple[CancellationRequest, uuid.UUID]], int]:
    conds = []
    if status:
        conds.append(CancellationRequest.status == status)

    total = (await session.execute(select(func.count(CancellationRequest.id)).where(*conds))).scalar_one()

    pending_first = case((CancellationRequest.status == CancellationStatus.PENDING_REVIEW.value, 0), else_=1)
    stmt = (
        select(CancellationRequest, Orders.public_id)
        .join(Orders, Orders.id == CancellationRequest.order_id)
        .where(*conds)
        .order_by(pending_first, CancellationRequest.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    res = await session.execute(stmt)
    return [(r[0], r[1]) for r in res.all()], int(total)
