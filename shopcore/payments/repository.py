from typing import Optional
from sqlalchemy import select
from shopcore.schema.full_schema import Payment


async def get_payment_by_remote_order(session, razorpay_order_id: str, lock: bool = False) -> Optional[Payment]:
    stmt = select(Payment).where(Payment.razorpay_order_id == razorpay_order_id)
    if lock:
        stmt = stmt.with_for_update()
    res = await session.execute(stmt)
    return res.scalar_one_or_none()
