from typing import List, Optional, Tuple
from sqlalchemy import func, select
from shopcore.schema.full_schema import CheckoutSession, CheckoutStatus, Coupon


async def get_coupon_by_code(session, code: str) -> Optional[Coupon]:
    stmt = select(Coupon).where(Coupon.code == code)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def get_coupon(session, coupon_id: int) -> Optional[Coupon]:
    return await session.get(Coupon, coupon_id)


async def list_coupons(session, offset: int, limit: int, active_only: bool = False) -> Tuple[List[Coupon], int]:
    conds = [Coupon.is_deleted.is_(False)]
    if active_only:
        conds.append(Coupon.is_active.is_(True))

    total = (await session.execute(select(func.count(Coupon.id)).where(*conds))).scalar_one()
    stmt = select(Coupon).where(*conds).order_by(Coupon.id.desc()).offset(offset).limit(limit)
    res = await session.execute(stmt)
    return list(res.scalars().all()), int(total)


async def coupon_held_by_pending_checkout(session, code: str) -> bool:
    stmt = (
        select(CheckoutSession.id)
        .where(CheckoutSession.coupon_code == code,
               CheckoutSession.coupon_applied.is_(True),
               CheckoutSession.status == CheckoutStatus.PENDING.value)
        .limit(1)
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none() is not None
