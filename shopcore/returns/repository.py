from typing import List, Optional, Tuple
import uuid
from sqlalchemy import func, select
from shopcore.schema.full_schema import Orders, ReturnRequest


async def get_return_request(session, return_id: int, lock: bool = False) -> Optional[ReturnRequest]:
    stmt = select(ReturnRequest).where(ReturnRequest.id == return_id)
    if lock:
        stmt = stmt.with_for_update()
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def get_return_for_order(session, order_id: int) -> Optional[ReturnRequest]:
    stmt = select(ReturnRequest).where(ReturnRequest.order_id == order_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def list_returns(session, offset: int, limit: int, user_id: Optional[int] = None,
                       pending_only: bool = False) -> Tuple[List[Tuple[ReturnRequest, uuid.UUID]], int]:
    conds = []
    if user_id is not None:
        conds.append(ReturnRequest.user_id == user_id)
    if pending_only:
        conds.extend([ReturnRequest.approved_at.is_(None), ReturnRequest.rejected_at.is_(None)])

    total = (await session.execute(select(func.count(ReturnRequest.id)).where(*conds))).scalar_one()
    stmt = (
        select(ReturnRequest, Orders.public_id)
        .join(Orders, Orders.id == ReturnRequest.order_id)
        .where(*conds)
        .order_by(ReturnRequest.requested_at.desc(), ReturnRequest.id.desc())
        .offset(offset)
        .limit(limit)
    )
    res = await session.execute(stmt)
    return [(r[0], r[1]) for r in res.all()], int(total)
