from typing import List, Optional, Tuple
from sqlalchemy import func, select
from shopcore.schema.full_schema import ZERO, Wallet, WalletTransaction


async def get_wallet(session, user_id: int, lock: bool = False) -> Optional[Wallet]:
    stmt = select(Wallet).where(Wallet.user_id == user_id)
    if lock:
        stmt = stmt.with_for_update()
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def get_or_create_wallet(session, user_id: int) -> Wallet:
    wallet = await get_wallet(session, user_id, lock=True)
    if wallet is None:
        wallet = Wallet(user_id=user_id, balance=ZERO)
        session.add(wallet)
        await session.flush()
    return wallet


async def append_transaction(session, txn: WalletTransaction) -> WalletTransaction:
    session.add(txn)
    await session.flush()
    return txn


SORT_COLUMNS = {
    "created_at": WalletTransaction.created_at,
    "amount": WalletTransaction.amount,
}


async def list_transactions(session, user_id: int, offset: int, limit: int,
                            transaction_type: Optional[str] = None,
                            sort: str = "created_at", order: str = "desc") -> Tuple[List[WalletTransaction], int]:
    conds = [WalletTransaction.user_id == user_id]
    if transaction_type:
        conds.append(WalletTransaction.transaction_type == transaction_type)

    total = (await session.execute(select(func.count(WalletTransaction.id)).where(*conds))).scalar_one()

    col = SORT_COLUMNS.get(sort, WalletTransaction.created_at)
    ordering = (col.asc(), WalletTransaction.id.asc()) if order == "asc" else (col.desc(), WalletTransaction.id.desc())
    stmt = select(WalletTransaction).where(*conds).order_by(*ordering).offset(offset).limit(limit)
    res = await session.execute(stmt)
    return list(res.scalars().all()), int(total)
