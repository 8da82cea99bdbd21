from decimal import Decimal
from typing import Any, Dict, Optional
from shopcore.common.errors import WalletError, WalletErrorCode
from shopcore.common.utils import now, page_offset, to_money
from shopcore.schema.full_schema import WalletReferenceType, WalletTransaction, WalletTransactionType
from shopcore.wallet.constants import logger
from shopcore.wallet.repository import append_transaction, get_or_create_wallet, get_wallet, list_transactions


async def credit_wallet(session, user_id: int, amount: Decimal, reference_id: Optional[int],
                        reference_type: WalletReferenceType,
                        transaction_type: WalletTransactionType = WalletTransactionType.REFUND,
                        description: Optional[str] = None) -> WalletTransaction:
    """Add ``amount`` to the user's balance and record it in the ledger.

    Runs in the caller's transaction and never commits: the balance write and
    the ledger row land together with whatever order change caused them.
    """
    amount = to_money(amount)
    if amount <= 0:
        raise WalletError(WalletErrorCode.INVALID_AMOUNT)

    wallet = await get_or_create_wallet(session, user_id)
    wallet.balance = to_money(wallet.balance + amount)
    wallet.updated_at = now()

    txn = await append_transaction(session, WalletTransaction(
        wallet_id=wallet.id,
        user_id=user_id,
        amount=amount,
        transaction_type=transaction_type.value,
        reference_id=reference_id,
        reference_type=reference_type.value,
        balance_after=wallet.balance,
        description=description,
    ))

    logger.info("wallet.credit", extra={
        "user_id": user_id,
        "amount": str(amount),
        "reference_type": reference_type.value,
        "reference_id": reference_id,
    })
    return txn


def serialize_transaction(t: WalletTransaction) -> Dict[str, Any]:
    return {
        "id": t.id,
        "amount": to_money(t.amount),
        "transaction_type": t.transaction_type,
        "reference_id": t.reference_id,
        "reference_type": t.reference_type,
        "balance_after": to_money(t.balance_after),
        "description": t.description,
        "created_at": t.created_at,
    }


async def get_balance(session, user_id: int) -> Dict[str, Any]:
    wallet = await get_wallet(session, user_id)
    if wallet is None:
        raise WalletError(WalletErrorCode.WALLET_NOT_INITIALIZED)
    return {"balance": to_money(wallet.balance), "updated_at": wallet.updated_at}


async def get_transactions(session, user_id: int, page: int, limit: int,
                           transaction_type: Optional[str] = None,
                           sort: str = "created_at", order: str = "desc") -> Dict[str, Any]:
    txns, total = await list_transactions(session, user_id, page_offset(page, limit), limit,
                                          transaction_type, sort, order)
    return {
        "transactions": [serialize_transaction(t) for t in txns],
        "page": page,
        "limit": limit,
        "total": total,
    }
