from decimal import Decimal
import pytest
from shopcore.common.errors import WalletError, WalletErrorCode
from shopcore.schema.full_schema import WalletReferenceType
from shopcore.wallet.services import credit_wallet, get_balance
from tests.factories import seed_user, url_prefix, user_headers


@pytest.mark.asyncio
async def test_wallet_not_initialized(ac_client, db_session):
    user = await seed_user(db_session)
    resp = await ac_client.get(f"{url_prefix}/wallet", headers=user_headers(user.id))
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "WALLET_NOT_INITIALIZED"


@pytest.mark.asyncio
async def test_credits_keep_ledger_and_balance_in_step(ac_client, db_session):
    user = await seed_user(db_session)

    first = await credit_wallet(db_session, user.id, Decimal("120.50"), 1, WalletReferenceType.ORDER_CANCELLATION)
    second = await credit_wallet(db_session, user.id, Decimal("79.5"), 7, WalletReferenceType.RETURN,
                                 description="Refund for returned order")
    await db_session.commit()

    assert first.balance_after == Decimal("120.50")
    assert second.balance_after == Decimal("200.00")
    balance = await get_balance(db_session, user.id)
    assert balance["balance"] == second.balance_after

    resp = await ac_client.get(f"{url_prefix}/wallet/transactions", headers=user_headers(user.id))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total"] == 2
    assert [t["balance_after"] for t in data["transactions"]] == [200.0, 120.5]

    resp = await ac_client.get(f"{url_prefix}/wallet/transactions",
                               params={"sort": "amount", "order": "asc", "limit": 1},
                               headers=user_headers(user.id))
    data = resp.json()["data"]
    assert data["total"] == 2
    assert [t["amount"] for t in data["transactions"]] == [79.5]

    resp = await ac_client.get(f"{url_prefix}/wallet/transactions", params={"sort": "balance"},
                               headers=user_headers(user.id))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_credit_must_be_positive(db_session):
    user = await seed_user(db_session)
    with pytest.raises(WalletError) as exc_info:
        await credit_wallet(db_session, user.id, Decimal("0"), None, WalletReferenceType.RETURN)
    assert exc_info.value.code == WalletErrorCode.INVALID_AMOUNT
