import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENV", "dev")
os.environ.setdefault("RZPAY_KEY", "rzp_test_key")
os.environ.setdefault("RZPAY_SECRET", "rzp_test_secret")

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from shopcore.common.errors import PaymentError, PaymentErrorCode
from shopcore.db.dependencies import get_session
from shopcore.main import create_app
from shopcore.payments.gateway import RazorpayGateway, get_gateway
import shopcore.schema.full_schema  # noqa: F401


class FakeGateway(RazorpayGateway):
    """Keeps the real signature check, replaces the network call."""

    def __init__(self):
        super().__init__("rzp_test_key", "rzp_test_secret", "http://razorpay.invalid/v1")
        self.calls = []
        self.fail = False

    async def create_remote_order(self, amount_minor_units, currency, receipt, notes=None):
        self.calls.append({"amount": amount_minor_units, "currency": currency, "receipt": receipt})
        if self.fail:
            raise PaymentError(PaymentErrorCode.GATEWAY_ORDER_FAILED)
        return f"order_test_{len(self.calls)}"


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'shopcore.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def app(session_factory, fake_gateway):
    application = create_app()

    async def _session():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_session] = _session
    application.dependency_overrides[get_gateway] = lambda: fake_gateway
    return application


@pytest.fixture
async def ac_client(app):
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
