import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CLERK_SECRET_KEY"] = "sk_test_clerk"
os.environ["GEMINI_API_KEY"] = "test-gemini-key"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_stripe"
os.environ["STRIPE_PRICE_MONTHLY"] = "price_test_monthly"
os.environ.pop("SITE_URL", None)
os.environ.pop("REDIS_URL", None)
os.environ.pop("FRONTEND_DIST_DIR", None)

from typing import Dict, List, Optional  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import Request  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from journal_api.auth.dependencies import get_authenticator  # noqa: E402
from journal_api.billing.base import (  # noqa: E402
    BasePaymentProvider,
    CheckoutSessionResponse,
    CheckoutSessionStatus,
)
from journal_api.billing.factory import get_payment_provider  # noqa: E402
from journal_api.database import Base, get_async_db, import_models  # noqa: E402
from journal_api.error_handlers import UnauthorizedException  # noqa: E402
from journal_api.prompts.llm import get_llm_client  # noqa: E402
from journal_api.users.models import User, SubscriptionStatus  # noqa: E402

TOKEN_PREFIX = "valid-"


def auth_headers(user_id: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {TOKEN_PREFIX}{user_id}"}


class FakeAuthenticator:
    """Accepts bearer tokens of the form valid-<user_id>"""

    async def authenticate(self, request: Request) -> str:
        header = request.headers.get("authorization", "")
        token = header.removeprefix("Bearer ").strip()
        if not token.startswith(TOKEN_PREFIX):
            raise UnauthorizedException(reason="Invalid or expired session token")
        return token[len(TOKEN_PREFIX):]

    async def try_authenticate(self, request: Request) -> Optional[str]:
        try:
            return await self.authenticate(request)
        except UnauthorizedException:
            return None


class FakeLLM:
    def __init__(self, reply: str = "What made this moment feel so important to you?"):
        self.reply = reply
        self.error: Optional[Exception] = None
        self.calls: List[str] = []

    async def generate_question(self, content: str) -> str:
        self.calls.append(content)
        if self.error:
            raise self.error
        return self.reply


class FakePaymentProvider(BasePaymentProvider):
    def _initialize_client(self):
        self.created: List[dict] = []
        self.sessions: Dict[str, CheckoutSessionStatus] = {}

    async def create_checkout_session(self, user_id, success_url, cancel_url, customer_email=None):
        self.created.append({
            "user_id": user_id,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "customer_email": customer_email,
        })
        session_id = f"cs_test_{len(self.created)}"
        return CheckoutSessionResponse(session_id=session_id, url=f"https://checkout.stripe.test/{session_id}")

    async def retrieve_checkout_session(self, session_id):
        return self.sessions[session_id]


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_payments():
    return FakePaymentProvider({})


@pytest.fixture
def app(session_factory, fake_llm, fake_payments):
    from journal_api.main import app

    async def override_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_db] = override_db
    app.dependency_overrides[get_authenticator] = FakeAuthenticator
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    app.dependency_overrides[get_payment_provider] = lambda: fake_payments
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def make_user(session_factory):
    async def _make_user(user_id: str = "user_1", status: SubscriptionStatus = SubscriptionStatus.FREE,
                         email: Optional[str] = None) -> User:
        async with session_factory() as session:
            user = User(user_id=user_id, email=email, subscription_status=status)
            session.add(user)
            await session.commit()
            return user
    return _make_user


LONG_TEXT = (
    "Today I finally finished the project I have been dreading for weeks, "
    "and I feel relieved but strangely empty."
)
