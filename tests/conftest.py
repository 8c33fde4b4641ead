"""
Pytest configuration and fixtures for Beatstore tests.
"""
import os
import uuid
from decimal import Decimal
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy import JSON
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Disable rate limiting for tests
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["WEBHOOK_ALLOW_UNVERIFIED"] = "true"

# IMPORTANT: Patch PostgreSQL types for SQLite compatibility
# Must be done before importing any models
import sqlalchemy.dialects.postgresql as pg_dialect
from sqlalchemy.types import TypeDecorator, CHAR
import uuid as uuid_module


class SQLiteUUID(TypeDecorator):
    """SQLite-compatible UUID type."""
    impl = CHAR(36)
    cache_ok = True

    def __init__(self, *args, **kwargs):
        super().__init__()

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return uuid_module.UUID(value)
        return value


pg_dialect.JSONB = JSON
pg_dialect.UUID = SQLiteUUID

from beatstore.database import get_db
from beatstore.core import deps
from beatstore.core.security import create_access_token, hash_password
from beatstore.integrations.paypal import PayPalCapture, PayPalClient, PayPalOrder
from beatstore.integrations.storage import LocalStorageClient
from beatstore.integrations.stripe_gateway import CheckoutSession, StripeGateway
from beatstore.models.base import Base
from beatstore.models.catalog import Beat, LicenseTier, LicenseType, SoundKit
from beatstore.models.tenant import Tenant, TenantPlan, TenantStatus
from beatstore.models.user import User, UserRole, UserStatus
from beatstore.services.email_service import EmailService
from beatstore.services.license_generator import GeneratedLicense, LicenseContext
from beatstore.services.rate_limiter import MemoryRateLimitBackend, RateLimiter

# Use SQLite for testing (in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

OWNER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-000000000099")
CUSTOMER_ID = uuid.UUID("00000000-0000-0000-0000-000000000003")
TENANT_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


# ============================================================================
# Provider fakes
# ============================================================================

class FakeStripeGateway(StripeGateway):
    """Stripe gateway that records calls instead of reaching Stripe."""

    def __init__(self, webhook_secret: str = ""):
        super().__init__(api_key="sk_test_fake", webhook_secret=webhook_secret)
        self.created: list[dict[str, Any]] = []
        self.coupons: list[dict[str, Any]] = []
        self.sessions: dict[str, CheckoutSession] = {}
        self._counter = 0

    async def create_checkout_session(self, **params) -> CheckoutSession:
        self._counter += 1
        session_id = f"cs_test_{self._counter}"
        self.created.append(params)
        session = CheckoutSession(
            id=session_id,
            url=f"https://checkout.stripe.test/{session_id}",
            status="open",
            payment_status="unpaid",
            metadata=dict(params.get("metadata") or {}),
        )
        self.sessions[session_id] = session
        return session

    async def retrieve_session(self, session_id: str) -> CheckoutSession:
        return self.sessions[session_id]

    async def create_amount_off_coupon(self, amount_cents: int, currency: str, name: str) -> str:
        self.coupons.append({"amount_off": amount_cents, "currency": currency, "name": name})
        return f"coupon_{len(self.coupons)}"

    def mark_paid(self, session_id: str, payment_intent: str = "pi_test_1") -> None:
        session = self.sessions[session_id]
        session.status = "complete"
        session.payment_status = "paid"
        session.payment_intent = payment_intent


class FakePayPalClient(PayPalClient):
    """PayPal client with canned order and capture responses."""

    def __init__(self, webhook_id: str = "", capture_status: str = "COMPLETED"):
        super().__init__(client_id="client", client_secret="secret", webhook_id=webhook_id)
        self.capture_status = capture_status
        self.orders: list[dict[str, Any]] = []
        self.captured: list[str] = []
        self.signature_valid = True

    async def create_order(self, reference_id, items, discount=Decimal("0"), return_url=None, cancel_url=None):
        paypal_id = f"PAYPAL-{len(self.orders) + 1}"
        self.orders.append({"reference_id": reference_id, "items": items, "discount": discount})
        return PayPalOrder(
            id=paypal_id,
            status="CREATED",
            approval_url=f"https://www.sandbox.paypal.test/checkoutnow?token={paypal_id}",
        )

    async def capture_order(self, paypal_order_id: str) -> PayPalCapture:
        self.captured.append(paypal_order_id)
        reference = next(
            (o["reference_id"] for i, o in enumerate(self.orders) if f"PAYPAL-{i + 1}" == paypal_order_id),
            None,
        )
        return PayPalCapture(
            order_id=paypal_order_id,
            status=self.capture_status,
            transaction_id="CAPTURE-1" if self.capture_status == "COMPLETED" else None,
            custom_id=reference,
        )

    async def verify_webhook_signature(self, headers, event) -> bool:
        return self.signature_valid


class FakeLicenseGenerator:
    """Records license requests; fails for titles listed in ``fail_titles``."""

    def __init__(self, fail_titles: set[str] | None = None):
        self.fail_titles = fail_titles or set()
        self.contexts: list[LicenseContext] = []

    async def generate(self, ctx: LicenseContext) -> GeneratedLicense:
        self.contexts.append(ctx)
        if ctx.item_title in self.fail_titles:
            raise RuntimeError(f"render failed for {ctx.item_title}")
        return GeneratedLicense(
            order_item_id=ctx.order_item_id,
            storage_key=f"licenses/generated/{ctx.order_id}/{ctx.order_item_id}.pdf",
            filename=f"License_{ctx.item_title}.pdf",
            content=b"%PDF-1.4 fake",
        )


class RecordingEmailService(EmailService):
    """Renders real templates but keeps messages in memory."""

    def __init__(self, fail: bool = False):
        super().__init__(api_key="re_test", sender="Beat Store <test@example.com>")
        self.fail = fail
        self.sent: list[dict[str, Any]] = []

    async def send(self, to, subject, html, attachments=(), reply_to=None):
        if self.fail:
            raise RuntimeError("mail provider down")
        message = {
            "to": list(to),
            "subject": subject,
            "html": html,
            "attachments": list(attachments),
            "reply_to": reply_to,
        }
        self.sent.append(message)
        return {"id": f"email_{len(self.sent)}"}


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def users(db_session: AsyncSession) -> dict[str, User]:
    """An owner, a platform admin and a customer."""
    password_hash = hash_password("password123")
    owner = User(
        id=OWNER_ID,
        email="owner@example.com",
        name="Store Owner",
        password_hash=password_hash,
        role=UserRole.TENANT_OWNER,
        status=UserStatus.ACTIVE,
    )
    admin = User(
        id=ADMIN_ID,
        email="admin@example.com",
        name="Platform Admin",
        password_hash=password_hash,
        role=UserRole.SUPER_ADMIN,
        status=UserStatus.ACTIVE,
    )
    customer = User(
        id=CUSTOMER_ID,
        email="buyer@example.com",
        name="Buyer",
        password_hash=password_hash,
        role=UserRole.CUSTOMER,
        status=UserStatus.ACTIVE,
    )
    db_session.add_all([owner, admin, customer])
    await db_session.commit()
    return {"owner": owner, "admin": admin, "customer": customer}


@pytest_asyncio.fixture(scope="function")
async def tenant(db_session: AsyncSession, users) -> Tenant:
    tenant = Tenant(
        id=TENANT_ID,
        name="Nova Beats",
        slug="nova",
        plan=TenantPlan.PRO,
        status=TenantStatus.ACTIVE,
        owner_user_id=OWNER_ID,
        branding={},
    )
    db_session.add(tenant)
    await db_session.commit()
    return tenant


@pytest_asyncio.fixture(scope="function")
async def catalog(db_session: AsyncSession) -> dict[str, Any]:
    """Default-storefront catalog: one beat with three tiers and a sound kit."""
    beat = Beat(
        title="Midnight Drive",
        bpm=140,
        genre="Trap",
        mp3_file_path="beats/midnight-drive.mp3",
        wav_file_path="beats/midnight-drive.wav",
        stems_file_path="beats/midnight-drive-stems.zip",
        is_active=True,
    )
    db_session.add(beat)
    await db_session.flush()

    mp3 = LicenseTier(beat_id=beat.id, name="Basic", type=LicenseType.MP3, price=Decimal("29.99"), is_active=True)
    wav = LicenseTier(beat_id=beat.id, name="Premium", type=LicenseType.WAV, price=Decimal("49.99"), is_active=True)
    stems = LicenseTier(
        beat_id=beat.id,
        name="Trackout",
        type=LicenseType.STEMS,
        price=Decimal("99.99"),
        license_pdf_path="licenses/static/trackout.pdf",
        is_active=True,
    )
    kit = SoundKit(
        title="Dusty Drums Vol. 1",
        category="Drums",
        price=Decimal("19.99"),
        file_path="soundkits/dusty-drums.zip",
        is_active=True,
    )
    db_session.add_all([mp3, wav, stems, kit])
    await db_session.commit()
    return {"beat": beat, "mp3": mp3, "wav": wav, "stems": stems, "kit": kit}


# ============================================================================
# Provider Fixtures
# ============================================================================

@pytest.fixture
def stripe_gateway() -> FakeStripeGateway:
    return FakeStripeGateway()


@pytest.fixture
def paypal_client() -> FakePayPalClient:
    return FakePayPalClient()


@pytest.fixture
def license_generator() -> FakeLicenseGenerator:
    return FakeLicenseGenerator()


@pytest.fixture
def email_service() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
def storage(tmp_path) -> LocalStorageClient:
    return LocalStorageClient(base_path=str(tmp_path / "storage"), base_url="http://files.test")


@pytest.fixture
def rate_limiter() -> RateLimiter:
    return RateLimiter(MemoryRateLimitBackend(), enabled=False)


# ============================================================================
# FastAPI App Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def app(
    db_session: AsyncSession,
    stripe_gateway,
    paypal_client,
    license_generator,
    email_service,
    storage,
    rate_limiter,
) -> FastAPI:
    """Create test FastAPI application."""
    from beatstore.main import app as main_app

    async def override_get_db():
        yield db_session

    main_app.dependency_overrides[get_db] = override_get_db
    main_app.dependency_overrides[deps.get_stripe_gateway] = lambda: stripe_gateway
    main_app.dependency_overrides[deps.get_paypal_client] = lambda: paypal_client
    main_app.dependency_overrides[deps.get_license_generator] = lambda: license_generator
    main_app.dependency_overrides[deps.get_email_service] = lambda: email_service
    main_app.dependency_overrides[deps.get_storage] = lambda: storage
    main_app.dependency_overrides[deps.get_rate_limiter_dep] = lambda: rate_limiter

    yield main_app

    main_app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ============================================================================
# Authentication Fixtures
# ============================================================================

def bearer(user_id: uuid.UUID) -> dict[str, str]:
    token = create_access_token(data={"sub": str(user_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def owner_headers(users) -> dict:
    return bearer(OWNER_ID)


@pytest.fixture
def admin_headers(users) -> dict:
    return bearer(ADMIN_ID)


@pytest.fixture
def customer_headers(users) -> dict:
    return bearer(CUSTOMER_ID)
