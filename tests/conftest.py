"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite database per test (schema from metadata)
- Accounts for each role and a principal helper for service-level tests
- JWT bearer headers for authenticated HTTP tests
- HTTPX AsyncClient with the CSRF header and get_db override
- Fake notifier and insight generator
"""
import os
import uuid
from datetime import date
from typing import AsyncGenerator, Generator, Sequence

# Must be set before the app (and its rate limiter) is imported
os.environ["TESTING"] = "1"
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-for-session-tokens-0123456789")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from caretrack.core.deps import get_db
from caretrack.core.security import create_session_token
from caretrack.db.base import Base
from caretrack.db.enums import Role, TimeWindow
from caretrack.db.models import CheckIn, UserAccount
from caretrack.main import app
from caretrack.schemas.auth import Principal
from caretrack.schemas.insight import InsightPayload
from caretrack.services.checkin_service import CheckInFields
from caretrack.services.insight_generator import get_insight_generator
from caretrack.services.invite_email_service import NotificationResult, get_notifier


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Session on a private in-memory database.

    StaticPool keeps the single connection alive so every session sees the
    same schema; the database disappears with the engine.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False)()

    yield session

    session.close()
    engine.dispose()


def make_account(db: Session, role: Role, name: str | None = None) -> UserAccount:
    suffix = uuid.uuid4().hex[:8]
    account = UserAccount(
        role=role.value,
        full_name=name or f"{role.value.title()} {suffix}",
        email=f"{role.value}-{suffix}@test.com",
    )
    db.add(account)
    db.commit()
    return account


@pytest.fixture
def patient(db: Session) -> UserAccount:
    return make_account(db, Role.PATIENT, "Pat Patient")


@pytest.fixture
def other_patient(db: Session) -> UserAccount:
    return make_account(db, Role.PATIENT, "Olive Other")


@pytest.fixture
def caretaker(db: Session) -> UserAccount:
    return make_account(db, Role.CARETAKER, "Cary Caretaker")


@pytest.fixture
def admin(db: Session) -> UserAccount:
    return make_account(db, Role.ADMIN, "Ada Admin")


def principal_for(account: UserAccount) -> Principal:
    return Principal(
        user_id=account.id,
        role=Role(account.role),
        email=account.email,
        full_name=account.full_name,
    )


def auth_header(account: UserAccount) -> dict[str, str]:
    token = create_session_token(account.id, account.role)
    return {"Authorization": f"Bearer {token}"}


def checkin_fields(**overrides) -> CheckInFields:
    values = {
        "tremor_score": 3,
        "stiffness_score": 4,
        "balance_score": 5,
        "sleep_score": 6,
        "mood_score": 7,
        "medication_taken": "yes",
        "side_effects": [],
        "side_effects_other": None,
        "notes": None,
    }
    values.update(overrides)
    return CheckInFields(**values)


def add_checkin(db: Session, user: UserAccount, check_in_date: date, **overrides) -> CheckIn:
    """Insert a check-in directly, bypassing the gate."""
    fields = checkin_fields(**overrides)
    checkin = CheckIn(
        user_id=user.id,
        check_in_date=check_in_date,
        tremor_score=fields.tremor_score,
        stiffness_score=fields.stiffness_score,
        balance_score=fields.balance_score,
        sleep_score=fields.sleep_score,
        mood_score=fields.mood_score,
        medication_taken=fields.medication_taken,
        side_effects=list(fields.side_effects),
        side_effects_other=fields.side_effects_other,
        notes=fields.notes,
        logged_by_user_id=user.id,
    )
    db.add(checkin)
    db.commit()
    return checkin


# =============================================================================
# Fakes for external collaborators
# =============================================================================

class FakeNotifier:
    def __init__(self, result: NotificationResult | None = None, error: Exception | None = None):
        self.result = result or NotificationResult(success=True, message_id="msg_1")
        self.error = error
        self.sent: list[tuple[str, str]] = []

    async def send(self, email: str, invite_link: str) -> NotificationResult:
        self.sent.append((email, invite_link))
        if self.error:
            raise self.error
        return self.result


class FakeInsightGenerator:
    def __init__(self, payload: InsightPayload | None = None, error: Exception | None = None):
        self.payload = payload or InsightPayload(
            summary="Symptoms were mostly steady this week.",
            keyObservations={"increases": ["tremor"], "decreases": [], "stable": ["mood"]},
            medicationPatterns="Medication taken on most days.",
            symptomTrends="Tremor rose slightly mid-week.",
            wearingOffPatterns="Possible late-afternoon wearing-off.",
            recommendations=["Keep logging daily."],
        )
        self.error = error
        self.calls: list[tuple[int, TimeWindow]] = []

    async def generate(self, checkins: Sequence[CheckIn], window: TimeWindow) -> InsightPayload:
        self.calls.append((len(checkins), window))
        if self.error:
            raise self.error
        return self.payload


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def generator() -> FakeInsightGenerator:
    return FakeInsightGenerator()


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(
    db: Session,
    notifier: FakeNotifier,
    generator: FakeInsightGenerator,
) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient with the CSRF header set; authenticate per request with
    auth_header(account).
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_insight_generator] = lambda: generator

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c

    app.dependency_overrides.clear()


# =============================================================================
# Helper fixtures
# =============================================================================

@pytest.fixture
def principal():
    """principal(account) -> Principal"""
    return principal_for


@pytest.fixture
def auth():
    """auth(account) -> bearer header dict"""
    return auth_header


@pytest.fixture
def new_account(db: Session):
    """new_account(role, name=None) -> committed UserAccount"""
    def _make(role: Role, name: str | None = None) -> UserAccount:
        return make_account(db, role, name)
    return _make


@pytest.fixture
def seed_checkin(db: Session):
    """seed_checkin(user, date, **fields) -> committed CheckIn"""
    def _seed(user: UserAccount, check_in_date: date, **overrides) -> CheckIn:
        return add_checkin(db, user, check_in_date, **overrides)
    return _seed


@pytest.fixture
def fields():
    """fields(**overrides) -> CheckInFields with valid defaults"""
    return checkin_fields
