# gymhub/conftest.py
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import insert

from gymhub.core.clock import get_now
from gymhub.core.config import settings
from gymhub.core.database import (
    create_all_tables,
    dispose_engine,
    drop_all_tables,
    get_session_factory,
    init_engine,
    new_id,
    plans,
    products,
    trainers,
    users,
)
from gymhub.core.security import hash_password, revocation_store, sign_token
from gymhub.features.notifications.mailer import MailDeliveryError, get_mailer
from gymhub.models.user import Role


FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
TEST_PASSWORD = "secret-pass-1"


class RecordingMailer:
    """Collects outgoing mail instead of talking to SMTP."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to, subject, text, html=None, attachments=()):
        if self.fail:
            raise MailDeliveryError("SMTP send failed: connection refused")
        self.sent.append(
            {"to": to, "subject": subject, "text": text, "html": html, "attachments": list(attachments)}
        )


@pytest.fixture(autouse=True)
def auth_settings(monkeypatch):
    """Known signing secret and cheap bcrypt for every test."""
    monkeypatch.setattr(settings, "JWT_SECRET", "test-secret-key")
    monkeypatch.setattr(settings, "BCRYPT_ROUNDS", 4)
    monkeypatch.setattr(settings, "APP_TIMEZONE", "UTC")
    revocation_store.clear()
    yield
    revocation_store.clear()


@pytest.fixture(autouse=True)
def engine():
    """
    Fresh in-memory database per test.

    The engine is process-global, so routes resolved through get_db see the
    same database as the ``db`` fixture.
    """
    dispose_engine()
    eng = init_engine("sqlite://")
    create_all_tables(eng)
    yield eng
    drop_all_tables(eng)
    dispose_engine()


@pytest.fixture
def db(engine):
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def client(engine, now, mailer):
    from gymhub.main import app

    # get_db already resolves to the per-test engine
    app.dependency_overrides[get_now] = lambda: now
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db, now):
    """Insert a user row directly; keyword arguments override columns."""
    counter = {"n": 0}

    def _make(role=Role.USER, **fields):
        counter["n"] += 1
        values = {
            "id": new_id(),
            "name": f"Member {counter['n']}",
            "email": f"member{counter['n']}@example.com",
            "password_hash": hash_password(TEST_PASSWORD),
            "role": role.value,
            "created_at": now - timedelta(minutes=counter["n"]),
            "updated_at": now,
        }
        values.update(fields)
        db.execute(insert(users).values(**values))
        db.commit()
        return values["id"]

    return _make


@pytest.fixture
def active_member(make_user, now):
    """Member with a GOLD-like plan running past the fixed clock."""

    def _make(free_products=2, trainers_limit=2, **fields):
        return make_user(
            membership_plan="GOLD",
            plan_starts_at=now - timedelta(days=5),
            plan_ends_at=now + timedelta(days=25),
            trainers_limit=trainers_limit,
            free_products_per_month=free_products,
            **fields,
        )

    return _make


@pytest.fixture
def make_product(db, now):
    counter = {"n": 0}

    def _make(name=None, price="10.00", stock=10):
        counter["n"] += 1
        product_id = new_id()
        db.execute(
            insert(products).values(
                id=product_id,
                name=name or f"Product {counter['n']}",
                price=Decimal(price),
                stock=stock,
                created_at=now - timedelta(minutes=counter["n"]),
                updated_at=now,
            )
        )
        db.commit()
        return product_id

    return _make


@pytest.fixture
def make_trainer(db, now):
    counter = {"n": 0}

    def _make(name=None, email=None, password=None):
        counter["n"] += 1
        trainer_id = new_id()
        db.execute(
            insert(trainers).values(
                id=trainer_id,
                name=name or f"Coach {counter['n']}",
                qualification="Certified Strength Coach",
                email=email,
                password_hash=hash_password(password) if password else None,
                created_at=now - timedelta(minutes=counter["n"]),
                updated_at=now,
            )
        )
        db.commit()
        return trainer_id

    return _make


@pytest.fixture
def make_plan(db, now):
    def _make(**fields):
        values = {
            "id": new_id(),
            "name": "Monthly",
            "price": Decimal("1000.00"),
            "created_at": now,
            "updated_at": now,
        }
        values.update(fields)
        db.execute(insert(plans).values(**values))
        db.commit()
        return values["id"]

    return _make


@pytest.fixture
def auth_headers():
    def _headers(subject_id, role=Role.USER, name="Test Principal"):
        return {"Authorization": f"Bearer {sign_token(subject_id, name, role)}"}

    return _headers
