import hashlib
import hmac
import json
import os
import tempfile
import time
from decimal import Decimal

# Configure the app before anything imports it
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.mkdtemp(), "letsgrow.db")
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ.pop("STRIPE_SECRET_KEY", None)

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.orm import sessionmaker

from database import get_session, make_engine
from models import Base, PaymentStatus, Startup
from services.exceptions import NotFoundError, UpstreamUnavailable
from services.payment_gateway import CheckoutSession, StripeGateway, get_gateway

WEBHOOK_SECRET = "whsec_test_secret"


class FakeGateway(StripeGateway):
    """In-memory processor. Webhook signatures are still verified by stripe."""

    def __init__(self):
        super().__init__(api_key=None, webhook_secret=WEBHOOK_SECRET)
        self.sessions = {}
        self.created = []
        self.down = False
        self._counter = 0

    def create_session(self, amount, currency, metadata):
        if self.down:
            raise UpstreamUnavailable("processor down")
        self._counter += 1
        session = CheckoutSession(
            session_id=f"cs_test_{self._counter}",
            status=PaymentStatus.PENDING,
            metadata=dict(metadata),
            amount_total=Decimal(amount),
            currency=currency,
            redirect_url=f"https://checkout.stripe.test/c/cs_test_{self._counter}",
        )
        self.sessions[session.session_id] = session
        self.created.append(session)
        return session

    def add_session(self, session_id, startup_id, amount, investor_id="", status=PaymentStatus.COMPLETED):
        self.sessions[session_id] = CheckoutSession(
            session_id=session_id,
            status=status,
            metadata={
                "investor_id": str(investor_id),
                "startup_id": str(startup_id),
                "amount": str(Decimal(amount).quantize(Decimal("0.01"))),
                "startup_name": "Acme",
            },
            amount_total=Decimal(amount).quantize(Decimal("0.01")),
            currency="usd",
        )
        return self.sessions[session_id]

    def complete(self, session_id):
        self.sessions[session_id].status = PaymentStatus.COMPLETED

    def retrieve_session(self, session_id):
        if self.down:
            raise UpstreamUnavailable("processor down")
        if session_id not in self.sessions:
            raise NotFoundError(session_id)
        return self.sessions[session_id]


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    """Build a Stripe-Signature header the way Stripe does."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.{payload.decode('utf-8')}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def checkout_event(session_id, startup_id, amount_cents, investor_id="42",
                   payment_status="paid", event_type="checkout.session.completed") -> bytes:
    return json.dumps({
        "id": f"evt_{session_id}",
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "status": "complete" if payment_status == "paid" else "open",
                "payment_status": payment_status,
                "amount_total": amount_cents,
                "currency": "usd",
                "metadata": {
                    "investor_id": str(investor_id),
                    "startup_id": str(startup_id),
                    "amount": f"{Decimal(amount_cents) / 100:.2f}",
                    "startup_name": "Acme",
                },
            }
        },
    }).encode("utf-8")


def make_token(user_id, role="investor") -> str:
    return jwt.encode({"id": user_id, "role": role}, os.environ["JWT_SECRET"], algorithm="HS256")


def auth(user_id, role="investor") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_startup(session_factory):
    def _make(name="Acme", funding_required=100000, entrepreneur_id=7, funding_received=0):
        with session_factory() as session:
            startup = Startup(
                startup_name=name,
                description=f"{name} description",
                industry="tech",
                entrepreneur_id=entrepreneur_id,
                funding_required=Decimal(funding_required),
                funding_received=Decimal(funding_received),
            )
            session.add(startup)
            session.commit()
            return startup.id
    return _make


@pytest.fixture
def funding_of(session_factory):
    """Read funding_received through a fresh session."""
    def _read(startup_id):
        with session_factory() as session:
            return Decimal(str(session.get(Startup, startup_id).funding_received))
    return _read


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(session_factory, gateway):
    from main import app

    def _get_session():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
