"""Shared test fixtures for Ticket-Engine."""

import os
import pytest
from httpx import ASGITransport, AsyncClient


HMAC_KEY = "test-hmac-key-for-unit-tests"
API_KEY = "test-admin-api-key"


@pytest.fixture
def hmac_key():
    return HMAC_KEY


@pytest.fixture
def api_key():
    return API_KEY


@pytest.fixture
def app():
    """Create a test app with in-memory DB."""
    os.environ["TICKET_DB_URL"] = "sqlite+aiosqlite://"
    os.environ["TICKET_HMAC_KEY"] = HMAC_KEY
    os.environ["TICKET_API_KEY"] = API_KEY
    os.environ.pop("TICKET_STRIPE_WEBHOOK_SECRET", None)
    os.environ.pop("TICKET_STRIPE_SECRET_KEY", None)
    os.environ.pop("TICKET_ENVIRONMENT", None)

    # Clear caches and singletons so new env vars take effect
    from ticket_engine.common.config import get_settings
    get_settings.cache_clear()

    from ticket_engine.deps import reset_singletons
    reset_singletons()

    from ticket_engine.app import create_app
    return create_app()


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from ticket_engine.deps import get_db
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()


@pytest.fixture
def admin_headers():
    return {"X-Ticket-Api-Key": API_KEY}


def purchase_body(**overrides) -> dict:
    body = {
        "userId": "user-1",
        "eventId": "event-1",
        "tierName": "General",
        "quantity": 1,
        "totalPriceCents": 4500,
        "currency": "AUD",
        "paymentIntentId": "pi_test_1",
    }
    body.update(overrides)
    return body


@pytest.fixture
def purchase(client):
    """POST /tickets and return the created ticket JSON."""
    async def _purchase(**overrides):
        resp = await client.post("/tickets", json=purchase_body(**overrides))
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _purchase


# ── Service-level fixtures ──

def make_settings(**overrides):
    from ticket_engine.common.config import TicketEngineSettings

    defaults = {"hmac_key": HMAC_KEY, "db_url": "sqlite+aiosqlite://"}
    defaults.update(overrides)
    return TicketEngineSettings(**defaults)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
async def db(settings):
    from ticket_engine.common.database import DatabaseManager

    manager = DatabaseManager(settings)
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def gateway():
    from ticket_engine.payments.gateway import SimulatedPaymentGateway
    return SimulatedPaymentGateway()


def build_lifecycle(settings, gateway, wallet_issuer=None, clock=None):
    from ticket_engine.common.models import utcnow
    from ticket_engine.payments.transactions import TransactionLedger
    from ticket_engine.scans.ledger import ScanLedger
    from ticket_engine.tickets.audit import AuditChain
    from ticket_engine.tickets.service import TicketLifecycleService
    from ticket_engine.tickets.store import TicketStore
    from ticket_engine.wallet.issuer import HostedWalletPassIssuer

    return TicketLifecycleService(
        settings,
        store=TicketStore(),
        ledger=ScanLedger(),
        transactions=TransactionLedger(),
        audit=AuditChain(settings),
        gateway=gateway,
        wallet_issuer=wallet_issuer or HostedWalletPassIssuer(settings.wallet_base_url),
        clock=clock or utcnow,
    )


@pytest.fixture
def lifecycle(settings, gateway):
    return build_lifecycle(settings, gateway)


@pytest.fixture
def coordinator(db, lifecycle, settings):
    from ticket_engine.checkin.coordinator import CheckInCoordinator
    from ticket_engine.checkin.locks import KeyedLockTable

    return CheckInCoordinator(db, lifecycle, KeyedLockTable(timeout=settings.checkin_lock_timeout))


@pytest.fixture
def issue(db, lifecycle):
    """Issue a ticket through the lifecycle service in its own transaction."""
    async def _issue(**overrides):
        kwargs = {
            "user_id": "user-1",
            "event_id": "event-1",
            "quantity": 1,
            "total_price_cents": 4500,
            "payment_intent_id": "pi_test_1",
        }
        kwargs.update(overrides)
        async with db.get_session() as session:
            return await lifecycle.issue(session, **kwargs)
    return _issue
