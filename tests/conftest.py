import os

# przed importem marketplace - settings czyta env przy imporcie
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import marketplace.data.models  # noqa: F401
from marketplace.api import create_app
from marketplace.api.deps import get_auth_client
from marketplace.api.routers.health import get_broker
from marketplace.data.database import Base, get_db
from marketplace.data.models import ItemModel, MarketModel, ProfileModel
from marketplace.domain.capacity import MARKET_ACTIVE, CapacitySnapshot, PoolUsage
from marketplace.domain.reservations import ITEM_RACK
from marketplace.services.capacity_service import CapacityService

USERS = {
    "token-buyer": "buyer-1",
    "token-buyer-2": "buyer-2",
    "token-seller": "seller-1",
    "token-seller-2": "seller-2",
    "token-seller-3": "seller-3",
}


class FakeAuthClient:
    def __init__(self, users=None):
        self.users = users if users is not None else USERS

    def fetch_user(self, access_token):
        user_id = self.users.get(access_token)
        return {"id": user_id} if user_id else None


class FakeBroker:
    def __init__(self, healthy=True):
        self.healthy = healthy

    def ping(self):
        return self.healthy


@pytest.fixture
def now():
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_item(db):
    def _make(owner_id="seller-1", title="Vintage jacket", price="25.00", status=ITEM_RACK):
        item = ItemModel(
            owner_id=owner_id,
            title=title,
            selling_price=Decimal(price),
            status=status,
        )
        db.add(item)
        db.commit()
        return item

    return _make


@pytest.fixture
def make_seller(db, now):
    def _make(user_id="seller-1", active=True):
        profile = ProfileModel(
            id=user_id,
            first_name="Test",
            last_name=user_id,
            iban_verified_at=now if active else None,
        )
        db.add(profile)
        db.commit()
        return profile

    return _make


@pytest.fixture
def make_market(db, now):
    def _make(
        name="Spring Market",
        status=MARKET_ACTIVE,
        max_vendors=2,
        max_hangers=10,
        hanger_price="2.50",
    ):
        market = MarketModel(
            name=name,
            status=status,
            max_vendors=max_vendors,
            max_hangers=max_hangers,
            hanger_price=Decimal(hanger_price),
            start_date=now,
            end_date=now,
        )
        db.add(market)
        db.commit()
        return market

    return _make


@pytest.fixture
def app(session_factory):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_client] = lambda: FakeAuthClient()
    app.dependency_overrides[get_broker] = lambda: FakeBroker()
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth():
    def _headers(token):
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def stale_precheck(monkeypatch):
    """Pre-check widzi pusty rynek, jak zapytanie ktore czytalo przed cudzymi zapisami."""

    def empty_snapshot(self, market):
        return CapacitySnapshot(
            market_id=market.id,
            vendors=PoolUsage(max=market.max_vendors, current=0),
            hangers=PoolUsage(max=market.max_hangers, current=0),
        )

    monkeypatch.setattr(CapacityService, "snapshot", empty_snapshot)


@pytest.fixture
def sequence_ids(monkeypatch):
    """Narzuca id kolejnych insertow - sekwencja w Postgresie nie idzie w kolejnosci commitow."""

    def _assign(repo_cls, method_name, ids):
        upcoming = iter(ids)
        wrapped = getattr(repo_cls, method_name)

        def insert_with_id(self, row):
            row.id = next(upcoming)
            return wrapped(self, row)

        monkeypatch.setattr(repo_cls, method_name, insert_with_id)

    return _assign
