import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from marketplace.data.database import Base
from marketplace.data.models import CartItemModel, ItemModel, MarketEnrollmentModel, MarketModel, ProfileModel
from marketplace.domain.capacity import MARKET_ACTIVE
from marketplace.domain.reservations import ITEM_RACK
from marketplace.exceptions import MarketplaceError
from marketplace.repos.market_repo import MarketRepo
from marketplace.services.capacity_service import CapacityService
from marketplace.services.reservation_service import ReservationService


# prawdziwe watki i osobne polaczenia - baza w pliku, nie w pamieci
@pytest.fixture
def file_session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def seed(file_session_factory):
    def _seed(*rows):
        session = file_session_factory()
        try:
            session.add_all(rows)
            session.commit()
            return [row.id for row in rows]
        finally:
            session.close()

    return _seed


def _profile(user_id, now):
    return ProfileModel(id=user_id, first_name="Test", last_name=user_id, iban_verified_at=now)


def _market(now, max_vendors, max_hangers):
    return MarketModel(
        name="Race Market",
        status=MARKET_ACTIVE,
        max_vendors=max_vendors,
        max_hangers=max_hangers,
        hanger_price=Decimal("2.50"),
        start_date=now,
        end_date=now,
    )


def _race(session_factory, users, attempt):
    """Wszyscy startuja naraz; kazdy watek ma wlasna sesje. Zwraca "ok" albo kod bledu."""
    barrier = threading.Barrier(len(users))

    def run(user_id):
        session = session_factory()
        try:
            barrier.wait()
            attempt(session, user_id)
            return "ok"
        except MarketplaceError as exc:
            return exc.code
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=len(users)) as pool:
        return list(pool.map(run, users))


def _count(session_factory, stmt):
    session = session_factory()
    try:
        return session.execute(stmt).scalar_one()
    finally:
        session.close()


def test_one_winner_per_item(file_session_factory, seed, now):
    [item_id] = seed(ItemModel(owner_id="seller-1", title="Vintage jacket", selling_price=Decimal("25.00"), status=ITEM_RACK))
    buyers = [f"buyer-{n}" for n in range(8)]

    outcomes = _race(
        file_session_factory,
        buyers,
        lambda session, user_id: ReservationService(session).add_to_cart(user_id, item_id, now=now),
    )

    assert sorted(outcomes) == ["ALREADY_RESERVED"] * 7 + ["ok"]
    assert _count(file_session_factory, select(func.count(CartItemModel.id))) == 1


def test_exactly_max_vendors_enrolled(file_session_factory, seed, now):
    sellers = [f"seller-{n}" for n in range(6)]
    seed(*[_profile(s, now) for s in sellers])
    [market_id] = seed(_market(now, max_vendors=2, max_hangers=10))

    outcomes = _race(
        file_session_factory,
        sellers,
        lambda session, seller_id: CapacityService(session).register_for_market(market_id, seller_id, now=now),
    )

    assert outcomes.count("ok") == 2
    assert outcomes.count("MARKET_FULL") == 4
    enrolled = select(func.count(MarketEnrollmentModel.id)).where(MarketEnrollmentModel.market_id == market_id)
    assert _count(file_session_factory, enrolled) == 2
    assert _count(file_session_factory, select(MarketModel.current_vendors).where(MarketModel.id == market_id)) == 2


def test_hanger_pool_never_overbooked(file_session_factory, seed, now):
    sellers = [f"seller-{n}" for n in range(5)]
    seed(*[_profile(s, now) for s in sellers])
    [market_id] = seed(_market(now, max_vendors=5, max_hangers=10))
    seed(*[MarketEnrollmentModel(market_id=market_id, seller_id=s, created_at=now) for s in sellers])

    outcomes = _race(
        file_session_factory,
        sellers,
        lambda session, seller_id: CapacityService(session).create_hanger_rental(market_id, seller_id, 4, now=now),
    )

    assert outcomes.count("ok") == 2
    assert outcomes.count("MARKET_FULL") == 3
    session = file_session_factory()
    try:
        assert MarketRepo(session).live_hanger_count(market_id) == 8
    finally:
        session.close()
