import pytest
from sqlalchemy import func, select

from marketplace.data.models import MarketEnrollmentModel
from marketplace.domain.capacity import MARKET_COMPLETED, MARKET_DRAFT
from marketplace.exceptions import ForbiddenError, NotFoundError, StateConflictError
from marketplace.repos.market_repo import MarketRepo
from marketplace.services.capacity_service import CapacityService


@pytest.fixture
def svc(db):
    return CapacityService(db)


def _enrollment_rows(db, market_id):
    return db.execute(
        select(func.count(MarketEnrollmentModel.id)).where(MarketEnrollmentModel.market_id == market_id)
    ).scalar_one()


class TestRegisterForMarket:
    def test_registers_active_seller(self, svc, db, make_seller, make_market, now):
        make_seller("seller-1")
        market = make_market()

        enrollment = svc.register_for_market(market.id, "seller-1", now=now)

        assert enrollment.market_id == market.id
        assert enrollment.seller_id == "seller-1"
        db.refresh(market)
        assert market.current_vendors == 1

    def test_seller_without_profile(self, svc, make_market, now):
        market = make_market()

        with pytest.raises(ForbiddenError) as exc_info:
            svc.register_for_market(market.id, "ghost", now=now)
        assert exc_info.value.code == "NOT_ACTIVE_SELLER"

    def test_seller_without_verified_iban(self, svc, make_seller, make_market, now):
        make_seller("seller-1", active=False)
        market = make_market()

        with pytest.raises(ForbiddenError) as exc_info:
            svc.register_for_market(market.id, "seller-1", now=now)
        assert exc_info.value.code == "NOT_ACTIVE_SELLER"

    def test_unknown_market(self, svc, make_seller, now):
        make_seller("seller-1")

        with pytest.raises(NotFoundError) as exc_info:
            svc.register_for_market(404, "seller-1", now=now)
        assert exc_info.value.code == "MARKET_NOT_FOUND"

    @pytest.mark.parametrize("status", [MARKET_DRAFT, MARKET_COMPLETED])
    def test_market_not_open(self, svc, make_seller, make_market, now, status):
        make_seller("seller-1")
        market = make_market(status=status)

        with pytest.raises(NotFoundError) as exc_info:
            svc.register_for_market(market.id, "seller-1", now=now)
        assert exc_info.value.code == "MARKET_NOT_OPEN"

    def test_already_registered(self, svc, make_seller, make_market, now):
        make_seller("seller-1")
        market = make_market()
        svc.register_for_market(market.id, "seller-1", now=now)

        with pytest.raises(StateConflictError) as exc_info:
            svc.register_for_market(market.id, "seller-1", now=now)
        assert exc_info.value.code == "ALREADY_REGISTERED"

    def test_full_market(self, svc, db, make_seller, make_market, now):
        make_seller("seller-1")
        make_seller("seller-2")
        market = make_market(max_vendors=1)
        svc.register_for_market(market.id, "seller-1", now=now)

        with pytest.raises(StateConflictError) as exc_info:
            svc.register_for_market(market.id, "seller-2", now=now)

        assert exc_info.value.code == "MARKET_FULL"
        assert exc_info.value.retryable is True
        assert _enrollment_rows(db, market.id) == 1

    def test_exhausted_hanger_pool_blocks_registration(self, svc, make_seller, make_market, now):
        make_seller("seller-1")
        make_seller("seller-2")
        market = make_market(max_vendors=5, max_hangers=4)
        svc.register_for_market(market.id, "seller-1", now=now)
        svc.create_hanger_rental(market.id, "seller-1", 4, now=now)

        with pytest.raises(StateConflictError) as exc_info:
            svc.register_for_market(market.id, "seller-2", now=now)
        assert exc_info.value.code == "MARKET_FULL"

    def test_stale_check_admits_exactly_capacity(self, svc, db, make_seller, make_market, stale_precheck, now):
        for seller_id in ("seller-1", "seller-2", "seller-3"):
            make_seller(seller_id)
        market = make_market(max_vendors=2)

        svc.register_for_market(market.id, "seller-1", now=now)
        svc.register_for_market(market.id, "seller-2", now=now)
        with pytest.raises(StateConflictError) as exc_info:
            svc.register_for_market(market.id, "seller-3", now=now)

        assert exc_info.value.code == "MARKET_FULL"
        assert _enrollment_rows(db, market.id) == 2
        assert not svc.is_registered(market.id, "seller-3")
        db.refresh(market)
        assert market.current_vendors == 2

    def test_lower_id_committed_after_admitted_higher_id(
        self, svc, db, make_seller, make_market, stale_precheck, sequence_ids, now
    ):
        make_seller("seller-1")
        make_seller("seller-2")
        market = make_market(max_vendors=1)
        # seller-2 dostal nizsze id z sekwencji, ale commituje po przyjeciu seller-1
        sequence_ids(MarketRepo, "insert_enrollment", [10, 5])

        admitted = svc.register_for_market(market.id, "seller-1", now=now)
        with pytest.raises(StateConflictError) as exc_info:
            svc.register_for_market(market.id, "seller-2", now=now)

        assert admitted.id == 10
        assert exc_info.value.code == "MARKET_FULL"
        assert _enrollment_rows(db, market.id) == 1
        assert svc.is_registered(market.id, "seller-1")
        assert not svc.is_registered(market.id, "seller-2")


class TestCapacityQueries:
    def test_capacity_counts_live_rows(self, svc, make_seller, make_market, now):
        make_seller("seller-1")
        market = make_market(max_vendors=2, max_hangers=10)
        svc.register_for_market(market.id, "seller-1", now=now)
        svc.create_hanger_rental(market.id, "seller-1", 3, now=now)

        capacity = svc.get_capacity(market.id)

        assert capacity["vendors"] == {"max": 2, "current": 1, "available": 1}
        assert capacity["hangers"] == {"max": 10, "current": 3, "available": 7}

    def test_capacity_of_unknown_market(self, svc):
        with pytest.raises(NotFoundError) as exc_info:
            svc.get_capacity(404)
        assert exc_info.value.code == "MARKET_NOT_FOUND"

    def test_list_markets_by_status(self, svc, make_market):
        make_market(name="Open")
        make_market(name="Past", status=MARKET_COMPLETED)

        assert [m["name"] for m in svc.list_markets()] == ["Open"]
        assert sorted(m["name"] for m in svc.list_markets(None)) == ["Open", "Past"]

    def test_list_markets_includes_capacity(self, svc, make_seller, make_market, now):
        make_seller("seller-1")
        market = make_market(max_vendors=3, max_hangers=20)
        svc.register_for_market(market.id, "seller-1", now=now)
        svc.create_hanger_rental(market.id, "seller-1", 5, now=now)

        [view] = svc.list_markets()

        assert view["capacity"] == {
            "max_vendors": 3,
            "current_vendors": 1,
            "available_spots": 2,
            "max_hangers": 20,
            "current_hangers": 5,
            "available_hangers": 15,
        }

    def test_enrolled_markets(self, svc, make_seller, make_market, now):
        make_seller("seller-1")
        joined = make_market(name="Joined")
        make_market(name="Other")
        svc.register_for_market(joined.id, "seller-1", now=now)

        assert [m["name"] for m in svc.list_enrolled_markets("seller-1")] == ["Joined"]
        assert svc.list_enrolled_markets("seller-2") == []
        assert svc.is_registered(joined.id, "seller-1")
        assert not svc.is_registered(joined.id, "seller-2")
