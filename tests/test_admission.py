import pytest
from sqlalchemy.exc import OperationalError

from marketplace.exceptions import StateConflictError, TransientStoreError
from marketplace.services.admission import Verdict, admit


def _db_down():
    return OperationalError("SELECT 1", {}, Exception("connection lost"))


class Recorder:
    def __init__(self, fail_with=None):
        self.calls = []
        self.fail_with = fail_with

    def __call__(self, row):
        self.calls.append(row)
        if self.fail_with is not None:
            raise self.fail_with


def test_accepted_row_is_returned_without_compensation():
    compensate = Recorder()

    row = admit(lambda: "row-1", lambda row: Verdict.accept(), compensate)

    assert row == "row-1"
    assert compensate.calls == []


def test_rejection_compensates_then_raises_conflict():
    compensate = Recorder()

    with pytest.raises(StateConflictError) as exc_info:
        admit(
            lambda: "row-1",
            lambda row: Verdict.reject("Market is full", "MARKET_FULL", retryable=True),
            compensate,
        )

    assert compensate.calls == ["row-1"]
    assert exc_info.value.code == "MARKET_FULL"
    assert exc_info.value.retryable is True


def test_store_failure_during_recheck_compensates():
    compensate = Recorder()

    def recheck(row):
        raise _db_down()

    with pytest.raises(TransientStoreError):
        admit(lambda: "row-1", recheck, compensate)

    assert compensate.calls == ["row-1"]


def test_unexpected_recheck_error_compensates_and_propagates():
    compensate = Recorder()

    def recheck(row):
        raise ValueError("bad state")

    with pytest.raises(ValueError):
        admit(lambda: "row-1", recheck, compensate)

    assert compensate.calls == ["row-1"]


def test_failed_compensation_surfaces_as_transient_error():
    compensate = Recorder(fail_with=_db_down())

    with pytest.raises(TransientStoreError):
        admit(lambda: "row-1", lambda row: Verdict.reject("full", "MARKET_FULL"), compensate)

    assert compensate.calls == ["row-1"]


def test_act_failure_skips_recheck_and_compensation():
    compensate = Recorder()
    rechecks = []

    def act():
        raise StateConflictError("Already registered", code="ALREADY_REGISTERED")

    with pytest.raises(StateConflictError):
        admit(act, lambda row: rechecks.append(row) or Verdict.accept(), compensate)

    assert rechecks == []
    assert compensate.calls == []
