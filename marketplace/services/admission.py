# marketplace/services/admission.py
"""
Optymistyczne przyjecie z kompensacja: act -> recheck -> compensate.

1. act() robi zapis (insert / update) i commituje - od tej chwili widza go inni
2. recheck(row) czyta zywy stan; odczyty sa idempotentne (store_retry w repo)
3. jesli recheck odrzuci albo sie wywali, compensate(row) MUSI dojsc do konca
   zanim zwrocimy blad - nie zostawiamy wiersza dla odrzuconego przyjecia

Calej sekwencji nigdy nie powtarzamy - po nieudanym przyjeciu decyduje klient.
"""
from dataclasses import dataclass
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from marketplace.exceptions import StateConflictError, TransientStoreError
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Verdict:
    admitted: bool
    message: str = ""
    code: str = ""
    retryable: bool = False
    # przekroczenie, ktore moze jeszcze zniknac po kompensacji konkurentow
    pending: bool = False

    @classmethod
    def accept(cls) -> "Verdict":
        return cls(admitted=True)

    @classmethod
    def reject(cls, message: str, code: str, retryable: bool = False) -> "Verdict":
        return cls(admitted=False, message=message, code=code, retryable=retryable)

    @classmethod
    def unsettled(cls, message: str, code: str, retryable: bool = False) -> "Verdict":
        return cls(admitted=False, message=message, code=code, retryable=retryable, pending=True)


def _compensate(compensate: Callable[[T], object], row: T, label: str) -> None:
    try:
        compensate(row)
    except SQLAlchemyError as e:
        # wiersz zostal w bazie - kolejne rechecki i tak go uwzglednia
        logger.critical(f"[{label}] compensation failed, optimistic row left behind: {e}")
        raise TransientStoreError(
            "Could not complete the operation, please try again"
        ) from e
    logger.info(f"[{label}] compensation done")


def admit(
    act: Callable[[], T],
    recheck: Callable[[T], Verdict],
    compensate: Callable[[T], object],
    label: str = "admission",
) -> T:
    row = act()

    try:
        verdict = recheck(row)
    except SQLAlchemyError as e:
        logger.error(f"[{label}] recheck failed ({e}), compensating")
        _compensate(compensate, row, label)
        raise TransientStoreError(
            "Could not verify capacity, please try again"
        ) from e
    except Exception:
        logger.exception(f"[{label}] recheck crashed, compensating")
        _compensate(compensate, row, label)
        raise

    if not verdict.admitted:
        logger.info(f"[{label}] rejected after recheck: {verdict.code}, compensating")
        _compensate(compensate, row, label)
        raise StateConflictError(verdict.message, code=verdict.code, retryable=verdict.retryable)

    return row
