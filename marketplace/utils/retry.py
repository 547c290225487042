# marketplace/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type, retry_if_result
from sqlalchemy.exc import OperationalError
import requests
import redis

from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def http_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(requests.RequestException),
    )


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
    )


def _rollback_session(retry_state):
    #po OperationalError sesja wymaga rollbacku zanim zrobimy kolejny select
    owner = retry_state.args[0] if retry_state.args else None
    db = getattr(owner, "db", None)
    if db is not None:
        db.rollback()
    logger.warning(
        f"Store read {retry_state.fn.__name__} failed "
        f"(attempt {retry_state.attempt_number}), retrying"
    )


def store_retry():
    """
    Tylko dla idempotentnych odczytow (i kompensacji ktora jest idempotentna).
    Insert + kompensacja jako calosc nigdy nie jest powtarzana.
    """
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(OperationalError),
        before_sleep=_rollback_session,
    )


def _last_result(retry_state):
    return retry_state.outcome.result()


def settle_retry():
    """
    Recheck przyjecia: ponawia odczyt dopoki werdykt jest `pending`
    (rownolegli konkurenci jeszcze nie skompensowali swoich wierszy).
    Po wyczerpaniu prob zwraca ostatni werdykt, bez wyjatku.
    """
    return retry(
        stop=stop_after_attempt(10),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        retry=retry_if_result(lambda verdict: verdict.pending),
        retry_error_callback=_last_result,
    )
