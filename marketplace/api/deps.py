# marketplace/api/deps.py
import hmac

import requests
from fastapi import Depends, Header, Query

from marketplace.exceptions import AuthError, AuthProviderError, MarketplaceError
from marketplace.services.auth_client import AuthClient
from marketplace.utils import settings
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def get_auth_client() -> AuthClient:
    return AuthClient()


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_optional_user_id(
    authorization: str | None = Header(None),
    auth_client: AuthClient = Depends(get_auth_client),
) -> str | None:
    token = _bearer_token(authorization)
    if not token:
        return None

    try:
        user = auth_client.fetch_user(token)
    except requests.RequestException as e:
        logger.error(f"Auth provider unavailable: {e}")
        raise AuthProviderError("Authentication provider unavailable, please try again")

    if not user or not user.get("id"):
        return None
    return str(user["id"])


def get_current_user_id(user_id: str | None = Depends(get_optional_user_id)) -> str:
    if user_id is None:
        raise AuthError("Not authenticated")
    return user_id


def _check_cron_secret(provided: str | None) -> None:
    expected = settings.CRON_SECRET
    if not expected:
        logger.error("CRON_SECRET environment variable is not set")
        raise MarketplaceError("Cron job not configured", code="CRON_NOT_CONFIGURED")

    if not provided or not hmac.compare_digest(provided, expected):
        logger.warning("Cron call with invalid secret")
        raise AuthError("Unauthorized", code="UNAUTHORIZED")


def require_cron_secret(authorization: str | None = Header(None)) -> None:
    _check_cron_secret(_bearer_token(authorization))


def require_cron_secret_or_query(
    authorization: str | None = Header(None),
    secret: str | None = Query(None),
) -> None:
    #pg_cron / zewnetrzne crony czasem nie umieja ustawic naglowka
    _check_cron_secret(_bearer_token(authorization) or secret)
