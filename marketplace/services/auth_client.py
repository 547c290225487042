# marketplace/services/auth_client.py
import requests

from marketplace.utils.retry import http_retry
from marketplace.utils.settings import AUTH_SERVICE_URL, AUTH_SERVICE_KEY
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class AuthClient:
    """
    Klient zewnetrznego dostawcy auth.
    Nie zarzadzamy sesjami - pytamy tylko czyj jest bearer token.
    """

    def __init__(self, base_url: str | None = None, api_key: str | None = None, timeout: int = 2):
        self.base_url = (base_url or AUTH_SERVICE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else AUTH_SERVICE_KEY
        self.timeout = timeout

    @http_retry()
    def fetch_user(self, access_token: str) -> dict | None:
        url = f"{self.base_url}/auth/v1/user"
        logger.debug(f"AuthClient GET {url}")

        resp = requests.get(
            url,
            headers={
                "Authorization": f"Bearer {access_token}",
                "apikey": self.api_key,
            },
            timeout=self.timeout,
        )

        # niewazny / wygasly token to nie blad sieci - bez retry
        if resp.status_code in (401, 403):
            return None

        resp.raise_for_status()
        return resp.json()
