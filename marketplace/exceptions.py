# marketplace/exceptions.py
"""
Hierarchia bledow domenowych.

Serwisy rzucaja te wyjatki, routery ich nie lapia - jeden handler w
marketplace.api zamienia je na {"success": false, "error": ..., "code": ...}.
"""


class MarketplaceError(Exception):
    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str = "", code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationError(MarketplaceError):
    """Niepoprawne dane wejsciowe, odrzucone zanim dotkniemy bazy."""

    status_code = 400
    default_code = "VALIDATION_FAILED"


class AuthError(MarketplaceError):
    status_code = 401
    default_code = "NOT_AUTHENTICATED"


class ForbiddenError(AuthError):
    """Uzytkownik znany, ale nie ma prawa do zasobu."""

    status_code = 403
    default_code = "FORBIDDEN"


class NotFoundError(MarketplaceError):
    status_code = 404
    default_code = "NOT_FOUND"


class StateConflictError(MarketplaceError):
    """
    Operacja lamie niezmiennik (juz zarezerwowane, rynek pelny itd.).
    retryable=True gdy ponowna proba moze sie udac (np. MARKET_FULL po kompensacji).
    """

    status_code = 409
    default_code = "CONFLICT"

    def __init__(self, message: str = "", code: str | None = None, retryable: bool = False):
        super().__init__(message, code)
        self.retryable = retryable


class TransientStoreError(MarketplaceError):
    status_code = 503
    default_code = "STORE_UNAVAILABLE"
    retryable = True


class AuthProviderError(MarketplaceError):
    """Dostawca auth nie odpowiada - nie wiemy kim jest uzytkownik."""

    status_code = 503
    default_code = "AUTH_UNAVAILABLE"
    retryable = True
