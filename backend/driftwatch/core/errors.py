"""
Domain exceptions.

Raised by services and translated to HTTP responses by the API routers.
"""


class DriftwatchError(Exception):
    """Base class for domain errors. ``code`` is the machine-readable reason."""

    code = "driftwatch_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)


class SymbolNotAllowedError(DriftwatchError):
    code = "symbol_not_allowed"


class SymbolListUnavailableError(DriftwatchError):
    code = "symbol_list_unavailable"


class HoldingConflictError(DriftwatchError):
    code = "symbol_already_exists"


class DecisionConflictError(DriftwatchError):
    """Another open-state decision already covers the same subject."""

    code = "decision_already_open"


class PriceFetchError(DriftwatchError):
    """A market data provider could not return a usable close."""

    code = "price_fetch_failed"
