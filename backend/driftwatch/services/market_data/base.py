from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class DailyClose:
    """Most recent daily close reported by a provider."""
    date: date
    close: float


class PriceProvider(ABC):
    """Abstract base class for daily close providers."""

    name: str = "unknown"

    @abstractmethod
    async def fetch_latest_close(self, symbol: str) -> DailyClose:
        """
        Fetch the latest daily close for an uppercase symbol.
        Raises PriceFetchError when no usable close is available.
        """
        pass
