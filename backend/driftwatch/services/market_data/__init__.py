from typing import Dict, Optional, Type
from driftwatch.core.config import settings
from driftwatch.services.market_data.base import DailyClose, PriceProvider
from driftwatch.services.market_data.stooq_provider import StooqProvider
from driftwatch.services.market_data.yfinance_provider import YFinanceProvider

PROVIDERS: Dict[str, Type[PriceProvider]] = {
    StooqProvider.name: StooqProvider,
    YFinanceProvider.name: YFinanceProvider,
}


def get_price_provider(name: Optional[str] = None) -> PriceProvider:
    """Instantiate the named provider, or the one set by PRICE_PROVIDER."""
    name = name or settings.PRICE_PROVIDER
    try:
        provider_class = PROVIDERS[name]
    except KeyError:
        raise ValueError(f"Unknown price provider: {name}") from None
    return provider_class()


__all__ = [
    "DailyClose",
    "PriceProvider",
    "StooqProvider",
    "YFinanceProvider",
    "PROVIDERS",
    "get_price_provider",
]
