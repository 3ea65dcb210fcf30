"""Shared fixtures: an isolated in-memory database per test and fakes for external feeds."""

import os

# Must be set before driftwatch.core.database creates the global engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import date
from typing import Dict, Union

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from driftwatch.core.database import init_db
from driftwatch.core.errors import PriceFetchError
from driftwatch.models import Holding, PricePoint
from driftwatch.services.market_data import DailyClose, PriceProvider
from driftwatch.services.symbol_directory import SymbolAllowList, SymbolDirectory

NASDAQ_LISTED_URL = "https://symbols.test/nasdaqlisted.txt"
OTHER_LISTED_URL = "https://symbols.test/otherlisted.txt"

NASDAQ_LISTED = (
    "Symbol|Security Name|Market Category|Test Issue|Financial Status|Round Lot Size|ETF|NextShares\n"
    "QQQ|Invesco QQQ Trust, Series 1|G|N|N|100|Y|N\n"
    "AAPL|Apple Inc. - Common Stock|Q|N|N|100|N|N\n"
    "ZZZT|Test ETF|G|Y|N|100|Y|N\n"
    "File Creation Time: 0101202400:00|||||||\n"
)

OTHER_LISTED = (
    "ACT Symbol|Security Name|Exchange|CQS Symbol|ETF|Round Lot Size|Test Issue|NASDAQ Symbol\n"
    "SPY|SPDR S&P 500 ETF Trust|P|SPY|Y|100|N|SPY\n"
    "VTI|Vanguard Total Stock Market ETF|P|VTI|Y|100|N|VTI\n"
    "TLT|iShares 20+ Year Treasury Bond ETF|Q|TLT|Y|100|N|TLT\n"
    "IBM|International Business Machines Corporation|N|IBM|N|100|N|IBM\n"
)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory SQLite database with schema and default settings."""
    eng = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


async def add_holding(session, symbol: str, shares: float, target_weight: float, label=None) -> Holding:
    holding = Holding(symbol=symbol, shares=shares, target_weight=target_weight, label=label)
    session.add(holding)
    await session.commit()
    return holding


async def add_price(session, symbol: str, day: date, close: float, source: str = "test") -> None:
    session.add(PricePoint(symbol=symbol, date=day, close=close, source=source))
    await session.commit()


# =============================================================================
# External Feed Fakes
# =============================================================================


class FakePriceProvider(PriceProvider):
    """Returns canned closes; symbols without a quote fail like a real provider."""

    name = "fake"

    def __init__(self, quotes: Dict[str, Union[DailyClose, Exception]]):
        self.quotes = quotes
        self.calls: list[str] = []

    async def fetch_latest_close(self, symbol: str) -> DailyClose:
        self.calls.append(symbol)
        quote = self.quotes.get(symbol)
        if quote is None:
            raise PriceFetchError("no_quote")
        if isinstance(quote, Exception):
            raise quote
        return quote


def symbol_list_transport(status_code: int = 200) -> httpx.MockTransport:
    bodies = {NASDAQ_LISTED_URL: NASDAQ_LISTED, OTHER_LISTED_URL: OTHER_LISTED}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=bodies.get(str(request.url), ""))

    return httpx.MockTransport(handler)


@pytest.fixture
def symbol_directory():
    return SymbolDirectory(
        urls=[NASDAQ_LISTED_URL, OTHER_LISTED_URL],
        transport=symbol_list_transport(),
    )


@pytest.fixture
def allow_list(symbol_directory):
    return SymbolAllowList(symbol_directory)
