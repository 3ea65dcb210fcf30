"""
Listed-ETF symbol directory.

Downloads the Nasdaq Trader symbol files and keeps the ETF symbols in memory
for ``SYMBOL_LIST_TTL_SEC``. The directory is created once per process
(``symbol_directory``), loaded lazily on first use and reloaded after the TTL
expires. Concurrent callers that arrive while a reload is running await the
same fetch instead of starting their own.
"""

import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional

import httpx

from driftwatch.core.config import settings
from driftwatch.core.errors import SymbolListUnavailableError, SymbolNotAllowedError

logger = logging.getLogger(__name__)


def parse_symbol_list(text: str) -> Dict[str, str]:
    """
    Parse a pipe-delimited Nasdaq Trader file into {SYMBOL: security name}.

    Only ETF rows are kept; test issues and the trailer line are skipped.
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        return {}

    header = [h.strip().lower() for h in lines[0].split("|")]
    if "symbol" in header:
        symbol_idx = header.index("symbol")
    elif "act symbol" in header:
        symbol_idx = header.index("act symbol")
    else:
        return {}
    if "etf" not in header:
        return {}
    etf_idx = header.index("etf")
    test_idx = header.index("test issue") if "test issue" in header else -1
    name_idx = header.index("security name") if "security name" in header else -1

    symbols: Dict[str, str] = {}
    for line in lines[1:]:
        if line.startswith("File Creation Time"):
            continue
        parts = line.split("|")
        if len(parts) <= max(symbol_idx, etf_idx, test_idx):
            continue
        if test_idx != -1 and parts[test_idx] == "Y":
            continue
        if parts[etf_idx] != "Y":
            continue
        symbol = parts[symbol_idx].strip()
        if not symbol:
            continue
        name = parts[name_idx].strip() if name_idx != -1 and name_idx < len(parts) else ""
        symbols[symbol.upper()] = name
    return symbols


class SymbolDirectory:
    """Single-flight, TTL-bounded cache of allowed symbols and their names."""

    def __init__(
        self,
        urls: Optional[List[str]] = None,
        ttl_sec: Optional[float] = None,
        timeout_sec: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.urls = list(settings.SYMBOL_LIST_URLS if urls is None else urls)
        self.ttl_sec = settings.SYMBOL_LIST_TTL_SEC if ttl_sec is None else ttl_sec
        self.timeout_sec = (
            settings.SYMBOL_LIST_TIMEOUT_SEC if timeout_sec is None else timeout_sec
        )
        self._transport = transport
        self._clock = clock
        self._symbols: Optional[Dict[str, str]] = None
        self._fetched_at: float = 0.0
        self._in_flight: Optional[asyncio.Task] = None
        self.fetch_count = 0

    def _is_fresh(self) -> bool:
        return (
            self._symbols is not None
            and self._clock() - self._fetched_at < self.ttl_sec
        )

    async def load(self) -> Dict[str, str]:
        """
        Return the cached directory, fetching it if missing or expired.

        Raises:
            SymbolListUnavailableError: If the fetch fails. Failures are not cached.
        """
        if self._is_fresh():
            return self._symbols

        task = self._in_flight
        if task is None:
            task = asyncio.ensure_future(self._refresh())
            self._in_flight = task
        try:
            return await asyncio.shield(task)
        finally:
            if self._in_flight is task and task.done():
                self._in_flight = None

    def invalidate(self) -> None:
        """Drop the cached directory; the next load fetches again."""
        self._symbols = None
        self._fetched_at = 0.0

    async def _refresh(self) -> Dict[str, str]:
        self.fetch_count += 1
        try:
            symbols = await self._fetch()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Symbol list fetch failed: %s", e)
            raise SymbolListUnavailableError(str(e)) from e

        self._symbols = symbols
        self._fetched_at = self._clock()
        logger.info("Loaded %d listed ETF symbols", len(symbols))
        return symbols

    async def _fetch(self) -> Dict[str, str]:
        headers = {"user-agent": settings.HTTP_USER_AGENT}
        async with httpx.AsyncClient(
            timeout=self.timeout_sec, headers=headers, transport=self._transport
        ) as client:
            responses = await asyncio.gather(*(client.get(url) for url in self.urls))

        merged: Dict[str, str] = {}
        for response in responses:
            if response.status_code != 200:
                raise ValueError(f"symbol_list_http_{response.status_code}")
            for symbol, name in parse_symbol_list(response.text).items():
                if not merged.get(symbol):
                    merged[symbol] = name
        return merged


class SymbolAllowList:
    """Holding allow-list backed by a ``SymbolDirectory``."""

    def __init__(self, directory: SymbolDirectory):
        self.directory = directory

    async def ensure_allowed(self, symbol: str) -> None:
        """
        Raises:
            SymbolNotAllowedError: If the symbol is not a listed ETF
            SymbolListUnavailableError: If the directory cannot be loaded
        """
        symbols = await self.directory.load()
        if symbol.upper() not in symbols:
            raise SymbolNotAllowedError(symbol)

    async def lookup_label(self, symbol: str) -> Optional[str]:
        """Human-readable name for a symbol, or None when unknown or unavailable."""
        try:
            symbols = await self.directory.load()
        except SymbolListUnavailableError:
            return None
        return symbols.get(symbol.upper()) or None


# Process-wide directory shared by all requests
symbol_directory = SymbolDirectory()


def get_allow_list() -> SymbolAllowList:
    """FastAPI dependency for the process-wide allow-list."""
    return SymbolAllowList(symbol_directory)
