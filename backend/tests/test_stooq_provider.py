from datetime import date

import httpx
import pytest

from driftwatch.core.errors import PriceFetchError
from driftwatch.services.market_data import DailyClose, StooqProvider, get_price_provider
from driftwatch.services.market_data.stooq_provider import parse_stooq_csv

BASE_URL = "https://stooq.test/q/l/"


def _provider(handler) -> StooqProvider:
    return StooqProvider(base_url=BASE_URL, timeout_sec=1, transport=httpx.MockTransport(handler))


def test_parse_reads_last_row():
    text = "Symbol,Date,Close\nSPY.US,2024-05-09,518.10\nSPY.US,2024-05-10,520.84\n"

    assert parse_stooq_csv(text) == DailyClose(date(2024, 5, 10), 520.84)


def test_parse_accepts_lowercase_headers():
    result = parse_stooq_csv("symbol,date,close\nvti.us,2024-05-10,251.3\n")

    assert result.date == date(2024, 5, 10)
    assert result.close == 251.3


@pytest.mark.parametrize(
    "text,code",
    [
        ("", "stooq_empty"),
        ("Symbol,Date,Close\n", "stooq_empty"),
        ("Symbol,Close\nSPY.US,520.84\n", "stooq_bad_csv"),
        ("Symbol,Date,Close\nSPY.US,N/D,N/D\n", "stooq_bad_csv"),
        ("Symbol,Date,Close\nSPY.US,2024-05-10,N/D\n", "stooq_bad_close"),
        ("Symbol,Date,Close\nSPY.US,2024-05-10,0\n", "stooq_bad_close"),
        ("Symbol,Date,Close\nSPY.US,2024-05-10,-3.2\n", "stooq_bad_close"),
    ],
)
def test_parse_rejects_unusable_quotes(text, code):
    with pytest.raises(PriceFetchError) as exc_info:
        parse_stooq_csv(text)

    assert str(exc_info.value) == code
    assert exc_info.value.code == "price_fetch_failed"


async def test_fetch_requests_us_listing_csv():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="Symbol,Date,Close\nSPY.US,2024-05-10,520.84\n")

    result = await _provider(handler).fetch_latest_close("SPY")

    assert result.close == 520.84
    params = seen[0].url.params
    assert params["s"] == "spy.us"
    assert params["f"] == "sd2c"
    assert params["e"] == "csv"
    assert "h" in params
    assert seen[0].headers["user-agent"].startswith("driftwatch/")


async def test_fetch_non_200_is_reported_with_status():
    provider = _provider(lambda request: httpx.Response(503, text="busy"))

    with pytest.raises(PriceFetchError) as exc_info:
        await provider.fetch_latest_close("SPY")

    assert str(exc_info.value) == "stooq_http_503"


async def test_fetch_timeout_is_reported():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(PriceFetchError) as exc_info:
        await _provider(handler).fetch_latest_close("SPY")

    assert str(exc_info.value) == "stooq_timeout"


def test_unknown_provider_name_is_rejected():
    with pytest.raises(ValueError):
        get_price_provider("bloomberg")


def test_provider_lookup_by_name():
    assert get_price_provider("yfinance").name == "yfinance"
    assert isinstance(get_price_provider("stooq"), StooqProvider)
