"""
Prices API Router.
"""
import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from driftwatch.api.schemas import CamelModel
from driftwatch.core.database import get_db
from driftwatch.services.market_data import PriceProvider, get_price_provider
from driftwatch.services.price_service import PriceService

router = APIRouter()


def get_provider() -> PriceProvider:
    """Provider configured by PRICE_PROVIDER."""
    return get_price_provider()


# ---------- Pydantic Schemas ----------

class LatestPriceOut(CamelModel):
    symbol: str
    date: dt.date
    close: float


class RefreshResultOut(CamelModel):
    symbol: str
    ok: bool
    date: Optional[dt.date] = None
    close: Optional[float] = None
    error: Optional[str] = None


class RefreshResponse(CamelModel):
    refreshed: int
    results: list[RefreshResultOut]


# ---------- Endpoints ----------

@router.get("/latest", response_model=list[LatestPriceOut])
async def latest_prices(db: AsyncSession = Depends(get_db)):
    """Most recent close for every symbol in the price store."""
    return await PriceService(db).latest_per_symbol()


@router.post("/refresh", response_model=RefreshResponse, response_model_exclude_none=True)
async def refresh_prices(
    db: AsyncSession = Depends(get_db),
    provider: PriceProvider = Depends(get_provider),
):
    """Fetch the latest close for each held symbol. Per-symbol failures are reported, not raised."""
    return await PriceService(db, provider=provider).refresh_prices()
