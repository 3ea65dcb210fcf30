"""
Admin API Router.

Provides endpoints for managing evaluation settings.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from driftwatch.api.schemas import CamelModel
from driftwatch.core.database import get_db
from driftwatch.services.settings_service import SettingsService

router = APIRouter()


# ---------- Pydantic Schemas ----------

class DriftThreshold(CamelModel):
    """Absolute weight delta (0..1) at which a holding counts as drifted."""
    pct: float = Field(ge=0, le=1, allow_inf_nan=False)


# ---------- Endpoints ----------

@router.get("/drift-threshold", response_model=DriftThreshold)
async def get_drift_threshold(db: AsyncSession = Depends(get_db)):
    """Effective threshold; falls back to the default when the stored value is unusable."""
    pct = await SettingsService(db).get_drift_threshold()
    return DriftThreshold(pct=pct)


@router.put("/drift-threshold", response_model=DriftThreshold)
async def update_drift_threshold(body: DriftThreshold, db: AsyncSession = Depends(get_db)):
    try:
        pct = await SettingsService(db).set_drift_threshold(body.pct)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return DriftThreshold(pct=pct)
