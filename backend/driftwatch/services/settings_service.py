"""
Settings service for application-level tunables.

Settings are key/value rows whose values are JSON documents. DB values take
precedence over environment defaults; missing keys are seeded on startup.
"""

import json
import logging
import math
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from driftwatch.core.config import settings
from driftwatch.models.app_setting import AppSetting
from driftwatch.models.base import utcnow

logger = logging.getLogger(__name__)

DRIFT_THRESHOLD_KEY = "drift_threshold"


def _defaults() -> Dict[str, Any]:
    return {
        DRIFT_THRESHOLD_KEY: {"pct": settings.DRIFT_THRESHOLD_DEFAULT},
    }


def parse_threshold(raw: Optional[str], default: float) -> float:
    """
    Extract ``pct`` from a stored threshold document.

    Anything unusable (missing, not JSON, not a number, non-finite, outside
    [0, 1]) yields ``default``.
    """
    if raw is None:
        return default
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Drift threshold setting is not valid JSON, using default %s", default)
        return default

    pct = parsed.get("pct") if isinstance(parsed, dict) else None
    if isinstance(pct, bool):
        pct = None
    try:
        value = float(pct)
    except (TypeError, ValueError):
        logger.warning("Drift threshold setting has no numeric pct, using default %s", default)
        return default

    if math.isfinite(value) and 0.0 <= value <= 1.0:
        return value
    logger.warning("Drift threshold %s out of range, using default %s", value, default)
    return default


class SettingsService:
    """CRUD over the settings table, bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, key: str) -> Optional[AppSetting]:
        stmt = select(AppSetting).where(AppSetting.key == key)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def put_json(self, key: str, value: Any) -> AppSetting:
        """Insert or replace a setting value."""
        row = await self.get(key)
        encoded = json.dumps(value)
        if row is None:
            row = AppSetting(key=key, value_json=encoded)
            self.session.add(row)
        else:
            row.value_json = encoded
            row.updated_at = utcnow()
        await self.session.flush()
        logger.info("Setting updated: %s = %s", key, encoded)
        return row

    async def get_drift_threshold(self) -> float:
        """Effective absolute weight delta that counts as drift."""
        row = await self.get(DRIFT_THRESHOLD_KEY)
        return parse_threshold(
            row.value_json if row is not None else None,
            settings.DRIFT_THRESHOLD_DEFAULT,
        )

    async def set_drift_threshold(self, pct: float) -> float:
        """
        Store a new drift threshold.

        Raises:
            ValueError: If pct is not a finite number in [0, 1]
        """
        if not math.isfinite(pct) or not 0.0 <= pct <= 1.0:
            raise ValueError("drift threshold must be between 0 and 1")
        await self.put_json(DRIFT_THRESHOLD_KEY, {"pct": pct})
        return pct

    async def seed_defaults(self) -> int:
        """
        Insert default values for keys that do not exist yet.

        Existing values are never overwritten.

        Returns:
            Number of entries seeded
        """
        seeded = 0
        for key, value in _defaults().items():
            if await self.get(key) is not None:
                continue
            self.session.add(AppSetting(key=key, value_json=json.dumps(value)))
            seeded += 1
            logger.info("Seeded setting: %s", key)

        if seeded > 0:
            await self.session.flush()
        return seeded
