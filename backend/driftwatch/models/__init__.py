# Base
from driftwatch.models.base import CreatedAtMixin, IdMixin, TimestampMixin, utcnow

# Portfolio
from driftwatch.models.holding import Holding
from driftwatch.models.price_point import PricePoint

# Review workflow
from driftwatch.models.decision import Decision, DecisionStatus, OPEN_STATUSES

# Configuration
from driftwatch.models.app_setting import AppSetting

__all__ = [
    "CreatedAtMixin",
    "TimestampMixin",
    "utcnow",
    "IdMixin",
    "Holding",
    "PricePoint",
    "Decision",
    "DecisionStatus",
    "OPEN_STATUSES",
    "AppSetting",
]
