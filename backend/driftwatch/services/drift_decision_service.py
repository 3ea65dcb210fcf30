"""
Drift decision engine.

Values every holding at its latest close, compares the resulting portfolio
weight with the holding's target weight, and opens a ``portfolio.drift``
decision for each holding whose absolute delta reaches the configured
threshold.

Only holdings with a price take part: they form both the numerator and the
denominator of the weight, so an unpriced holding neither counts as drift nor
dilutes the others.

A decision is not opened twice for the same (symbol, close date) while an
earlier one is still open, acknowledged or snoozed. Runs in this process are
serialized per decision type; across processes the partial unique index on
``decisions`` rejects the duplicate and the holding is skipped.
"""

import asyncio
import logging
from dataclasses import dataclass, asdict
from decimal import ROUND_HALF_UP, Decimal
from datetime import date
from typing import Dict, Iterable, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from driftwatch.models.decision import DecisionStatus
from driftwatch.models.holding import Holding
from driftwatch.services.decision_payloads import DRIFT_DECISION_TYPE, DriftPayload
from driftwatch.services.decision_service import DecisionService
from driftwatch.services.holdings_service import HoldingsService
from driftwatch.services.price_service import LatestPrice, PriceService
from driftwatch.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

_evaluation_locks: Dict[str, asyncio.Lock] = {}


def _evaluation_lock(decision_type: str) -> asyncio.Lock:
    lock = _evaluation_locks.get(decision_type)
    if lock is None:
        lock = _evaluation_locks[decision_type] = asyncio.Lock()
    return lock


@dataclass(frozen=True)
class ValuedHolding:
    symbol: str
    shares: float
    target_weight: float
    last_close: float
    last_close_date: date

    @property
    def market_value(self) -> float:
        return self.shares * self.last_close


@dataclass
class DriftEvaluationResult:
    created: int = 0
    evaluated: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def value_holdings(holdings: Iterable[Holding], prices: Iterable[LatestPrice]) -> List[ValuedHolding]:
    """Join holdings to their latest price by uppercase symbol; unpriced holdings are dropped."""
    price_by_symbol = {p.symbol.upper(): p for p in prices}
    valued = []
    for holding in holdings:
        price = price_by_symbol.get(holding.symbol.upper())
        if price is None:
            continue
        valued.append(
            ValuedHolding(
                symbol=holding.symbol,
                shares=holding.shares,
                target_weight=holding.target_weight,
                last_close=price.close,
                last_close_date=price.date,
            )
        )
    return sorted(valued, key=lambda v: v.symbol)


def drift_rationale(symbol: str, delta: float) -> str:
    direction = "overweight" if delta > 0 else "underweight"
    # Half-up on the exact binary value, so a tie such as 15.625 reads 15.63
    pct = Decimal(abs(delta) * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{symbol} is {direction} by {pct}% vs target."


class DriftDecisionService:
    """Runs one drift evaluation against the stores bound to ``session``."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.holdings = HoldingsService(session)
        self.prices = PriceService(session)
        self.settings = SettingsService(session)
        self.decisions = DecisionService(session)

    async def evaluate(self) -> DriftEvaluationResult:
        async with _evaluation_lock(DRIFT_DECISION_TYPE):
            return await self._evaluate()

    async def _evaluate(self) -> DriftEvaluationResult:
        holdings = await self.holdings.list_holdings()
        if not holdings:
            return DriftEvaluationResult()

        threshold = await self.settings.get_drift_threshold()
        latest = await self.prices.latest_per_symbol()

        valued = value_holdings(holdings, latest)
        result = DriftEvaluationResult(evaluated=len(valued))

        portfolio_value = sum(v.market_value for v in valued)
        if portfolio_value <= 0:
            logger.info("Portfolio has no measurable value; %d holdings priced", len(valued))
            return result

        for v in valued:
            current_weight = v.market_value / portfolio_value
            delta = current_weight - v.target_weight
            if abs(delta) < threshold:
                continue

            existing = await self.decisions.count_open(
                DRIFT_DECISION_TYPE, v.symbol, v.last_close_date
            )
            if existing > 0:
                logger.debug("Open drift decision exists for %s on %s", v.symbol, v.last_close_date)
                continue

            payload = DriftPayload(
                symbol=v.symbol,
                target_weight=v.target_weight,
                current_weight=current_weight,
                delta=delta,
                shares=v.shares,
                last_close=v.last_close,
                last_close_date=v.last_close_date,
                market_value=v.market_value,
                portfolio_value=portfolio_value,
            )
            try:
                await self.decisions.insert(
                    DecisionStatus.OPEN, drift_rationale(v.symbol, delta), payload
                )
                await self.session.commit()
            except IntegrityError:
                # Another writer opened the same subject between our check and insert
                await self.session.rollback()
                logger.info("Skipped duplicate drift decision for %s on %s", v.symbol, v.last_close_date)
                continue
            result.created += 1

        logger.info(
            "Drift evaluation: %d created, %d evaluated (threshold=%.4f, portfolio_value=%.2f)",
            result.created, result.evaluated, threshold, portfolio_value,
        )
        return result
