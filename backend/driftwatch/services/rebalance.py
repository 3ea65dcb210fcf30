"""
Rebalance suggestions derived from open drift decisions.

Informational only: nothing here places orders.
"""

from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from driftwatch.models.decision import Decision, OPEN_STATUSES
from driftwatch.services.decision_payloads import DRIFT_DECISION_TYPE, DriftPayload


def suggest_trade(payload: DriftPayload) -> Dict[str, Any]:
    """Trade that would bring one holding back to its target weight at the recorded close."""
    target_value = payload.portfolio_value * payload.target_weight
    delta_value = target_value - payload.market_value
    shares_delta = delta_value / payload.last_close if payload.last_close > 0 else None

    return {
        "symbol": payload.symbol,
        "action": "buy" if delta_value >= 0 else "sell",
        "targetValue": round(target_value, 2),
        "currentValue": round(payload.market_value, 2),
        "deltaValue": round(delta_value, 2),
        "lastClose": payload.last_close,
        "sharesDelta": round(shares_delta, 4) if shares_delta is not None else None,
    }


def rebalance_suggestions(decisions: Iterable[Decision]) -> List[Dict[str, Any]]:
    suggestions = []
    for decision in decisions:
        if decision.decision_type != DRIFT_DECISION_TYPE or decision.status not in OPEN_STATUSES:
            continue
        try:
            payload = DriftPayload.model_validate(decision.payload)
        except ValidationError:
            raw = decision.payload if isinstance(decision.payload, dict) else {}
            symbol = raw.get("symbol") or "unknown"
            suggestions.append({
                "decisionId": decision.id,
                "symbol": symbol,
                "status": "insufficient_data",
                "reason": "missing portfolioValue, targetWeight, or marketValue",
            })
            continue
        suggestions.append({"decisionId": decision.id, **suggest_trade(payload)})
    return suggestions
