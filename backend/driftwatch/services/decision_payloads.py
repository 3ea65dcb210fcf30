"""
Typed decision payloads.

Decision records store their payload as JSON. The shape of that JSON is
determined by ``decision_type``; each type registers a pydantic model in
``PAYLOAD_MODELS``. To add a new decision type, subclass ``DecisionPayload``,
set ``decision_type`` and call ``register_payload``.
"""

from datetime import date
from typing import Any, ClassVar, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

DRIFT_DECISION_TYPE = "portfolio.drift"


class DecisionPayload(BaseModel):
    """Base for payload variants. JSON field names are camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    decision_type: ClassVar[str]

    def subject(self) -> Tuple[Optional[str], Optional[date]]:
        """(symbol, as-of date) the decision is about, used for de-duplication."""
        return None, None

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class DriftPayload(DecisionPayload):
    """Snapshot of every value used to flag a drift, so the record is self-contained."""

    decision_type: ClassVar[str] = DRIFT_DECISION_TYPE

    symbol: str
    target_weight: float
    current_weight: float
    delta: float  # current - target
    shares: float
    last_close: float
    last_close_date: date
    market_value: float
    portfolio_value: float

    def subject(self) -> Tuple[Optional[str], Optional[date]]:
        return self.symbol, self.last_close_date


PAYLOAD_MODELS: Dict[str, Type[DecisionPayload]] = {}


def register_payload(model: Type[DecisionPayload]) -> Type[DecisionPayload]:
    PAYLOAD_MODELS[model.decision_type] = model
    return model


register_payload(DriftPayload)


def load_payload(decision_type: str, data: Any) -> DecisionPayload | Dict[str, Any]:
    """
    Decode a stored payload into its registered model.

    Unknown decision types come back as the raw dict.
    """
    model = PAYLOAD_MODELS.get(decision_type)
    if model is None:
        return data
    return model.model_validate(data)
