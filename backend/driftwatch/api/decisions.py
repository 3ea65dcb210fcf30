"""
Decisions API Router.

Runs drift evaluation and exposes the review workflow for its decisions.
"""
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from driftwatch.api.schemas import CamelModel
from driftwatch.core.database import get_db
from driftwatch.core.errors import DecisionConflictError
from driftwatch.models.decision import Decision, DecisionStatus
from driftwatch.services.decision_payloads import DecisionPayload, load_payload
from driftwatch.services.decision_service import DecisionService
from driftwatch.services.drift_decision_service import DriftDecisionService
from driftwatch.services.rebalance import rebalance_suggestions

router = APIRouter()


# ---------- Pydantic Schemas ----------

class DecisionOut(CamelModel):
    id: int
    decision_type: str
    status: DecisionStatus
    rationale: str
    payload: dict[str, Any]
    created_at: datetime
    updated_at: datetime


class RunResponse(CamelModel):
    created: int
    evaluated: int


class StatusUpdate(CamelModel):
    status: DecisionStatus


class UpdatedResponse(CamelModel):
    updated: int


def _to_out(decision: Decision) -> DecisionOut:
    payload = load_payload(decision.decision_type, decision.payload)
    return DecisionOut(
        id=decision.id,
        decision_type=decision.decision_type,
        status=decision.status,
        rationale=decision.rationale,
        payload=payload.to_json() if isinstance(payload, DecisionPayload) else payload,
        created_at=decision.created_at,
        updated_at=decision.updated_at,
    )


# ---------- Endpoints ----------

@router.post("/run", response_model=RunResponse)
async def run_decisions(db: AsyncSession = Depends(get_db)):
    """Evaluate portfolio drift once and open decisions for new drift."""
    result = await DriftDecisionService(db).evaluate()
    return RunResponse(**result.to_dict())


@router.get("", response_model=list[DecisionOut])
async def list_decisions(
    status: Optional[DecisionStatus] = None,
    db: AsyncSession = Depends(get_db),
):
    """Newest decisions first (max 200), optionally filtered by status."""
    decisions = await DecisionService(db).list_by_status(status)
    return [_to_out(d) for d in decisions]


@router.get("/rebalance")
async def get_rebalance_suggestions(db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    """Trades that would restore target weights for each open drift decision."""
    decisions = await DecisionService(db).list_by_status()
    return rebalance_suggestions(decisions)


@router.post("/{decision_id}/status", response_model=UpdatedResponse)
async def update_decision_status(
    decision_id: int,
    body: StatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    try:
        updated = await DecisionService(db).update_status(decision_id, body.status)
    except DecisionConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.code)
    return UpdatedResponse(updated=updated)
