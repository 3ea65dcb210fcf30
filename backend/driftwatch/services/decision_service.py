"""
Decision store access.

Decisions are immutable apart from their review status.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from driftwatch.core.errors import DecisionConflictError
from driftwatch.models.base import utcnow
from driftwatch.models.decision import Decision, DecisionStatus, OPEN_STATUSES
from driftwatch.services.decision_payloads import DecisionPayload

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 200


class DecisionService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def count_open(self, decision_type: str, symbol: str, as_of_date: date) -> int:
        """Open-state decisions of a type for one (symbol, as-of date) subject."""
        stmt = select(func.count(Decision.id)).where(
            Decision.decision_type == decision_type,
            Decision.status.in_(OPEN_STATUSES),
            Decision.subject_symbol == symbol,
            Decision.as_of_date == as_of_date,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def insert(
        self,
        status: DecisionStatus,
        rationale: str,
        payload: DecisionPayload,
    ) -> int:
        """
        Insert a decision and return its id.

        The decision type comes from the payload variant.

        Raises:
            IntegrityError: If an open-state decision for the same subject exists
        """
        symbol, as_of = payload.subject()
        now = utcnow()
        decision = Decision(
            decision_type=payload.decision_type,
            status=DecisionStatus(status).value,
            rationale=rationale,
            payload=payload.to_json(),
            subject_symbol=symbol,
            as_of_date=as_of,
            created_at=now,
            updated_at=now,
        )
        self.session.add(decision)
        await self.session.flush()
        return decision.id

    async def get(self, decision_id: int) -> Optional[Decision]:
        return await self.session.get(Decision, decision_id)

    async def list_by_status(
        self,
        status: Optional[DecisionStatus] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> List[Decision]:
        """Newest first, optionally filtered by status."""
        stmt = select(Decision)
        if status is not None:
            stmt = stmt.where(Decision.status == DecisionStatus(status).value)
        stmt = stmt.order_by(Decision.created_at.desc(), Decision.id.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_status(self, decision_id: int, status: DecisionStatus) -> int:
        """
        Move a decision to a new review status.

        Returns:
            Number of rows updated (0 if the id does not exist)

        Raises:
            DecisionConflictError: If re-opening would create a second
                open-state decision for the same subject
        """
        stmt = (
            update(Decision)
            .where(Decision.id == decision_id)
            .values(status=DecisionStatus(status).value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
        except IntegrityError as e:
            await self.session.rollback()
            logger.info("Rejected status change for decision %s: %s", decision_id, e.orig)
            raise DecisionConflictError(f"decision {decision_id}") from e

        if result.rowcount:
            logger.info("Decision %s moved to %s", decision_id, DecisionStatus(status).value)
        return result.rowcount or 0
