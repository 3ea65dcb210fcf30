import enum
from sqlalchemy import Column, String, Text, Date, JSON, Index, text
from driftwatch.core.database import Base
from driftwatch.models.base import IdMixin, TimestampMixin


class DecisionStatus(str, enum.Enum):
    OPEN = "open"
    ACK = "ack"
    SNOOZED = "snoozed"
    DISMISSED = "dismissed"
    DONE = "done"


# Statuses that still await review. At most one per subject may exist.
OPEN_STATUSES = (DecisionStatus.OPEN.value, DecisionStatus.ACK.value, DecisionStatus.SNOOZED.value)

_OPEN_PREDICATE = text("status IN ('open', 'ack', 'snoozed')")


class Decision(Base, IdMixin, TimestampMixin):
    """
    Reviewable record of a point-in-time evaluation.

    Everything except ``status`` and ``updated_at`` is immutable after insert.
    ``subject_symbol`` and ``as_of_date`` duplicate the payload's subject so
    idempotency checks stay portable across databases.
    """
    __tablename__ = "decisions"
    __table_args__ = (
        Index("ix_decisions_status_created", "status", "created_at"),
        Index(
            "uq_decisions_open_subject",
            "decision_type",
            "subject_symbol",
            "as_of_date",
            unique=True,
            sqlite_where=_OPEN_PREDICATE,
            postgresql_where=_OPEN_PREDICATE,
        ),
    )

    decision_type = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default=DecisionStatus.OPEN.value)
    rationale = Column(Text, nullable=False)
    payload = Column(JSON, nullable=False)
    subject_symbol = Column(String(12), nullable=True)
    as_of_date = Column(Date, nullable=True)
