from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.orm import declarative_mixin


def utcnow() -> datetime:
    """Current UTC time without tzinfo; every DateTime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@declarative_mixin
class IdMixin:
    id = Column(Integer, primary_key=True, autoincrement=True)


@declarative_mixin
class CreatedAtMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False)


@declarative_mixin
class TimestampMixin(CreatedAtMixin):
    # onupdate only fires for ORM flushes; bulk UPDATEs set updated_at explicitly
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
