from sqlalchemy import Column, String, Date, Float, DateTime
from driftwatch.core.database import Base
from driftwatch.models.base import utcnow

class PricePoint(Base):
    """
    Daily close per symbol. One row per (symbol, date); refreshes overwrite.
    """
    __tablename__ = "prices"

    symbol = Column(String(12), primary_key=True)
    date = Column(Date, primary_key=True)
    close = Column(Float, nullable=False)
    source = Column(String(50), nullable=False)
    ingested_at = Column(DateTime, default=utcnow, nullable=False)
