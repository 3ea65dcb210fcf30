from sqlalchemy import Column, String, Text, DateTime
from driftwatch.core.database import Base
from driftwatch.models.base import utcnow

class AppSetting(Base):
    """
    Key/value settings. Values are JSON documents stored as text.
    """
    __tablename__ = "settings"

    key = Column(String(100), primary_key=True)
    value_json = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
