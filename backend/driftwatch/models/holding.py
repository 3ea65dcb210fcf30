from sqlalchemy import Column, String, Float
from driftwatch.core.database import Base
from driftwatch.models.base import CreatedAtMixin, IdMixin

class Holding(Base, IdMixin, CreatedAtMixin):
    """
    A tracked position and its target portfolio weight.
    Symbols are stored uppercase and are unique.
    """
    __tablename__ = "holdings"

    symbol = Column(String(12), nullable=False, unique=True)
    label = Column(String(120), nullable=True)
    shares = Column(Float, nullable=False)
    target_weight = Column(Float, nullable=False)  # 0..1
