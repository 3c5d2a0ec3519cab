from sqlalchemy import BigInteger, Column, DateTime, Integer, Text
from sqlalchemy.sql import func
from transitledger.core.db import Base

class ReliabilitySettings(Base):
    __tablename__ = "reliability_settings"

    # Singleton row; slot is always 1.
    slot = Column(Integer, primary_key=True, default=1)
    late_threshold_seconds = Column(BigInteger, nullable=False)
    updated_by = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
