from sqlalchemy import BigInteger, Column, Text
from transitledger.core.db import Base

class LedgerCounter(Base):
    __tablename__ = "ledger_counters"

    name = Column(Text, primary_key=True)   # "schedules" / "arrivals"
    value = Column(BigInteger, nullable=False, default=0)
