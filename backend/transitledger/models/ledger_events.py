from sqlalchemy import BigInteger, Column, DateTime, Integer, Text, UniqueConstraint
from sqlalchemy.sql import func
from transitledger.core.db import Base
from transitledger.models.types import JsonPayload

class LedgerEvent(Base):
    __tablename__ = "ledger_events"
    __table_args__ = (UniqueConstraint("subsystem", "seq", name="uq_ledger_events_subsystem_seq"),)

    id = Column(Integer, primary_key=True, autoincrement=True)

    subsystem = Column(Text, nullable=False, index=True)   # "registry" / "reliability"
    seq = Column(BigInteger, nullable=False)

    event_name = Column(Text, nullable=False, index=True)
    actor = Column(Text, nullable=False, index=True)
    subject_id = Column(BigInteger, nullable=True, index=True)
    payload = Column(JsonPayload, nullable=False, default=dict)

    prev_hash = Column(Text, nullable=False)
    entry_hash = Column(Text, nullable=False, unique=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
