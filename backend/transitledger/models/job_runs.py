import uuid
from sqlalchemy import Column, DateTime, Text, Uuid
from sqlalchemy.sql import func
from transitledger.core.db import Base
from transitledger.models.types import JsonPayload

class JobRun(Base):
    __tablename__ = "job_runs"

    run_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_name = Column(Text, nullable=False, index=True)
    started_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(Text, nullable=False, default="running")
    meta = Column(JsonPayload, nullable=False, default=dict)
