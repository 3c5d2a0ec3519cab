from sqlalchemy import BigInteger, Column, ForeignKey, LargeBinary, String
from transitledger.core.db import Base
from transitledger.models.schedules import CONTENT_HASH_LEN, NOTES_MAX_LEN

class ScheduleVersion(Base):
    __tablename__ = "schedule_versions"

    schedule_id = Column(BigInteger, ForeignKey("schedules.id"), primary_key=True)
    version = Column(BigInteger, primary_key=True)

    content_hash = Column(LargeBinary(CONTENT_HASH_LEN), nullable=False)
    notes = Column(String(NOTES_MAX_LEN), nullable=False, default="")
    timestamp = Column(BigInteger, nullable=False)
