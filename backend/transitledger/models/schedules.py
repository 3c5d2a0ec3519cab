from sqlalchemy import BigInteger, Boolean, Column, LargeBinary, String, Text
from transitledger.core.db import Base

ROUTE_MAX_LEN = 64
NOTES_MAX_LEN = 1024
CONTENT_HASH_LEN = 32
SIGNATURE_LEN = 65

class Schedule(Base):
    __tablename__ = "schedules"

    id = Column(BigInteger, primary_key=True, autoincrement=False)

    route = Column(String(ROUTE_MAX_LEN), nullable=False, index=True)
    version = Column(BigInteger, nullable=False)
    content_hash = Column(LargeBinary(CONTENT_HASH_LEN), nullable=False)

    publisher = Column(Text, nullable=False, index=True)
    notes = Column(String(NOTES_MAX_LEN), nullable=False, default="")
    timestamp = Column(BigInteger, nullable=False)   # caller-supplied, not checked against wall clock

    # Stored as received; never verified here.
    signature = Column(LargeBinary(SIGNATURE_LEN), nullable=False)

    active = Column(Boolean, nullable=False, default=True)
