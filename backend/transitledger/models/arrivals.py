from sqlalchemy import BigInteger, Boolean, Column, Index, String
from transitledger.core.db import Base

TEXT_FIELD_MAX_LEN = 64

# Upper bound for actual_ts, scheduled_ts and dwell_seconds. Keeps route/day
# sums inside BIGINT for up to 2**23 arrivals per bucket.
SECONDS_MAX = 2**40 - 1

class Arrival(Base):
    __tablename__ = "arrivals"
    __table_args__ = (Index("ix_arrivals_route_service_date", "route", "service_date"),)

    id = Column(BigInteger, primary_key=True, autoincrement=False)

    route = Column(String(TEXT_FIELD_MAX_LEN), nullable=False)
    stop = Column(String(TEXT_FIELD_MAX_LEN), nullable=False)
    vehicle = Column(String(TEXT_FIELD_MAX_LEN), nullable=False)

    actual_ts = Column(BigInteger, nullable=False)
    scheduled_ts = Column(BigInteger, nullable=False)

    deviation_seconds = Column(BigInteger, nullable=False)       # actual - scheduled, signed
    abs_deviation_seconds = Column(BigInteger, nullable=False)
    on_time = Column(Boolean, nullable=False)                    # threshold at recording time

    dwell_seconds = Column(BigInteger, nullable=False)
    service_date = Column(BigInteger, nullable=False)
