from sqlalchemy import BigInteger, Column, String
from transitledger.core.db import Base
from transitledger.models.arrivals import TEXT_FIELD_MAX_LEN

BIGINT_MAX = 2**63 - 1

class RouteDayAgg(Base):
    __tablename__ = "route_day_agg"

    route = Column(String(TEXT_FIELD_MAX_LEN), primary_key=True)
    service_date = Column(BigInteger, primary_key=True)

    n_arrivals = Column(BigInteger, nullable=False)
    n_on_time = Column(BigInteger, nullable=False)
    sum_deviation = Column(BigInteger, nullable=False)
    sum_abs_deviation = Column(BigInteger, nullable=False)
    total_dwell = Column(BigInteger, nullable=False)
