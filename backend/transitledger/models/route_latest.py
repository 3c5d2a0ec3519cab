from sqlalchemy import BigInteger, Column, ForeignKey, String
from transitledger.core.db import Base
from transitledger.models.schedules import ROUTE_MAX_LEN

class RouteLatest(Base):
    __tablename__ = "route_latest"

    route = Column(String(ROUTE_MAX_LEN), primary_key=True)

    # Most recent publish in call order, not the highest version.
    schedule_id = Column(BigInteger, ForeignKey("schedules.id"), nullable=False)
    version = Column(BigInteger, nullable=False)
