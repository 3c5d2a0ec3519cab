from sqlalchemy import BigInteger, Column, ForeignKey, String
from transitledger.core.db import Base
from transitledger.models.schedules import ROUTE_MAX_LEN

class RouteVersionIndex(Base):
    __tablename__ = "route_version_index"

    route = Column(String(ROUTE_MAX_LEN), primary_key=True)
    version = Column(BigInteger, primary_key=True)

    schedule_id = Column(BigInteger, ForeignKey("schedules.id"), nullable=False, unique=True)
