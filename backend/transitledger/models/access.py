from sqlalchemy import Column, DateTime, Integer, Text
from sqlalchemy.sql import func
from transitledger.core.db import Base


class AdminSlotMixin:
    # Singleton row; slot is always 1.
    slot = Column(Integer, primary_key=True, default=1)
    identity = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class RoleMemberMixin:
    identity = Column(Text, primary_key=True)
    granted_by = Column(Text, nullable=False)
    granted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class RegistryAdmin(AdminSlotMixin, Base):
    __tablename__ = "registry_admin"


class RegistryPublisher(RoleMemberMixin, Base):
    __tablename__ = "registry_publishers"


class ReliabilityAdmin(AdminSlotMixin, Base):
    __tablename__ = "reliability_admin"


class ReliabilityOperator(RoleMemberMixin, Base):
    __tablename__ = "reliability_operators"
