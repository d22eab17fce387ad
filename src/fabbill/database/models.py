"""SQLAlchemy models for fabbill database."""

from datetime import datetime, UTC
from uuid import uuid4
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _new_unique_id() -> str:
    return uuid4().hex


class Reservation(Base):
    """Reservation model."""

    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True)
    status = Column(String, nullable=False, default="Pending Admin Approval")
    total_amount_due = Column(Numeric(10, 2), nullable=True)
    requester = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    service_lines = relationship(
        "ServiceLine",
        back_populates="reservation",
        cascade="all, delete-orphan",
        order_by="ServiceLine.id",
    )
    machine_utilizations = relationship(
        "MachineUtilization",
        back_populates="reservation",
        cascade="all, delete-orphan",
        order_by="MachineUtilization.id",
    )


class ServiceLine(Base):
    """Reserved service line model."""

    __tablename__ = "service_lines"

    id = Column(Integer, primary_key=True)
    unique_id = Column(String, unique=True, nullable=False, default=_new_unique_id)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=False)
    service_name = Column(String, nullable=False)
    equipment_name = Column(String, nullable=False, default="Not Specified")
    booked_minutes = Column(Integer, nullable=True)
    listed_cost = Column(Numeric(10, 2), nullable=True)
    billed_minutes = Column(Integer, nullable=True)

    # Relationships
    reservation = relationship("Reservation", back_populates="service_lines")


class MachineUtilization(Base):
    """Machine assignment under a reservation."""

    __tablename__ = "machine_utilizations"

    id = Column(Integer, primary_key=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=False)
    machine_name = Column(String, nullable=False)
    service_name = Column(String, nullable=True)

    # Relationships
    reservation = relationship("Reservation", back_populates="machine_utilizations")
    operating_times = relationship(
        "OperatingTime",
        back_populates="machine_utilization",
        cascade="all, delete-orphan",
        order_by="OperatingTime.id",
    )
    down_times = relationship(
        "DownTime",
        back_populates="machine_utilization",
        cascade="all, delete-orphan",
        order_by="DownTime.id",
    )


class OperatingTime(Base):
    """Actual machine usage interval."""

    __tablename__ = "operating_times"

    id = Column(Integer, primary_key=True)
    machine_utilization_id = Column(
        Integer, ForeignKey("machine_utilizations.id"), nullable=False
    )
    date = Column(Date, nullable=True)
    start_time = Column(String(8), nullable=True)
    end_time = Column(String(8), nullable=True)
    operator_name = Column(String, nullable=True)
    type_of_product = Column(String, nullable=True)

    # Relationships
    machine_utilization = relationship("MachineUtilization", back_populates="operating_times")


class DownTime(Base):
    """Recorded machine down time."""

    __tablename__ = "down_times"

    id = Column(Integer, primary_key=True)
    machine_utilization_id = Column(
        Integer, ForeignKey("machine_utilizations.id"), nullable=False
    )
    date = Column(Date, nullable=True)
    minutes = Column(Integer, nullable=True)
    cause = Column(String, nullable=True)
    operator_name = Column(String, nullable=True)
    type_of_product = Column(String, nullable=True)

    # Relationships
    machine_utilization = relationship("MachineUtilization", back_populates="down_times")


class ServicePricing(Base):
    """Service rate card entry."""

    __tablename__ = "service_pricing"

    id = Column(Integer, primary_key=True)
    service_name = Column(String, unique=True, nullable=False)
    cost_per_unit = Column(Numeric(10, 2), nullable=False)
    unit = Column(String, nullable=False, default="hour")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
