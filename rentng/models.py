from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship
from enum import Enum as PyEnum
from sqlalchemy import Enum as SQLEnum
import datetime

from .database import Base
from . import pricing


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp, the form every datetime column is stored in."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class PropertyStatus(PyEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class BookingStatus(PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    # Only reached through the completion job, never through a user action
    COMPLETED = "completed"


# Bookings in these states hold the unit for their date range
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.APPROVED)


class Property(Base):
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)

    # Landlord is just a user id from the auth service.
    landlord_id = Column(Integer, index=True, nullable=False)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    address = Column(String(255), nullable=False)
    city = Column(String(100), index=True, nullable=False)
    state = Column(String(100), index=True, nullable=False)

    status = Column(SQLEnum(PropertyStatus), default=PropertyStatus.ACTIVE, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    units = relationship("Unit", back_populates="property", order_by="Unit.id")


class Unit(Base):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), index=True, nullable=False)

    unit_number = Column(String(50), nullable=False)
    bedroom_count = Column(Integer, nullable=False)
    bathroom_count = Column(Integer, nullable=False)
    size = Column(Integer, nullable=False)
    price_per_month = Column(Integer, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)

    # Bumped inside every booking write for this unit so concurrent writers queue on the row
    booking_version = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    property = relationship("Property", back_populates="units")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)

    tenant_id = Column(Integer, index=True, nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id"), index=True, nullable=False)
    # Denormalized from the unit at creation time
    property_id = Column(Integer, ForeignKey("properties.id"), index=True, nullable=False)

    check_in_date = Column(DateTime, nullable=False)
    check_out_date = Column(DateTime, nullable=False)

    status = Column(SQLEnum(BookingStatus), default=BookingStatus.PENDING, nullable=False)
    notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    unit = relationship("Unit")

    __table_args__ = (
        CheckConstraint("check_in_date < check_out_date", name="ck_bookings_dates_ordered"),
        # The overlap query filters on all of these
        Index("ix_bookings_unit_status_dates", "unit_id", "status", "check_in_date", "check_out_date"),
    )

    @property
    def nights(self) -> int:
        return pricing.count_nights(self.check_in_date, self.check_out_date)

    @property
    def total_price(self) -> int:
        return pricing.total_price(self.nights, self.unit.price_per_month)
