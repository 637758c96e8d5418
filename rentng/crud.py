import datetime
from typing import Iterable, Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from . import models, schemas


# --- Unit directory ---

def get_properties(
        db: Session,
        skip: int = 0,
        limit: int = 100,
        state: Optional[str] = None,
        min_price: Optional[int] = None,
        max_price: Optional[int] = None,
        bedrooms: Optional[int] = None,
):
    """
    Active properties, optionally filtered by state and by having at least one
    unit in the price range and with the bedroom count.
    """
    query = db.query(models.Property).filter(models.Property.status == models.PropertyStatus.ACTIVE)
    if state:
        query = query.filter(models.Property.state == state)

    unit_filters = []
    if min_price is not None:
        unit_filters.append(models.Unit.price_per_month >= min_price)
    if max_price is not None:
        unit_filters.append(models.Unit.price_per_month <= max_price)
    if bedrooms is not None:
        unit_filters.append(models.Unit.bedroom_count == bedrooms)
    if unit_filters:
        query = query.filter(models.Property.units.any(and_(*unit_filters)))

    return query.order_by(models.Property.id).offset(skip).limit(limit).all()


def get_properties_by_landlord(db: Session, landlord_id: int, skip: int = 0, limit: int = 100):
    return db.query(models.Property).filter(models.Property.landlord_id == landlord_id) \
        .order_by(models.Property.created_at.desc(), models.Property.id.desc()).offset(skip).limit(limit).all()


def get_property(db: Session, property_id: int):
    return db.query(models.Property).filter(models.Property.id == property_id).first()


def create_property(db: Session, property: schemas.PropertyCreate, landlord_id: int):
    db_property = models.Property(**property.model_dump(), landlord_id=landlord_id)
    db.add(db_property)
    db.commit()
    db.refresh(db_property)
    return db_property


def get_unit(db: Session, unit_id: int):
    return db.query(models.Unit).filter(models.Unit.id == unit_id).first()


def create_unit(db: Session, unit: schemas.UnitCreate, property_id: int):
    db_unit = models.Unit(**unit.model_dump(), property_id=property_id)
    db.add(db_unit)
    db.commit()
    db.refresh(db_unit)
    return db_unit


# --- Booking store ---

def lock_unit(db: Session, unit_id: int) -> None:
    """
    Takes the write lock for a unit's bookings by bumping its booking_version.
    Holds until the caller commits or rolls back.
    Note: Does NOT commit.
    """
    db.query(models.Unit).filter(models.Unit.id == unit_id).update(
        {models.Unit.booking_version: models.Unit.booking_version + 1},
        synchronize_session=False,
    )


def check_booking_conflict(
        db: Session,
        unit_id: int,
        check_in_date: datetime.datetime,
        check_out_date: datetime.datetime,
        exclude_booking_id: Optional[int] = None,
) -> bool:
    """
    Checks if the given date range overlaps any pending or approved booking
    for the unit.

    Returns True if a conflict exists, False otherwise.
    """
    # (Existing check-in < New check-out) AND (Existing check-out > New check-in)
    query = db.query(models.Booking).filter(
        models.Booking.unit_id == unit_id,
        models.Booking.status.in_(models.ACTIVE_BOOKING_STATUSES),
        models.Booking.check_in_date < check_out_date,
        models.Booking.check_out_date > check_in_date,
    )
    if exclude_booking_id is not None:
        query = query.filter(models.Booking.id != exclude_booking_id)

    return query.first() is not None


def create_booking(
        db: Session,
        unit: models.Unit,
        tenant_id: int,
        check_in_date: datetime.datetime,
        check_out_date: datetime.datetime,
        notes: Optional[str] = None,
) -> models.Booking:
    """
    Adds a pending booking for the unit and flushes it to get its ID.
    Note: Does NOT commit.
    """
    db_booking = models.Booking(
        tenant_id=tenant_id,
        unit_id=unit.id,
        property_id=unit.property_id,
        check_in_date=check_in_date,
        check_out_date=check_out_date,
        notes=notes,
        status=models.BookingStatus.PENDING,
    )
    db.add(db_booking)
    db.flush()
    return db_booking


def get_booking(db: Session, booking_id: int):
    return db.query(models.Booking).filter(models.Booking.id == booking_id).first()


def update_booking_status(
        db: Session,
        booking_id: int,
        status: models.BookingStatus,
        expected: Iterable[models.BookingStatus],
        **fields,
) -> bool:
    """
    Moves a booking to `status` only if it is still in one of the `expected`
    states. Extra keyword arguments are written alongside the status.

    Returns False when the booking had already left the expected states.
    Note: Does NOT commit.
    """
    values = {"status": status, "updated_at": models.utcnow(), **fields}
    updated = db.query(models.Booking).filter(
        models.Booking.id == booking_id,
        models.Booking.status.in_(list(expected)),
    ).update(values, synchronize_session=False)
    return updated == 1


def get_bookings_by_tenant(db: Session, tenant_id: int, skip: int = 0, limit: int = 20):
    query = db.query(models.Booking).filter(models.Booking.tenant_id == tenant_id)
    total = query.count()
    bookings = query.order_by(models.Booking.created_at.desc(), models.Booking.id.desc()) \
        .offset(skip).limit(limit).all()
    return bookings, total


def get_bookings_by_landlord(db: Session, landlord_id: int, skip: int = 0, limit: int = 20):
    query = db.query(models.Booking).join(
        models.Property, models.Booking.property_id == models.Property.id
    ).filter(models.Property.landlord_id == landlord_id)
    total = query.count()
    bookings = query.order_by(models.Booking.created_at.desc(), models.Booking.id.desc()) \
        .offset(skip).limit(limit).all()
    return bookings, total


# --- Functions for the scheduler ---

def get_bookings_to_complete(db: Session, now: datetime.datetime) -> list[models.Booking]:
    """
    Retrieves approved bookings whose check-out has already passed.
    """
    return db.query(models.Booking).filter(
        models.Booking.status == models.BookingStatus.APPROVED,
        models.Booking.check_out_date <= now,
    ).all()
