"""
Booking lifecycle: creation with availability checks, and the
pending -> approved/rejected/cancelled transitions.

The manager is built per request around an injected SQLAlchemy session.
Every write commits or rolls back before the method returns.
"""
import datetime
import logging
import math
import re
from typing import Callable, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import crud, models
from .errors import Conflict, Forbidden, InvalidInput, InvalidState, NotFound

logger = logging.getLogger("rentng.bookings")

DateInput = Union[str, datetime.date, datetime.datetime]

UNAVAILABLE_MESSAGE = "Unit is not available for the selected dates"

# A "+hh:mm" offset whose "+" was decoded to a space in a query string
_SPACED_OFFSET = re.compile(r"(\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?) (\d{2}(?::?\d{2})?)$")


def parse_booking_date(value: Optional[DateInput], field: str) -> datetime.datetime:
    """
    Normalizes an ISO 8601 string, date or datetime to a naive UTC datetime.
    Naive input is taken to be UTC already.
    """
    if value is None or value == "":
        raise InvalidInput(f"{field} is required")

    if isinstance(value, str):
        try:
            # fromisoformat() before 3.11 does not accept a trailing "Z"
            text = _SPACED_OFFSET.sub(r"\1+\2", value.strip())
            value = datetime.datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise InvalidInput(f"Invalid {field}: {value!r}")

    if not isinstance(value, datetime.datetime):
        if not isinstance(value, datetime.date):
            raise InvalidInput(f"Invalid {field}: {value!r}")
        value = datetime.datetime.combine(value, datetime.time.min)

    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value


def parse_date_range(check_in_date: Optional[DateInput], check_out_date: Optional[DateInput]):
    check_in = parse_booking_date(check_in_date, "check-in date")
    check_out = parse_booking_date(check_out_date, "check-out date")
    if check_in >= check_out:
        raise InvalidInput("Check-out date must be after check-in date")
    return check_in, check_out


class BookingManager:
    def __init__(self, db: Session, clock: Callable[[], datetime.datetime] = models.utcnow):
        self.db = db
        self.clock = clock

    # --- Reads ---

    def get_availability(self, unit_id: int, check_in_date: Optional[DateInput],
                         check_out_date: Optional[DateInput]) -> bool:
        """True iff no pending or approved booking on the unit overlaps the range."""
        check_in, check_out = parse_date_range(check_in_date, check_out_date)
        return not crud.check_booking_conflict(self.db, unit_id, check_in, check_out)

    def get_booking(self, booking_id: int, requesting_user_id: int) -> models.Booking:
        """A booking is visible to its tenant and to the landlord of its property."""
        booking = self._get_booking_or_404(booking_id)
        if requesting_user_id not in (booking.tenant_id, self._landlord_of(booking)):
            raise Forbidden("You do not have access to this booking")
        return booking

    def list_tenant_bookings(self, tenant_id: int, page: int = 1, limit: int = 20) -> dict:
        skip = (page - 1) * limit
        bookings, total = crud.get_bookings_by_tenant(self.db, tenant_id, skip=skip, limit=limit)
        return _paginate(bookings, total, page, limit)

    def list_landlord_bookings(self, landlord_id: int, page: int = 1, limit: int = 20) -> dict:
        skip = (page - 1) * limit
        bookings, total = crud.get_bookings_by_landlord(self.db, landlord_id, skip=skip, limit=limit)
        return _paginate(bookings, total, page, limit)

    # --- Writes ---

    def create_booking(self, tenant_id: int, unit_id: int, check_in_date: DateInput,
                       check_out_date: DateInput, notes: Optional[str] = None) -> models.Booking:
        """
        Creates a pending booking for the unit.

        Raises NotFound for an unknown unit, InvalidInput for malformed,
        inverted or past dates, and Conflict when another pending or approved
        booking overlaps the range. The overlap check and the insert run in a
        single transaction holding the unit's write lock.
        """
        unit = crud.get_unit(self.db, unit_id)
        if unit is None:
            raise NotFound("Unit not found")

        check_in, check_out = parse_date_range(check_in_date, check_out_date)
        if check_in < self.clock():
            raise InvalidInput("Check-in date must be in the future")

        try:
            crud.lock_unit(self.db, unit.id)
            if crud.check_booking_conflict(self.db, unit.id, check_in, check_out):
                self.db.rollback()
                logger.info(f"Rejected booking for unit {unit.id}: {check_in} - {check_out} overlaps")
                raise Conflict(UNAVAILABLE_MESSAGE)

            booking = crud.create_booking(
                self.db,
                unit=unit,
                tenant_id=tenant_id,
                check_in_date=check_in,
                check_out_date=check_out,
                notes=notes,
            )
            self.db.commit()
        except IntegrityError as e:
            # Exclusion constraint on databases that have one
            self.db.rollback()
            logger.warning(f"Integrity error creating booking for unit {unit.id}: {e}")
            raise Conflict(UNAVAILABLE_MESSAGE)

        self.db.refresh(booking)
        logger.info(f"Booking {booking.id} created for unit {unit.id} by tenant {tenant_id}")
        return booking

    def cancel_booking(self, booking_id: int, requesting_user_id: int,
                       reason: Optional[str] = None) -> models.Booking:
        booking = self._get_booking_or_404(booking_id)
        if booking.tenant_id != requesting_user_id:
            raise Forbidden("Only the tenant can cancel this booking")

        if booking.status not in models.ACTIVE_BOOKING_STATUSES:
            raise InvalidState("Cannot cancel this booking")

        return self._transition(
            booking,
            models.BookingStatus.CANCELLED,
            expected=models.ACTIVE_BOOKING_STATUSES,
            error_message="Cannot cancel this booking",
            cancellation_reason=reason,
        )

    def approve_booking(self, booking_id: int, requesting_user_id: int) -> models.Booking:
        """
        Approves a pending booking after re-checking that no other active
        booking overlaps it.
        """
        booking = self._get_landlord_booking(booking_id, requesting_user_id)
        if booking.status != models.BookingStatus.PENDING:
            raise InvalidState("Booking is not pending")

        crud.lock_unit(self.db, booking.unit_id)
        if crud.check_booking_conflict(
                self.db,
                booking.unit_id,
                booking.check_in_date,
                booking.check_out_date,
                exclude_booking_id=booking.id,
        ):
            self.db.rollback()
            raise Conflict(UNAVAILABLE_MESSAGE)

        return self._transition(
            booking,
            models.BookingStatus.APPROVED,
            expected=(models.BookingStatus.PENDING,),
            error_message="Booking is not pending",
        )

    def reject_booking(self, booking_id: int, requesting_user_id: int,
                       reason: Optional[str] = None) -> models.Booking:
        booking = self._get_landlord_booking(booking_id, requesting_user_id)
        if booking.status != models.BookingStatus.PENDING:
            raise InvalidState("Booking is not pending")

        return self._transition(
            booking,
            models.BookingStatus.REJECTED,
            expected=(models.BookingStatus.PENDING,),
            error_message="Booking is not pending",
            rejection_reason=reason,
        )

    # --- Helpers ---

    def _get_booking_or_404(self, booking_id: int) -> models.Booking:
        booking = crud.get_booking(self.db, booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        return booking

    def _get_landlord_booking(self, booking_id: int, requesting_user_id: int) -> models.Booking:
        booking = self._get_booking_or_404(booking_id)
        if self._landlord_of(booking) != requesting_user_id:
            raise Forbidden("Only the landlord can manage this booking")
        return booking

    @staticmethod
    def _landlord_of(booking: models.Booking) -> int:
        return booking.unit.property.landlord_id

    def _transition(self, booking: models.Booking, status: models.BookingStatus,
                    expected, error_message: str, **fields) -> models.Booking:
        previous = booking.status
        # Guarded update: loses cleanly to a concurrent transition
        if not crud.update_booking_status(self.db, booking.id, status, expected, **fields):
            self.db.rollback()
            raise InvalidState(error_message)
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Booking {booking.id}: {previous.value} -> {status.value}")
        return booking


def _paginate(bookings, total: int, page: int, limit: int) -> dict:
    return {
        "bookings": bookings,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        },
    }
