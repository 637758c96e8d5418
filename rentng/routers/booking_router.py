from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Annotated, Optional

from .. import schemas
from ..auth import get_current_user_id, rate_limit
from ..booking_manager import BookingManager
from ..database import get_db

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_manager(db: Session = Depends(get_db)) -> BookingManager:
    return BookingManager(db)


CurrentUserId = Annotated[int, Depends(get_current_user_id)]
Manager = Annotated[BookingManager, Depends(get_booking_manager)]


@router.post(
    "/",
    response_model=schemas.BookingRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit(times=30, minutes=1))],
)
def create_booking(booking: schemas.BookingCreate, user_id: CurrentUserId, manager: Manager):
    """
    Create a pending booking for the authenticated tenant.
    """
    return manager.create_booking(
        tenant_id=user_id,
        unit_id=booking.unit_id,
        check_in_date=booking.check_in_date,
        check_out_date=booking.check_out_date,
        notes=booking.notes,
    )


@router.get("/", response_model=schemas.BookingPage)
def read_my_bookings(
        user_id: CurrentUserId,
        manager: Manager,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
):
    """
    Get the authenticated tenant's bookings, newest first.
    """
    return manager.list_tenant_bookings(user_id, page=page, limit=limit)


@router.get("/landlord/all", response_model=schemas.BookingPage)
def read_landlord_bookings(
        user_id: CurrentUserId,
        manager: Manager,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
):
    """
    Get bookings on every property the authenticated landlord owns.
    """
    return manager.list_landlord_bookings(user_id, page=page, limit=limit)


@router.get("/units/{unit_id}/availability", response_model=schemas.Availability)
def check_availability(
        unit_id: int,
        manager: Manager,
        check_in_date: Optional[str] = None,
        check_out_date: Optional[str] = None,
):
    """
    Public: whether the unit is free for the given range.
    """
    available = manager.get_availability(unit_id, check_in_date, check_out_date)
    return {
        "unit_id": unit_id,
        "check_in_date": check_in_date,
        "check_out_date": check_out_date,
        "available": available,
    }


@router.get("/{booking_id}", response_model=schemas.BookingRead)
def read_booking(booking_id: int, user_id: CurrentUserId, manager: Manager):
    return manager.get_booking(booking_id, user_id)


@router.post("/{booking_id}/cancel", response_model=schemas.BookingRead)
def cancel_booking(
        booking_id: int,
        user_id: CurrentUserId,
        manager: Manager,
        body: Optional[schemas.BookingReason] = None,
):
    reason = body.reason if body else None
    return manager.cancel_booking(booking_id, user_id, reason=reason)


@router.post("/{booking_id}/approve", response_model=schemas.BookingRead)
def approve_booking(booking_id: int, user_id: CurrentUserId, manager: Manager):
    return manager.approve_booking(booking_id, user_id)


@router.post("/{booking_id}/reject", response_model=schemas.BookingRead)
def reject_booking(
        booking_id: int,
        user_id: CurrentUserId,
        manager: Manager,
        body: Optional[schemas.BookingReason] = None,
):
    reason = body.reason if body else None
    return manager.reject_booking(booking_id, user_id, reason=reason)
