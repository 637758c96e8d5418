import asyncio
import datetime
import logging
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from . import crud, models

logger = logging.getLogger("rentng.scheduler")


def complete_finished_bookings(db: Session, now: Optional[datetime.datetime] = None) -> int:
    """
    Moves approved bookings whose check-out has passed to COMPLETED.

    Returns the number of bookings completed.
    """
    now = now or models.utcnow()
    logger.info(f"Checking for approved bookings that ended before {now}...")

    finished = crud.get_bookings_to_complete(db, now)
    if not finished:
        logger.info("No bookings to complete.")
        return 0

    completed = 0
    for booking in finished:
        # A booking cancelled since the query is left alone
        if crud.update_booking_status(
                db,
                booking.id,
                models.BookingStatus.COMPLETED,
                expected=(models.BookingStatus.APPROVED,),
        ):
            completed += 1
        else:
            logger.info(f"Booking {booking.id} changed state before completion. Skipping.")

    db.commit()
    logger.info(f"Completed {completed} bookings.")
    return completed


async def run_booking_scheduler(session_factory: sessionmaker, interval_seconds: int):
    """
    Main background loop for the completion job.
    """
    while True:
        logger.info("Scheduler waking up to complete finished bookings...")
        db: Session = session_factory()
        try:
            complete_finished_bookings(db)
        except Exception as e:
            logger.error(f"Error in booking scheduler loop: {e}")
            db.rollback()
        finally:
            db.close()

        await asyncio.sleep(interval_seconds)
