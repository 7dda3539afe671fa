# app/services/reclaimer.py
"""
Reservation expiry reclaimer.

Periodically hard-deletes Pending bookings whose payment deadline has
passed without payment, and hands their cars back to availability.
Unlike a cancellation, no booking row survives: an unpaid reservation is
treated as never having happened. Only the transaction log keeps a trace.

Each booking is reclaimed in its own transaction, so one failure never
aborts the sweep. A booking that disappeared or got paid between the
candidate query and its turn is skipped, which makes re-runs no-ops.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.config import settings
from app.database import SessionLocal
from app.models.booking import Booking, STATUS_PENDING
from app.models.car import Car, CAR_AVAILABLE, CAR_RENTED
from app.models.payment import Payment
from app.models.transaction import Transaction
from app.services.booking_service import car_is_held
from app.services.waitlist_service import schedule_waitlist_cascade
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Last sweep summary, exposed by the health endpoint
last_run: dict = {}


def _expired_filter(now: datetime):
    return (
        Booking.booking_status == STATUS_PENDING,
        or_(Booking.isPay.is_(False), Booking.isPay.is_(None)),
        Booking.isCancel.is_(False),
        Booking.payment_deadline.isnot(None),
        Booking.payment_deadline < now,
        Booking.booking_date >= now - timedelta(days=settings.RECLAIM_LOOKBACK_DAYS),
    )


def find_expired_bookings(db: Session, now: datetime) -> list[int]:
    rows = db.query(Booking.id).filter(*_expired_filter(now)).order_by(Booking.payment_deadline.asc()).all()
    return [row[0] for row in rows]


def _reclaim_one(db: Session, booking_id: int, now: datetime) -> Optional[dict]:
    """Returns None when the booking is no longer eligible (already reclaimed, paid, confirmed)."""
    booking = db.query(Booking).filter(Booking.id == booking_id, *_expired_filter(now)).with_for_update().first()
    if not booking:
        return None

    car = db.query(Car).filter(Car.id == booking.car_id).with_for_update().first()
    customer_id, car_id = booking.customer_id, booking.car_id
    deadline = booking.payment_deadline

    db.query(Payment).filter(Payment.booking_id == booking.id).delete(synchronize_session=False)
    db.delete(booking)
    db.flush()

    if car and car.status == CAR_RENTED and not car_is_held(db, car.id):
        car.status = CAR_AVAILABLE

    db.add(Transaction(
        booking_id=booking_id,
        customer_id=customer_id,
        car_id=car_id,
        completion_date=None,
        cancellation_date=now,
        description=f"Auto-cancelled: payment deadline {deadline:%Y-%m-%d %H:%M} passed",
    ))
    db.commit()
    return {
        "booking_id": booking_id,
        "car_id": car_id,
        "status": "reclaimed",
        "car_available": bool(car and car.status == CAR_AVAILABLE),
    }


async def reclaim_expired_bookings(db: Session, now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    candidates = find_expired_bookings(db, now)
    summary = {"total": len(candidates), "reclaimed": 0, "skipped": 0, "failed": 0, "results": []}
    if not candidates:
        logger.debug("[RECLAIM] No expired unpaid bookings")
        return summary

    logger.info(f"[RECLAIM] {len(candidates)} expired unpaid booking(s) found")
    freed_cars = set()

    for booking_id in candidates:
        try:
            result = _reclaim_one(db, booking_id, now)
        except Exception as e:
            db.rollback()
            logger.error(f"[RECLAIM] Booking #{booking_id} could not be reclaimed: {e}", exc_info=True)
            summary["failed"] += 1
            summary["results"].append({"booking_id": booking_id, "status": "error", "error": str(e)})
            continue

        if result is None:
            summary["skipped"] += 1
            summary["results"].append({"booking_id": booking_id, "status": "skipped"})
            continue

        summary["reclaimed"] += 1
        summary["results"].append(result)
        logger.info(f"[RECLAIM] Booking #{booking_id} deleted, car {result['car_id']} released")
        if result["car_available"]:
            freed_cars.add(result["car_id"])

    for car_id in sorted(freed_cars):
        schedule_waitlist_cascade(car_id)

    logger.info(f"[RECLAIM] Sweep done: {summary['reclaimed']} reclaimed, "
                f"{summary['skipped']} skipped, {summary['failed']} failed")
    return summary


async def run_reclaim_sweep() -> dict:
    """One sweep on a fresh session."""
    db = SessionLocal()
    try:
        summary = await reclaim_expired_bookings(db)
    finally:
        db.close()
    last_run.clear()
    last_run.update({
        "finished_at": datetime.utcnow().isoformat(),
        "reclaimed": summary["reclaimed"],
        "failed": summary["failed"],
    })
    return summary


async def run_reclaimer_loop():
    """
    Runs forever. Started once at backend startup.
    A failed sweep is logged and simply retried on the next tick.
    """
    logger.info(f"🧹 Reclaimer started — every {settings.RECLAIM_INTERVAL_SECONDS}s "
                f"(first run in {settings.RECLAIM_STARTUP_DELAY_SECONDS}s)")
    await asyncio.sleep(settings.RECLAIM_STARTUP_DELAY_SECONDS)
    while True:
        try:
            await run_reclaim_sweep()
        except Exception as e:
            logger.error(f"[RECLAIM] Sweep failed: {e}", exc_info=True)
        await asyncio.sleep(settings.RECLAIM_INTERVAL_SECONDS)
