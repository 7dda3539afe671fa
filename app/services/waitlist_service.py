# app/services/waitlist_service.py
"""
Waitlist queue + availability cascade.

Customers queue on a car that is not available. When the car transitions
into Available, schedule_waitlist_cascade() starts a detached task that
walks the queue first-come-first-served and sends each waiting customer
one availability notice.

Delivery is at-most-once per availability event: an entry is marked
notified after its dispatch attempt whether or not the send succeeded.
A customer who wants another notice rejoins, which re-stamps queued_at
and puts them at the back of the queue.
"""

import asyncio
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.errors import NotFoundError, PreconditionError, ValidationError
from app.models.car import Car
from app.models.customer import Customer, NOTIFY_NONE, NOTIFICATION_PREFERENCES
from app.models.waitlist import Waitlist, WAITLIST_WAITING, WAITLIST_NOTIFIED
from app.services.notification_service import NotificationDispatcher, PREFERENCE_CHANNELS
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Strong references so detached cascades are not garbage-collected mid-run
_background_tasks: set = set()


def _queue_order():
    return (Waitlist.queued_at.asc(), Waitlist.id.asc())


def queue_position(db: Session, entry: Waitlist) -> int:
    ahead = db.query(Waitlist).filter(
        Waitlist.car_id == entry.car_id,
        Waitlist.status == WAITLIST_WAITING,
        Waitlist.id != entry.id,
        (Waitlist.queued_at < entry.queued_at)
        | ((Waitlist.queued_at == entry.queued_at) & (Waitlist.id < entry.id)),
    ).count()
    return ahead + 1


async def join_waitlist(db: Session, car_id: int, customer_id: int,
                        notification_preference: Optional[int] = None,
                        now: Optional[datetime] = None) -> tuple[Waitlist, int]:
    """
    Returns the (new or reactivated) entry and its 1-based queue position.
    A preference given here is stored on the customer and used for every later notice.
    """
    now = now or datetime.utcnow()
    if not db.query(Car).filter(Car.id == car_id).first():
        raise NotFoundError(f"Car {car_id} not found")
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found")
    if notification_preference is not None and notification_preference not in NOTIFICATION_PREFERENCES:
        raise ValidationError(f"notification_preference must be one of {NOTIFICATION_PREFERENCES}")

    entry = db.query(Waitlist).filter(
        Waitlist.car_id == car_id, Waitlist.customer_id == customer_id
    ).order_by(Waitlist.id.desc()).first()

    if entry and entry.status == WAITLIST_WAITING:
        raise PreconditionError("You are already on the waitlist for this car", guard="waitlist")

    if entry:
        entry.status = WAITLIST_WAITING
        entry.queued_at = now
        entry.notified_date = None
        entry.notification_method = None
        entry.notification_success = None
        entry.notification_error = None
        logger.info(f"[WAITLIST] Customer {customer_id} rejoined queue for car {car_id} (entry {entry.id})")
    else:
        entry = Waitlist(car_id=car_id, customer_id=customer_id, status=WAITLIST_WAITING,
                         created_at=now, queued_at=now)
        db.add(entry)
        logger.info(f"[WAITLIST] Customer {customer_id} joined queue for car {car_id}")

    if notification_preference is not None:
        customer.notification_preference = notification_preference

    db.commit()
    db.refresh(entry)
    return entry, queue_position(db, entry)


async def leave_waitlist(db: Session, waitlist_id: int):
    entry = db.query(Waitlist).filter(Waitlist.id == waitlist_id).first()
    if not entry:
        raise NotFoundError(f"Waitlist entry {waitlist_id} not found")
    db.delete(entry)
    db.commit()
    logger.info(f"[WAITLIST] Entry {waitlist_id} removed (car {entry.car_id})")


def list_waitlist(db: Session, car_id: int) -> list[Waitlist]:
    return db.query(Waitlist).filter(
        Waitlist.car_id == car_id, Waitlist.status == WAITLIST_WAITING
    ).order_by(*_queue_order()).all()


async def notify_waiting(car_id: int, db: Session,
                         dispatcher: Optional[NotificationDispatcher] = None) -> dict:
    """
    Notify every waiting customer for a car, oldest queue stamp first.
    Entries are processed one at a time; a failure on one never stops the rest.
    """
    dispatcher = dispatcher or NotificationDispatcher()
    summary = {"car_id": car_id, "total": 0, "notified": 0, "failed": 0, "skipped": 0}

    car = db.query(Car).filter(Car.id == car_id).first()
    if not car:
        raise NotFoundError(f"Car {car_id} not found")

    entries = db.query(Waitlist).filter(
        Waitlist.car_id == car_id,
        Waitlist.status == WAITLIST_WAITING,
        Waitlist.notified_date.is_(None),
    ).order_by(*_queue_order()).all()
    summary["total"] = len(entries)
    if not entries:
        return summary

    logger.info(f"[WAITLIST] Car {car_id} available — {len(entries)} customer(s) waiting")

    for entry in entries:
        customer = entry.customer
        preference = customer.notification_preference if customer else NOTIFY_NONE
        if preference not in PREFERENCE_CHANNELS:
            logger.info(f"[WAITLIST] Entry {entry.id}: customer {entry.customer_id} has notifications disabled")
            summary["skipped"] += 1
            continue

        try:
            notice = await dispatcher.notify_availability(customer, car)
            succeeded, error = notice.succeeded_channels, notice.error
        except Exception as e:
            logger.error(f"[WAITLIST] Entry {entry.id}: dispatch crashed: {e}", exc_info=True)
            succeeded, error = [], str(e)

        try:
            entry.status = WAITLIST_NOTIFIED
            entry.notified_date = datetime.utcnow()
            entry.notification_method = ",".join(succeeded) or None
            entry.notification_success = bool(succeeded)
            entry.notification_error = error
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"[WAITLIST] Entry {entry.id}: could not record notification: {e}", exc_info=True)
            summary["failed"] += 1
            continue

        if succeeded:
            summary["notified"] += 1
        else:
            summary["failed"] += 1
            logger.warning(f"[WAITLIST] Entry {entry.id}: notice to customer {entry.customer_id} failed ({error})")

    logger.info(
        f"[WAITLIST] Car {car_id} cascade done: {summary['notified']} notified, "
        f"{summary['failed']} failed, {summary['skipped']} skipped"
    )
    return summary


async def _run_cascade(car_id: int):
    # Fresh session: the triggering request's session is closed by now
    db = SessionLocal()
    try:
        await notify_waiting(car_id, db)
    except Exception as e:
        logger.error(f"[WAITLIST] Cascade for car {car_id} failed: {e}", exc_info=True)
    finally:
        db.close()


def schedule_waitlist_cascade(car_id: int) -> asyncio.Task:
    """Fire-and-forget: the caller never awaits notification dispatch."""
    task = asyncio.create_task(_run_cascade(car_id), name=f"waitlist-cascade-{car_id}")
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    logger.info(f"[WAITLIST] Cascade scheduled for car {car_id}")
    return task
