# app/services/booking_notices.py
"""
Customer notices for booking lifecycle events, plus the return-day reminder sweep.

Lifecycle notices are fire-and-forget: the booking service schedules them
after its commit, and each runs on its own session in a detached task.
A notice that cannot be sent is logged; it never touches the booking.

The reminder sweep sends one notice per Confirmed / In Progress booking on
its end date (business calendar). A booking is marked reminded once sent,
or straight away when the customer has notifications disabled. Failed sends
are retried on the next sweep.
"""

import asyncio
from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.config import settings
from app.database import SessionLocal
from app.models.booking import Booking, OCCUPYING_STATUSES
from app.models.payment import Payment
from app.services.notification_service import NotificationDispatcher, CustomerNotice, PREFERENCE_CHANNELS
from app.utils.business_time import business_today
from app.utils.logger import get_logger

logger = get_logger(__name__)

NOTICE_BOOKING_CREATED = "booking_created"
NOTICE_BOOKING_CONFIRMED = "booking_confirmed"
NOTICE_PAYMENT_RECEIVED = "payment_received"
NOTICE_BOOKING_CANCELLED = "booking_cancelled"

NOTICE_KINDS = (NOTICE_BOOKING_CREATED, NOTICE_BOOKING_CONFIRMED, NOTICE_PAYMENT_RECEIVED, NOTICE_BOOKING_CANCELLED)

_background_tasks: set = set()


def _wants_notices(customer) -> bool:
    return customer is not None and customer.notification_preference in PREFERENCE_CHANNELS


async def send_booking_notice(db: Session, kind: str, booking_id: int, payment_id: Optional[int] = None,
                              dispatcher: Optional[NotificationDispatcher] = None) -> Optional[CustomerNotice]:
    """Returns None when nothing was sent (booking gone, notifications disabled)."""
    if kind not in NOTICE_KINDS:
        raise ValueError(f"Unknown notice kind '{kind}'")
    dispatcher = dispatcher or NotificationDispatcher()

    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        logger.info(f"[NOTICE] {kind}: booking #{booking_id} no longer exists, nothing sent")
        return None
    customer, car = booking.customer, booking.car
    if not _wants_notices(customer):
        logger.debug(f"[NOTICE] {kind}: customer {booking.customer_id} has notifications disabled")
        return None

    if kind == NOTICE_BOOKING_CREATED:
        notice = await dispatcher.notify_booking_created(customer, car, booking)
    elif kind == NOTICE_BOOKING_CONFIRMED:
        notice = await dispatcher.notify_booking_confirmed(customer, car, booking)
    elif kind == NOTICE_BOOKING_CANCELLED:
        notice = await dispatcher.notify_booking_cancelled(customer, car, booking)
    else:
        payment = db.query(Payment).filter(Payment.id == payment_id).first()
        if not payment:
            logger.info(f"[NOTICE] {kind}: payment {payment_id} not found, nothing sent")
            return None
        notice = await dispatcher.notify_payment_received(customer, car, booking, payment)

    if notice.success:
        logger.info(f"[NOTICE] {kind} for booking #{booking_id} sent via {', '.join(notice.succeeded_channels)}")
    else:
        logger.warning(f"[NOTICE] {kind} for booking #{booking_id} failed ({notice.error})")
    return notice


async def _run_notice(kind: str, booking_id: int, payment_id: Optional[int]):
    db = SessionLocal()
    try:
        await send_booking_notice(db, kind, booking_id, payment_id)
    except Exception as e:
        logger.error(f"[NOTICE] {kind} for booking #{booking_id} crashed: {e}", exc_info=True)
    finally:
        db.close()


def schedule_booking_notice(kind: str, booking_id: int, payment_id: Optional[int] = None) -> asyncio.Task:
    task = asyncio.create_task(_run_notice(kind, booking_id, payment_id), name=f"notice-{kind}-{booking_id}")
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


# ── Return-day reminders ─────────────────────────────────────────────────────

def find_bookings_due_today(db: Session, now: Optional[datetime] = None) -> list[Booking]:
    today = business_today(now)
    return db.query(Booking).filter(
        Booking.booking_status.in_(OCCUPYING_STATUSES),
        Booking.isCancel.is_(False),
        or_(Booking.return_reminder_sent.is_(False), Booking.return_reminder_sent.is_(None)),
        Booking.end_date == today,
    ).order_by(Booking.id.asc()).all()


async def send_return_reminders(db: Session, now: Optional[datetime] = None,
                                dispatcher: Optional[NotificationDispatcher] = None) -> dict:
    dispatcher = dispatcher or NotificationDispatcher()
    due = find_bookings_due_today(db, now)
    summary = {"total": len(due), "sent": 0, "failed": 0, "skipped": 0}

    for booking in due:
        booking_id = booking.id
        try:
            customer = booking.customer
            if not _wants_notices(customer):
                booking.return_reminder_sent = True
                db.commit()
                summary["skipped"] += 1
                continue

            notice = await dispatcher.notify_return_reminder(customer, booking.car, booking)
            if notice.success:
                booking.return_reminder_sent = True
                db.commit()
                summary["sent"] += 1
            else:
                summary["failed"] += 1
                logger.warning(f"[REMINDER] Booking #{booking_id}: reminder failed ({notice.error})")
        except Exception as e:
            db.rollback()
            summary["failed"] += 1
            logger.error(f"[REMINDER] Booking #{booking_id}: {e}", exc_info=True)

    if due:
        logger.info(f"[REMINDER] {summary['sent']} sent, {summary['failed']} failed, "
                    f"{summary['skipped']} skipped")
    return summary


async def run_return_reminder_loop():
    logger.info(f"🔔 Return reminders every {settings.RETURN_REMINDER_INTERVAL_SECONDS}s")
    while True:
        db = SessionLocal()
        try:
            await send_return_reminders(db)
        except Exception as e:
            logger.error(f"[REMINDER] Sweep failed: {e}", exc_info=True)
        finally:
            db.close()
        await asyncio.sleep(settings.RETURN_REMINDER_INTERVAL_SECONDS)
