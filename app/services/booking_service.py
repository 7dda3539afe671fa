# app/services/booking_service.py
"""
Booking lifecycle controller.

  Pending → Confirmed → In Progress → Completed
  Pending → Rejected
  Pending / Confirmed → Cancelled
  unpaid Pending past its deadline → hard-deleted (services/reclaimer.py)

Every operation is one transaction: the booking update, the car update,
any inspection record and the transaction-log entry commit together.
Guard failures raise PreconditionError and change nothing. When an
operation frees a car, the waitlist cascade is scheduled after commit
and never awaited. Customer notices (created, payment received,
confirmed, cancelled) are scheduled the same way.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import ValidationError, ConflictError, PreconditionError, NotFoundError
from app.models.booking import (
    Booking, ACTIVE_STATUSES, OCCUPYING_STATUSES, TERMINAL_STATUSES,
    STATUS_PENDING, STATUS_CONFIRMED, STATUS_IN_PROGRESS, STATUS_COMPLETED,
    STATUS_CANCELLED, STATUS_REJECTED, PAYMENT_UNPAID, PAYMENT_PARTIAL, PAYMENT_PAID,
)
from app.models.car import Car, CAR_AVAILABLE, CAR_RENTED, CAR_MAINTENANCE, CAR_INACTIVE, CAR_STATUSES
from app.models.customer import Customer
from app.models.driver import Driver, DRIVER_IDLE, DRIVER_IN_PROGRESS
from app.models.payment import Payment
from app.models.release import Release, RELEASE_IMAGE_COLUMNS
from app.models.return_record import ReturnRecord
from app.models.transaction import Transaction
from app.schemas.booking import BookingCreate, PaymentCreate
from app.schemas.release import ReleaseCreate
from app.schemas.return_record import ReturnCreate, ReturnFeeInputs
from app.services.conflict_detector import validate_requested_range, unavailable_periods, ConflictCheck
from app.services.fee_schedule import get_fees, fee_amount
from app.services.settlement import (
    ReturnInputs, FeeBreakdown, calculate_return_fees, damage_label, EQUIPMENT_INCOMPLETE,
)
from app.services.booking_notices import (
    schedule_booking_notice, NOTICE_BOOKING_CREATED, NOTICE_BOOKING_CONFIRMED,
    NOTICE_PAYMENT_RECEIVED, NOTICE_BOOKING_CANCELLED,
)
from app.services.waitlist_service import schedule_waitlist_cascade
from app.utils.business_time import business_today
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ReturnResult:
    fees: FeeBreakdown
    booking: Booking
    return_record: ReturnRecord


# ── Helpers ──────────────────────────────────────────────────────────────────

def calculate_payment_deadline(start_date: date, booked_at: datetime) -> datetime:
    """
    Same-day start: 1 hour. Start within NEAR_TERM_DAYS: 24 hours.
    Otherwise 72 hours. Measured from the moment of booking; days are
    counted on the business calendar.
    """
    days_until_start = (start_date - business_today(booked_at)).days
    if days_until_start <= 0:
        hours = settings.SAME_DAY_PAYMENT_HOURS
    elif days_until_start <= settings.NEAR_TERM_DAYS:
        hours = settings.NEAR_TERM_PAYMENT_HOURS
    else:
        hours = settings.STANDARD_PAYMENT_HOURS
    return booked_at + timedelta(hours=hours)


def rental_days(start_date: date, end_date: date) -> int:
    return (end_date - start_date).days + 1


def _get_booking(db: Session, booking_id: int, lock: bool = False) -> Booking:
    q = db.query(Booking).filter(Booking.id == booking_id)
    if lock:
        q = q.with_for_update()
    booking = q.first()
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


def _get_car(db: Session, car_id: int, lock: bool = False) -> Car:
    q = db.query(Car).filter(Car.id == car_id)
    if lock:
        q = q.with_for_update()
    car = q.first()
    if not car:
        raise NotFoundError(f"Car {car_id} not found")
    return car


def _car_bookings(db: Session, car_id: int) -> list[Booking]:
    return db.query(Booking).filter(
        Booking.car_id == car_id, Booking.booking_status.in_(ACTIVE_STATUSES)
    ).all()


def car_is_held(db: Session, car_id: int, exclude_booking_id: Optional[int] = None) -> bool:
    """True while another Confirmed / In Progress booking still holds the car."""
    q = db.query(Booking).filter(
        Booking.car_id == car_id,
        Booking.booking_status.in_(OCCUPYING_STATUSES),
        Booking.isCancel.is_(False),
    )
    if exclude_booking_id is not None:
        q = q.filter(Booking.id != exclude_booking_id)
    return q.first() is not None


def _free_car(db: Session, car: Car, booking_id: int) -> bool:
    """Rented → Available unless another booking holds it. Returns True on transition."""
    if car.status != CAR_RENTED or car_is_held(db, car.id, exclude_booking_id=booking_id):
        return False
    car.status = CAR_AVAILABLE
    return True


def total_paid(db: Session, booking_id: int) -> float:
    return db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
        Payment.booking_id == booking_id
    ).scalar() or 0


def _payment_status(balance: float, paid: float) -> str:
    if balance <= 0:
        return PAYMENT_PAID
    return PAYMENT_PARTIAL if paid > 0 else PAYMENT_UNPAID


def _require_status(booking: Booking, allowed: tuple, action: str):
    if booking.booking_status not in allowed:
        logger.warning(f"[BOOKING] #{booking.id}: cannot {action} from '{booking.booking_status}'")
        raise PreconditionError(
            f"Cannot {action} booking {booking.id} with status '{booking.booking_status}'"
            f" (expected {' or '.join(allowed)})",
            guard="status",
        )


def _log_transaction(db: Session, booking: Booking, now: datetime, completed: bool,
                     description: Optional[str] = None):
    db.add(Transaction(
        booking_id=booking.id,
        customer_id=booking.customer_id,
        car_id=booking.car_id,
        completion_date=now if completed else None,
        cancellation_date=None if completed else now,
        description=description,
    ))


def _notify(kind: str, booking_id: int, payment_id: Optional[int] = None):
    """Schedule a customer notice after commit. Never fails the operation that triggered it."""
    try:
        schedule_booking_notice(kind, booking_id, payment_id)
    except Exception as e:
        logger.error(f"[BOOKING] #{booking_id}: could not schedule {kind} notice: {e}")


def _require_item_list(equipment: Optional[str], equip_others: Optional[str], when: str):
    if equipment == EQUIPMENT_INCOMPLETE and not (equip_others or "").strip():
        raise ValidationError(f"equip_others must list the missing items when equipment is incomplete at {when}")


# ── Availability (read side) ─────────────────────────────────────────────────

def car_unavailable_periods(db: Session, car_id: int) -> list:
    _get_car(db, car_id)
    return unavailable_periods(_car_bookings(db, car_id), settings.MAINTENANCE_BUFFER_DAYS)


def check_availability(db: Session, car_id: int, start_date: date, end_date: date) -> ConflictCheck:
    if end_date < start_date:
        raise ValidationError("end_date must be on or after start_date")
    _get_car(db, car_id)
    return validate_requested_range(start_date, end_date, _car_bookings(db, car_id),
                                    settings.MAINTENANCE_BUFFER_DAYS)


# ── Create ───────────────────────────────────────────────────────────────────

async def request_booking(db: Session, data: BookingCreate, now: Optional[datetime] = None) -> Booking:
    now = now or datetime.utcnow()
    if data.end_date < data.start_date:
        raise ValidationError("end_date must be on or after start_date")
    if data.start_date < business_today(now):
        raise ValidationError("start_date cannot be in the past")
    if not data.is_self_drive and not data.drivers_id:
        raise ValidationError("drivers_id is required when is_self_drive is false")

    if not db.query(Customer).filter(Customer.id == data.customer_id).first():
        raise NotFoundError(f"Customer {data.customer_id} not found")
    if data.drivers_id and not db.query(Driver).filter(Driver.id == data.drivers_id).first():
        raise NotFoundError(f"Driver {data.drivers_id} not found")

    # Row lock on the car serialises concurrent requests for it until commit
    car = _get_car(db, data.car_id, lock=True)
    if car.status in (CAR_MAINTENANCE, CAR_INACTIVE):
        db.rollback()
        raise PreconditionError(f"Car {car.id} is not bookable (status '{car.status}')", guard="car_status")

    check = validate_requested_range(data.start_date, data.end_date, _car_bookings(db, car.id),
                                     settings.MAINTENANCE_BUFFER_DAYS)
    if not check.is_valid:
        db.rollback()
        logger.warning(f"[BOOKING] Car {car.id} {data.start_date}→{data.end_date} rejected: "
                       f"{len(check.conflicts)} conflict(s)")
        raise ConflictError(check.message, check.conflicts)

    fees = get_fees(db)
    days = rental_days(data.start_date, data.end_date)
    total = days * (car.rent_price or 0)
    if not data.is_self_drive:
        total += days * fee_amount(fees, "driver_fee")

    booking = Booking(
        car_id=car.id,
        customer_id=data.customer_id,
        drivers_id=data.drivers_id,
        booking_date=now,
        start_date=data.start_date,
        end_date=data.end_date,
        purpose=data.purpose or "Not specified",
        pickup_loc=data.pickup_loc,
        dropoff_loc=data.dropoff_loc,
        is_self_drive=data.is_self_drive,
        booking_status=STATUS_PENDING,
        payment_status=PAYMENT_UNPAID,
        isPay=False,
        isCancel=False,
        isRelease=False,
        isReturned=False,
        payment_deadline=calculate_payment_deadline(data.start_date, now),
        total_amount=total,
        balance=total,
    )
    try:
        db.add(booking)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(booking)
    logger.info(f"[BOOKING] #{booking.id} created: car {car.id} {booking.start_date}→{booking.end_date}, "
                f"total {booking.total_amount}, pay by {booking.payment_deadline:%Y-%m-%d %H:%M}")
    _notify(NOTICE_BOOKING_CREATED, booking.id)
    return booking


# ── Payment + confirmation ───────────────────────────────────────────────────

async def record_payment(db: Session, booking_id: int, data: PaymentCreate,
                         now: Optional[datetime] = None) -> Payment:
    now = now or datetime.utcnow()
    if data.amount <= 0:
        raise ValidationError("Payment amount must be positive")
    booking = _get_booking(db, booking_id, lock=True)
    if booking.booking_status in TERMINAL_STATUSES:
        db.rollback()
        raise PreconditionError(f"Booking {booking_id} is {booking.booking_status}; payments are closed",
                                guard="status")

    booking.balance = (booking.balance or 0) - data.amount
    paid = total_paid(db, booking.id) + data.amount
    booking.payment_status = _payment_status(booking.balance, paid)
    # Once the reservation fee is covered the booking is no longer reclaimable
    if paid >= fee_amount(get_fees(db), "reservation_fee"):
        booking.isPay = True

    payment = Payment(
        booking_id=booking.id,
        customer_id=booking.customer_id,
        description=data.description or "Booking payment",
        payment_method=data.payment_method,
        reference_no=data.reference_no,
        amount=data.amount,
        paid_date=now,
        balance=booking.balance,
    )
    try:
        db.add(payment)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(payment)
    logger.info(f"[BOOKING] #{booking.id} payment {data.amount} recorded, balance {booking.balance}")
    _notify(NOTICE_PAYMENT_RECEIVED, booking.id, payment.id)
    return payment


async def confirm_booking(db: Session, booking_id: int) -> Booking:
    booking = _get_booking(db, booking_id, lock=True)
    try:
        _require_status(booking, (STATUS_PENDING,), "confirm")
        if booking.isCancel:
            raise PreconditionError(f"Booking {booking_id} has been cancelled", guard="status")

        reservation_fee = fee_amount(get_fees(db), "reservation_fee")
        paid = total_paid(db, booking.id)
        if paid < reservation_fee:
            logger.warning(f"[BOOKING] #{booking_id}: confirm refused, paid {paid} < reservation fee {reservation_fee}")
            raise PreconditionError(
                f"Recorded payment {paid} is below the reservation fee {reservation_fee}", guard="payment"
            )
    except PreconditionError:
        db.rollback()
        raise

    booking.booking_status = STATUS_CONFIRMED
    booking.isPay = True
    booking.payment_status = _payment_status(booking.balance, paid)
    car = booking.car
    if car.status == CAR_AVAILABLE:
        car.status = CAR_RENTED
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(booking)
    logger.info(f"[BOOKING] #{booking.id} confirmed, car {car.id} → {car.status}")
    _notify(NOTICE_BOOKING_CONFIRMED, booking.id)
    return booking


# ── Reject / cancel ──────────────────────────────────────────────────────────

async def reject_booking(db: Session, booking_id: int, reason: Optional[str] = None,
                         now: Optional[datetime] = None) -> Booking:
    now = now or datetime.utcnow()
    booking = _get_booking(db, booking_id, lock=True)
    try:
        _require_status(booking, (STATUS_PENDING,), "reject")
    except PreconditionError:
        db.rollback()
        raise

    booking.booking_status = STATUS_REJECTED
    booking.cancellation_reason = reason
    _log_transaction(db, booking, now, completed=False, description=f"Rejected: {reason or 'no reason given'}")
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(booking)
    logger.info(f"[BOOKING] #{booking.id} rejected")
    return booking


async def cancel_booking(db: Session, booking_id: int, reason: Optional[str] = None,
                         now: Optional[datetime] = None) -> Booking:
    """Soft cancel: the row stays as Cancelled with an audited transaction entry."""
    now = now or datetime.utcnow()
    booking = _get_booking(db, booking_id, lock=True)
    try:
        _require_status(booking, (STATUS_PENDING, STATUS_CONFIRMED), "cancel")
    except PreconditionError:
        db.rollback()
        raise

    booking.booking_status = STATUS_CANCELLED
    booking.isCancel = True
    booking.cancellation_reason = reason
    _log_transaction(db, booking, now, completed=False, description=reason)
    freed = _free_car(db, booking.car, booking.id)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(booking)
    logger.info(f"[BOOKING] #{booking.id} cancelled" + (f", car {booking.car_id} → Available" if freed else ""))

    if freed:
        schedule_waitlist_cascade(booking.car_id)
    _notify(NOTICE_BOOKING_CANCELLED, booking.id)
    return booking


# ── Release ──────────────────────────────────────────────────────────────────

async def release_booking(db: Session, booking_id: int, data: ReleaseCreate) -> Release:
    _require_item_list(data.equipment, data.equip_others, "release")
    booking = _get_booking(db, booking_id, lock=True)
    try:
        _require_status(booking, (STATUS_CONFIRMED,), "release")
        if booking.release is not None:
            raise PreconditionError(f"Booking {booking_id} has already been released", guard="release")
        if not db.query(Driver).filter(Driver.id == data.drivers_id).first():
            raise NotFoundError(f"Driver {data.drivers_id} not found")
    except (PreconditionError, NotFoundError):
        db.rollback()
        raise

    release = Release(
        booking_id=booking.id,
        drivers_id=data.drivers_id,
        equipment=data.equipment,
        equip_others=data.equip_others,
        gas_level=data.gas_level,
        license_presented=data.license_presented,
    )
    db.add(release)
    booking.booking_status = STATUS_IN_PROGRESS
    booking.isRelease = True
    if booking.car.status == CAR_AVAILABLE:
        booking.car.status = CAR_RENTED
    if booking.driver is not None:
        booking.driver.booking_status = DRIVER_IN_PROGRESS
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(release)
    logger.info(f"[RELEASE] Booking #{booking.id} released by driver {data.drivers_id} (gas {data.gas_level})")
    return release


async def attach_release_image(db: Session, release_id: int, image_type: str, url: str) -> Release:
    column = RELEASE_IMAGE_COLUMNS.get(image_type)
    if not column:
        raise ValidationError(f"Invalid image_type. Must be one of: {', '.join(RELEASE_IMAGE_COLUMNS)}")
    release = db.query(Release).filter(Release.id == release_id).first()
    if not release:
        raise NotFoundError(f"Release {release_id} not found")
    setattr(release, column, url)
    db.commit()
    db.refresh(release)
    return release


# ── Return ───────────────────────────────────────────────────────────────────

def _to_inputs(data: ReturnFeeInputs) -> ReturnInputs:
    return ReturnInputs(
        gas_level=data.gas_level,
        equipment_status=data.equipment_status,
        equip_others=data.equip_others,
        damage_status=data.damage_status,
        is_clean=data.is_clean,
        has_stain=data.has_stain,
    )


async def preview_return_fees(db: Session, booking_id: int, data: ReturnFeeInputs) -> FeeBreakdown:
    """Fee preview with hypothetical inspection values. Writes nothing."""
    _require_item_list(data.equipment_status, data.equip_others, "return")
    booking = _get_booking(db, booking_id)
    if booking.release is None:
        raise PreconditionError(f"Booking {booking_id} has no release data", guard="release")
    return calculate_return_fees(booking.release, _to_inputs(data), get_fees(db))


async def return_booking(db: Session, booking_id: int, data: ReturnCreate,
                         now: Optional[datetime] = None) -> ReturnResult:
    now = now or datetime.utcnow()
    _require_item_list(data.equipment_status, data.equip_others, "return")
    booking = _get_booking(db, booking_id, lock=True)
    try:
        _require_status(booking, (STATUS_IN_PROGRESS,), "return")
        if booking.release is None:
            raise PreconditionError(f"Booking {booking_id} has no release data", guard="release")
        if booking.return_record is not None:
            raise PreconditionError(f"Booking {booking_id} has already been returned", guard="return")
        car = booking.car
        if car.mileage and data.odometer < car.mileage:
            raise ValidationError(f"Odometer {data.odometer} is below recorded mileage {car.mileage}")
    except (PreconditionError, ValidationError):
        db.rollback()
        raise

    fees = calculate_return_fees(booking.release, _to_inputs(data), get_fees(db))

    record = ReturnRecord(
        booking_id=booking.id,
        odometer=data.odometer,
        gas_level=data.gas_level,
        equipment=data.equipment_status,
        equip_others=data.equip_others,
        damage=damage_label(data.damage_status),
        damage_img=data.damage_img,
        is_clean=data.is_clean,
        has_stain=data.has_stain,
        gas_level_fee=fees.gas_level_fee,
        equipment_loss_fee=fees.equipment_loss_fee,
        damage_fee=fees.damage_fee,
        cleaning_fee=fees.cleaning_fee,
        total_fee=fees.total,
        created_at=now,
    )
    db.add(record)
    car.mileage = data.odometer

    booking.total_amount = (booking.total_amount or 0) + fees.total
    amount_due = (booking.balance or 0) + fees.total
    if data.payment is not None:
        if amount_due > 0:
            db.add(Payment(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                description="Return fees payment",
                payment_method=data.payment.payment_method,
                reference_no=data.payment.reference_no,
                amount=amount_due,
                paid_date=now,
                balance=0,
            ))
        booking.balance = 0
        booking.payment_status = PAYMENT_PAID
    else:
        booking.balance = amount_due
        booking.payment_status = _payment_status(amount_due, total_paid(db, booking.id))

    booking.booking_status = STATUS_COMPLETED
    booking.isReturned = True
    if booking.driver is not None:
        booking.driver.booking_status = DRIVER_IDLE
    _log_transaction(db, booking, now, completed=True)
    freed = _free_car(db, car, booking.id)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(booking)
    db.refresh(record)
    logger.info(f"[RETURN] Booking #{booking.id} completed: fees {fees.total}, balance {booking.balance}"
                + (f", car {car.id} → Available" if freed else ""))

    if freed:
        schedule_waitlist_cascade(car.id)
    return ReturnResult(fees=fees, booking=booking, return_record=record)


# ── Car status ───────────────────────────────────────────────────────────────

async def update_car_status(db: Session, car_id: int, status: str) -> Car:
    """Staff / maintenance status change. Entering Available starts the waitlist cascade."""
    if status not in CAR_STATUSES:
        raise ValidationError(f"Invalid car status '{status}'. Must be one of: {', '.join(CAR_STATUSES)}")
    car = _get_car(db, car_id, lock=True)
    previous = car.status
    car.status = status
    db.commit()
    db.refresh(car)
    logger.info(f"[BOOKING] Car {car_id} status {previous} → {status}")

    if status == CAR_AVAILABLE and previous != CAR_AVAILABLE:
        schedule_waitlist_cascade(car_id)
    return car
