# app/routers/bookings.py
"""
Booking lifecycle endpoints: request, pay, confirm, reject, cancel,
release, return (with fee preview).
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.errors import NotFoundError
from app.models.booking import Booking
from app.schemas.booking import BookingCreate, BookingOut, PaymentCreate, PaymentOut, StatusReason
from app.schemas.release import ReleaseCreate, ReleaseOut, ReleaseImageUpdate
from app.schemas.return_record import ReturnCreate, ReturnFeeInputs, FeeBreakdownOut, ReturnRecordOut
from app.services import booking_service

router = APIRouter()


@router.post("/bookings", response_model=BookingOut, status_code=status.HTTP_201_CREATED,
             summary="Request a booking (409 lists every conflicting period)")
async def request_booking(body: BookingCreate, db: Session = Depends(get_db)):
    return await booking_service.request_booking(db, body)


@router.get("/bookings/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: int, db: Session = Depends(get_db)):
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


@router.post("/bookings/{booking_id}/payments", response_model=PaymentOut,
             status_code=status.HTTP_201_CREATED, summary="Record a payment against a booking")
async def record_payment(booking_id: int, body: PaymentCreate, db: Session = Depends(get_db)):
    return await booking_service.record_payment(db, booking_id, body)


@router.put("/bookings/{booking_id}/confirm", response_model=BookingOut,
            summary="Pending → Confirmed (requires reservation fee paid)")
async def confirm_booking(booking_id: int, db: Session = Depends(get_db)):
    return await booking_service.confirm_booking(db, booking_id)


@router.put("/bookings/{booking_id}/reject", response_model=BookingOut, summary="Pending → Rejected")
async def reject_booking(booking_id: int, body: StatusReason = StatusReason(), db: Session = Depends(get_db)):
    return await booking_service.reject_booking(db, booking_id, body.reason)


@router.put("/bookings/{booking_id}/cancel", response_model=BookingOut,
            summary="Pending / Confirmed → Cancelled")
async def cancel_booking(booking_id: int, body: StatusReason = StatusReason(), db: Session = Depends(get_db)):
    return await booking_service.cancel_booking(db, booking_id, body.reason)


@router.post("/bookings/{booking_id}/release", response_model=ReleaseOut,
             status_code=status.HTTP_201_CREATED, summary="Hand the car over: Confirmed → In Progress")
async def release_booking(booking_id: int, body: ReleaseCreate, db: Session = Depends(get_db)):
    return await booking_service.release_booking(db, booking_id, body)


@router.put("/releases/{release_id}/images", response_model=ReleaseOut, summary="Backfill a release image URL")
async def attach_release_image(release_id: int, body: ReleaseImageUpdate, db: Session = Depends(get_db)):
    return await booking_service.attach_release_image(db, release_id, body.image_type, body.url)


@router.post("/bookings/{booking_id}/return/preview", response_model=FeeBreakdownOut,
             summary="Preview return fees for hypothetical inspection values")
async def preview_return_fees(booking_id: int, body: ReturnFeeInputs, db: Session = Depends(get_db)):
    fees = await booking_service.preview_return_fees(db, booking_id, body)
    return fees.to_dict()


@router.post("/bookings/{booking_id}/return", summary="Submit the return inspection: In Progress → Completed")
async def return_booking(booking_id: int, body: ReturnCreate, db: Session = Depends(get_db)):
    result = await booking_service.return_booking(db, booking_id, body)
    return {
        "message": "Return submitted successfully",
        "fees": FeeBreakdownOut(**result.fees.to_dict()),
        "booking": BookingOut.model_validate(result.booking),
        "return": ReturnRecordOut.model_validate(result.return_record),
    }
