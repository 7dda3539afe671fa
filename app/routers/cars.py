# app/routers/cars.py
"""Car availability (derived periods, range check) and status changes."""

from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.database import get_db
from app.schemas.car import CarOut, CarStatusUpdate, UnavailablePeriodOut, AvailabilityOut
from app.services import booking_service

router = APIRouter()


@router.get("/cars/{car_id}/unavailable-periods", response_model=list[UnavailablePeriodOut],
            summary="Booked spans plus maintenance buffers")
def get_unavailable_periods(car_id: int, db: Session = Depends(get_db)):
    return booking_service.car_unavailable_periods(db, car_id)


@router.get("/cars/{car_id}/availability", response_model=AvailabilityOut,
            summary="Check a date range against every unavailable period")
def check_availability(car_id: int, start_date: date, end_date: date, db: Session = Depends(get_db)):
    check = booking_service.check_availability(db, car_id, start_date, end_date)
    return {"car_id": car_id, "is_valid": check.is_valid, "message": check.message,
            "conflicts": check.conflicts}


@router.put("/cars/{car_id}/status", response_model=CarOut, summary="Set car status (Available starts waitlist cascade)")
async def update_car_status(car_id: int, body: CarStatusUpdate, db: Session = Depends(get_db)):
    return await booking_service.update_car_status(db, car_id, body.status)
