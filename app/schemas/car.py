# app/schemas/car.py
from pydantic import BaseModel
from datetime import date
from typing import Literal, Optional


class CarStatusUpdate(BaseModel):
    status: Literal["Available", "Rented", "Maintenance", "Inactive"]


class CarOut(BaseModel):
    id: int
    make: str
    model: str
    year: Optional[int]
    license_plate: Optional[str]
    rent_price: float
    mileage: Optional[int]
    status: str

    class Config:
        from_attributes = True


class UnavailablePeriodOut(BaseModel):
    start: date
    end: date
    reason: str
    source_booking_id: Optional[int]
    is_maintenance: bool

    class Config:
        from_attributes = True


class AvailabilityOut(BaseModel):
    car_id: int
    is_valid: bool
    message: str
    conflicts: list[UnavailablePeriodOut]
