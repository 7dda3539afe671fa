# app/schemas/booking.py
from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional


class BookingCreate(BaseModel):
    car_id: int
    customer_id: int
    start_date: date
    end_date: date
    purpose: Optional[str] = None
    pickup_loc: Optional[str] = None
    dropoff_loc: Optional[str] = None
    is_self_drive: bool = True
    drivers_id: Optional[int] = None


class BookingOut(BaseModel):
    id: int
    car_id: int
    customer_id: int
    drivers_id: Optional[int]
    booking_date: datetime
    start_date: date
    end_date: date
    purpose: Optional[str]
    pickup_loc: Optional[str]
    dropoff_loc: Optional[str]
    is_self_drive: bool
    booking_status: str
    payment_status: str
    isPay: Optional[bool]
    isCancel: bool
    isRelease: bool
    isReturned: bool
    payment_deadline: Optional[datetime]
    total_amount: float
    balance: float
    cancellation_reason: Optional[str]

    class Config:
        from_attributes = True


class PaymentCreate(BaseModel):
    amount: float = Field(gt=0)
    payment_method: Optional[str] = None
    reference_no: Optional[str] = None
    description: Optional[str] = None


class PaymentOut(BaseModel):
    id: int
    booking_id: int
    customer_id: int
    description: Optional[str]
    payment_method: Optional[str]
    reference_no: Optional[str]
    amount: float
    paid_date: datetime
    balance: Optional[float]

    class Config:
        from_attributes = True


class StatusReason(BaseModel):
    reason: Optional[str] = None
