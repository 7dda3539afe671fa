# app/models/booking.py
"""
Bookings table — one row per rental request.
Transitions are owned by services/booking_service.py; rows are only
hard-deleted by the expiry reclaimer.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, Float, Boolean, ForeignKey, Text
from sqlalchemy.orm import relationship
from app.database import Base

STATUS_PENDING = "Pending"
STATUS_CONFIRMED = "Confirmed"
STATUS_IN_PROGRESS = "In Progress"
STATUS_COMPLETED = "Completed"
STATUS_CANCELLED = "Cancelled"
STATUS_REJECTED = "Rejected"
STATUS_RETURNED = "Returned"

ACTIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_IN_PROGRESS)
OCCUPYING_STATUSES = (STATUS_CONFIRMED, STATUS_IN_PROGRESS)
TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_CANCELLED, STATUS_REJECTED, STATUS_RETURNED)

PAYMENT_UNPAID = "Unpaid"
PAYMENT_PARTIAL = "Partial"
PAYMENT_PAID = "Paid"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    car_id = Column(Integer, ForeignKey("cars.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    drivers_id = Column(Integer, ForeignKey("drivers.id"))      # assigned chauffeur, if any
    booking_date = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    purpose = Column(String(200))
    pickup_loc = Column(String(200))
    dropoff_loc = Column(String(200))
    is_self_drive = Column(Boolean, default=True, nullable=False)

    booking_status = Column(String(30), default=STATUS_PENDING, nullable=False, index=True)
    payment_status = Column(String(30), default=PAYMENT_UNPAID, nullable=False)
    isPay = Column(Boolean, default=False)
    isCancel = Column(Boolean, default=False, nullable=False)
    isRelease = Column(Boolean, default=False, nullable=False)
    isReturned = Column(Boolean, default=False, nullable=False)
    payment_deadline = Column(DateTime, index=True)
    total_amount = Column(Float, default=0, nullable=False)
    balance = Column(Float, default=0, nullable=False)
    cancellation_reason = Column(Text)
    return_reminder_sent = Column(Boolean, default=False, nullable=False)

    car = relationship("Car")
    customer = relationship("Customer")
    driver = relationship("Driver")
    payments = relationship("Payment", back_populates="booking", cascade="all, delete-orphan")
    release = relationship("Release", back_populates="booking", uselist=False)
    return_record = relationship("ReturnRecord", back_populates="booking", uselist=False)

    def __repr__(self):
        return f"<Booking {self.id} car={self.car_id} {self.start_date}→{self.end_date} status={self.booking_status}>"
