# app/models/payment.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    description = Column(String(200))
    payment_method = Column(String(50))
    reference_no = Column(String(100))
    amount = Column(Float, nullable=False)
    paid_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    balance = Column(Float)               # booking balance after this payment

    booking = relationship("Booking", back_populates="payments")

    def __repr__(self):
        return f"<Payment {self.id} booking={self.booking_id} amount={self.amount}>"
