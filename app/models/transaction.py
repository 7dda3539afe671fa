# app/models/transaction.py
"""
Transaction log — one audited entry per completion or cancellation.
booking_id carries no foreign key: entries outlive reclaimed bookings.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, Text
from app.database import Base


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(Integer, nullable=False, index=True)
    customer_id = Column(Integer, nullable=False)
    car_id = Column(Integer, nullable=False)
    completion_date = Column(DateTime)
    cancellation_date = Column(DateTime)
    description = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        kind = "completed" if self.completion_date else "cancelled"
        return f"<Transaction {self.id} booking={self.booking_id} {kind}>"
