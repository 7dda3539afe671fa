# app/models/waitlist.py
"""
Waitlist table — customers asking to be told when a car frees up.
Queue order is queued_at ascending; queued_at is re-stamped when a
notified customer rejoins.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Text
from sqlalchemy.orm import relationship
from app.database import Base

WAITLIST_WAITING = "waiting"
WAITLIST_NOTIFIED = "notified"


class Waitlist(Base):
    __tablename__ = "waitlist"

    id = Column(Integer, primary_key=True, autoincrement=True)
    car_id = Column(Integer, ForeignKey("cars.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    status = Column(String(20), default=WAITLIST_WAITING, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    queued_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    notified_date = Column(DateTime)
    notification_method = Column(String(30))   # channels that succeeded, e.g. "SMS,Email"
    notification_success = Column(Boolean)
    notification_error = Column(Text)

    car = relationship("Car")
    customer = relationship("Customer")

    def __repr__(self):
        return f"<Waitlist {self.id} car={self.car_id} customer={self.customer_id} status={self.status}>"
