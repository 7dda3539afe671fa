# app/models/customer.py
"""
Customer contact data used by the engine.
Accounts and authentication live in an external service; only the fields
the waitlist notifier needs are kept here.
"""

from sqlalchemy import Column, Integer, String
from app.database import Base

NOTIFY_NONE = 0
NOTIFY_SMS = 1
NOTIFY_EMAIL = 2
NOTIFY_BOTH = 3

NOTIFICATION_PREFERENCES = (NOTIFY_NONE, NOTIFY_SMS, NOTIFY_EMAIL, NOTIFY_BOTH)


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(200))
    contact_no = Column(String(30))
    notification_preference = Column(Integer, default=NOTIFY_NONE, nullable=False)

    def __repr__(self):
        return f"<Customer {self.id} {self.first_name} {self.last_name}>"
