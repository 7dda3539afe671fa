# app/models/car.py
"""
Fleet table.
`status` is written by the booking lifecycle (Rented/Available) and by
staff maintenance scheduling (Maintenance/Inactive).
"""

from sqlalchemy import Column, Integer, String, Float
from app.database import Base

CAR_AVAILABLE = "Available"
CAR_RENTED = "Rented"
CAR_MAINTENANCE = "Maintenance"
CAR_INACTIVE = "Inactive"

CAR_STATUSES = (CAR_AVAILABLE, CAR_RENTED, CAR_MAINTENANCE, CAR_INACTIVE)


class Car(Base):
    __tablename__ = "cars"

    id = Column(Integer, primary_key=True, autoincrement=True)
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer)
    license_plate = Column(String(50), unique=True, index=True)
    rent_price = Column(Float, default=0, nullable=False)   # per day
    mileage = Column(Integer, default=0)
    status = Column(String(30), default=CAR_AVAILABLE, nullable=False, index=True)

    @property
    def display_name(self) -> str:
        return f"{self.make} {self.model} ({self.year})" if self.year else f"{self.make} {self.model}"

    def __repr__(self):
        return f"<Car {self.id} {self.make} {self.model} status={self.status}>"
