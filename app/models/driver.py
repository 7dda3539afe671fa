# app/models/driver.py
from sqlalchemy import Column, Integer, String
from app.database import Base

DRIVER_IDLE = 0
DRIVER_IN_PROGRESS = 3   # booking released and in progress


class Driver(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    booking_status = Column(Integer, default=DRIVER_IDLE, nullable=False)

    def __repr__(self):
        return f"<Driver {self.id} {self.first_name} status={self.booking_status}>"
