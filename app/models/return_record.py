# app/models/return_record.py
"""
Return record — inspection snapshot at vehicle return, with the settled fees.
Created exactly once per booking.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Float, ForeignKey, Text
from sqlalchemy.orm import relationship
from app.database import Base


class ReturnRecord(Base):
    __tablename__ = "returns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    odometer = Column(Integer, nullable=False)
    gas_level = Column(String(10))
    equipment = Column(String(20))
    equip_others = Column(Text)
    damage = Column(String(20))              # No_Damage | Minor | Major
    damage_img = Column(Text)
    is_clean = Column(Boolean, default=True, nullable=False)
    has_stain = Column(Boolean, default=False, nullable=False)
    gas_level_fee = Column(Float, default=0, nullable=False)
    equipment_loss_fee = Column(Float, default=0, nullable=False)
    damage_fee = Column(Float, default=0, nullable=False)
    cleaning_fee = Column(Float, default=0, nullable=False)
    total_fee = Column(Float, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    booking = relationship("Booking", back_populates="return_record")

    def __repr__(self):
        return f"<ReturnRecord {self.id} booking={self.booking_id} fee={self.total_fee}>"
