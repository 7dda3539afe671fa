# app/models/release.py
"""
Release record — hand-off inspection snapshot taken when the car leaves.
Immutable once created, except for the image URL columns which are
backfilled after upload.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Text
from sqlalchemy.orm import relationship
from app.database import Base

RELEASE_IMAGE_COLUMNS = {
    "id1": "valid_id_img1",
    "id2": "valid_id_img2",
    "front": "front_img",
    "back": "back_img",
    "right": "right_img",
    "left": "left_img",
}


class Release(Base):
    __tablename__ = "releases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    drivers_id = Column(Integer, ForeignKey("drivers.id"), nullable=False)
    equipment = Column(String(20))          # complete | incomplete
    equip_others = Column(Text)             # comma-separated missing/damaged items
    gas_level = Column(String(10))          # High | Mid | Low
    license_presented = Column(Boolean, default=False, nullable=False)
    valid_id_img1 = Column(Text)
    valid_id_img2 = Column(Text)
    front_img = Column(Text)
    back_img = Column(Text)
    right_img = Column(Text)
    left_img = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    booking = relationship("Booking", back_populates="release")

    def __repr__(self):
        return f"<Release {self.id} booking={self.booking_id} gas={self.gas_level}>"
