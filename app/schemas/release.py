# app/schemas/release.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Literal


class ReleaseCreate(BaseModel):
    drivers_id: int
    equipment: Literal["complete", "incomplete"] = "complete"
    equip_others: Optional[str] = None
    gas_level: Literal["High", "Mid", "Low"]
    license_presented: bool = False


class ReleaseImageUpdate(BaseModel):
    image_type: Literal["id1", "id2", "front", "back", "right", "left"]
    url: str


class ReleaseOut(BaseModel):
    id: int
    booking_id: int
    drivers_id: int
    equipment: Optional[str]
    equip_others: Optional[str]
    gas_level: Optional[str]
    license_presented: bool
    valid_id_img1: Optional[str]
    valid_id_img2: Optional[str]
    front_img: Optional[str]
    back_img: Optional[str]
    right_img: Optional[str]
    left_img: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
