# app/schemas/return_record.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Literal


class ReturnFeeInputs(BaseModel):
    gas_level: Optional[Literal["High", "Mid", "Low"]] = None
    equipment_status: Optional[Literal["complete", "incomplete"]] = None
    equip_others: Optional[str] = None
    damage_status: Optional[Literal["noDamage", "minor", "major"]] = None
    is_clean: bool = True
    has_stain: bool = False


class ReturnPayment(BaseModel):
    payment_method: str
    reference_no: Optional[str] = None


class ReturnCreate(ReturnFeeInputs):
    odometer: int = Field(ge=0)
    damage_img: Optional[str] = None
    payment: Optional[ReturnPayment] = None


class FeeBreakdownOut(BaseModel):
    gas_level_fee: float
    equipment_loss_fee: float
    damage_fee: float
    cleaning_fee: float
    missing_items: list[str]
    total: float


class ReturnRecordOut(BaseModel):
    id: int
    booking_id: int
    odometer: int
    gas_level: Optional[str]
    equipment: Optional[str]
    equip_others: Optional[str]
    damage: Optional[str]
    damage_img: Optional[str]
    is_clean: bool
    has_stain: bool
    gas_level_fee: float
    equipment_loss_fee: float
    damage_fee: float
    cleaning_fee: float
    total_fee: float
    created_at: datetime

    class Config:
        from_attributes = True
