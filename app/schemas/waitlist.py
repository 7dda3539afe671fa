# app/schemas/waitlist.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class WaitlistJoin(BaseModel):
    customer_id: int
    notification_preference: Optional[int] = Field(default=None, ge=0, le=3)   # 0 none, 1 SMS, 2 Email, 3 Both


class WaitlistOut(BaseModel):
    id: int
    car_id: int
    customer_id: int
    status: str
    created_at: datetime
    queued_at: datetime
    notified_date: Optional[datetime]
    notification_method: Optional[str]
    notification_success: Optional[bool]
    notification_error: Optional[str]

    class Config:
        from_attributes = True
