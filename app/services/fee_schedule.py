# app/services/fee_schedule.py
"""
Fee schedule provider.
Configured amounts live in manage_fees; anything missing falls back to
settings.DEFAULT_FEES. The engine never writes fees.
"""

from sqlalchemy.orm import Session
from app.models.manage_fee import ManageFee
from app.config import settings


def get_fees(db: Session) -> dict:
    fees = dict(settings.DEFAULT_FEES)
    for row in db.query(ManageFee).all():
        fees[row.fee_type] = row.amount
    return fees


def fee_amount(fees: dict, fee_type: str) -> float:
    return fees.get(fee_type) or 0
