# app/routers/reclaim.py
"""Manual triggers for the background sweeps (expiry reclaimer, return reminders)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.database import get_db
from app.services.reclaimer import reclaim_expired_bookings
from app.services.booking_notices import send_return_reminders

router = APIRouter()


@router.post("/reclaim/run", summary="Reclaim expired unpaid bookings now")
async def run_reclaim(db: Session = Depends(get_db)):
    return await reclaim_expired_bookings(db)


@router.post("/reminders/run", summary="Send today's return-day reminders now")
async def run_return_reminders(db: Session = Depends(get_db)):
    return await send_return_reminders(db)
