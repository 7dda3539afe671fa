# app/routers/fees.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.database import get_db
from app.services.fee_schedule import get_fees

router = APIRouter()


@router.get("/fees", summary="Current fee schedule (configured amounts over defaults)")
def read_fees(db: Session = Depends(get_db)):
    return get_fees(db)
