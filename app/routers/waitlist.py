# app/routers/waitlist.py
"""Waitlist queue endpoints + manual cascade trigger."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.schemas.waitlist import WaitlistJoin, WaitlistOut
from app.services import waitlist_service

router = APIRouter()


@router.post("/cars/{car_id}/waitlist", status_code=status.HTTP_201_CREATED,
             summary="Join (or rejoin) the waitlist for a car")
async def join_waitlist(car_id: int, body: WaitlistJoin, db: Session = Depends(get_db)):
    entry, position = await waitlist_service.join_waitlist(db, car_id, body.customer_id, body.notification_preference)
    return {
        "message": f"You have been added to the waitlist. You are position #{position}.",
        "position": position,
        "waitlist_entry": WaitlistOut.model_validate(entry),
    }


@router.get("/cars/{car_id}/waitlist", response_model=list[WaitlistOut], summary="Waiting customers in queue order")
def get_waitlist(car_id: int, db: Session = Depends(get_db)):
    return waitlist_service.list_waitlist(db, car_id)


@router.delete("/waitlist/{waitlist_id}", summary="Leave the waitlist")
async def leave_waitlist(waitlist_id: int, db: Session = Depends(get_db)):
    await waitlist_service.leave_waitlist(db, waitlist_id)
    return {"id": waitlist_id, "status": "removed"}


@router.post("/cars/{car_id}/waitlist/notify", summary="Run the availability cascade now and wait for it")
async def notify_waitlist(car_id: int, db: Session = Depends(get_db)):
    return await waitlist_service.notify_waiting(car_id, db)
