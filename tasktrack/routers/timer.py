# tasktrack/routers/timer.py
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import logging

from tasktrack.db import get_db
from tasktrack.core.deps import get_clock
from tasktrack.core.security import get_current_user
from tasktrack.models.user import User
from tasktrack.schemas.timer import ActiveTimerResponse, TimerResponse, TimerStart, TimerStopResponse
from tasktrack.services.timers import TimerService

router = APIRouter(prefix="/timer", tags=["Timer"])
logger = logging.getLogger(__name__)


@router.post("/start")
def start_timer(
    payload: TimerStart,
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    session = TimerService(db, clock).start(current_user.id, payload.task_id, payload.description)
    return JSONResponse(status_code=status.HTTP_201_CREATED, content={
        "message": "Timer started",
        "data": TimerResponse.model_validate(session).model_dump(mode="json"),
    })


@router.post("/stop")
def stop_timer(
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    result = TimerService(db, clock).stop(current_user.id)
    data = TimerStopResponse.model_validate(result, from_attributes=True).model_dump(mode="json")
    return JSONResponse(status_code=status.HTTP_200_OK, content={"message": "Timer stopped", "data": data})


@router.get("/active")
def get_active_timer(
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    active = TimerService(db, clock).get_active(current_user.id)
    if active is None:
        return JSONResponse(status_code=status.HTTP_200_OK, content={"message": "No active timer", "data": None})

    timer = TimerResponse.model_validate(active["timer"]).model_dump()
    data = ActiveTimerResponse(**timer, current_duration=active["current_duration"]).model_dump(mode="json")
    return JSONResponse(status_code=status.HTTP_200_OK, content={"message": "Active timer fetched", "data": data})


@router.delete("/discard")
def discard_timer(
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    TimerService(db, clock).discard(current_user.id)
    return JSONResponse(status_code=status.HTTP_200_OK, content={"message": "Timer discarded", "data": None})
