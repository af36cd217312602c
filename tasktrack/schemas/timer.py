from pydantic import BaseModel, Field
from typing import Optional, Annotated
from uuid import UUID
from datetime import datetime

from tasktrack.schemas.time_log import TimeLogResponse


class TimerStart(BaseModel):
    task_id: UUID
    description: Optional[Annotated[str, Field(max_length=500)]] = None


class DurationView(BaseModel):
    seconds: int
    formatted: str
    hours: Optional[float] = None


class TimerResponse(BaseModel):
    id: UUID
    user_id: UUID
    task_id: UUID
    task_title: Optional[str] = None
    project_id: UUID
    project_name: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: int
    description: Optional[str]
    is_active: bool

    class Config:
        from_attributes = True


class ActiveTimerResponse(TimerResponse):
    current_duration: DurationView


class TimerStopResponse(BaseModel):
    timer: TimerResponse
    time_log: TimeLogResponse
    duration: DurationView
