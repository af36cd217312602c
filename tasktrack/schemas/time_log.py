from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, Annotated
from uuid import UUID
from datetime import datetime, date


def _require_naive(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        raise ValueError("Times must be local wall-clock times without a UTC offset")
    return value


# ---------- Create ----------
class TimeLogCreate(BaseModel):
    task_id: UUID
    date: date
    start_time: datetime
    end_time: datetime
    description: Optional[Annotated[str, Field(max_length=500)]] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def check_naive(cls, value):
        return _require_naive(value)


# ---------- Update ----------
class TimeLogUpdate(BaseModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    description: Optional[Annotated[str, Field(max_length=500)]] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def check_naive(cls, value):
        return _require_naive(value)

    @model_validator(mode="after")
    def check_not_empty(self):
        if self.start_time is None and self.end_time is None and self.description is None:
            raise ValueError("Provide start_time, end_time or description")
        return self


# ---------- Response ----------
class TimeLogResponse(BaseModel):
    id: UUID
    user_id: UUID
    task_id: UUID
    task_title: Optional[str] = None
    project_id: UUID
    project_name: Optional[str] = None
    date: date
    start_time: datetime
    end_time: datetime
    duration: float
    description: Optional[str]
    is_manual: bool
    is_approved: bool
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None

    class Config:
        from_attributes = True
