from pydantic import BaseModel, Field
from typing import List, Optional, Annotated
from uuid import UUID
from datetime import datetime, date

from tasktrack.models.timesheet import TimesheetStatus
from tasktrack.schemas.time_log import TimeLogResponse


# ---------- Requests ----------
class ManualEntry(BaseModel):
    task_id: UUID
    project_id: Optional[UUID] = None
    day_index: Annotated[int, Field(ge=0, le=6)]
    duration: Annotated[float, Field(allow_inf_nan=False, le=24)]


class ManualEntriesRequest(BaseModel):
    entries: List[ManualEntry]


class ApproveRequest(BaseModel):
    note: Optional[Annotated[str, Field(max_length=500)]] = None


class RejectRequest(BaseModel):
    reason: Optional[Annotated[str, Field(max_length=500)]] = None


# ---------- Response ----------
class TimesheetResponse(BaseModel):
    id: UUID
    user_id: UUID
    week_id: str
    week_start: date
    week_end: date
    entries: List[TimeLogResponse]
    total_hours: float
    status: TimesheetStatus
    approver_id: Optional[UUID] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    approval_note: Optional[str] = None

    class Config:
        from_attributes = True


class TimesheetSummary(BaseModel):
    """Listing shape: no entries."""
    id: UUID
    user_id: UUID
    week_id: str
    week_start: date
    week_end: date
    total_hours: float
    status: TimesheetStatus
    submitted_at: Optional[datetime] = None

    class Config:
        from_attributes = True
