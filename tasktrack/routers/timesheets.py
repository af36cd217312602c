# tasktrack/routers/timesheets.py
from fastapi import APIRouter, Depends, HTTPException, status, Path
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional
import logging

from tasktrack.db import get_db
from tasktrack.core.deps import get_clock
from tasktrack.core.security import get_current_user
from tasktrack.models.user import User
from tasktrack.schemas.timesheet import (
    ApproveRequest,
    ManualEntriesRequest,
    RejectRequest,
    TimesheetResponse,
    TimesheetSummary,
)
from tasktrack.services.approvals import ApprovalWorkflow
from tasktrack.services.directory import TaskDirectory
from tasktrack.services.notifications import NotificationSink, get_notification_sink
from tasktrack.services.timesheets import TimesheetService
from tasktrack.utils.pagination import get_pagination_params
from tasktrack.utils.validators import validate_uuid

router = APIRouter(prefix="/timesheets", tags=["Timesheets"])
logger = logging.getLogger(__name__)


def _timesheet_response(message: str, timesheet) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_200_OK, content={
        "message": message,
        "data": TimesheetResponse.model_validate(timesheet).model_dump(mode="json"),
    })


def get_workflow(
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    sink: NotificationSink = Depends(get_notification_sink),
) -> ApprovalWorkflow:
    return ApprovalWorkflow(db, sink, clock)


@router.get("/pending")
def list_pending_timesheets(
    pagination: dict = Depends(get_pagination_params),
    workflow: ApprovalWorkflow = Depends(get_workflow),
    current_user: User = Depends(get_current_user),
):
    timesheets = workflow.list_pending(current_user, skip=pagination["skip"], limit=pagination["limit"])
    data = [TimesheetSummary.model_validate(t).model_dump(mode="json") for t in timesheets]
    return JSONResponse(status_code=status.HTTP_200_OK, content={"message": "Pending timesheets fetched", "data": data})


@router.get("/user/{user_id}/week/{week_id}")
def get_weekly_timesheet(
    user_id: str = Path(..., description="Timesheet owner"),
    week_id: str = Path(..., description="YYYY-Www or any date in the week"),
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    user_uuid = validate_uuid(user_id)
    if not TaskDirectory(db).can_view_user(current_user, user_uuid):
        logger.warning("User %s denied timesheet of %s", current_user.id, user_uuid)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view this timesheet")

    timesheet = TimesheetService(db, clock).get_or_create(user_uuid, week_id)
    return _timesheet_response("Timesheet fetched successfully", timesheet)


@router.put("/{timesheet_id}/entries")
def save_timesheet_entries(
    payload: ManualEntriesRequest,
    timesheet_id: str = Path(...),
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    timesheet = TimesheetService(db, clock).apply_manual_entries(
        validate_uuid(timesheet_id), current_user.id, payload.entries
    )
    return _timesheet_response("Timesheet saved successfully", timesheet)


@router.post("/{timesheet_id}/submit")
def submit_timesheet(
    timesheet_id: str = Path(...),
    workflow: ApprovalWorkflow = Depends(get_workflow),
    current_user: User = Depends(get_current_user),
):
    timesheet = workflow.submit(validate_uuid(timesheet_id), current_user.id)
    return _timesheet_response("Timesheet submitted successfully", timesheet)


@router.put("/{timesheet_id}/approve")
def approve_timesheet(
    payload: Optional[ApproveRequest] = None,
    timesheet_id: str = Path(...),
    workflow: ApprovalWorkflow = Depends(get_workflow),
    current_user: User = Depends(get_current_user),
):
    note = payload.note if payload else None
    timesheet = workflow.approve(validate_uuid(timesheet_id), current_user, note)
    return _timesheet_response("Timesheet approved successfully", timesheet)


@router.put("/{timesheet_id}/reject")
def reject_timesheet(
    payload: RejectRequest,
    timesheet_id: str = Path(...),
    workflow: ApprovalWorkflow = Depends(get_workflow),
    current_user: User = Depends(get_current_user),
):
    timesheet = workflow.reject(validate_uuid(timesheet_id), current_user, payload.reason)
    return _timesheet_response("Timesheet rejected", timesheet)
