# tasktrack/routers/time_logs.py
from fastapi import APIRouter, Depends, HTTPException, status, Query, Path
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
import logging

from tasktrack.db import get_db
from tasktrack.core.deps import get_clock
from tasktrack.core.security import get_current_user
from tasktrack.models.user import User
from tasktrack.schemas.time_log import TimeLogCreate, TimeLogResponse, TimeLogUpdate
from tasktrack.services.directory import TaskDirectory
from tasktrack.services.time_logs import TimeLogService
from tasktrack.utils.validators import validate_uuid

router = APIRouter(prefix="/timelogs", tags=["Time Logs"])
logger = logging.getLogger(__name__)


def _dump(logs):
    return [TimeLogResponse.model_validate(l).model_dump(mode="json") for l in logs]


@router.post("")
def create_time_log(
    payload: TimeLogCreate,
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    log = TimeLogService(db, clock).create(
        current_user.id,
        payload.task_id,
        payload.date,
        payload.start_time,
        payload.end_time,
        payload.description,
    )
    return JSONResponse(status_code=status.HTTP_201_CREATED, content={
        "message": "Time log created successfully",
        "data": TimeLogResponse.model_validate(log).model_dump(mode="json"),
    })


@router.get("/weekly")
def weekly_time_logs(
    week: Optional[str] = Query(None, description="YYYY-Www or any date in the week; defaults to this week"),
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    summary = TimeLogService(db, clock).weekly_summary(current_user.id, week or clock().date())
    return JSONResponse(status_code=status.HTTP_200_OK, content={"message": "Weekly time logs fetched", "data": summary})


@router.get("/projects/summary")
def project_hours_summary(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if start and end and start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start must not be after end")
    data = TimeLogService(db).hours_by_project(current_user.id, start, end)
    return JSONResponse(status_code=status.HTTP_200_OK, content={"message": "Project hours fetched", "data": data})


@router.get("/user/{user_id}")
def list_user_time_logs(
    user_id: str = Path(...),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user_uuid = validate_uuid(user_id)
    if not TaskDirectory(db).can_view_user(current_user, user_uuid):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view these time logs")

    logs = TimeLogService(db).list_for_user(user_uuid, start, end)
    return JSONResponse(status_code=status.HTTP_200_OK, content={"message": "Time logs fetched", "data": _dump(logs)})


@router.get("/task/{task_id}")
def list_task_time_logs(
    task_id: str = Path(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    directory = TaskDirectory(db)
    task = directory.get_task(validate_uuid(task_id))
    if not directory.can_view_project(current_user, task.project):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view this task's time logs")

    logs = TimeLogService(db).list_for_task(task.id)
    return JSONResponse(status_code=status.HTTP_200_OK, content={"message": "Time logs fetched", "data": _dump(logs)})


@router.get("/project/{project_id}")
def list_project_time_logs(
    project_id: str = Path(...),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project_uuid = validate_uuid(project_id)
    directory = TaskDirectory(db)
    project = directory.get_project(project_uuid)
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    if not directory.can_view_project(current_user, project):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view this project's time logs")

    logs = TimeLogService(db).list_for_project(project_uuid, start, end)
    return JSONResponse(status_code=status.HTTP_200_OK, content={"message": "Time logs fetched", "data": _dump(logs)})


@router.get("/{log_id}")
def get_time_log(
    log_id: str = Path(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    log = TimeLogService(db).get(validate_uuid(log_id))
    if not TaskDirectory(db).can_view_user(current_user, log.user_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view this time log")
    return JSONResponse(status_code=status.HTTP_200_OK, content={
        "message": "Time log fetched",
        "data": TimeLogResponse.model_validate(log).model_dump(mode="json"),
    })


@router.put("/{log_id}")
def update_time_log(
    payload: TimeLogUpdate,
    log_id: str = Path(...),
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    log = TimeLogService(db, clock).update(
        validate_uuid(log_id),
        current_user.id,
        start_time=payload.start_time,
        end_time=payload.end_time,
        description=payload.description,
    )
    return JSONResponse(status_code=status.HTTP_200_OK, content={
        "message": "Time log updated successfully",
        "data": TimeLogResponse.model_validate(log).model_dump(mode="json"),
    })


@router.delete("/{log_id}")
def delete_time_log(
    log_id: str = Path(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    log_uuid = validate_uuid(log_id)
    TimeLogService(db).delete(log_uuid, current_user.id)
    return JSONResponse(status_code=status.HTTP_200_OK, content={
        "message": "Time Log deleted successfully",
        "data": {"id": str(log_uuid)},
    })
