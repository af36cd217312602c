"""Time log store: the canonical record of hours worked."""
import logging
from collections import OrderedDict
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import delete, func
from sqlalchemy.orm import Session

from tasktrack.core.errors import FutureDate, Immutable, InvalidRange, NotEditable, NotFound, NotOwner
from tasktrack.models.project import Project
from tasktrack.models.time_log import TimeLog
from tasktrack.models.timesheet import Timesheet, TimesheetStatus, timesheet_entries
from tasktrack.services.cap import check_daily_cap
from tasktrack.services.directory import TaskDirectory
from tasktrack.utils.weeks import DAY_NAMES, hours_between, resolve_week, week_bounds

logger = logging.getLogger(__name__)


def derive_duration_hours(start_time: datetime, end_time: datetime) -> float:
    """Duration of a span in hours. The only place a log's duration comes from."""
    if start_time.tzinfo is not None or end_time.tzinfo is not None:
        raise InvalidRange("Times must be local wall-clock times without a UTC offset")
    if start_time >= end_time:
        raise InvalidRange("Start time must be before end time")
    return hours_between(start_time, end_time)


def ensure_starts_on(log_date: date, start_time: datetime) -> None:
    # the end may run past midnight, the start may not leave the log's day
    if start_time.date() != log_date:
        raise InvalidRange("Start time must fall on the log date")


def ensure_not_future(log_date: date, today: date) -> None:
    if log_date > today:
        raise FutureDate("Cannot log time for future dates")


def detach_from_timesheets(db: Session, log_ids: Iterable[UUID]) -> None:
    """Drop timesheet references to logs that are about to be deleted."""
    log_ids = list(log_ids)
    if log_ids:
        db.execute(delete(timesheet_entries).where(timesheet_entries.c.time_log_id.in_(log_ids)))


def ensure_week_open(db: Session, user_id: UUID, day: date) -> None:
    """Refuse new hours in a week whose timesheet was already approved."""
    week_start, _ = week_bounds(day)
    approved = db.query(Timesheet.id).filter(
        Timesheet.user_id == user_id,
        Timesheet.week_start == week_start,
        Timesheet.status == TimesheetStatus.approved,
    ).first()
    if approved:
        raise NotEditable("Cannot log time to an already approved week")


class TimeLogService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock
        self.directory = TaskDirectory(db)

    # ---------- writes ----------

    def create(
        self,
        user_id: UUID,
        task_id: UUID,
        log_date: date,
        start_time: datetime,
        end_time: datetime,
        description: Optional[str] = None,
        is_manual: bool = True,
    ) -> TimeLog:
        task = self.directory.get_task(task_id)
        duration = derive_duration_hours(start_time, end_time)
        ensure_starts_on(log_date, start_time)
        ensure_not_future(log_date, self.clock().date())
        ensure_week_open(self.db, user_id, log_date)
        check_daily_cap(self.db, user_id, log_date, duration)

        log = TimeLog(
            user_id=user_id,
            task_id=task.id,
            project_id=task.project_id,
            date=log_date,
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            description=description,
            is_manual=is_manual,
        )
        try:
            self.db.add(log)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(log)
        logger.info("Time log %s created for user %s: %.2fh on %s", log.id, user_id, duration, log_date)
        return log

    def _get_editable(self, log_id: UUID, caller_id: UUID) -> TimeLog:
        log = self.db.query(TimeLog).filter(TimeLog.id == log_id).with_for_update(of=TimeLog).first()
        if not log:
            raise NotFound("Time log not found")
        if log.user_id != caller_id:
            raise NotOwner("Not authorized to change this time log")
        if log.is_approved:
            raise Immutable("Cannot change an approved time log")
        return log

    def update(
        self,
        log_id: UUID,
        caller_id: UUID,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        description: Optional[str] = None,
    ) -> TimeLog:
        log = self._get_editable(log_id, caller_id)

        if start_time is not None or end_time is not None:
            new_start = start_time or log.start_time
            new_end = end_time or log.end_time
            duration = derive_duration_hours(new_start, new_end)
            ensure_starts_on(log.date, new_start)
            check_daily_cap(self.db, log.user_id, log.date, duration, exclude_log_id=log.id)
            log.start_time = new_start
            log.end_time = new_end
            log.duration = duration

        if description is not None:
            log.description = description

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(log)
        logger.info("Time log %s updated by %s", log.id, caller_id)
        return log

    def delete(self, log_id: UUID, caller_id: UUID) -> None:
        log = self._get_editable(log_id, caller_id)
        try:
            detach_from_timesheets(self.db, [log.id])
            self.db.delete(log)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Time log %s deleted by %s", log_id, caller_id)

    # ---------- queries ----------

    def get(self, log_id: UUID) -> TimeLog:
        log = self.db.query(TimeLog).filter(TimeLog.id == log_id).first()
        if not log:
            raise NotFound("Time log not found")
        return log

    def list_for_user(self, user_id: UUID, start: Optional[date] = None, end: Optional[date] = None) -> List[TimeLog]:
        query = self.db.query(TimeLog).filter(TimeLog.user_id == user_id)
        if start:
            query = query.filter(TimeLog.date >= start)
        if end:
            query = query.filter(TimeLog.date <= end)
        return query.order_by(TimeLog.date, TimeLog.start_time).all()

    def list_for_task(self, task_id: UUID) -> List[TimeLog]:
        self.directory.get_task(task_id)
        return (
            self.db.query(TimeLog)
            .filter(TimeLog.task_id == task_id)
            .order_by(TimeLog.date.desc(), TimeLog.start_time.desc())
            .all()
        )

    def list_for_project(self, project_id: UUID, start: Optional[date] = None, end: Optional[date] = None) -> List[TimeLog]:
        query = self.db.query(TimeLog).filter(TimeLog.project_id == project_id)
        if start:
            query = query.filter(TimeLog.date >= start)
        if end:
            query = query.filter(TimeLog.date <= end)
        return query.order_by(TimeLog.date.desc(), TimeLog.start_time.desc()).all()

    def weekly_summary(self, user_id: UUID, week_id) -> dict:
        """Group a week's logs by task with per-weekday hours."""
        week_start, week_end = resolve_week(week_id)
        logs = self.list_for_user(user_id, week_start, week_end)

        tasks = OrderedDict()
        daily_totals = {name: 0.0 for name in DAY_NAMES}
        for log in logs:
            row = tasks.get(log.task_id)
            if row is None:
                row = tasks[log.task_id] = {
                    "task_id": str(log.task_id),
                    "task_title": log.task.title if log.task else None,
                    "project_id": str(log.project_id),
                    "project_name": log.project.name if log.project else None,
                    "hours": {name: 0.0 for name in DAY_NAMES},
                    "total": 0.0,
                }
            day_name = DAY_NAMES[log.date.weekday()]
            row["hours"][day_name] += log.duration
            row["total"] += log.duration
            daily_totals[day_name] += log.duration

        return {
            "week_start": week_start.isoformat(),
            "week_end": week_end.isoformat(),
            "entries": list(tasks.values()),
            "daily_totals": daily_totals,
            "weekly_total": sum(daily_totals.values()),
        }

    def hours_by_project(self, user_id: UUID, start: Optional[date] = None, end: Optional[date] = None) -> List[dict]:
        query = (
            self.db.query(Project.id, Project.name, func.sum(TimeLog.duration).label("hours"))
            .select_from(TimeLog)
            .join(Project, Project.id == TimeLog.project_id)
            .filter(TimeLog.user_id == user_id)
        )
        if start:
            query = query.filter(TimeLog.date >= start)
        if end:
            query = query.filter(TimeLog.date <= end)
        rows = query.group_by(Project.id, Project.name).order_by(Project.name).all()
        return [{"project_id": str(r.id), "project_name": r.name, "hours": float(r.hours or 0)} for r in rows]
