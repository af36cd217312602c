"""Weekly timesheets.

A timesheet is a derived view over a user's time logs for one Monday-aligned
week. Its reference list and total are rebuilt from the logs whenever they
have drifted, so nothing that edits logs directly can leave it stale.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, List, Set
from uuid import UUID

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tasktrack.core.config import settings
from tasktrack.core.errors import Conflict, Forbidden, Immutable, InvalidRange, NotEditable, NotFound
from tasktrack.models.time_log import TimeLog
from tasktrack.models.timesheet import Timesheet, TimesheetStatus, timesheet_entries
from tasktrack.models.user import User
from tasktrack.schemas.timesheet import ManualEntry
from tasktrack.services.cap import check_daily_cap, logged_hours
from tasktrack.services.directory import TaskDirectory
from tasktrack.services.time_logs import derive_duration_hours, detach_from_timesheets, ensure_not_future
from tasktrack.utils.weeks import resolve_week

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = (TimesheetStatus.draft, TimesheetStatus.rejected)


class TimesheetService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock
        self.directory = TaskDirectory(db)

    # ---------- reads ----------

    def _logs_in_range(self, user_id: UUID, week_start: date, week_end: date) -> List[TimeLog]:
        return (
            self.db.query(TimeLog)
            .filter(TimeLog.user_id == user_id, TimeLog.date >= week_start, TimeLog.date <= week_end)
            .order_by(TimeLog.date, TimeLog.start_time)
            .all()
        )

    def _referenced_ids(self, timesheet_id: UUID) -> Set[UUID]:
        rows = self.db.execute(
            select(timesheet_entries.c.time_log_id).where(timesheet_entries.c.timesheet_id == timesheet_id)
        ).all()
        return {r.time_log_id for r in rows}

    def get(self, timesheet_id: UUID, lock: bool = False) -> Timesheet:
        query = self.db.query(Timesheet).filter(Timesheet.id == timesheet_id)
        if lock:
            query = query.with_for_update(of=Timesheet)
        timesheet = query.first()
        if not timesheet:
            raise NotFound("Timesheet not found")
        return timesheet

    def sync(self, timesheet: Timesheet, commit: bool = True) -> Timesheet:
        """Rebuild entries and total from the logs actually in the week.

        Writes only when the stored references or total disagree with the
        logs. Returns the same timesheet with ``entries`` reloaded.
        """
        logs = self._logs_in_range(timesheet.user_id, timesheet.week_start, timesheet.week_end)
        fresh_ids = {log.id for log in logs}
        total = sum(log.duration for log in logs)

        stale_refs = self._referenced_ids(timesheet.id) != fresh_ids
        stale_total = abs((timesheet.total_hours or 0.0) - total) > 1e-9
        if stale_refs or stale_total:
            if stale_refs:
                self.db.execute(delete(timesheet_entries).where(timesheet_entries.c.timesheet_id == timesheet.id))
                if logs:
                    self.db.execute(
                        insert(timesheet_entries),
                        [{"timesheet_id": timesheet.id, "time_log_id": log.id} for log in logs],
                    )
            timesheet.total_hours = total
            self.db.flush()
            self.db.expire(timesheet, ["entries"])
            logger.info(
                "Timesheet %s reconciled: %d entries, %.2fh", timesheet.id, len(logs), total
            )
            if commit:
                try:
                    self.db.commit()
                except Exception:
                    self.db.rollback()
                    raise
        return timesheet

    def get_or_create(self, user_id: UUID, week_id) -> Timesheet:
        week_start, week_end = resolve_week(week_id)
        if not self.db.get(User, user_id):
            raise NotFound("User not found")

        timesheet = (
            self.db.query(Timesheet)
            .filter(Timesheet.user_id == user_id, Timesheet.week_start == week_start)
            .first()
        )
        if timesheet:
            return self.sync(timesheet)

        timesheet = Timesheet(
            user_id=user_id,
            week_start=week_start,
            week_end=week_end,
            status=TimesheetStatus.draft,
            total_hours=0.0,
        )
        try:
            self.db.add(timesheet)
            self.db.flush()
            self.sync(timesheet, commit=False)
            self.db.commit()
        except IntegrityError:
            # another request created this week first; use theirs
            self.db.rollback()
            timesheet = (
                self.db.query(Timesheet)
                .filter(Timesheet.user_id == user_id, Timesheet.week_start == week_start)
                .first()
            )
            if not timesheet:
                raise Conflict("Timesheet for this week could not be created, try again")
            return self.sync(timesheet)
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(timesheet)
        logger.info("Timesheet %s created for user %s week %s", timesheet.id, user_id, week_start)
        return timesheet

    # ---------- writes ----------

    def apply_manual_entries(self, timesheet_id: UUID, caller_id: UUID, entries: List[ManualEntry]) -> Timesheet:
        """Save the weekly grid for a draft (or rejected) timesheet.

        Runs as one transaction: the first failing entry aborts the batch and
        nothing from it is kept.
        """
        timesheet = self.get(timesheet_id, lock=True)
        if timesheet.user_id != caller_id:
            raise Forbidden("Not authorized to edit this timesheet")
        if timesheet.status not in EDITABLE_STATUSES:
            raise NotEditable(f"Cannot edit timesheet with status: {timesheet.status.value}")

        today = self.clock().date()
        try:
            for entry in entries:
                self._apply_entry(timesheet, entry, today)
                self.db.flush()
            self.sync(timesheet, commit=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(timesheet)
        logger.info("Timesheet %s saved with %d entries by %s", timesheet.id, len(entries), caller_id)
        return timesheet

    def _apply_entry(self, timesheet: Timesheet, entry: ManualEntry, today: date) -> None:
        if not 0 <= entry.day_index <= 6:
            raise InvalidRange("day_index must be between 0 (Monday) and 6 (Sunday)")
        day = timesheet.week_start + timedelta(days=entry.day_index)

        task = self.directory.get_task(entry.task_id)
        if entry.project_id is not None and entry.project_id != task.project_id:
            raise NotFound("Task not found in the given project")

        existing = (
            self.db.query(TimeLog)
            .filter(TimeLog.user_id == timesheet.user_id, TimeLog.task_id == task.id, TimeLog.date == day)
            .order_by(TimeLog.start_time)
            .all()
        )
        if any(log.is_approved for log in existing):
            raise Immutable(f"Approved time on {day.isoformat()} cannot be changed")

        if entry.duration <= 0:
            detach_from_timesheets(self.db, [log.id for log in existing])
            for log in existing:
                self.db.delete(log)
            return

        ensure_not_future(day, today)
        check_daily_cap(self.db, timesheet.user_id, day, entry.duration, exclude_task_id=task.id)

        # lay the entry out after whatever the other tasks already booked that day
        booked = logged_hours(self.db, timesheet.user_id, day, exclude_task_id=task.id)
        start_time = datetime.combine(day, time(hour=settings.WORKDAY_START_HOUR)) + timedelta(hours=booked)
        end_time = start_time + timedelta(hours=entry.duration)
        duration = derive_duration_hours(start_time, end_time)

        if existing:
            log, extra = existing[0], existing[1:]
            detach_from_timesheets(self.db, [l.id for l in extra])
            for l in extra:
                self.db.delete(l)
            log.start_time = start_time
            log.end_time = end_time
            log.duration = duration
            log.is_manual = True
        else:
            self.db.add(TimeLog(
                user_id=timesheet.user_id,
                task_id=task.id,
                project_id=task.project_id,
                date=day,
                start_time=start_time,
                end_time=end_time,
                duration=duration,
                description=f"Timesheet entry for {task.title}",
                is_manual=True,
            ))
