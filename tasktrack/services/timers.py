"""Timer sessions: one running stopwatch per user, turned into a time log on stop."""
import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tasktrack.core.errors import InvalidRange, NotFound, TimerAlreadyActive, TimerTaskMissing
from tasktrack.models.time_log import TimeLog
from tasktrack.models.timer_session import TimerSession
from tasktrack.services.cap import check_daily_cap
from tasktrack.services.directory import TaskDirectory
from tasktrack.services.time_logs import derive_duration_hours, ensure_week_open
from tasktrack.utils.weeks import format_duration

logger = logging.getLogger(__name__)


def elapsed_seconds(start_time: datetime, now: datetime) -> int:
    return max(math.floor((now - start_time).total_seconds()), 0)


class TimerService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock
        self.directory = TaskDirectory(db)

    def _active(self, user_id: UUID, lock: bool = False) -> Optional[TimerSession]:
        query = self.db.query(TimerSession).filter(TimerSession.user_id == user_id, TimerSession.is_active == True)
        if lock:
            query = query.with_for_update(of=TimerSession)
        return query.first()

    def start(self, user_id: UUID, task_id: UUID, description: Optional[str] = None) -> TimerSession:
        if self._active(user_id):
            raise TimerAlreadyActive("You already have an active timer. Stop it before starting a new one.")

        try:
            task = self.directory.get_task(task_id)
        except NotFound:
            raise TimerTaskMissing("Task not found")
        session = TimerSession(
            user_id=user_id,
            task_id=task.id,
            project_id=task.project_id,
            description=description or "",
            start_time=self.clock(),
            is_active=True,
        )
        try:
            self.db.add(session)
            self.db.commit()
        except IntegrityError:
            # a concurrent start won the unique active-timer index
            self.db.rollback()
            raise TimerAlreadyActive("You already have an active timer. Stop it before starting a new one.")
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(session)
        logger.info("Timer %s started by user %s on task %s", session.id, user_id, task.id)
        return session

    def stop(self, user_id: UUID) -> dict:
        """Close the active timer and book its time.

        Either the session is closed and exactly one TimeLog is written, or
        CapExceeded is raised and nothing changes.
        """
        session = self._active(user_id, lock=True)
        if not session:
            raise NotFound("No active timer found")

        end_time = self.clock()
        seconds = elapsed_seconds(session.start_time, end_time)
        hours = seconds / 3600
        log_date = session.start_time.date()

        if seconds < 1:
            raise InvalidRange("Timer has not run for a full second yet")
        ensure_week_open(self.db, user_id, log_date)
        check_daily_cap(self.db, user_id, log_date, hours)

        # the log spans whole seconds so its duration matches the session's
        log_end = session.start_time + timedelta(seconds=seconds)

        try:
            session.end_time = end_time
            session.duration = seconds
            session.is_active = False

            log = TimeLog(
                user_id=user_id,
                task_id=session.task_id,
                project_id=session.project_id,
                date=log_date,
                start_time=session.start_time,
                end_time=log_end,
                duration=derive_duration_hours(session.start_time, log_end),
                description=session.description or "Timer session",
                is_manual=False,
            )
            self.db.add(log)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(session)
        self.db.refresh(log)
        logger.info("Timer %s stopped by user %s after %s", session.id, user_id, format_duration(seconds))

        return {
            "timer": session,
            "time_log": log,
            "duration": {
                "seconds": seconds,
                "hours": round(hours, 2),
                "formatted": format_duration(seconds),
            },
        }

    def get_active(self, user_id: UUID) -> Optional[dict]:
        session = self._active(user_id)
        if not session:
            return None
        seconds = elapsed_seconds(session.start_time, self.clock())
        return {
            "timer": session,
            "current_duration": {"seconds": seconds, "formatted": format_duration(seconds)},
        }

    def discard(self, user_id: UUID) -> None:
        session = self._active(user_id, lock=True)
        if not session:
            raise NotFound("No active timer found")
        try:
            self.db.delete(session)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Timer %s discarded by user %s", session.id, user_id)
