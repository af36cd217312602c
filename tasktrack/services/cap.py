import logging
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from tasktrack.core.config import settings
from tasktrack.core.errors import CapExceeded
from tasktrack.models.time_log import TimeLog

logger = logging.getLogger(__name__)

# float slack so that e.g. 5.5 + 2.5 never trips an 8h cap
CAP_TOLERANCE = 1e-9


def logged_hours(
    db: Session,
    user_id: UUID,
    day: date,
    exclude_task_id: Optional[UUID] = None,
    exclude_log_id: Optional[UUID] = None,
) -> float:
    query = db.query(func.coalesce(func.sum(TimeLog.duration), 0.0)).filter(
        TimeLog.user_id == user_id,
        TimeLog.date == day,
    )
    if exclude_task_id is not None:
        query = query.filter(TimeLog.task_id != exclude_task_id)
    if exclude_log_id is not None:
        query = query.filter(TimeLog.id != exclude_log_id)
    return float(query.scalar() or 0.0)


def check_daily_cap(
    db: Session,
    user_id: UUID,
    day: date,
    candidate_hours: float,
    exclude_task_id: Optional[UUID] = None,
    exclude_log_id: Optional[UUID] = None,
    cap: Optional[float] = None,
) -> float:
    """Raise CapExceeded if ``candidate_hours`` would push ``day`` over the cap.

    ``exclude_task_id`` drops one task's logs from the running total (an entry
    being replaced), ``exclude_log_id`` drops a single log being edited.
    Returns the projected total for the day. Never writes.
    """
    cap = settings.DAILY_HOUR_CAP if cap is None else cap
    existing = logged_hours(db, user_id, day, exclude_task_id, exclude_log_id)
    total = existing + candidate_hours
    if total > cap + CAP_TOLERANCE:
        logger.warning("Daily cap hit for user %s on %s: %.2f + %.2f > %s", user_id, day, existing, candidate_hours, cap)
        raise CapExceeded(
            f"Daily limit exceeded. Total: {existing:.1f}h + New: {candidate_hours:.1f}h > {cap:g}h"
        )
    return total
