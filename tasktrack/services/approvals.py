"""Timesheet approval workflow.

    draft ──submit──> submitted ──approve──> approved
                        │   ^
                     reject  └──submit── rejected

``approved`` is terminal. Each transition is written as a conditional UPDATE
on the current status, so two requests racing on the same timesheet cannot
both win.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, FrozenSet, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from tasktrack.core.errors import Forbidden, InvalidTransition, MissingReason
from tasktrack.models.time_log import TimeLog
from tasktrack.models.timesheet import Timesheet, TimesheetStatus
from tasktrack.models.user import MANAGER_TIER_ROLES, SUPERVISOR_ROLES, User, UserRole
from tasktrack.services.directory import TaskDirectory
from tasktrack.services.notifications import (
    Notification,
    NotificationRef,
    NotificationSink,
    NotificationType,
    RefKind,
)
from tasktrack.services.timesheets import TimesheetService

logger = logging.getLogger(__name__)

# target status -> statuses it may be entered from
TRANSITIONS: Dict[TimesheetStatus, FrozenSet[TimesheetStatus]] = {
    TimesheetStatus.submitted: frozenset({TimesheetStatus.draft, TimesheetStatus.rejected}),
    TimesheetStatus.approved: frozenset({TimesheetStatus.submitted}),
    TimesheetStatus.rejected: frozenset({TimesheetStatus.submitted}),
}


def can_transition(current: TimesheetStatus, target: TimesheetStatus) -> bool:
    return current in TRANSITIONS.get(target, frozenset())


class ApprovalWorkflow:
    def __init__(self, db: Session, sink: NotificationSink, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.sink = sink
        self.clock = clock
        self.timesheets = TimesheetService(db, clock)
        self.directory = TaskDirectory(db)

    # ---------- helpers ----------

    def _transition(self, timesheet: Timesheet, target: TimesheetStatus, values: dict) -> None:
        sources = TRANSITIONS[target]
        updated = (
            self.db.query(Timesheet)
            .filter(Timesheet.id == timesheet.id, Timesheet.status.in_(list(sources)))
            .update(dict(values, status=target), synchronize_session=False)
        )
        if updated != 1:
            self.db.rollback()
            logger.warning("Timesheet %s changed concurrently, %s refused", timesheet.id, target.value)
            raise InvalidTransition(f"Timesheet is no longer in a state that can become {target.value}")

    def _check_transition(self, timesheet: Timesheet, target: TimesheetStatus, verb: str) -> None:
        if not can_transition(timesheet.status, target):
            logger.warning("Refused to %s timesheet %s in status %s", verb, timesheet.id, timesheet.status.value)
            raise InvalidTransition(f"Cannot {verb} timesheet with status: {timesheet.status.value}")

    def _require_manager(self, caller: User, verb: str) -> None:
        if caller.role not in MANAGER_TIER_ROLES:
            logger.warning("User %s (%s) tried to %s a timesheet", caller.id, caller.role.value, verb)
            raise Forbidden(f"Not authorized to {verb} timesheets")

    def _commit(self, timesheet: Timesheet) -> Timesheet:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(timesheet)
        return timesheet

    def _notify(self, recipient_id: UUID, sender_id: UUID, kind: NotificationType, title: str, message: str, timesheet: Timesheet) -> None:
        self.sink.notify(Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type=kind,
            title=title,
            message=message,
            ref=NotificationRef(RefKind.timesheet, timesheet.id),
        ))

    def submission_recipients(self, timesheet: Timesheet) -> List[UUID]:
        """Managers and leads of every project in the entries, plus super admins."""
        project_ids = {log.project_id for log in timesheet.entries}
        recipients = self.directory.project_supervisor_ids(project_ids)
        recipients.update(self.directory.super_admin_ids())
        recipients.discard(timesheet.user_id)
        return sorted(recipients, key=str)

    # ---------- transitions ----------

    def submit(self, timesheet_id: UUID, caller_id: UUID) -> Timesheet:
        timesheet = self.timesheets.get(timesheet_id, lock=True)
        if timesheet.user_id != caller_id:
            raise Forbidden("Not authorized to submit this timesheet")
        self._check_transition(timesheet, TimesheetStatus.submitted, "submit")

        self.timesheets.sync(timesheet, commit=False)
        self._transition(timesheet, TimesheetStatus.submitted, {
            "submitted_at": self.clock(),
            "rejection_reason": None,
            "rejected_at": None,
        })
        self._commit(timesheet)
        logger.info("Timesheet %s submitted by %s (%.2fh)", timesheet.id, caller_id, timesheet.total_hours)

        owner = timesheet.user
        owner_name = (owner.full_name or owner.username) if owner else str(timesheet.user_id)
        for recipient_id in self.submission_recipients(timesheet):
            self._notify(
                recipient_id,
                caller_id,
                NotificationType.timesheet_submitted,
                "Timesheet submitted",
                f"{owner_name} submitted the timesheet for the week of {timesheet.week_start.isoformat()} "
                f"({timesheet.total_hours:.1f}h)",
                timesheet,
            )
        return timesheet

    def approve(self, timesheet_id: UUID, caller: User, note: Optional[str] = None) -> Timesheet:
        self._require_manager(caller, "approve")
        timesheet = self.timesheets.get(timesheet_id, lock=True)
        self._check_transition(timesheet, TimesheetStatus.approved, "approve")

        now = self.clock()
        self.timesheets.sync(timesheet, commit=False)
        self._transition(timesheet, TimesheetStatus.approved, {
            "approver_id": caller.id,
            "approved_at": now,
            "approval_note": (note or "").strip() or None,
        })
        entry_ids = [log.id for log in timesheet.entries]
        if entry_ids:
            self.db.query(TimeLog).filter(TimeLog.id.in_(entry_ids)).update(
                {"is_approved": True, "approved_by": caller.id, "approved_at": now},
                synchronize_session=False,
            )
        self._commit(timesheet)
        logger.info("Timesheet %s approved by %s, %d entries frozen", timesheet.id, caller.id, len(entry_ids))

        self._notify(
            timesheet.user_id,
            caller.id,
            NotificationType.timesheet_approved,
            "Timesheet approved",
            f"Your timesheet for the week of {timesheet.week_start.isoformat()} was approved",
            timesheet,
        )
        return timesheet

    def reject(self, timesheet_id: UUID, caller: User, reason: Optional[str]) -> Timesheet:
        self._require_manager(caller, "reject")
        reason = (reason or "").strip()
        if not reason:
            raise MissingReason("A reason is required to reject a timesheet")
        timesheet = self.timesheets.get(timesheet_id, lock=True)
        self._check_transition(timesheet, TimesheetStatus.rejected, "reject")

        self._transition(timesheet, TimesheetStatus.rejected, {
            "approver_id": caller.id,
            "rejected_at": self.clock(),
            "rejection_reason": reason,
        })
        self._commit(timesheet)
        logger.info("Timesheet %s rejected by %s", timesheet.id, caller.id)

        self._notify(
            timesheet.user_id,
            caller.id,
            NotificationType.timesheet_rejected,
            "Timesheet rejected",
            f"Your timesheet for the week of {timesheet.week_start.isoformat()} was rejected: {reason}",
            timesheet,
        )
        return timesheet

    # ---------- visibility ----------

    def list_pending(self, caller: User, skip: int = 0, limit: int = 40) -> List[Timesheet]:
        if caller.role not in SUPERVISOR_ROLES:
            raise Forbidden("Not authorized to view pending timesheets")

        query = self.db.query(Timesheet).filter(Timesheet.status == TimesheetStatus.submitted)
        if caller.role != UserRole.super_admin:
            supervised = self.directory.supervised_user_ids(caller.id)
            if not supervised:
                return []
            query = query.filter(Timesheet.user_id.in_(list(supervised)))
        return query.order_by(Timesheet.submitted_at.desc()).offset(skip).limit(limit).all()
