from datetime import date, datetime

import pytest

from tasktrack.core.errors import Forbidden, Immutable, InvalidTransition, MissingReason, NotEditable
from tasktrack.models import Project, TimeLog, TimesheetStatus, UserRole
from tasktrack.schemas.timesheet import ManualEntry
from tasktrack.services.approvals import ApprovalWorkflow, can_transition
from tasktrack.services.notifications import NotificationType, RefKind
from tasktrack.services.time_logs import TimeLogService
from tasktrack.services.timesheets import TimesheetService

from tests.conftest import NOW


@pytest.fixture
def workflow(db_session, sink, clock):
    return ApprovalWorkflow(db_session, sink, clock)


@pytest.fixture
def full_week(db_session, clock, member, task, add_log):
    """A draft timesheet holding Mon-Thu at 8h each."""
    for day in (11, 12, 13, 14):
        add_log(member, task, date(2024, 3, day), 8.0)
    return TimesheetService(db_session, clock).get_or_create(member.id, "2024-W11")


@pytest.fixture
def submitted(workflow, full_week, member, sink):
    timesheet = workflow.submit(full_week.id, member.id)
    sink.sent.clear()
    return timesheet


class TestTransitionTable:
    @pytest.mark.parametrize("current,target,allowed", [
        (TimesheetStatus.draft, TimesheetStatus.submitted, True),
        (TimesheetStatus.rejected, TimesheetStatus.submitted, True),
        (TimesheetStatus.submitted, TimesheetStatus.approved, True),
        (TimesheetStatus.submitted, TimesheetStatus.rejected, True),
        (TimesheetStatus.draft, TimesheetStatus.approved, False),
        (TimesheetStatus.approved, TimesheetStatus.submitted, False),
        (TimesheetStatus.approved, TimesheetStatus.rejected, False),
        (TimesheetStatus.submitted, TimesheetStatus.draft, False),
    ])
    def test_can_transition(self, current, target, allowed):
        assert can_transition(current, target) is allowed


class TestSubmit:
    def test_submit_notifies_supervisors(self, workflow, full_week, sink, member, manager, lead, admin):
        timesheet = workflow.submit(full_week.id, member.id)

        assert timesheet.status == TimesheetStatus.submitted
        assert timesheet.submitted_at == NOW
        assert timesheet.total_hours == 32.0
        assert sink.recipients() == {manager.id, lead.id, admin.id}
        for n in sink.sent:
            assert n.type == NotificationType.timesheet_submitted
            assert n.sender_id == member.id
            assert n.ref.kind == RefKind.timesheet
            assert n.ref.id == timesheet.id

    def test_owner_never_notifies_self(self, workflow, db_session, full_week, sink, member, project):
        project.owner_id = member.id
        db_session.commit()
        workflow.submit(full_week.id, member.id)
        assert member.id not in sink.recipients()

    def test_only_owner_submits(self, workflow, full_week, manager):
        with pytest.raises(Forbidden):
            workflow.submit(full_week.id, manager.id)

    def test_cannot_submit_twice(self, workflow, submitted, member):
        with pytest.raises(InvalidTransition):
            workflow.submit(submitted.id, member.id)

    def test_submit_picks_up_late_logs(self, workflow, db_session, full_week, member, task, add_log):
        add_log(member, task, date(2024, 3, 15), 1.5)
        timesheet = workflow.submit(full_week.id, member.id)
        assert timesheet.total_hours == 33.5
        assert len(timesheet.entries) == 5


class TestApprove:
    def test_approve_freezes_entries(self, workflow, db_session, submitted, sink, manager, member):
        timesheet = workflow.approve(submitted.id, manager, note="Looks right")

        assert timesheet.status == TimesheetStatus.approved
        assert timesheet.approver_id == manager.id
        assert timesheet.approved_at == NOW
        assert timesheet.approval_note == "Looks right"
        assert timesheet.rejection_reason is None
        logs = db_session.query(TimeLog).all()
        assert len(logs) == 4
        assert all(log.is_approved and log.approved_by == manager.id for log in logs)

        [notification] = sink.sent
        assert notification.recipient_id == member.id
        assert notification.type == NotificationType.timesheet_approved

    def test_approved_week_is_frozen(self, workflow, db_session, clock, submitted, manager, member, task):
        workflow.approve(submitted.id, manager)
        log = db_session.query(TimeLog).first()

        with pytest.raises(Immutable):
            TimeLogService(db_session, clock).update(log.id, member.id, description="edit")
        with pytest.raises(NotEditable):
            TimesheetService(db_session, clock).apply_manual_entries(
                submitted.id, member.id, [ManualEntry(task_id=task.id, day_index=4, duration=1.0)]
            )
        with pytest.raises(NotEditable):
            TimeLogService(db_session, clock).create(
                member.id, task.id, date(2024, 3, 15), datetime(2024, 3, 15, 8), datetime(2024, 3, 15, 9)
            )

    def test_draft_cannot_be_approved(self, workflow, full_week, manager):
        with pytest.raises(InvalidTransition):
            workflow.approve(full_week.id, manager)

    def test_approved_is_terminal(self, workflow, submitted, manager, member):
        workflow.approve(submitted.id, manager)
        with pytest.raises(InvalidTransition):
            workflow.approve(submitted.id, manager)
        with pytest.raises(InvalidTransition):
            workflow.reject(submitted.id, manager, "too late")
        with pytest.raises(InvalidTransition):
            workflow.submit(submitted.id, member.id)

    @pytest.mark.parametrize("role", [UserRole.team_member, UserRole.team_leader, UserRole.client])
    def test_non_managers_cannot_approve(self, workflow, submitted, make_user, role):
        with pytest.raises(Forbidden):
            workflow.approve(submitted.id, make_user(role))

    def test_super_admin_can_approve(self, workflow, submitted, admin):
        assert workflow.approve(submitted.id, admin).status == TimesheetStatus.approved


class TestReject:
    def test_reject_then_resubmit(self, workflow, submitted, sink, manager, member):
        timesheet = workflow.reject(submitted.id, manager, "missing Monday entry")

        assert timesheet.status == TimesheetStatus.rejected
        assert timesheet.rejection_reason == "missing Monday entry"
        assert timesheet.rejected_at == NOW
        [notification] = sink.sent
        assert notification.recipient_id == member.id
        assert notification.type == NotificationType.timesheet_rejected
        assert "missing Monday entry" in notification.message

        timesheet = workflow.submit(submitted.id, member.id)
        assert timesheet.status == TimesheetStatus.submitted
        assert timesheet.rejection_reason is None
        assert timesheet.rejected_at is None

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_reason_required(self, workflow, submitted, manager, reason):
        with pytest.raises(MissingReason):
            workflow.reject(submitted.id, manager, reason)

    def test_draft_cannot_be_rejected(self, workflow, full_week, manager):
        with pytest.raises(InvalidTransition):
            workflow.reject(full_week.id, manager, "nope")

    def test_member_cannot_reject(self, workflow, submitted, member):
        with pytest.raises(Forbidden):
            workflow.reject(submitted.id, member, "nope")


class TestPending:
    def test_visibility_by_role(self, workflow, db_session, submitted, make_user, admin, manager, lead, member):
        outsider = make_user(UserRole.project_manager)
        db_session.add(Project(name="Borealis", owner_id=outsider.id))
        db_session.commit()

        assert [t.id for t in workflow.list_pending(admin)] == [submitted.id]
        assert [t.id for t in workflow.list_pending(manager)] == [submitted.id]
        assert [t.id for t in workflow.list_pending(lead)] == [submitted.id]
        assert workflow.list_pending(outsider) == []
        with pytest.raises(Forbidden):
            workflow.list_pending(member)

    def test_decided_timesheets_leave_the_queue(self, workflow, submitted, manager, admin):
        workflow.approve(submitted.id, manager)
        assert workflow.list_pending(admin) == []
