import uuid
from datetime import date, datetime

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from tasktrack.core.errors import (
    CapExceeded,
    Forbidden,
    FutureDate,
    Immutable,
    InvalidRange,
    NotEditable,
    NotFound,
)
from tasktrack.models import Timesheet, TimesheetStatus, TimeLog
from tasktrack.schemas.timesheet import ManualEntry
from tasktrack.services.timesheets import TimesheetService

MONDAY = date(2024, 3, 11)


@pytest.fixture
def sheets(db_session, clock):
    return TimesheetService(db_session, clock)


class TestGetOrCreate:
    def test_new_week_collects_existing_logs(self, sheets, member, task, add_log):
        for day in (11, 12, 13):
            add_log(member, task, date(2024, 3, day), 3.0)

        timesheet = sheets.get_or_create(member.id, "2024-W11")

        assert timesheet.status == TimesheetStatus.draft
        assert timesheet.week_start == MONDAY
        assert timesheet.week_end == date(2024, 3, 17)
        assert timesheet.week_id == "2024-W11"
        assert len(timesheet.entries) == 3
        assert timesheet.total_hours == 9.0

    def test_logs_outside_week_or_of_other_users_ignored(self, sheets, make_user, member, task, add_log):
        add_log(member, task, date(2024, 3, 10), 4.0)
        add_log(make_user(), task, MONDAY, 4.0)
        timesheet = sheets.get_or_create(member.id, MONDAY)
        assert timesheet.entries == []
        assert timesheet.total_hours == 0.0

    def test_same_row_for_any_day_of_week(self, sheets, db_session, member):
        first = sheets.get_or_create(member.id, "2024-W11")
        again = sheets.get_or_create(member.id, "2024-03-17")
        assert first.id == again.id
        assert db_session.query(Timesheet).count() == 1

    def test_reconciles_logs_added_later(self, sheets, member, task, add_log):
        first = add_log(member, task, MONDAY, 2.0)
        timesheet = sheets.get_or_create(member.id, "2024-W11")
        assert timesheet.total_hours == 2.0

        second = add_log(member, task, date(2024, 3, 14), 1.5)
        timesheet = sheets.get_or_create(member.id, "2024-W11")

        assert [e.id for e in timesheet.entries] == [first.id, second.id]
        assert timesheet.total_hours == 3.5

    def test_reads_are_idempotent(self, sheets, member, task, add_log):
        add_log(member, task, MONDAY, 2.0)
        first = sheets.get_or_create(member.id, "2024-W11")
        first_ids = [e.id for e in first.entries]
        second = sheets.get_or_create(member.id, "2024-W11")
        assert [e.id for e in second.entries] == first_ids
        assert second.total_hours == 2.0

    def test_unknown_user(self, sheets):
        with pytest.raises(NotFound):
            sheets.get_or_create(uuid.uuid4(), "2024-W11")

    def test_bad_week_token(self, sheets, member):
        with pytest.raises(InvalidRange):
            sheets.get_or_create(member.id, "week eleven")

    def test_one_timesheet_per_user_week(self, db_session, member):
        for _ in range(2):
            db_session.add(Timesheet(user_id=member.id, week_start=MONDAY, week_end=date(2024, 3, 17)))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()


class TestManualEntries:
    def test_entries_create_manual_logs(self, sheets, db_session, member, make_task):
        design, build = make_task("Design"), make_task("Build")
        timesheet = sheets.get_or_create(member.id, "2024-W11")

        timesheet = sheets.apply_manual_entries(timesheet.id, member.id, [
            ManualEntry(task_id=design.id, day_index=0, duration=4.0),
            ManualEntry(task_id=build.id, project_id=build.project_id, day_index=0, duration=3.0),
        ])

        assert timesheet.total_hours == 7.0
        logs = {log.task_id: log for log in db_session.query(TimeLog).all()}
        assert logs[design.id].start_time == datetime(2024, 3, 11, 9, 0)
        assert logs[design.id].description == "Timesheet entry for Design"
        assert logs[build.id].start_time == datetime(2024, 3, 11, 13, 0)
        assert logs[build.id].end_time == datetime(2024, 3, 11, 16, 0)
        assert all(log.is_manual for log in logs.values())

    def test_entry_replaces_existing_hours_for_task_and_day(self, sheets, db_session, member, task, add_log):
        add_log(member, task, MONDAY, 2.0)
        add_log(member, task, MONDAY, 1.0, start_hour=14)
        timesheet = sheets.get_or_create(member.id, "2024-W11")

        timesheet = sheets.apply_manual_entries(
            timesheet.id, member.id, [ManualEntry(task_id=task.id, day_index=0, duration=5.0)]
        )

        logs = db_session.query(TimeLog).all()
        assert len(logs) == 1
        assert logs[0].duration == 5.0
        assert timesheet.total_hours == 5.0
        assert len(timesheet.entries) == 1

    def test_zero_duration_clears_the_cell(self, sheets, db_session, member, task, add_log):
        add_log(member, task, MONDAY, 2.0)
        timesheet = sheets.get_or_create(member.id, "2024-W11")

        timesheet = sheets.apply_manual_entries(
            timesheet.id, member.id, [ManualEntry(task_id=task.id, day_index=0, duration=0)]
        )

        assert db_session.query(TimeLog).count() == 0
        assert timesheet.entries == []
        assert timesheet.total_hours == 0.0

    def test_cap_breach_rolls_back_whole_batch(self, sheets, db_session, member, make_task):
        design, build = make_task("Design"), make_task("Build")
        timesheet = sheets.get_or_create(member.id, "2024-W11")

        with pytest.raises(CapExceeded):
            sheets.apply_manual_entries(timesheet.id, member.id, [
                ManualEntry(task_id=design.id, day_index=1, duration=5.0),
                ManualEntry(task_id=build.id, day_index=1, duration=4.0),
            ])

        assert db_session.query(TimeLog).count() == 0

    def test_first_entry_fills_the_day(self, sheets, db_session, member, make_task):
        design, build = make_task("Design"), make_task("Build")
        timesheet = sheets.get_or_create(member.id, "2024-W11")

        with pytest.raises(CapExceeded):
            sheets.apply_manual_entries(timesheet.id, member.id, [
                ManualEntry(task_id=design.id, day_index=1, duration=8.0),
                ManualEntry(task_id=build.id, day_index=1, duration=0.5),
            ])

        assert db_session.query(TimeLog).count() == 0

    def test_duration_must_be_finite_and_within_a_day(self, task):
        for bad in (float("nan"), float("inf"), 24.5):
            with pytest.raises(ValidationError):
                ManualEntry(task_id=task.id, day_index=0, duration=bad)
        assert ManualEntry(task_id=task.id, day_index=0, duration=24).duration == 24.0

    def test_future_day_refused(self, sheets, member, task):
        timesheet = sheets.get_or_create(member.id, "2024-W11")
        with pytest.raises(FutureDate):
            sheets.apply_manual_entries(timesheet.id, member.id, [ManualEntry(task_id=task.id, day_index=6, duration=1.0)])

    def test_task_must_belong_to_project(self, sheets, member, task):
        timesheet = sheets.get_or_create(member.id, "2024-W11")
        with pytest.raises(NotFound):
            sheets.apply_manual_entries(timesheet.id, member.id, [
                ManualEntry(task_id=task.id, project_id=uuid.uuid4(), day_index=0, duration=1.0)
            ])

    def test_approved_log_cannot_be_overwritten(self, sheets, db_session, member, task, add_log):
        log = add_log(member, task, MONDAY, 2.0)
        log.is_approved = True
        db_session.commit()
        timesheet = sheets.get_or_create(member.id, "2024-W11")
        with pytest.raises(Immutable):
            sheets.apply_manual_entries(timesheet.id, member.id, [ManualEntry(task_id=task.id, day_index=0, duration=3.0)])

    def test_only_owner_may_edit(self, sheets, manager, member):
        timesheet = sheets.get_or_create(member.id, "2024-W11")
        with pytest.raises(Forbidden):
            sheets.apply_manual_entries(timesheet.id, manager.id, [])

    def test_submitted_timesheet_not_editable(self, sheets, db_session, member, task):
        timesheet = sheets.get_or_create(member.id, "2024-W11")
        timesheet.status = TimesheetStatus.submitted
        db_session.commit()
        with pytest.raises(NotEditable):
            sheets.apply_manual_entries(timesheet.id, member.id, [ManualEntry(task_id=task.id, day_index=0, duration=1.0)])

    def test_rejected_timesheet_is_editable(self, sheets, db_session, member, task):
        timesheet = sheets.get_or_create(member.id, "2024-W11")
        timesheet.status = TimesheetStatus.rejected
        db_session.commit()
        timesheet = sheets.apply_manual_entries(
            timesheet.id, member.id, [ManualEntry(task_id=task.id, day_index=2, duration=1.5)]
        )
        assert timesheet.total_hours == 1.5
