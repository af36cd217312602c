# Import every model so Base.metadata knows all tables and string relationships resolve
from tasktrack.models.user import User, UserRole, MANAGER_TIER_ROLES, SUPERVISOR_ROLES
from tasktrack.models.project import Project, project_members
from tasktrack.models.task import Task, TaskStatus
from tasktrack.models.time_log import TimeLog
from tasktrack.models.timer_session import TimerSession
from tasktrack.models.timesheet import Timesheet, TimesheetStatus, timesheet_entries
