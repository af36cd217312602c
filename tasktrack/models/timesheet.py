from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Float, String, Table, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
import enum
from tasktrack.db import Base


class TimesheetStatus(enum.Enum):
    draft = "draft"
    submitted = "submitted"
    approved = "approved"
    rejected = "rejected"


timesheet_entries = Table(
    "timesheet_entries",
    Base.metadata,
    Column("timesheet_id", Uuid(as_uuid=True), ForeignKey("timesheets.id", ondelete="CASCADE"), primary_key=True),
    Column("time_log_id", Uuid(as_uuid=True), ForeignKey("time_logs.id", ondelete="CASCADE"), primary_key=True),
)


class Timesheet(Base):
    __tablename__ = "timesheets"
    __table_args__ = (
        UniqueConstraint("user_id", "week_start", name="uq_timesheets_user_week"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    week_start = Column(Date, nullable=False, index=True)
    week_end = Column(Date, nullable=False)
    total_hours = Column(Float, default=0.0, nullable=False)
    status = Column(
        Enum(TimesheetStatus, name="timesheetstatus_enum", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=TimesheetStatus.draft,
        index=True,
    )
    approver_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    submitted_at = Column(DateTime)
    approved_at = Column(DateTime)
    rejected_at = Column(DateTime)
    rejection_reason = Column(String(500))
    # audit annotation left by the approver, kept apart from rejection_reason
    approval_note = Column(String(500))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    entries = relationship(
        "TimeLog",
        secondary=timesheet_entries,
        viewonly=True,
        order_by="(TimeLog.date, TimeLog.start_time)",
    )
    user = relationship("User", foreign_keys=[user_id], lazy="joined")

    def __repr__(self):
        return f"<Timesheet(id={self.id}, user_id={self.user_id}, week_start={self.week_start}, status={self.status})>"

    @property
    def week_id(self):
        year, week, _ = self.week_start.isocalendar()
        return f"{year}-W{week:02d}"
