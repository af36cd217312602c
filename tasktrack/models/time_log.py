from sqlalchemy import Column, Date, DateTime, ForeignKey, Float, Text, Boolean, Index, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
from tasktrack.db import Base


class TimeLog(Base):
    __tablename__ = "time_logs"
    __table_args__ = (
        Index("ix_time_logs_user_date", "user_id", "date"),
        Index("ix_time_logs_task_date", "task_id", "date"),
        Index("ix_time_logs_project_date", "project_id", "date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    task_id = Column(Uuid(as_uuid=True), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    # denormalized from the task for per-project queries
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    duration = Column(Float, nullable=False)  # hours
    description = Column(Text)
    is_manual = Column(Boolean, default=True, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    approved_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    approved_at = Column(DateTime)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    task = relationship("Task", lazy="joined")
    project = relationship("Project", lazy="joined")

    def __repr__(self):
        return f"<TimeLog(id={self.id}, task_id={self.task_id}, user_id={self.user_id}, duration={self.duration})>"

    @property
    def task_title(self):
        return self.task.title if self.task else None

    @property
    def project_name(self):
        return self.project.name if self.project else None
