from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, Boolean, Index, Uuid, text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
from tasktrack.db import Base


class TimerSession(Base):
    __tablename__ = "timer_sessions"
    __table_args__ = (
        # At most one running timer per user, enforced by the database
        Index(
            "uq_timer_sessions_active_user",
            "user_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Uuid(as_uuid=True), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime)
    duration = Column(Integer, default=0, nullable=False)  # seconds
    description = Column(Text)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    task = relationship("Task", lazy="joined")
    project = relationship("Project", lazy="joined")

    def __repr__(self):
        return f"<TimerSession(id={self.id}, user_id={self.user_id}, task_id={self.task_id}, active={self.is_active})>"

    @property
    def task_title(self):
        return self.task.title if self.task else None

    @property
    def project_name(self):
        return self.project.name if self.project else None
