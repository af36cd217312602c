from sqlalchemy import Column, String, Text, DateTime, Enum, ForeignKey, Date, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
import enum
from tasktrack.db import Base


class TaskStatus(enum.Enum):
    todo = "to do"
    in_progress = "in progress"
    blocked = "blocked"
    completed = "completed"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    status = Column(Enum(TaskStatus, name="taskstatus_enum"), nullable=False, default=TaskStatus.todo)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_to = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    due_date = Column(Date)

    project = relationship("Project", lazy="joined")

    def __repr__(self):
        return f"<Task(id={self.id}, title={self.title}, status={self.status}, assigned_to={self.assigned_to})>"
