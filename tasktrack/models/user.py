from sqlalchemy import Column, String, Boolean, DateTime, Enum, Uuid
from sqlalchemy.sql import func
import uuid
import enum
from tasktrack.db import Base


class UserRole(enum.Enum):
    super_admin = "super_admin"
    project_admin = "project_admin"
    project_manager = "project_manager"
    team_leader = "team_leader"
    team_member = "team_member"
    client = "client"


# Roles allowed to approve or reject timesheets
MANAGER_TIER_ROLES = frozenset({UserRole.super_admin, UserRole.project_admin, UserRole.project_manager})

# Roles that may look at other users' timesheets (subject to project supervision)
SUPERVISOR_ROLES = MANAGER_TIER_ROLES | {UserRole.team_leader}


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(150), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255))
    role = Column(Enum(UserRole, name="userrole_enum"), nullable=False, default=UserRole.team_member)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role}, active={self.is_active})>"
