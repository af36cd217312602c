"""Read-only lookups of tasks, projects and who supervises whom."""
from typing import Iterable, List, Optional, Set
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from tasktrack.core.errors import NotFound
from tasktrack.models.project import Project, project_members
from tasktrack.models.task import Task
from tasktrack.models.user import SUPERVISOR_ROLES, User, UserRole


class TaskDirectory:
    def __init__(self, db: Session):
        self.db = db

    def get_task(self, task_id: UUID) -> Task:
        task = self.db.query(Task).filter(Task.id == task_id).first()
        if not task:
            raise NotFound("Task not found")
        return task

    def get_project(self, project_id: UUID) -> Optional[Project]:
        return self.db.query(Project).filter(Project.id == project_id).first()

    def super_admin_ids(self) -> List[UUID]:
        rows = self.db.query(User.id).filter(User.role == UserRole.super_admin, User.is_active == True).all()
        return [r.id for r in rows]

    def project_supervisor_ids(self, project_ids: Iterable[UUID]) -> Set[UUID]:
        """Owners and team leads of the given projects."""
        project_ids = set(project_ids)
        if not project_ids:
            return set()
        rows = self.db.query(Project.owner_id, Project.team_lead_id).filter(Project.id.in_(list(project_ids))).all()
        ids = set()
        for owner_id, lead_id in rows:
            ids.add(owner_id)
            if lead_id:
                ids.add(lead_id)
        return ids

    def supervised_user_ids(self, supervisor_id: UUID) -> Set[UUID]:
        """Members of every project the supervisor owns or leads."""
        rows = (
            self.db.query(project_members.c.user_id)
            .join(Project, Project.id == project_members.c.project_id)
            .filter(or_(Project.owner_id == supervisor_id, Project.team_lead_id == supervisor_id))
            .distinct()
            .all()
        )
        return {r.user_id for r in rows}

    def can_view_project(self, caller: User, project: Project) -> bool:
        if caller.role == UserRole.super_admin:
            return True
        if caller.id in (project.owner_id, project.team_lead_id):
            return True
        return any(m.id == caller.id for m in project.members)

    def can_view_user(self, caller: User, user_id: UUID) -> bool:
        """Self, super admins, and managers/leads of a project the user is on."""
        if caller.id == user_id or caller.role == UserRole.super_admin:
            return True
        if caller.role in SUPERVISOR_ROLES:
            return user_id in self.supervised_user_ids(caller.id)
        return False
