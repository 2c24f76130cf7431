"""ORM model package."""

from worklens.models.entities import (
    ActivityLog,
    Project,
    ProjectMember,
    ProjectRole,
    ProjectStatus,
    Role,
    Task,
    TaskPriority,
    TaskStatus,
    TimeLog,
    User,
)

__all__ = [
    "ActivityLog",
    "Project",
    "ProjectMember",
    "ProjectRole",
    "ProjectStatus",
    "Role",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "TimeLog",
    "User",
]
