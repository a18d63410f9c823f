"""Display labels for statuses, priorities and roles."""

from __future__ import annotations

from ..entities import ProfileRole, TaskPriority, TaskStatus

STATUS_LABELS = {
    TaskStatus.TODO: "To do",
    TaskStatus.IN_PROGRESS: "In progress",
    TaskStatus.DELAYED: "Delayed",
    TaskStatus.COMPLETED: "Completed",
}

PRIORITY_LABELS = {
    TaskPriority.HIGH: "High",
    TaskPriority.MEDIUM: "Medium",
    TaskPriority.LOW: "Low",
}

ROLE_LABELS = {
    ProfileRole.ADMIN: "Administrator",
    ProfileRole.MANAGER: "Manager",
    ProfileRole.USER: "User",
}
