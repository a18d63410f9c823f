"""Team administration listing: members with their workload."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from ..entities import Profile, Task
from .filters import tasks_for_member
from .labels import ROLE_LABELS
from .reports import count_by_status


@dataclass(frozen=True)
class TeamMember:
    profile: Profile
    task_counts: dict[str, int]

    @property
    def total(self) -> int:
        return sum(self.task_counts.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.profile.to_dict(),
            "role_label": ROLE_LABELS[self.profile.role],
            "task_counts": dict(self.task_counts),
            "total_tasks": self.total,
        }


def build_team(profiles: Sequence[Profile], tasks: Sequence[Task]) -> list[TeamMember]:
    return [
        TeamMember(
            profile=profile,
            task_counts=count_by_status(tasks_for_member(tasks, profile.name)),
        )
        for profile in profiles
    ]
