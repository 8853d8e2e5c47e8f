"""Story, project and task records shared by the store, the synchronizer and the API."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class StoryType(str, Enum):
    """Granularity of a story."""

    feature = "feature"
    bug = "bug"
    task = "task"
    epic = "epic"


class StoryPriority(str, Enum):
    """Relative urgency of a story."""

    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class StoryStatus(str, Enum):
    """Lifecycle status of a story."""

    backlog = "backlog"
    planning = "planning"
    in_progress = "in-progress"
    review = "review"
    testing = "testing"
    done = "done"
    completed = "completed"


class ProjectStatus(str, Enum):
    """Lifecycle status of a project."""

    active = "active"
    completed = "completed"
    paused = "paused"


class TaskStatus(str, Enum):
    """Lifecycle status of a task attached to a story."""

    todo = "todo"
    in_progress = "in-progress"
    done = "done"


@dataclass(frozen=True)
class StoryDraft:
    """Story fields supplied by a caller before the store assigns identity."""

    title: str
    description: str = ""
    type: StoryType = StoryType.feature
    priority: StoryPriority = StoryPriority.medium
    status: StoryStatus = StoryStatus.backlog
    progress: int | None = None
    assigned_agent: str | None = None
    estimated_hours: int | None = None
    actual_hours: int | None = None
    phase: str | None = None
    project_id: str | None = None
    workflow_id: str | None = None
    due_date: datetime | None = None
    tags: tuple[str, ...] = ()
    acceptance_criteria: tuple[str, ...] = ()


@dataclass(frozen=True)
class Story:
    """Materialized story record owned by a ``StoryStore``."""

    id: str
    title: str
    description: str
    type: StoryType
    priority: StoryPriority
    status: StoryStatus
    progress: int
    created_at: datetime
    updated_at: datetime
    assigned_agent: str | None = None
    estimated_hours: int | None = None
    actual_hours: int | None = None
    phase: str | None = None
    project_id: str | None = None
    workflow_id: str | None = None
    due_date: datetime | None = None
    tags: tuple[str, ...] = ()
    acceptance_criteria: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Serialize story to a JSON-compatible dict."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type.value,
            "priority": self.priority.value,
            "status": self.status.value,
            "progress": self.progress,
            "assigned_agent": self.assigned_agent,
            "estimated_hours": self.estimated_hours,
            "actual_hours": self.actual_hours,
            "phase": self.phase,
            "project_id": self.project_id,
            "workflow_id": self.workflow_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "tags": list(self.tags),
            "acceptance_criteria": list(self.acceptance_criteria),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Story:
        """Restore a story from serialized data."""
        due_date = payload.get("due_date")
        return cls(
            id=str(payload["id"]),
            title=str(payload["title"]),
            description=str(payload.get("description", "")),
            type=StoryType(payload.get("type", StoryType.feature.value)),
            priority=StoryPriority(payload.get("priority", StoryPriority.medium.value)),
            status=StoryStatus(payload.get("status", StoryStatus.backlog.value)),
            progress=int(payload.get("progress", 0)),
            assigned_agent=payload.get("assigned_agent"),
            estimated_hours=_optional_int(payload.get("estimated_hours")),
            actual_hours=_optional_int(payload.get("actual_hours")),
            phase=payload.get("phase"),
            project_id=payload.get("project_id"),
            workflow_id=payload.get("workflow_id"),
            created_at=datetime.fromisoformat(payload["created_at"]),
            updated_at=datetime.fromisoformat(payload["updated_at"]),
            due_date=datetime.fromisoformat(due_date) if due_date else None,
            tags=_string_tuple(payload.get("tags", ())),
            acceptance_criteria=_string_tuple(payload.get("acceptance_criteria", ())),
        )


@dataclass(frozen=True)
class ProjectDraft:
    """Project fields supplied by a caller before the store assigns identity."""

    name: str
    description: str = ""
    type: str = "Web Application"
    status: ProjectStatus = ProjectStatus.active
    workflow_id: str | None = None
    owner: str | None = None


@dataclass(frozen=True)
class Project:
    """Materialized project record owned by a ``StoryStore``."""

    id: str
    name: str
    description: str
    type: str
    status: ProjectStatus
    created_at: datetime
    updated_at: datetime
    workflow_id: str | None = None
    owner: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize project to a JSON-compatible dict."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "status": self.status.value,
            "workflow_id": self.workflow_id,
            "owner": self.owner,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Project:
        """Restore a project from serialized data."""
        return cls(
            id=str(payload["id"]),
            name=str(payload["name"]),
            description=str(payload.get("description", "")),
            type=str(payload.get("type", "")),
            status=ProjectStatus(payload.get("status", ProjectStatus.active.value)),
            workflow_id=payload.get("workflow_id"),
            owner=payload.get("owner"),
            created_at=datetime.fromisoformat(payload["created_at"]),
            updated_at=datetime.fromisoformat(payload["updated_at"]),
        )


@dataclass(frozen=True)
class Task:
    """Unit of work attached to a story."""

    id: str
    story_id: str
    title: str
    status: TaskStatus
    created_at: datetime
    updated_at: datetime
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize task to a JSON-compatible dict."""
        return {
            "id": self.id,
            "story_id": self.story_id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Task:
        """Restore a task from serialized data."""
        return cls(
            id=str(payload["id"]),
            story_id=str(payload["story_id"]),
            title=str(payload["title"]),
            description=payload.get("description"),
            status=TaskStatus(payload.get("status", TaskStatus.todo.value)),
            created_at=datetime.fromisoformat(payload["created_at"]),
            updated_at=datetime.fromisoformat(payload["updated_at"]),
        )


@dataclass(frozen=True)
class StoryFilter:
    """Optional criteria used to narrow story listings."""

    project_id: str | None = None
    workflow_id: str | None = None
    phase: str | None = None
    status: StoryStatus | None = None

    def matches(self, story: Story) -> bool:
        """Return whether the story satisfies every populated criterion."""
        if self.project_id is not None and story.project_id != self.project_id:
            return False
        if self.workflow_id is not None and story.workflow_id != self.workflow_id:
            return False
        if self.phase is not None and story.phase != self.phase:
            return False
        return self.status is None or story.status == self.status


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)


def _string_tuple(values: Iterable[Any]) -> tuple[str, ...]:
    return tuple(str(item) for item in values)
