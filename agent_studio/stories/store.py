"""In-memory story and project store with change notification."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import fields, replace
from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar
from uuid import uuid4

from agent_studio.stories.models import (
    Project,
    ProjectDraft,
    ProjectStatus,
    Story,
    StoryDraft,
    StoryFilter,
    StoryPriority,
    StoryStatus,
    StoryType,
    Task,
    TaskStatus,
)
from agent_studio.stories.statistics import StoryStatistics, compute_story_statistics

logger = logging.getLogger(__name__)

Listener = Callable[[], None]
Unsubscribe = Callable[[], None]

_RecordT = TypeVar("_RecordT", Story, Project, Task)

_IMMUTABLE_FIELDS = frozenset({"id", "created_at", "updated_at"})
_REQUIRED_FIELDS: dict[str, frozenset[str]] = {
    "Story": frozenset({"title", "description", "type", "priority", "status", "progress"}),
    "Project": frozenset({"name", "description", "type", "status"}),
    "Task": frozenset({"title", "status"}),
}
_ENUM_FIELDS: dict[str, type] = {
    "type": StoryType,
    "priority": StoryPriority,
    "status": StoryStatus,
}


class StoryStore:
    """Authoritative collection of stories, projects and tasks.

    Records are immutable dataclasses; every update replaces the stored
    instance, so lists handed to callers never change underneath them.
    Listeners are zero-argument callables fired after each mutation, in
    registration order, from a snapshot of the registration list.
    """

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._stories: dict[str, Story] = {}
        self._projects: dict[str, Project] = {}
        self._tasks: dict[str, Task] = {}
        self._listeners: list[tuple[object, Listener]] = []
        self._lock = threading.RLock()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._last_timestamp: datetime | None = None

    # Stories

    def create_story(self, draft: StoryDraft) -> Story:
        with self._lock:
            now = self._stamp()
            story = Story(
                id=f"story_{uuid4().hex}",
                title=draft.title,
                description=draft.description,
                type=StoryType(draft.type),
                priority=StoryPriority(draft.priority),
                status=StoryStatus(draft.status),
                progress=draft.progress or 0,
                created_at=now,
                updated_at=now,
                assigned_agent=draft.assigned_agent,
                estimated_hours=draft.estimated_hours,
                actual_hours=draft.actual_hours,
                phase=draft.phase,
                project_id=draft.project_id,
                workflow_id=draft.workflow_id,
                due_date=draft.due_date,
                tags=tuple(draft.tags),
                acceptance_criteria=tuple(draft.acceptance_criteria),
            )
            self._stories[story.id] = story
        logger.debug("Created story %s (%s).", story.id, story.title)
        self._notify()
        return story

    def update_story(self, story_id: str, **changes: Any) -> Story | None:
        """Merge ``changes`` into a story; return ``None`` when it does not exist."""
        normalized = _normalize_changes(Story, changes)
        with self._lock:
            existing = self._stories.get(story_id)
            if existing is None:
                return None
            updated = replace(existing, **normalized, updated_at=self._stamp())
            self._stories[story_id] = updated
        logger.debug("Updated story %s fields=%s.", story_id, sorted(normalized))
        self._notify()
        return updated

    def delete_story(self, story_id: str) -> bool:
        with self._lock:
            if self._stories.pop(story_id, None) is None:
                return False
            for task_id in [t.id for t in self._tasks.values() if t.story_id == story_id]:
                del self._tasks[task_id]
        logger.debug("Deleted story %s.", story_id)
        self._notify()
        return True

    def get_story(self, story_id: str) -> Story | None:
        with self._lock:
            return self._stories.get(story_id)

    def list_stories(self, story_filter: StoryFilter | None = None) -> list[Story]:
        with self._lock:
            stories = list(self._stories.values())
        if story_filter is None:
            return stories
        return [story for story in stories if story_filter.matches(story)]

    def stories_by_project(self, project_id: str) -> list[Story]:
        return self.list_stories(StoryFilter(project_id=project_id))

    def stories_by_workflow(self, workflow_id: str) -> list[Story]:
        return self.list_stories(StoryFilter(workflow_id=workflow_id))

    def stories_by_phase(self, phase: str) -> list[Story]:
        return self.list_stories(StoryFilter(phase=phase))

    def stories_by_status(self, status: StoryStatus | str) -> list[Story]:
        return self.list_stories(StoryFilter(status=StoryStatus(status)))

    def assign_agent(self, story_id: str, agent_name: str | None) -> Story | None:
        """Set or clear the agent assigned to a story."""
        return self.update_story(story_id, assigned_agent=agent_name)

    def story_statistics(self) -> StoryStatistics:
        return compute_story_statistics(self.list_stories())

    # Projects

    def create_project(self, draft: ProjectDraft) -> Project:
        with self._lock:
            now = self._stamp()
            project = Project(
                id=f"project_{uuid4().hex}",
                name=draft.name,
                description=draft.description,
                type=draft.type,
                status=ProjectStatus(draft.status),
                workflow_id=draft.workflow_id,
                owner=draft.owner,
                created_at=now,
                updated_at=now,
            )
            self._projects[project.id] = project
        logger.debug("Created project %s (%s).", project.id, project.name)
        self._notify()
        return project

    def update_project(self, project_id: str, **changes: Any) -> Project | None:
        normalized = _normalize_changes(Project, changes)
        with self._lock:
            existing = self._projects.get(project_id)
            if existing is None:
                return None
            updated = replace(existing, **normalized, updated_at=self._stamp())
            self._projects[project_id] = updated
        logger.debug("Updated project %s fields=%s.", project_id, sorted(normalized))
        self._notify()
        return updated

    def delete_project(self, project_id: str) -> bool:
        """Remove a project; stories keep their now-dangling project reference."""
        with self._lock:
            if self._projects.pop(project_id, None) is None:
                return False
        logger.debug("Deleted project %s.", project_id)
        self._notify()
        return True

    def get_project(self, project_id: str) -> Project | None:
        with self._lock:
            return self._projects.get(project_id)

    def list_projects(self) -> list[Project]:
        with self._lock:
            return list(self._projects.values())

    def link_project_to_workflow(self, project_id: str, workflow_id: str) -> bool:
        return self.update_project(project_id, workflow_id=workflow_id) is not None

    # Tasks

    def add_task(
        self,
        story_id: str,
        title: str,
        description: str | None = None,
        status: TaskStatus = TaskStatus.todo,
    ) -> Task | None:
        """Attach a task to a story; return ``None`` when the story does not exist."""
        with self._lock:
            if story_id not in self._stories:
                return None
            now = self._stamp()
            task = Task(
                id=f"task_{uuid4().hex}",
                story_id=story_id,
                title=title,
                description=description,
                status=TaskStatus(status),
                created_at=now,
                updated_at=now,
            )
            self._tasks[task.id] = task
        self._notify()
        return task

    def update_task(self, task_id: str, **changes: Any) -> Task | None:
        normalized = _normalize_changes(Task, changes, locked={"story_id"})
        with self._lock:
            existing = self._tasks.get(task_id)
            if existing is None:
                return None
            updated = replace(existing, **normalized, updated_at=self._stamp())
            self._tasks[task_id] = updated
        self._notify()
        return updated

    def delete_task(self, task_id: str) -> bool:
        with self._lock:
            if self._tasks.pop(task_id, None) is None:
                return False
        self._notify()
        return True

    def get_task(self, task_id: str) -> Task | None:
        with self._lock:
            return self._tasks.get(task_id)

    def tasks_for_story(self, story_id: str) -> list[Task]:
        with self._lock:
            return [task for task in self._tasks.values() if task.story_id == story_id]

    def list_tasks(self) -> list[Task]:
        with self._lock:
            return list(self._tasks.values())

    # Change notification

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register a listener and return a handle that removes exactly this registration."""
        token = object()
        with self._lock:
            self._listeners.append((token, listener))

        def unsubscribe() -> None:
            with self._lock:
                self._listeners = [entry for entry in self._listeners if entry[0] is not token]

        return unsubscribe

    def restore(
        self,
        *,
        projects: Iterable[Project] = (),
        stories: Iterable[Story] = (),
        tasks: Iterable[Task] = (),
    ) -> None:
        """Load previously persisted records verbatim, keeping their ids and timestamps."""
        with self._lock:
            for project in projects:
                self._projects[project.id] = project
                self._observe_timestamp(project.updated_at)
            for story in stories:
                self._stories[story.id] = story
                self._observe_timestamp(story.updated_at)
            for task in tasks:
                self._tasks[task.id] = task
                self._observe_timestamp(task.updated_at)
        self._notify()

    def _notify(self) -> None:
        with self._lock:
            snapshot = [listener for _, listener in self._listeners]
        for listener in snapshot:
            try:
                listener()
            except Exception:  # noqa: BLE001
                logger.exception("Story store listener %r failed.", listener)

    def _stamp(self) -> datetime:
        """Return a timestamp strictly later than any previously issued one."""
        now = self._clock()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _observe_timestamp(self, value: datetime) -> None:
        if self._last_timestamp is None or value > self._last_timestamp:
            self._last_timestamp = value


def _normalize_changes(
    record_type: type[_RecordT],
    changes: dict[str, Any],
    *,
    locked: Iterable[str] = (),
) -> dict[str, Any]:
    allowed = {item.name for item in fields(record_type)} - _IMMUTABLE_FIELDS - set(locked)
    unknown = sorted(set(changes) - allowed)
    if unknown:
        raise ValueError(f"Cannot update {record_type.__name__} fields: {', '.join(unknown)}.")
    required = _REQUIRED_FIELDS[record_type.__name__]
    cleared = sorted(name for name, value in changes.items() if value is None and name in required)
    if cleared:
        raise ValueError(f"{record_type.__name__} fields cannot be cleared: {', '.join(cleared)}.")
    normalized: dict[str, Any] = {}
    for name, value in changes.items():
        if value is not None and record_type is Story and name in _ENUM_FIELDS:
            value = _ENUM_FIELDS[name](value)
        elif value is not None and record_type is Project and name == "status":
            value = ProjectStatus(value)
        elif value is not None and record_type is Task and name == "status":
            value = TaskStatus(value)
        elif name in {"tags", "acceptance_criteria"}:
            value = tuple(value or ())
        normalized[name] = value
    return normalized
