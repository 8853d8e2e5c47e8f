"""Workflow-driven story generation and phase progress synchronization."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Collection, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from agent_studio.stories.models import (
    Story,
    StoryDraft,
    StoryPriority,
    StoryStatus,
    StoryType,
)
from agent_studio.stories.store import StoryStore

logger = logging.getLogger(__name__)

HOURS_PER_WEEK = 40
HOURS_PER_DAY = 8
DEFAULT_PHASE_HOURS = 8
ACTIVITY_ESTIMATE_HOURS = 4
DELIVERABLE_ESTIMATE_HOURS = 2
ACTIVE_PHASE_MIN_PROGRESS = 25

KNOWN_PHASES: tuple[str, ...] = (
    "Discovery & Stakeholder Engagement",
    "Requirements Gathering & Documentation",
    "Project Planning & Estimation",
    "Sprint Planning & Setup",
    "Development & Testing",
    "Sprint Review & Retrospective",
    "User Research & Design",
    "Frontend Implementation",
    "Design Validation & Iteration",
)


class WorkflowError(ValueError):
    """Raised when a workflow definition is malformed."""


@dataclass(frozen=True)
class WorkflowPhase:
    """One stage of a workflow."""

    name: str
    description: str
    activities: tuple[str, ...]
    deliverables: tuple[str, ...]
    duration: str
    phase_id: str | None = None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> WorkflowPhase:
        if not isinstance(payload, dict):
            raise WorkflowError("Workflow phase must be a mapping.")
        missing = [key for key in ("name", "activities", "deliverables") if key not in payload]
        if missing:
            raise WorkflowError(f"Workflow phase missing fields: {', '.join(missing)}.")
        return cls(
            name=str(payload["name"]),
            description=str(payload.get("description", "")),
            activities=_string_tuple(payload["activities"], "activities"),
            deliverables=_string_tuple(payload["deliverables"], "deliverables"),
            duration=str(payload.get("duration", "")),
            phase_id=payload.get("id"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.phase_id,
            "name": self.name,
            "description": self.description,
            "activities": list(self.activities),
            "deliverables": list(self.deliverables),
            "duration": self.duration,
        }


@dataclass(frozen=True)
class WorkflowDefinition:
    """Ordered set of phases that drives story generation."""

    id: str
    name: str
    description: str
    phases: tuple[WorkflowPhase, ...]
    estimated_duration: str | None = None
    complexity: str | None = None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> WorkflowDefinition:
        if not isinstance(payload, dict):
            raise WorkflowError("Workflow definition must be a mapping.")
        missing = [key for key in ("id", "name", "phases") if key not in payload]
        if missing:
            raise WorkflowError(f"Workflow definition missing fields: {', '.join(missing)}.")
        phases = payload["phases"]
        if not isinstance(phases, list):
            raise WorkflowError("Workflow phases must be a list.")
        return cls(
            id=str(payload["id"]),
            name=str(payload["name"]),
            description=str(payload.get("description", "")),
            phases=tuple(WorkflowPhase.from_dict(item) for item in phases),
            estimated_duration=payload.get("estimated_duration"),
            complexity=payload.get("complexity"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "phases": [phase.to_dict() for phase in self.phases],
            "estimated_duration": self.estimated_duration,
            "complexity": self.complexity,
        }


def estimate_hours_from_duration(duration: str) -> int:
    """Convert a free-text duration such as ``"2 weeks"`` into whole hours.

    Only the first integer in the text counts, so ``"1-2 weeks"`` is 40 hours.
    """
    if "week" in duration:
        return _first_int(duration) * HOURS_PER_WEEK
    if "day" in duration:
        return _first_int(duration) * HOURS_PER_DAY
    return DEFAULT_PHASE_HOURS


def slugify_phase_name(name: str) -> str:
    return re.sub(r"\s+", "-", name.lower())


def phase_index(name: str, phase_order: Sequence[str] = KNOWN_PHASES) -> int:
    """Return the position of ``name`` in the reference order, or -1 when unknown."""
    try:
        return list(phase_order).index(name)
    except ValueError:
        return -1


class WorkflowSynchronizer:
    """Materializes workflow phases as stories and keeps their status in step."""

    def __init__(self, store: StoryStore, *, phase_order: Sequence[str] = KNOWN_PHASES) -> None:
        self._store = store
        self._phase_order = tuple(phase_order)

    def create_stories_from_workflow(
        self,
        workflow: WorkflowDefinition,
        project_id: str | None,
        workflow_id: str,
    ) -> list[Story]:
        """Create one epic per phase, then a feature per activity and a task per deliverable."""
        created: list[Story] = []
        for index, phase in enumerate(workflow.phases):
            is_first = index == 0
            status = StoryStatus.in_progress if is_first else StoryStatus.backlog
            slug = slugify_phase_name(phase.name)
            common = {
                "phase": phase.name,
                "project_id": project_id,
                "workflow_id": workflow_id,
                "status": status,
            }
            created.append(
                self._store.create_story(
                    StoryDraft(
                        title=f"{phase.name} - Phase {index + 1}",
                        description=(
                            f"{phase.description}\n\n"
                            f"Activities: {', '.join(phase.activities)}\n"
                            f"Duration: {phase.duration}"
                        ),
                        type=StoryType.epic,
                        priority=StoryPriority.high if is_first else StoryPriority.medium,
                        progress=10 if is_first else 0,
                        estimated_hours=estimate_hours_from_duration(phase.duration),
                        tags=("workflow", "phase", slug),
                        **common,
                    )
                )
            )
            for activity_index, activity in enumerate(phase.activities):
                created.append(
                    self._store.create_story(
                        StoryDraft(
                            title=activity,
                            description=f"Complete {activity} for the {phase.name} phase",
                            type=StoryType.feature,
                            priority=(
                                StoryPriority.high if activity_index == 0 else StoryPriority.medium
                            ),
                            progress=5 if is_first else 0,
                            estimated_hours=ACTIVITY_ESTIMATE_HOURS,
                            tags=("workflow", "activity", slug),
                            **common,
                        )
                    )
                )
            for deliverable in phase.deliverables:
                created.append(
                    self._store.create_story(
                        StoryDraft(
                            title=f"Deliver: {deliverable}",
                            description=(
                                f"Create and deliver {deliverable} for the {phase.name} phase"
                            ),
                            type=StoryType.task,
                            priority=StoryPriority.medium,
                            progress=0,
                            estimated_hours=DELIVERABLE_ESTIMATE_HOURS,
                            tags=("workflow", "deliverable", slug),
                            **common,
                        )
                    )
                )
        logger.info(
            "Generated %s stories from workflow %s (%s phases).",
            len(created),
            workflow_id,
            len(workflow.phases),
        )
        return created

    def sync_workflow_progress(
        self,
        workflow_id: str,
        current_phase_name: str,
        current_phase_index: int,
        total_phases: int,
        *,
        project_ids: Collection[str] | None = None,
    ) -> list[Story]:
        """Re-derive status and progress of workflow stories from the active phase.

        ``total_phases`` is reserved and does not influence the outcome. Stories
        whose phase cannot be resolved are left untouched. Only stories whose
        status or progress actually changes are written back; the updated
        records are returned.
        When ``project_ids`` is given only stories of those projects are touched.
        """
        _ = total_phases
        changed: list[Story] = []
        for story in self._store.stories_by_workflow(workflow_id):
            if project_ids is not None and story.project_id not in project_ids:
                continue
            status, progress = self._target_state(story, current_phase_name, current_phase_index)
            if status == story.status and progress == story.progress:
                continue
            updated = self._store.update_story(story.id, status=status, progress=progress)
            if updated is not None:
                changed.append(updated)
        logger.info(
            "Synchronized workflow %s to phase %r: %s stories changed.",
            workflow_id,
            current_phase_name,
            len(changed),
        )
        return changed

    def _target_state(
        self,
        story: Story,
        current_phase_name: str,
        current_phase_index: int,
    ) -> tuple[StoryStatus, int]:
        if story.phase == current_phase_name:
            return StoryStatus.in_progress, max(story.progress, ACTIVE_PHASE_MIN_PROGRESS)
        story_index = phase_index(story.phase or "", self._phase_order)
        if story_index == -1:
            return story.status, story.progress
        if story_index < current_phase_index:
            return StoryStatus.done, 100
        if story_index > current_phase_index:
            return StoryStatus.backlog, 0
        return story.status, story.progress


def load_workflow_file(path: Path) -> WorkflowDefinition:
    """Read a workflow definition from a YAML or JSON file."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise WorkflowError(f"Unable to read workflow file {path}: {exc}") from exc
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            payload = yaml.safe_load(raw)
        else:
            payload = json.loads(raw)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise WorkflowError(f"Invalid workflow file {path}: {exc}") from exc
    return WorkflowDefinition.from_dict(payload)


def _first_int(text: str) -> int:
    match = re.search(r"\d+", text)
    return int(match.group(0)) if match else 1


def _string_tuple(values: Any, field_name: str) -> tuple[str, ...]:
    if not isinstance(values, list | tuple):
        raise WorkflowError(f"Workflow phase {field_name} must be a list.")
    return tuple(str(item) for item in values)
