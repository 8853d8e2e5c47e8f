"""Story store, workflow synchronization and statistics."""

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
from agent_studio.stories.store import StoryStore
from agent_studio.stories.workflow import (
    WorkflowDefinition,
    WorkflowError,
    WorkflowPhase,
    WorkflowSynchronizer,
)

__all__ = [
    "Project",
    "ProjectDraft",
    "ProjectStatus",
    "Story",
    "StoryDraft",
    "StoryFilter",
    "StoryPriority",
    "StoryStatistics",
    "StoryStatus",
    "StoryStore",
    "StoryType",
    "Task",
    "TaskStatus",
    "WorkflowDefinition",
    "WorkflowError",
    "WorkflowPhase",
    "WorkflowSynchronizer",
    "compute_story_statistics",
]
