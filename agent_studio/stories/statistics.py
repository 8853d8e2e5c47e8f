"""Read-only rollups over a story collection."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from agent_studio.stories.models import Story, StoryPriority, StoryStatus, StoryType


@dataclass(frozen=True)
class StoryStatistics:
    """Counts and effort totals computed from a set of stories."""

    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    by_type: dict[str, int]
    average_progress: float
    total_estimated_hours: int
    total_actual_hours: int

    @property
    def done_count(self) -> int:
        """Stories finished under either terminal status."""
        return self.by_status[StoryStatus.done.value] + self.by_status[StoryStatus.completed.value]

    def to_dict(self) -> dict[str, Any]:
        """Serialize statistics to a JSON-compatible dict."""
        return {
            "total": self.total,
            "by_status": dict(self.by_status),
            "by_priority": dict(self.by_priority),
            "by_type": dict(self.by_type),
            "done_count": self.done_count,
            "average_progress": self.average_progress,
            "total_estimated_hours": self.total_estimated_hours,
            "total_actual_hours": self.total_actual_hours,
        }


def compute_story_statistics(stories: Iterable[Story]) -> StoryStatistics:
    """Compute statistics; every enum value is present in the count maps, zero-filled."""
    items = list(stories)
    status_counts = Counter(story.status.value for story in items)
    priority_counts = Counter(story.priority.value for story in items)
    type_counts = Counter(story.type.value for story in items)
    average = sum(story.progress for story in items) / len(items) if items else 0.0
    return StoryStatistics(
        total=len(items),
        by_status={status.value: status_counts[status.value] for status in StoryStatus},
        by_priority={priority.value: priority_counts[priority.value] for priority in StoryPriority},
        by_type={kind.value: type_counts[kind.value] for kind in StoryType},
        average_progress=float(average),
        total_estimated_hours=sum(story.estimated_hours or 0 for story in items),
        total_actual_hours=sum(story.actual_hours or 0 for story in items),
    )
