"""Canned demo records used to seed a fresh store."""

from __future__ import annotations

from datetime import UTC, datetime

from agent_studio.stories.models import (
    Project,
    ProjectStatus,
    Story,
    StoryPriority,
    StoryStatus,
    StoryType,
)
from agent_studio.stories.store import StoryStore

SAMPLE_PROJECT_ID = "project_1"


def _day(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=UTC)


def sample_projects() -> list[Project]:
    return [
        Project(
            id=SAMPLE_PROJECT_ID,
            name="Authentication & Security Module",
            description="Complete authentication and security implementation",
            type="Web Application",
            status=ProjectStatus.active,
            created_at=_day(2024, 1, 15),
            updated_at=_day(2024, 1, 18),
        )
    ]


def sample_stories() -> list[Story]:
    return [
        Story(
            id="1",
            title="User Authentication System",
            description="Implement JWT-based authentication with role management",
            type=StoryType.feature,
            priority=StoryPriority.high,
            status=StoryStatus.in_progress,
            progress=75,
            assigned_agent="System Architect",
            estimated_hours=16,
            created_at=_day(2024, 1, 15),
            updated_at=_day(2024, 1, 18),
            due_date=_day(2024, 1, 20),
            tags=("authentication", "security"),
            acceptance_criteria=(
                "User can register with email and password",
                "User can login and receive JWT token",
                "Role-based access control is implemented",
            ),
        ),
        Story(
            id="2",
            title="API Gateway Implementation",
            description="Create centralized API gateway with rate limiting and logging",
            type=StoryType.feature,
            priority=StoryPriority.medium,
            status=StoryStatus.planning,
            progress=25,
            assigned_agent="Requirements Analyst",
            estimated_hours=24,
            created_at=_day(2024, 1, 16),
            updated_at=_day(2024, 1, 16),
            due_date=_day(2024, 1, 25),
            tags=("api", "gateway", "infrastructure"),
            acceptance_criteria=(
                "Central API gateway is deployed",
                "Rate limiting is configured",
                "Request/response logging is implemented",
            ),
        ),
        Story(
            id="3",
            title="Database Migration Tool",
            description="Build tool for seamless database schema migrations",
            type=StoryType.task,
            priority=StoryPriority.low,
            status=StoryStatus.completed,
            progress=100,
            assigned_agent="Product Manager",
            estimated_hours=8,
            actual_hours=7,
            created_at=_day(2024, 1, 10),
            updated_at=_day(2024, 1, 15),
            due_date=_day(2024, 1, 15),
            tags=("database", "migration", "tooling"),
        ),
    ]


def seed_sample_data(store: StoryStore) -> None:
    """Load the demo project and its three stories into ``store``."""
    store.restore(projects=sample_projects(), stories=sample_stories())
