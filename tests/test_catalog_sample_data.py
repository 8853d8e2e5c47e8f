"""Tests for the built-in workflow catalog and demo data."""

from __future__ import annotations

import pytest

from agent_studio.stories.catalog import builtin_workflows, get_workflow
from agent_studio.stories.sample_data import SAMPLE_PROJECT_ID, seed_sample_data
from agent_studio.stories.store import StoryStore
from agent_studio.stories.workflow import KNOWN_PHASES


def test_catalog_lists_three_workflows() -> None:
    workflows = builtin_workflows()

    assert [workflow.id for workflow in workflows] == [
        "requirements-analysis",
        "design-implementation",
        "development-sprint",
    ]
    assert all(len(workflow.phases) == 3 for workflow in workflows)


def test_catalog_phases_are_known_to_the_synchronizer() -> None:
    names = {phase.name for workflow in builtin_workflows() for phase in workflow.phases}
    assert names == set(KNOWN_PHASES)


def test_get_workflow_returns_none_for_unknown_id() -> None:
    assert get_workflow("nope") is None


def test_seed_sample_data_loads_demo_project_and_stories() -> None:
    store = StoryStore()
    notifications: list[int] = []
    store.subscribe(lambda: notifications.append(1))

    seed_sample_data(store)

    assert store.get_project(SAMPLE_PROJECT_ID) is not None
    assert sorted(story.id for story in store.list_stories()) == ["1", "2", "3"]
    assert notifications == [1]
    statistics = store.story_statistics()
    assert statistics.done_count == 1
    assert statistics.average_progress == pytest.approx(200 / 3)
    assert statistics.total_estimated_hours == 48
    assert statistics.total_actual_hours == 7
