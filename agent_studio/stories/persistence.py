"""JSON snapshot persistence for a story store and its agents."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from agent_studio.agents import Agent, AgentRegistry
from agent_studio.stories.models import Project, Story, Task
from agent_studio.stories.store import StoryStore

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def snapshot_payload(store: StoryStore, agents: AgentRegistry | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "version": SNAPSHOT_VERSION,
        "projects": [project.to_dict() for project in store.list_projects()],
        "stories": [story.to_dict() for story in store.list_stories()],
        "tasks": [task.to_dict() for task in store.list_tasks()],
    }
    if agents is not None:
        payload["agents"] = [agent.to_dict() for agent in agents.list_agents()]
    return payload


def save_snapshot(
    store: StoryStore,
    path: Path,
    agents: AgentRegistry | None = None,
) -> None:
    """Persist every record of ``store`` (and ``agents`` when given) to ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = snapshot_payload(store, agents)
    if agents is None:
        previous = _existing_agents(path)
        if previous is not None:
            payload["agents"] = previous
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.debug(
        "Saved snapshot to %s (%s projects, %s stories, %s agents).",
        path,
        len(payload["projects"]),
        len(payload["stories"]),
        len(payload.get("agents", [])),
    )


def load_snapshot(
    path: Path,
    store: StoryStore | None = None,
    agents: AgentRegistry | None = None,
) -> StoryStore:
    """Restore records from ``path`` into ``store`` (a new store when omitted).

    Agents are restored only when a registry is supplied.
    """
    target = store or StoryStore()
    payload = _read_payload(path)
    try:
        projects = [Project.from_dict(item) for item in payload.get("projects", [])]
        stories = [Story.from_dict(item) for item in payload.get("stories", [])]
        tasks = [Task.from_dict(item) for item in payload.get("tasks", [])]
        restored_agents = [Agent.from_dict(item) for item in payload.get("agents", [])]
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Snapshot {path} contains an invalid record: {exc}") from exc
    target.restore(projects=projects, stories=stories, tasks=tasks)
    if agents is not None:
        agents.restore(restored_agents)
    return target


def _read_payload(path: Path) -> dict[str, Any]:
    try:
        parsed = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Snapshot {path} is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Snapshot payload must be a JSON object.")
    version = parsed.get("version", SNAPSHOT_VERSION)
    if version != SNAPSHOT_VERSION:
        raise ValueError(f"Unsupported snapshot version: {version!r}.")
    return parsed


def _existing_agents(path: Path) -> list[Any] | None:
    """Agents already stored at ``path``; kept when the CLI rewrites the snapshot."""
    if not path.exists():
        return None
    try:
        previous = _read_payload(path).get("agents")
    except ValueError as exc:
        logger.warning("Discarding agents from unreadable snapshot %s: %s", path, exc)
        return None
    return previous if isinstance(previous, list) else None
