"""Registry of AI agent personas that can be assigned to stories."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

logger = logging.getLogger(__name__)


class AgentType(str, Enum):
    """Role an agent plays on the team."""

    analyst = "analyst"
    pm = "pm"
    architect = "architect"
    scrum_master = "scrum-master"
    developer = "developer"
    tester = "tester"
    designer = "designer"
    devops = "devops"


class AgentStatus(str, Enum):
    """Runtime state of an agent."""

    active = "active"
    idle = "idle"
    stopped = "stopped"
    error = "error"


DEFAULT_SYSTEM_PROMPTS: dict[AgentType, str] = {
    AgentType.analyst: (
        "You are a Requirements Analyst AI agent specializing in gathering, analyzing, "
        "and documenting software requirements. Elicit detailed requirements, translate "
        "business needs into technical specifications, write user stories with acceptance "
        "criteria, and flag risks, dependencies and constraints. Always ask clarifying "
        "questions and provide actionable recommendations."
    ),
    AgentType.pm: (
        "You are a Product Manager AI agent focused on product strategy, roadmap planning, "
        "and stakeholder management. Define the product vision, prioritize the backlog, "
        "coordinate teams and stakeholders, and track progress and deliverables."
    ),
    AgentType.architect: (
        "You are a System Architect AI agent specialized in designing scalable, maintainable "
        "software systems. Produce architecture and technical specifications, recommend "
        "technology stacks, define integration patterns and data flows, and account for "
        "security, performance and scalability."
    ),
    AgentType.scrum_master: (
        "You are a Scrum Master AI agent dedicated to facilitating agile development "
        "processes. Break epics into user stories and tasks, facilitate sprint planning and "
        "retrospectives, remove blockers, and coach the team on continuous improvement."
    ),
    AgentType.developer: (
        "You are a Developer AI agent focused on writing high-quality, maintainable code. "
        "Implement features according to specifications, review code, debug issues, and "
        "follow the project's coding standards."
    ),
    AgentType.tester: (
        "You are a Quality Assurance Tester AI agent specializing in ensuring software "
        "quality. Design and execute test plans, create automated and manual test cases, "
        "identify bugs and verify fixes, and keep requirements traceable to tests."
    ),
    AgentType.designer: (
        "You are a UX/UI Designer AI agent focused on creating intuitive, user-centered "
        "designs. Create wireframes, mockups and prototypes, run usability testing, and "
        "ensure accessible, responsive interfaces."
    ),
    AgentType.devops: (
        "You are a DevOps Engineer AI agent specializing in automation, deployment, and "
        "infrastructure management. Maintain CI/CD pipelines, manage cloud infrastructure, "
        "and implement monitoring and logging."
    ),
}


def default_configuration() -> dict[str, Any]:
    return {
        "temperature": 0.7,
        "max_tokens": 1000,
        "model": "gpt-4",
        "timeout_seconds": 30,
        "retries": 3,
    }


@dataclass(frozen=True)
class Agent:
    """Configured agent persona."""

    id: str
    name: str
    type: AgentType
    status: AgentStatus
    system_prompt: str
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    configuration: dict[str, Any] = field(default_factory=dict)
    last_activity: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize agent to a JSON-compatible dict."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "description": self.description,
            "status": self.status.value,
            "system_prompt": self.system_prompt,
            "configuration": dict(self.configuration),
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Agent:
        """Restore an agent from serialized data."""
        kind = AgentType(payload["type"])
        last_activity = payload.get("last_activity")
        return cls(
            id=str(payload["id"]),
            name=str(payload["name"]),
            type=kind,
            description=payload.get("description"),
            status=AgentStatus(payload.get("status", AgentStatus.stopped.value)),
            system_prompt=str(payload.get("system_prompt") or DEFAULT_SYSTEM_PROMPTS[kind]),
            configuration=dict(payload.get("configuration") or {}),
            last_activity=datetime.fromisoformat(last_activity) if last_activity else None,
            created_at=datetime.fromisoformat(payload["created_at"]),
            updated_at=datetime.fromisoformat(payload["updated_at"]),
        )


class AgentRegistry:
    """Thread-safe in-memory collection of agents keyed by id, unique by name.

    Listeners registered with ``subscribe`` run after every change so the
    owner of the registry can persist it.
    """

    def __init__(self) -> None:
        self._agents: dict[str, Agent] = {}
        self._lock = threading.RLock()
        self._listeners: list[Callable[[], None]] = []

    def create_agent(
        self,
        name: str,
        agent_type: AgentType | str,
        *,
        description: str | None = None,
        system_prompt: str | None = None,
        configuration: dict[str, Any] | None = None,
    ) -> Agent:
        kind = AgentType(agent_type)
        with self._lock:
            if self._find_by_name(name) is not None:
                raise ValueError(f"Agent with name {name!r} already exists.")
            now = datetime.now(UTC)
            agent = Agent(
                id=f"agent_{uuid4().hex}",
                name=name,
                type=kind,
                description=description,
                status=AgentStatus.stopped,
                system_prompt=system_prompt or DEFAULT_SYSTEM_PROMPTS[kind],
                configuration={**default_configuration(), **(configuration or {})},
                created_at=now,
                updated_at=now,
            )
            self._agents[agent.id] = agent
        logger.debug("Created agent %s (%s).", agent.id, agent.name)
        self._notify()
        return agent

    def get_agent(self, agent_id: str) -> Agent | None:
        with self._lock:
            return self._agents.get(agent_id)

    def list_agents(
        self,
        *,
        status: AgentStatus | str | None = None,
        agent_type: AgentType | str | None = None,
    ) -> list[Agent]:
        wanted_status = AgentStatus(status) if status is not None else None
        wanted_type = AgentType(agent_type) if agent_type is not None else None
        with self._lock:
            agents = list(self._agents.values())
        return [
            agent
            for agent in agents
            if (wanted_status is None or agent.status == wanted_status)
            and (wanted_type is None or agent.type == wanted_type)
        ]

    def update_agent(
        self,
        agent_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        system_prompt: str | None = None,
        configuration: dict[str, Any] | None = None,
    ) -> Agent | None:
        """Apply the provided fields; configuration keys are merged, not replaced."""
        with self._lock:
            existing = self._agents.get(agent_id)
            if existing is None:
                return None
            if name is not None and name != existing.name:
                if self._find_by_name(name) is not None:
                    raise ValueError(f"Agent with name {name!r} already exists.")
            updated = replace(
                existing,
                name=name if name is not None else existing.name,
                description=description if description is not None else existing.description,
                system_prompt=system_prompt or existing.system_prompt,
                configuration={**existing.configuration, **(configuration or {})},
                updated_at=datetime.now(UTC),
            )
            self._agents[agent_id] = updated
        self._notify()
        return updated

    def delete_agent(self, agent_id: str) -> bool:
        with self._lock:
            if self._agents.pop(agent_id, None) is None:
                return False
        self._notify()
        return True

    def start_agent(self, agent_id: str) -> Agent | None:
        now = datetime.now(UTC)
        return self._set_status(agent_id, AgentStatus.active, last_activity=now)

    def stop_agent(self, agent_id: str) -> Agent | None:
        return self._set_status(agent_id, AgentStatus.stopped)

    def touch(self, agent_id: str) -> Agent | None:
        """Record activity without changing status."""
        with self._lock:
            existing = self._agents.get(agent_id)
            if existing is None:
                return None
            updated = replace(existing, last_activity=datetime.now(UTC))
            self._agents[agent_id] = updated
        self._notify()
        return updated

    def _set_status(
        self,
        agent_id: str,
        status: AgentStatus,
        *,
        last_activity: datetime | None = None,
    ) -> Agent | None:
        with self._lock:
            existing = self._agents.get(agent_id)
            if existing is None:
                return None
            updated = replace(
                existing,
                status=status,
                last_activity=last_activity or existing.last_activity,
                updated_at=datetime.now(UTC),
            )
            self._agents[agent_id] = updated
        logger.info("Agent %s is now %s.", existing.name, status.value)
        self._notify()
        return updated

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a change listener; the returned callable removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def restore(self, agents: Iterable[Agent]) -> None:
        """Load persisted agents verbatim, keeping ids so conversations stay attached."""
        with self._lock:
            for agent in agents:
                self._agents[agent.id] = agent

    def _notify(self) -> None:
        with self._lock:
            snapshot = list(self._listeners)
        for listener in snapshot:
            try:
                listener()
            except Exception:  # noqa: BLE001
                logger.exception("Agent registry listener %r failed.", listener)

    def _find_by_name(self, name: str) -> Agent | None:
        for agent in self._agents.values():
            if agent.name == name:
                return agent
        return None
