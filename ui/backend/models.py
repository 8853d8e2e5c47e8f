"""Pydantic models for the Agent Studio HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from agent_studio.agents import AgentStatus, AgentType
from agent_studio.stories.models import (
    ProjectStatus,
    StoryPriority,
    StoryStatus,
    StoryType,
    TaskStatus,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    provider: str


class ProjectCreateRequest(BaseModel):
    """Request payload for creating a project."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=1000)
    type: str = Field("Web Application", min_length=1, max_length=100)
    status: ProjectStatus = ProjectStatus.active
    workflow_id: str | None = None


class ProjectUpdateRequest(BaseModel):
    """Partial project update; omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    type: str | None = Field(None, min_length=1, max_length=100)
    status: ProjectStatus | None = None
    workflow_id: str | None = None


class ProjectWorkflowLinkRequest(BaseModel):
    workflow_id: str = Field(..., min_length=1)


class ProjectResponse(BaseModel):
    """Serialized project."""

    id: str
    name: str
    description: str
    type: str
    status: ProjectStatus
    workflow_id: str | None
    owner: str | None
    created_at: datetime
    updated_at: datetime


class StoryCreateRequest(BaseModel):
    """Request payload for creating a story."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=2000)
    type: StoryType = StoryType.feature
    priority: StoryPriority = StoryPriority.medium
    status: StoryStatus = StoryStatus.backlog
    progress: int | None = Field(None, ge=0, le=100)
    assigned_agent: str | None = None
    estimated_hours: int | None = Field(None, ge=0)
    actual_hours: int | None = Field(None, ge=0)
    phase: str | None = None
    project_id: str | None = None
    workflow_id: str | None = None
    due_date: datetime | None = None
    tags: list[str] = Field(default_factory=list)
    acceptance_criteria: list[str] = Field(default_factory=list)


class StoryUpdateRequest(BaseModel):
    """Partial story update; omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    type: StoryType | None = None
    priority: StoryPriority | None = None
    status: StoryStatus | None = None
    progress: int | None = Field(None, ge=0, le=100)
    assigned_agent: str | None = None
    estimated_hours: int | None = Field(None, ge=0)
    actual_hours: int | None = Field(None, ge=0)
    phase: str | None = None
    project_id: str | None = None
    workflow_id: str | None = None
    due_date: datetime | None = None
    tags: list[str] | None = None
    acceptance_criteria: list[str] | None = None


class StoryResponse(BaseModel):
    """Serialized story."""

    id: str
    title: str
    description: str
    type: StoryType
    priority: StoryPriority
    status: StoryStatus
    progress: int
    assigned_agent: str | None
    estimated_hours: int | None
    actual_hours: int | None
    phase: str | None
    project_id: str | None
    workflow_id: str | None
    created_at: datetime
    updated_at: datetime
    due_date: datetime | None
    tags: list[str]
    acceptance_criteria: list[str]


class AssignAgentRequest(BaseModel):
    """Assign an agent by name, or clear the assignment with ``null``."""

    agent_name: str | None = Field(None, min_length=1, max_length=100)


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    status: TaskStatus = TaskStatus.todo


class TaskUpdateRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    status: TaskStatus | None = None


class TaskResponse(BaseModel):
    id: str
    story_id: str
    title: str
    description: str | None
    status: TaskStatus
    created_at: datetime
    updated_at: datetime


class StatisticsResponse(BaseModel):
    """Story rollup counts and totals."""

    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    by_type: dict[str, int]
    done_count: int
    average_progress: float
    total_estimated_hours: int
    total_actual_hours: int


class DashboardResponse(BaseModel):
    project: ProjectResponse
    statistics: StatisticsResponse


class GenerateStoryRequest(BaseModel):
    """Request payload for drafting a story from free-text requirements."""

    requirements: str = Field(..., min_length=10, max_length=2000)
    project_id: str = Field(..., min_length=1)
    agent_id: str | None = None
    priority: StoryPriority = StoryPriority.medium


class GenerateStoryResponse(BaseModel):
    story: StoryResponse
    tasks: list[TaskResponse]
    acceptance_criteria: list[str]
    estimated_points: int


class WorkflowPhaseResponse(BaseModel):
    id: str | None
    name: str
    description: str
    activities: list[str]
    deliverables: list[str]
    duration: str


class WorkflowResponse(BaseModel):
    id: str
    name: str
    description: str
    phases: list[WorkflowPhaseResponse]
    estimated_duration: str | None
    complexity: str | None


class WorkflowStoriesRequest(BaseModel):
    project_id: str = Field(..., min_length=1)


class WorkflowSyncRequest(BaseModel):
    """Active phase reported by the workflow runner."""

    current_phase_name: str = Field(..., min_length=1)
    current_phase_index: int = Field(..., ge=0)
    total_phases: int = Field(..., ge=1)


class WorkflowSyncResponse(BaseModel):
    workflow_id: str
    changed: int
    stories: list[StoryResponse]


class AgentCreateRequest(BaseModel):
    """Request payload for creating an agent."""

    name: str = Field(..., min_length=1, max_length=100)
    type: AgentType
    description: str | None = Field(None, max_length=500)
    system_prompt: str | None = Field(None, max_length=2000)
    configuration: dict[str, Any] | None = None


class AgentUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    system_prompt: str | None = Field(None, max_length=2000)
    configuration: dict[str, Any] | None = None


class AgentResponse(BaseModel):
    id: str
    name: str
    type: AgentType
    description: str | None
    status: AgentStatus
    system_prompt: str
    configuration: dict[str, Any]
    last_activity: datetime | None
    created_at: datetime
    updated_at: datetime


class AgentChatRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    message: str = Field(..., min_length=1, max_length=4000)
    conversation_id: str | None = None


class AgentChatResponse(BaseModel):
    conversation_id: str
    response: str
    agent_name: str
    agent_type: AgentType
    timestamp: datetime


class AIChatRequest(BaseModel):
    """Stateless role-play chat against an ad-hoc persona."""

    model_config = ConfigDict(str_strip_whitespace=True)

    message: str = Field(..., min_length=1, max_length=4000)
    agent_type: str = Field(..., min_length=1)
    agent_name: str = Field(..., min_length=1)
    system_prompt: str = Field(..., min_length=1, max_length=2000)
    context: str | None = None


class AIChatResponse(BaseModel):
    response: str
    agent_name: str
    agent_type: str
    timestamp: datetime


class ProviderInfo(BaseModel):
    name: str
    models: list[str]
    active: bool
    fallback_count: int = 0
    last_error: str | None = None


class EventPayload(BaseModel):
    """Event payload for websocket and SSE updates."""

    event_id: str
    channel: str
    event_type: str
    message: str
    revision: int
    timestamp: datetime
