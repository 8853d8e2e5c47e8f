"""FastAPI application for Agent Studio."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from typing import Annotated

from fastapi import (
    FastAPI,
    Header,
    HTTPException,
    Query,
    Response,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.responses import StreamingResponse

from agent_studio import __version__
from agent_studio.agents import Agent, AgentRegistry, AgentStatus, AgentType
from agent_studio.ai.drafting import AIServiceError, StoryDrafter, build_provider
from agent_studio.ai.providers.base import LLMProvider
from agent_studio.ai.providers.openai_provider import OPENAI_MODELS
from agent_studio.ai.providers.resilient_llm import ResilientLLM
from agent_studio.config import StudioConfig, load_config
from agent_studio.stories.catalog import builtin_workflows, get_workflow
from agent_studio.stories.models import (
    Project,
    ProjectDraft,
    Story,
    StoryDraft,
    StoryFilter,
    StoryStatus,
    StoryType,
    Task,
)
from agent_studio.stories.persistence import load_snapshot, save_snapshot
from agent_studio.stories.sample_data import seed_sample_data
from agent_studio.stories.statistics import StoryStatistics, compute_story_statistics
from agent_studio.stories.store import StoryStore
from agent_studio.stories.workflow import WorkflowDefinition, WorkflowSynchronizer
from ui.backend.conversations import ConversationStore
from ui.backend.events import STORE_CHANNEL, Event, EventBroker
from ui.backend.models import (
    AgentChatRequest,
    AgentChatResponse,
    AgentCreateRequest,
    AgentResponse,
    AgentUpdateRequest,
    AIChatRequest,
    AIChatResponse,
    AssignAgentRequest,
    DashboardResponse,
    EventPayload,
    GenerateStoryRequest,
    GenerateStoryResponse,
    HealthResponse,
    ProjectCreateRequest,
    ProjectResponse,
    ProjectUpdateRequest,
    ProjectWorkflowLinkRequest,
    ProviderInfo,
    StatisticsResponse,
    StoryCreateRequest,
    StoryResponse,
    StoryUpdateRequest,
    TaskCreateRequest,
    TaskResponse,
    TaskUpdateRequest,
    WorkflowResponse,
    WorkflowStoriesRequest,
    WorkflowSyncRequest,
    WorkflowSyncResponse,
)

logger = logging.getLogger(__name__)

OWNER_HEADER = "X-Agent-Studio-User"

# Projects created with this header are private to it; projects without an owner are shared.
OwnerHeader = Annotated[str | None, Header(alias=OWNER_HEADER)]


class BackendState:
    """Holds shared state for the API."""

    def __init__(self, config: StudioConfig, provider: LLMProvider | None = None) -> None:
        self.config = config
        self.store = StoryStore()
        self.agents = AgentRegistry()
        if config.data_file.exists():
            load_snapshot(config.data_file, self.store, self.agents)
            logger.info("Loaded story snapshot from %s.", config.data_file)
        elif config.seed_sample_data:
            seed_sample_data(self.store)
        self.synchronizer = WorkflowSynchronizer(self.store)
        self.drafter = StoryDrafter(provider or build_provider(config))
        self.broker = EventBroker()
        self.conversations = ConversationStore(config.conversation_db)
        self.revision = 0
        self._revision_lock = threading.Lock()
        self.store.subscribe(self._persist)
        self.store.subscribe(self._publish_change)
        self.agents.subscribe(self._persist)

    def _persist(self) -> None:
        save_snapshot(self.store, self.config.data_file, self.agents)

    def _publish_change(self) -> None:
        with self._revision_lock:
            self.revision += 1
            revision = self.revision
        self.broker.publish(
            Event.create(
                channel=STORE_CHANNEL,
                event_type="store_changed",
                message="Story store changed.",
                revision=revision,
            )
        )


def create_app(
    config: StudioConfig | None = None,
    *,
    provider: LLMProvider | None = None,
) -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(title="Agent Studio API", version=__version__)
    state = BackendState(config or load_config(), provider=provider)
    app.state.backend = state

    def can_see_project(project: Project, owner: str | None) -> bool:
        return project.owner is None or project.owner == owner

    def can_see_story(story: Story, owner: str | None) -> bool:
        """Stories follow their project; unassigned or orphaned stories are shared."""
        if story.project_id is None:
            return True
        project = state.store.get_project(story.project_id)
        return project is None or can_see_project(project, owner)

    def visible_stories(stories: list[Story], owner: str | None) -> list[Story]:
        return [story for story in stories if can_see_story(story, owner)]

    def require_project(project_id: str, owner: str | None) -> Project:
        project = state.store.get_project(project_id)
        if project is None or not can_see_project(project, owner):
            raise HTTPException(status_code=404, detail="Project not found")
        return project

    def require_story(story_id: str, owner: str | None) -> Story:
        story = state.store.get_story(story_id)
        if story is None or not can_see_story(story, owner):
            raise HTTPException(status_code=404, detail="Story not found")
        return story

    def require_task(task_id: str, owner: str | None) -> Task:
        task = state.store.get_task(task_id)
        story = state.store.get_story(task.story_id) if task is not None else None
        if task is None or (story is not None and not can_see_story(story, owner)):
            raise HTTPException(status_code=404, detail="Task not found")
        return task

    def require_agent(agent_id: str) -> Agent:
        agent = state.agents.get_agent(agent_id)
        if agent is None:
            raise HTTPException(status_code=404, detail="Agent not found")
        return agent

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__, provider=state.config.provider)

    # Projects

    @app.get("/api/projects", response_model=list[ProjectResponse])
    def list_projects(owner: OwnerHeader = None) -> list[ProjectResponse]:
        return [
            _project_response(project)
            for project in state.store.list_projects()
            if can_see_project(project, owner)
        ]

    @app.post("/api/projects", response_model=ProjectResponse, status_code=201)
    def create_project(payload: ProjectCreateRequest, owner: OwnerHeader = None) -> ProjectResponse:
        project = state.store.create_project(
            ProjectDraft(
                name=payload.name.strip(),
                description=payload.description,
                type=payload.type,
                status=payload.status,
                workflow_id=payload.workflow_id,
                owner=owner,
            )
        )
        return _project_response(project)

    @app.get("/api/projects/{project_id}", response_model=ProjectResponse)
    def get_project(project_id: str, owner: OwnerHeader = None) -> ProjectResponse:
        return _project_response(require_project(project_id, owner))

    @app.put("/api/projects/{project_id}", response_model=ProjectResponse)
    def update_project(
        project_id: str, payload: ProjectUpdateRequest, owner: OwnerHeader = None
    ) -> ProjectResponse:
        require_project(project_id, owner)
        try:
            project = state.store.update_project(
                project_id, **payload.model_dump(exclude_unset=True)
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if project is None:
            raise HTTPException(status_code=404, detail="Project not found")
        return _project_response(project)

    @app.delete("/api/projects/{project_id}", status_code=204)
    def delete_project(project_id: str, owner: OwnerHeader = None) -> Response:
        require_project(project_id, owner)
        if not state.store.delete_project(project_id):
            raise HTTPException(status_code=404, detail="Project not found")
        return Response(status_code=204)

    @app.post("/api/projects/{project_id}/workflow", response_model=ProjectResponse)
    def link_project_workflow(
        project_id: str, payload: ProjectWorkflowLinkRequest, owner: OwnerHeader = None
    ) -> ProjectResponse:
        require_project(project_id, owner)
        if not state.store.link_project_to_workflow(project_id, payload.workflow_id):
            raise HTTPException(status_code=404, detail="Project not found")
        return _project_response(require_project(project_id, owner))

    @app.get("/api/projects/{project_id}/dashboard", response_model=DashboardResponse)
    def project_dashboard(project_id: str, owner: OwnerHeader = None) -> DashboardResponse:
        project = require_project(project_id, owner)
        statistics = compute_story_statistics(state.store.stories_by_project(project_id))
        return DashboardResponse(
            project=_project_response(project),
            statistics=_statistics_response(statistics),
        )

    # Stories

    @app.get("/api/stories", response_model=list[StoryResponse])
    def list_stories(
        project_id: str | None = None,
        workflow_id: str | None = None,
        phase: str | None = None,
        status: StoryStatus | None = Query(None),
        owner: OwnerHeader = None,
    ) -> list[StoryResponse]:
        story_filter = StoryFilter(
            project_id=project_id,
            workflow_id=workflow_id,
            phase=phase,
            status=status,
        )
        stories = visible_stories(state.store.list_stories(story_filter), owner)
        return [_story_response(story) for story in stories]

    @app.get("/api/stories/statistics", response_model=StatisticsResponse)
    def story_statistics(owner: OwnerHeader = None) -> StatisticsResponse:
        stories = visible_stories(state.store.list_stories(), owner)
        return _statistics_response(compute_story_statistics(stories))

    @app.post("/api/stories", response_model=StoryResponse, status_code=201)
    def create_story(payload: StoryCreateRequest, owner: OwnerHeader = None) -> StoryResponse:
        if payload.project_id is not None:
            require_project(payload.project_id, owner)
        data = payload.model_dump()
        data["tags"] = tuple(data["tags"])
        data["acceptance_criteria"] = tuple(data["acceptance_criteria"])
        story = state.store.create_story(StoryDraft(**data))
        return _story_response(story)

    @app.post("/api/stories/generate", response_model=GenerateStoryResponse, status_code=201)
    def generate_story(
        payload: GenerateStoryRequest, owner: OwnerHeader = None
    ) -> GenerateStoryResponse:
        project = require_project(payload.project_id, owner)
        agent_name = require_agent(payload.agent_id).name if payload.agent_id else None
        try:
            generated = state.drafter.draft_story(payload.requirements)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except AIServiceError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        story = state.store.create_story(
            StoryDraft(
                title=generated.title,
                description=generated.description,
                type=StoryType.feature,
                priority=payload.priority,
                assigned_agent=agent_name,
                project_id=project.id,
                workflow_id=project.workflow_id,
                tags=("ai-generated",),
                acceptance_criteria=generated.acceptance_criteria,
            )
        )
        tasks = [
            state.store.add_task(
                story.id,
                f"Acceptance Criteria {index + 1}",
                description=criterion,
            )
            for index, criterion in enumerate(generated.acceptance_criteria)
        ]
        return GenerateStoryResponse(
            story=_story_response(story),
            tasks=[_task_response(task) for task in tasks if task is not None],
            acceptance_criteria=list(generated.acceptance_criteria),
            estimated_points=generated.story_points,
        )

    @app.get("/api/stories/{story_id}", response_model=StoryResponse)
    def get_story(story_id: str, owner: OwnerHeader = None) -> StoryResponse:
        return _story_response(require_story(story_id, owner))

    @app.put("/api/stories/{story_id}", response_model=StoryResponse)
    def update_story(
        story_id: str, payload: StoryUpdateRequest, owner: OwnerHeader = None
    ) -> StoryResponse:
        require_story(story_id, owner)
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("project_id") is not None:
            require_project(changes["project_id"], owner)
        try:
            story = state.store.update_story(story_id, **changes)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if story is None:
            raise HTTPException(status_code=404, detail="Story not found")
        return _story_response(story)

    @app.delete("/api/stories/{story_id}", status_code=204)
    def delete_story(story_id: str, owner: OwnerHeader = None) -> Response:
        require_story(story_id, owner)
        if not state.store.delete_story(story_id):
            raise HTTPException(status_code=404, detail="Story not found")
        return Response(status_code=204)

    @app.post("/api/stories/{story_id}/agents", response_model=StoryResponse)
    def assign_story_agent(
        story_id: str, payload: AssignAgentRequest, owner: OwnerHeader = None
    ) -> StoryResponse:
        require_story(story_id, owner)
        story = state.store.assign_agent(story_id, payload.agent_name)
        if story is None:
            raise HTTPException(status_code=404, detail="Story not found")
        return _story_response(story)

    @app.get("/api/stories/{story_id}/tasks", response_model=list[TaskResponse])
    def list_story_tasks(story_id: str, owner: OwnerHeader = None) -> list[TaskResponse]:
        require_story(story_id, owner)
        return [_task_response(task) for task in state.store.tasks_for_story(story_id)]

    @app.post("/api/stories/{story_id}/tasks", response_model=TaskResponse, status_code=201)
    def create_story_task(
        story_id: str, payload: TaskCreateRequest, owner: OwnerHeader = None
    ) -> TaskResponse:
        require_story(story_id, owner)
        task = state.store.add_task(
            story_id,
            payload.title,
            description=payload.description,
            status=payload.status,
        )
        if task is None:
            raise HTTPException(status_code=404, detail="Story not found")
        return _task_response(task)

    @app.put("/api/tasks/{task_id}", response_model=TaskResponse)
    def update_task(
        task_id: str, payload: TaskUpdateRequest, owner: OwnerHeader = None
    ) -> TaskResponse:
        require_task(task_id, owner)
        try:
            task = state.store.update_task(task_id, **payload.model_dump(exclude_unset=True))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if task is None:
            raise HTTPException(status_code=404, detail="Task not found")
        return _task_response(task)

    @app.delete("/api/tasks/{task_id}", status_code=204)
    def delete_task(task_id: str, owner: OwnerHeader = None) -> Response:
        require_task(task_id, owner)
        if not state.store.delete_task(task_id):
            raise HTTPException(status_code=404, detail="Task not found")
        return Response(status_code=204)

    # Workflows

    @app.get("/api/workflows", response_model=list[WorkflowResponse])
    def list_workflows() -> list[WorkflowResponse]:
        return [_workflow_response(workflow) for workflow in builtin_workflows()]

    @app.post(
        "/api/workflows/{workflow_id}/stories",
        response_model=list[StoryResponse],
        status_code=201,
    )
    def generate_workflow_stories(
        workflow_id: str, payload: WorkflowStoriesRequest, owner: OwnerHeader = None
    ) -> list[StoryResponse]:
        workflow = get_workflow(workflow_id)
        if workflow is None:
            raise HTTPException(status_code=404, detail="Workflow not found")
        require_project(payload.project_id, owner)
        stories = state.synchronizer.create_stories_from_workflow(
            workflow, payload.project_id, workflow_id
        )
        state.store.link_project_to_workflow(payload.project_id, workflow_id)
        return [_story_response(story) for story in stories]

    @app.post("/api/workflows/{workflow_id}/sync", response_model=WorkflowSyncResponse)
    def sync_workflow(
        workflow_id: str, payload: WorkflowSyncRequest, owner: OwnerHeader = None
    ) -> WorkflowSyncResponse:
        visible_project_ids = {
            project.id
            for project in state.store.list_projects()
            if can_see_project(project, owner)
        }
        changed = state.synchronizer.sync_workflow_progress(
            workflow_id,
            payload.current_phase_name,
            payload.current_phase_index,
            payload.total_phases,
            project_ids=visible_project_ids,
        )
        return WorkflowSyncResponse(
            workflow_id=workflow_id,
            changed=len(changed),
            stories=[_story_response(story) for story in changed],
        )

    # Agents

    @app.get("/api/agents", response_model=list[AgentResponse])
    def list_agents(
        status: AgentStatus | None = Query(None),
        agent_type: AgentType | None = Query(None, alias="type"),
    ) -> list[AgentResponse]:
        agents = state.agents.list_agents(status=status, agent_type=agent_type)
        return [_agent_response(agent) for agent in agents]

    @app.post("/api/agents", response_model=AgentResponse, status_code=201)
    def create_agent(payload: AgentCreateRequest) -> AgentResponse:
        try:
            agent = state.agents.create_agent(
                payload.name.strip(),
                payload.type,
                description=payload.description,
                system_prompt=payload.system_prompt,
                configuration=payload.configuration,
            )
        except ValueError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return _agent_response(agent)

    @app.get("/api/agents/{agent_id}", response_model=AgentResponse)
    def get_agent(agent_id: str) -> AgentResponse:
        return _agent_response(require_agent(agent_id))

    @app.put("/api/agents/{agent_id}", response_model=AgentResponse)
    def update_agent(agent_id: str, payload: AgentUpdateRequest) -> AgentResponse:
        try:
            agent = state.agents.update_agent(agent_id, **payload.model_dump(exclude_unset=True))
        except ValueError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        if agent is None:
            raise HTTPException(status_code=404, detail="Agent not found")
        return _agent_response(agent)

    @app.delete("/api/agents/{agent_id}", status_code=204)
    def delete_agent(agent_id: str) -> Response:
        if not state.agents.delete_agent(agent_id):
            raise HTTPException(status_code=404, detail="Agent not found")
        return Response(status_code=204)

    @app.post("/api/agents/{agent_id}/start", response_model=AgentResponse)
    def start_agent(agent_id: str) -> AgentResponse:
        agent = state.agents.start_agent(agent_id)
        if agent is None:
            raise HTTPException(status_code=404, detail="Agent not found")
        return _agent_response(agent)

    @app.post("/api/agents/{agent_id}/stop", response_model=AgentResponse)
    def stop_agent(agent_id: str) -> AgentResponse:
        agent = state.agents.stop_agent(agent_id)
        if agent is None:
            raise HTTPException(status_code=404, detail="Agent not found")
        return _agent_response(agent)

    @app.post("/api/agents/{agent_id}/chat", response_model=AgentChatResponse)
    def chat_with_agent(agent_id: str, payload: AgentChatRequest) -> AgentChatResponse:
        agent = require_agent(agent_id)
        if payload.conversation_id:
            conversation = state.conversations.get_conversation(payload.conversation_id)
            if conversation is None or conversation.agent_id != agent.id:
                raise HTTPException(status_code=404, detail="Conversation not found")
        else:
            conversation = state.conversations.create_conversation(agent.id)
        context = state.conversations.recent_context(conversation.conversation_id)
        state.conversations.add_message(conversation.conversation_id, "user", payload.message)
        try:
            reply = state.drafter.chat(
                payload.message,
                agent_name=agent.name,
                agent_type=agent.type.value,
                system_prompt=agent.system_prompt,
                context=context or None,
            )
        except AIServiceError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        state.conversations.add_message(conversation.conversation_id, "assistant", reply)
        state.agents.touch(agent.id)
        return AgentChatResponse(
            conversation_id=conversation.conversation_id,
            response=reply,
            agent_name=agent.name,
            agent_type=agent.type,
            timestamp=datetime.now(UTC),
        )

    # AI

    @app.get("/api/ai/providers", response_model=list[ProviderInfo])
    def list_ai_providers() -> list[ProviderInfo]:
        active = state.config.provider
        provider = state.drafter.provider
        degradation = (
            {"fallback_count": provider.fallback_count, "last_error": provider.last_error}
            if isinstance(provider, ResilientLLM)
            else {}
        )
        return [
            ProviderInfo(
                name="openai",
                models=list(OPENAI_MODELS),
                active=active == "openai",
                **degradation,
            ),
            ProviderInfo(name="mock", models=["mock"], active=active == "mock"),
        ]

    @app.post("/api/ai/chat", response_model=AIChatResponse)
    def ai_chat(payload: AIChatRequest) -> AIChatResponse:
        try:
            reply = state.drafter.chat(
                payload.message,
                agent_name=payload.agent_name,
                agent_type=payload.agent_type,
                system_prompt=payload.system_prompt,
                context=payload.context,
            )
        except AIServiceError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return AIChatResponse(
            response=reply,
            agent_name=payload.agent_name,
            agent_type=payload.agent_type,
            timestamp=datetime.now(UTC),
        )

    # Events

    @app.get("/api/events/sse")
    async def stream_events() -> StreamingResponse:
        async def event_generator() -> AsyncGenerator[str, None]:
            queue = state.broker.subscribe(STORE_CHANNEL)
            try:
                for event in state.broker.history(STORE_CHANNEL):
                    yield _format_sse(event)
                while True:
                    event = await queue.get()
                    yield _format_sse(event)
            finally:
                state.broker.unsubscribe(STORE_CHANNEL, queue)

        return StreamingResponse(event_generator(), media_type="text/event-stream")

    @app.websocket("/api/events/ws")
    async def websocket_events(websocket: WebSocket) -> None:
        await websocket.accept()
        queue = state.broker.subscribe(STORE_CHANNEL)
        try:
            for event in state.broker.history(STORE_CHANNEL):
                await websocket.send_json(_event_payload(event))
            while True:
                event = await queue.get()
                await websocket.send_json(_event_payload(event))
        except WebSocketDisconnect:
            pass
        finally:
            state.broker.unsubscribe(STORE_CHANNEL, queue)

    return app


def _project_response(project: Project) -> ProjectResponse:
    return ProjectResponse(**project.to_dict())


def _story_response(story: Story) -> StoryResponse:
    return StoryResponse(**story.to_dict())


def _task_response(task: Task) -> TaskResponse:
    return TaskResponse(**task.to_dict())


def _agent_response(agent: Agent) -> AgentResponse:
    return AgentResponse(**agent.to_dict())


def _statistics_response(statistics: StoryStatistics) -> StatisticsResponse:
    return StatisticsResponse(**statistics.to_dict())


def _workflow_response(workflow: WorkflowDefinition) -> WorkflowResponse:
    return WorkflowResponse(**workflow.to_dict())


def _format_sse(event: Event) -> str:
    payload = json.dumps(_event_payload(event))
    return f"data: {payload}\n\n"


def _event_payload(event: Event) -> dict:
    payload = EventPayload(
        event_id=event.event_id,
        channel=event.channel,
        event_type=event.event_type,
        message=event.message,
        revision=event.revision,
        timestamp=event.timestamp,
    )
    return payload.model_dump(mode="json")
