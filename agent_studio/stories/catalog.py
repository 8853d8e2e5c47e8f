"""Built-in workflow definitions."""

from __future__ import annotations

from typing import Any

from agent_studio.stories.workflow import WorkflowDefinition

_CATALOG: tuple[dict[str, Any], ...] = (
    {
        "id": "requirements-analysis",
        "name": "Requirements Analysis & Planning",
        "description": (
            "Comprehensive requirements gathering, analysis, and project planning workflow"
        ),
        "estimated_duration": "4-7 weeks",
        "complexity": "medium",
        "phases": [
            {
                "id": "discovery",
                "name": "Discovery & Stakeholder Engagement",
                "description": "Initial stakeholder interviews and requirement discovery",
                "duration": "1-2 weeks",
                "activities": [
                    "Stakeholder interviews",
                    "Business process analysis",
                    "Current state assessment",
                    "Pain point identification",
                ],
                "deliverables": ["Stakeholder map", "Business process flows", "Pain point summary"],
            },
            {
                "id": "requirements-gathering",
                "name": "Requirements Gathering & Documentation",
                "description": "Detailed requirements collection and documentation",
                "duration": "2-3 weeks",
                "activities": [
                    "User story workshops",
                    "Functional requirements definition",
                    "Non-functional requirements analysis",
                    "Acceptance criteria development",
                ],
                "deliverables": ["User stories", "Requirements document", "Acceptance criteria"],
            },
            {
                "id": "planning",
                "name": "Project Planning & Estimation",
                "description": "Project planning, estimation, and resource allocation",
                "duration": "1-2 weeks",
                "activities": [
                    "Project scope definition",
                    "Timeline estimation",
                    "Resource planning",
                    "Risk assessment",
                ],
                "deliverables": [
                    "Project plan",
                    "Timeline",
                    "Resource allocation",
                    "Risk register",
                ],
            },
        ],
    },
    {
        "id": "design-implementation",
        "name": "Design & Implementation",
        "description": "User experience design and frontend implementation workflow",
        "estimated_duration": "5-9 weeks",
        "complexity": "high",
        "phases": [
            {
                "id": "research-design",
                "name": "User Research & Design",
                "description": "User research, wireframing, and visual design",
                "duration": "2-3 weeks",
                "activities": [
                    "User research and interviews",
                    "Persona development",
                    "Wireframe creation",
                    "Visual design development",
                    "Usability testing",
                ],
                "deliverables": [
                    "User personas",
                    "Wireframes",
                    "Visual designs",
                    "Usability test results",
                ],
            },
            {
                "id": "frontend-implementation",
                "name": "Frontend Implementation",
                "description": "Frontend development and design system implementation",
                "duration": "2-4 weeks",
                "activities": [
                    "Component development",
                    "Design system implementation",
                    "Responsive design",
                    "Accessibility implementation",
                    "Cross-browser testing",
                ],
                "deliverables": [
                    "Frontend components",
                    "Design system",
                    "Responsive layouts",
                    "Accessibility features",
                ],
            },
            {
                "id": "validation-iteration",
                "name": "Design Validation & Iteration",
                "description": "User testing, feedback collection, and design iteration",
                "duration": "1-2 weeks",
                "activities": [
                    "User acceptance testing",
                    "Feedback collection and analysis",
                    "Design iteration and refinement",
                    "Final validation and approval",
                ],
                "deliverables": [
                    "User feedback report",
                    "Design iteration documentation",
                    "Final design approval",
                ],
            },
        ],
    },
    {
        "id": "development-sprint",
        "name": "Development Sprint Execution",
        "description": "Agile development sprint with continuous integration and testing",
        "estimated_duration": "2-3 weeks",
        "complexity": "medium",
        "phases": [
            {
                "id": "sprint-planning",
                "name": "Sprint Planning & Setup",
                "description": "Sprint goal setting, story breakdown, and team preparation",
                "duration": "1-2 days",
                "activities": [
                    "Sprint goal definition",
                    "Story breakdown and estimation",
                    "Team capacity planning",
                    "Definition of Done agreement",
                ],
                "deliverables": ["Sprint backlog", "Sprint goal", "Team commitments"],
            },
            {
                "id": "development",
                "name": "Development & Testing",
                "description": "Feature development with continuous testing and integration",
                "duration": "1-2 weeks",
                "activities": [
                    "Feature implementation",
                    "Unit testing",
                    "Code reviews",
                    "Continuous integration",
                    "Integration testing",
                ],
                "deliverables": ["Working software", "Test results", "Code documentation"],
            },
            {
                "id": "review-retrospective",
                "name": "Sprint Review & Retrospective",
                "description": "Sprint review, stakeholder demo, and team improvement",
                "duration": "1 day",
                "activities": [
                    "Sprint review with stakeholders",
                    "Working software demonstration",
                    "Feedback collection",
                    "Team retrospective",
                    "Process improvement planning",
                ],
                "deliverables": [
                    "Sprint review notes",
                    "Stakeholder feedback",
                    "Improvement action items",
                ],
            },
        ],
    },
)


def builtin_workflows() -> list[WorkflowDefinition]:
    """Return the shipped workflows in catalog order."""
    return [WorkflowDefinition.from_dict(payload) for payload in _CATALOG]


def get_workflow(workflow_id: str) -> WorkflowDefinition | None:
    for workflow in builtin_workflows():
        if workflow.id == workflow_id:
            return workflow
    return None
