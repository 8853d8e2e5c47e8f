"""Agent Studio: project, story and agent tracking with workflow-driven story generation."""

__version__ = "0.4.0"
