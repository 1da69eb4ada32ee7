"""Assistant agent graph: triage plus specialist agents."""

from bi_assistant.agents.assistant.agents import (
    GENERAL_KNOWLEDGE_AGENT,
    build_triage_agent,
    build_user_info_agent,
)
from bi_assistant.agents.assistant.explore import SemanticModel, build_explore_agent
from bi_assistant.agents.assistant.tools import CURRENT_TIME_TOOL

__all__ = [
    "CURRENT_TIME_TOOL",
    "GENERAL_KNOWLEDGE_AGENT",
    "SemanticModel",
    "build_explore_agent",
    "build_triage_agent",
    "build_user_info_agent",
]
