"""Summarization agents and the task derivation pipeline."""

from anchorman.llm.agents import AGENTS, ClaudeAgent, CodexAgent, create_agent
from anchorman.llm.base import CommandLineAgent, SummarizationAgent
from anchorman.llm.parser import parse_task_lines, round_to_half_hour
from anchorman.llm.processor import (
    DerivationGroup,
    DerivationResult,
    GroupFailure,
    TaskDerivationPipeline,
)
from anchorman.llm.prompts import PromptTemplates, build_task_prompt

__all__ = [
    "SummarizationAgent",
    "CommandLineAgent",
    "CodexAgent",
    "ClaudeAgent",
    "AGENTS",
    "create_agent",
    "PromptTemplates",
    "build_task_prompt",
    "parse_task_lines",
    "round_to_half_hour",
    "TaskDerivationPipeline",
    "DerivationGroup",
    "DerivationResult",
    "GroupFailure",
]
