"""Concrete CLI summarization agents."""

from typing import Dict, List, Optional, Type

from anchorman.errors import UnknownAgentError
from anchorman.llm.base import CommandLineAgent, SummarizationAgent


class CodexAgent(CommandLineAgent):
    """OpenAI Codex CLI in non-interactive exec mode."""

    name = "codex"

    def command(self) -> List[str]:
        return ["codex", "exec", "-"]


class ClaudeAgent(CommandLineAgent):
    """Claude CLI in print mode."""

    name = "claude"

    def command(self) -> List[str]:
        return ["claude", "-p"]


AGENTS: Dict[str, Type[CommandLineAgent]] = {
    CodexAgent.name: CodexAgent,
    ClaudeAgent.name: ClaudeAgent,
}


def create_agent(name: str, timeout: Optional[float] = None) -> SummarizationAgent:
    """Create the agent registered under ``name``.

    Raises:
        UnknownAgentError: If no agent has that name
    """
    try:
        agent_cls = AGENTS[name]
    except KeyError:
        raise UnknownAgentError(
            f"unknown agent type: {name} (available: {', '.join(sorted(AGENTS))})"
        ) from None
    return agent_cls(timeout=timeout)
