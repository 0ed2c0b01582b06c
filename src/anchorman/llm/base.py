"""Base class for summarization agents."""

import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import structlog

from anchorman.errors import AgentError
from anchorman.llm.parser import parse_task_lines
from anchorman.llm.prompts import CommitLike, build_task_prompt
from anchorman.models import TaskResult

logger = structlog.get_logger(__name__)


class SummarizationAgent(ABC):
    """Turns one project's commits into time-estimated work items."""

    name: str = ""

    @abstractmethod
    def process(self, project_name: str, commits: Sequence[CommitLike]) -> List[TaskResult]:
        """Summarize a group of commits.

        Args:
            project_name: Name of the project the commits belong to
            commits: Commits to summarize, oldest first

        Returns:
            Parsed task lines

        Raises:
            AgentError: If the agent cannot produce a response
        """


class CommandLineAgent(SummarizationAgent):
    """Agent backed by a one-shot CLI process that reads the prompt on stdin.

    The whole response is captured before parsing; output is not streamed.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        """Initialize the agent.

        Args:
            timeout: Seconds to wait for the process (None = wait indefinitely)
        """
        self.timeout = timeout

    @abstractmethod
    def command(self) -> List[str]:
        """Argument vector used to launch the agent."""

    def process(self, project_name: str, commits: Sequence[CommitLike]) -> List[TaskResult]:
        prompt = build_task_prompt(project_name, commits)
        response = self.complete(prompt, project_name)
        tasks = parse_task_lines(response)
        logger.info("agent_completed", agent=self.name, project=project_name, tasks=len(tasks))
        return tasks

    def complete(self, prompt: str, project_name: str = "") -> str:
        """Run the agent once and return its full stdout.

        Args:
            prompt: Prompt text written to the agent's stdin
            project_name: Used only to give errors context

        Returns:
            Captured standard output

        Raises:
            AgentError: On launch failure, timeout or non-zero exit
        """
        args = self.command()
        logger.debug("agent_started", agent=self.name, project=project_name, args=args)
        try:
            proc = subprocess.run(
                args,
                input=prompt,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise AgentError(
                f"{self.name} timed out after {self.timeout}s for project {project_name}"
            ) from e
        except OSError as e:
            raise AgentError(f"{self.name} could not be started: {e}") from e

        if proc.returncode != 0:
            raise AgentError(
                f"{self.name} failed for project {project_name} "
                f"(exit code {proc.returncode})\nstderr: {proc.stderr.strip()}"
            )
        return proc.stdout
