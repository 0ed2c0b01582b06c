"""Prompt templates for task summarization."""

from typing import List, Protocol, Sequence

MAX_FILES_TEXT = 100


class CommitLike(Protocol):
    """Anything with the commit fields the prompt needs."""

    hash: str
    message: str
    branch: str
    files_changed: List[str]


class PromptTemplates:
    """Collection of prompt templates for work-log generation."""

    INSTRUCTIONS = """
Create a list of conceptual tasks that summarize the work done.
- Group related commits into single tasks
- Use plain, non-technical language suitable for managers
- Focus on WHAT was accomplished, not HOW
- Each task should be a single line starting with a verb (Implemented, Fixed, Added, Updated, etc.)

For each task, estimate the time spent based on:
- Number of commits involved
- Number and types of files changed
- Complexity implied by commit messages

Use 0.5 hour increments (minimum 0.5h). Examples: 0.5, 1.0, 1.5, 2.0, 2.5, etc.

Output format: - [X.Xh] Task description
Examples:
- [2.0h] Implemented user authentication system
- [0.5h] Fixed login button styling
- [1.5h] Refactored database connection handling

Output ONLY the tasks in this format:
"""

    @staticmethod
    def files_summary(files_changed: Sequence[str]) -> str:
        """Comma-joined file list, cut to 100 characters."""
        files = ", ".join(files_changed)
        if len(files) > MAX_FILES_TEXT:
            files = files[:MAX_FILES_TEXT] + "..."
        return files

    @classmethod
    def task_summary(cls, project_name: str, commits: Sequence[CommitLike]) -> str:
        """Generate the prompt asking for time-estimated task lines.

        Args:
            project_name: Project the commits belong to
            commits: Commits to summarize

        Returns:
            Formatted prompt
        """
        commit_lines = "\n".join(
            f"- {c.hash[:8]}: {c.message} "
            f"(branch: {c.branch}, files: {cls.files_summary(c.files_changed)})"
            for c in commits
        )
        return (
            "You are analyzing git commits to create human-readable task summaries "
            "for manager reports.\n\n"
            f"Project: {project_name}\n\n"
            "Commits:\n"
            f"{commit_lines}\n"
            f"{cls.INSTRUCTIONS}"
        )


def build_task_prompt(project_name: str, commits: Sequence[CommitLike]) -> str:
    return PromptTemplates.task_summary(project_name, commits)
