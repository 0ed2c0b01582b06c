"""Access to the user's global git configuration."""

from typing import Optional

import git
from git.exc import GitCommandError

# Exit codes of `git config`
_KEY_NOT_FOUND = 1
_NOTHING_TO_UNSET = 5


class GlobalGitConfig:
    """Reads and writes keys with ``git config --global``."""

    def __init__(self, git_cmd: Optional[git.Git] = None) -> None:
        self._git = git_cmd or git.Git()

    def get(self, key: str) -> Optional[str]:
        try:
            value = self._git.config("--global", "--get", key)
        except GitCommandError as e:
            if e.status == _KEY_NOT_FOUND:
                return None
            raise
        return value.strip() or None

    def set(self, key: str, value: str) -> None:
        self._git.config("--global", key, value)

    def unset(self, key: str) -> None:
        try:
            self._git.config("--global", "--unset", key)
        except GitCommandError as e:
            if e.status != _NOTHING_TO_UNSET:
                raise
