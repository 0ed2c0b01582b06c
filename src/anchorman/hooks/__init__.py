"""Global git hook management."""

from anchorman.hooks.gitconfig import GlobalGitConfig
from anchorman.hooks.installer import (
    MANAGED_HOOKS,
    MARKER,
    HookInstaller,
    InstallReport,
    UninstallReport,
)
from anchorman.hooks.state import HookState, HookStateStore

__all__ = [
    "GlobalGitConfig",
    "HookInstaller",
    "HookState",
    "HookStateStore",
    "InstallReport",
    "UninstallReport",
    "MANAGED_HOOKS",
    "MARKER",
]
