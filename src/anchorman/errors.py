"""Exception hierarchy shared by the extraction, storage and agent layers."""


class AnchormanError(Exception):
    """Base class for all Anchorman errors."""


class WorkingCopyError(AnchormanError):
    """Raised when a path is not inside a git working copy or git is unavailable."""


class PersistenceError(AnchormanError):
    """Raised for database failures other than an expected duplicate commit."""


class SerializedFieldError(PersistenceError):
    """Raised when a stored list column does not decode to a JSON array."""


class AgentError(AnchormanError):
    """Raised when the summarization agent cannot be run or exits non-zero."""


class UnknownAgentError(AgentError, ValueError):
    """Raised when an agent identifier is not recognised."""
