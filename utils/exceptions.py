"""
Error taxonomy for the document chain processor
"""


class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class InvalidFileType(ProcessorError):
    """Raised when an uploaded file is neither a supported text nor image type."""


class InvalidSelection(ProcessorError):
    """Raised when an agent count, agent index or agent field is out of range."""


class ChainStateError(ProcessorError):
    """Raised when a chain operation is invoked outside its preconditions."""


class OperationInProgress(ProcessorError):
    """Raised when a remote call is requested while another one is outstanding."""


class SessionNotFound(ProcessorError):
    """Raised when a session id is unknown to the session store."""


class RemoteError(ProcessorError):
    """Raised when the hosted model call fails (network, auth, quota, empty response)."""


class OcrFailure(ProcessorError):
    """Raised when OCR of an uploaded image fails. The document is left unchanged."""


class AgentExecutionFailure(ProcessorError):
    """Raised when a chain stage fails. The stage result and cursor are left unchanged."""

    def __init__(self, agent_name: str, cause: Exception):
        self.agent_name = agent_name
        self.cause = cause
        super().__init__(f"Agent '{agent_name}' failed: {cause}")
