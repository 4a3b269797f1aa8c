"""Error taxonomy shared by the pipeline, the controller and the routes."""

from typing import Optional


class ChatCloneError(Exception):
    """Base class; ``status_code`` is what the HTTP layer answers with."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingCredential(ChatCloneError):
    """No API token is available; raised before any network attempt."""

    status_code = 401

    def __init__(self, message: str = "Please set your AI Builder API token in the settings") -> None:
        super().__init__(message)


class InvalidRequest(ChatCloneError):
    status_code = 400


class NotFound(ChatCloneError):
    status_code = 404


class RemoteFailure(ChatCloneError):
    """Non-2xx answer or unreachable completion endpoint. Never retried."""

    status_code = 502

    def __init__(
        self,
        message: str,
        endpoint: str = "",
        upstream_status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.upstream_status = upstream_status


class PersistenceFailure(ChatCloneError):
    """Durable store unavailable or corrupt. Logged and recovered, never surfaced."""
