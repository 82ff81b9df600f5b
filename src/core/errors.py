from __future__ import annotations


class CrawlAgentError(Exception):
    """Base exception for this project."""


class ConfigurationError(CrawlAgentError):
    """The environment cannot work until it is reconfigured or redeployed."""


class ConfigError(ConfigurationError):
    """Raised when configuration is invalid or incomplete."""

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class WorkerNotFoundError(ConfigurationError):
    """The worker directory could not be located.

    `tried_paths` keeps every candidate in the order it was probed.
    """

    def __init__(self, message: str, *, tried_paths: list[str]):
        super().__init__(message)
        self.tried_paths = list(tried_paths)


class BridgeError(CrawlAgentError):
    """Failure at the process bridge / worker boundary."""


class WorkerConnectionError(BridgeError):
    """The worker subprocess could not be started or initialized."""


class ToolExecutionError(BridgeError):
    """The worker (or the base service behind it) reported a failure."""


class ProtocolError(BridgeError):
    """The worker answered with nothing the bridge can use."""


class ReasoningServiceError(CrawlAgentError):
    """The reasoning service call failed."""
