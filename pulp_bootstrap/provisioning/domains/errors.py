"""Error taxonomy for Clowder-to-Pulp provisioning."""
from typing import Optional


class BootstrapError(Exception):
    """Base class for every provisioning failure."""
    pass


class PreconditionError(BootstrapError):
    """A required descriptor or collection is missing or empty."""
    pass


class EncodingError(BootstrapError):
    """The custom resource body could not be serialized."""
    pass


class ConfigError(BootstrapError):
    """Settings file or Clowder config is missing, unparseable, or invalid."""
    pass


class SubmissionError(BootstrapError):
    """
    A create call against the Kubernetes API failed.

    Attributes:
        status: HTTP status reported by the API server, if any
        body: Raw response body, if any
    """

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body
