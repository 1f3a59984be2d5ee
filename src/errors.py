"""
Error kinds raised by the reconciler and its collaborators.

Every error here is retryable: the work queue redrives the key and the
next pass resumes from the persisted status.
"""


class SourceError(Exception):
    """Base class for all controller errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(SourceError):
    """A remote object or stored resource does not exist."""


class ResolutionFailedError(SourceError):
    """The sink reference could not be resolved to a URI."""


class TransportError(SourceError):
    """A transport or authorization failure talking to an external system."""


class ConflictError(SourceError):
    """An update was rejected because the stored version moved on."""


class InvalidSpecError(SourceError):
    """The source spec is missing required fields or is malformed."""
