"""
Error taxonomy shared by every riddler subsystem.

Subsystems raise the concrete subclasses defined next to them
(capture.exceptions, http_client.exceptions); callers that only care
about the category catch these bases.
"""


class RiddlerError(Exception):
    """Base class for all riddler errors."""


class NotFoundError(RiddlerError):
    """A named resource (interface, file) does not exist."""


class PermissionDeniedError(RiddlerError):
    """The operation needs privileges the process does not have."""


class InvalidInputError(RiddlerError):
    """Malformed filter, URL or cookie string."""


class OperationTimeout(RiddlerError):
    """A bounded operation ran past its deadline."""


class TransportError(RiddlerError):
    """Connection or TLS failure reported by the network layer."""
