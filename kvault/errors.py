"""Typed failures raised by the store, identity and query layers."""


class GraphError(Exception):
    """Base class for every failure the graph core propagates to its callers."""

    code = "GRAPH_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthenticated(GraphError):
    """No valid caller identity."""

    code = "UNAUTHENTICATED"


class NotFound(GraphError):
    """An id does not resolve under the caller's ownership scope."""

    code = "NOT_FOUND"


class ValidationError(GraphError):
    """Malformed input, e.g. an empty required field."""

    code = "VALIDATION_ERROR"


class Conflict(GraphError):
    """A unique field collided with an existing record."""

    code = "CONFLICT"


class TransientIO(GraphError):
    """The backing store could not be reached, read or written."""

    code = "TRANSIENT_IO"
