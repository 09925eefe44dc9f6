"""Domain errors raised by the rytetime core.

The API layer maps these onto HTTP status codes; the worker and the
task service catch the infrastructure ones (cache, queue, dispatch)
and log them instead of failing the caller.
"""


class RytetimeError(Exception):
    """Base class for all rytetime errors."""


class NotFound(RytetimeError):
    """Entity does not exist or is not owned by the caller."""


class InvalidTimeZone(RytetimeError, ValueError):
    """Unknown or malformed IANA time zone name."""


class InvalidOffset(RytetimeError, ValueError):
    """Reminder offset is not a non-negative integer."""


class StoreUnavailable(RytetimeError):
    """The task store could not complete the operation (retryable)."""


class ConcurrentModification(StoreUnavailable):
    """Another writer changed the task first."""


class CacheUnavailable(RytetimeError):
    """The task cache backend is unreachable."""


class QueueUnavailable(RytetimeError):
    """The notification queue backend is unreachable."""


class DispatchFailure(RytetimeError):
    """A channel could not deliver a notification."""
