"""
Exception hierarchy shared by the store, the repository and the session.

Validation failures are raised before any storage call. Not-found and
storage failures on update/delete are caught at the repository boundary
and logged.
"""


class HealthTrackerError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(HealthTrackerError):
    """Malformed or missing user input."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(HealthTrackerError):
    """An operation targeted an id absent from a collection."""

    def __init__(self, collection: str, record_id: int) -> None:
        super().__init__(f"No record {record_id} in collection '{collection}'")
        self.collection = collection
        self.record_id = record_id


class StorageError(HealthTrackerError):
    """The underlying persistence layer failed."""
