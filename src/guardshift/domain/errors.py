"""Exceptions raised by the scheduling and leave workflows."""


class SchedulingError(Exception):
    """Base class for all guardshift errors."""


class InsufficientResourcesError(SchedulingError):
    """Raised when generation is requested without guards or areas."""


class InvalidStateError(SchedulingError):
    """Raised on an illegal leave or shift state transition."""


class DuplicateWeekError(SchedulingError):
    """Raised when a week that already has shifts is generated again."""


class DeletionBlockedError(SchedulingError):
    """Raised when a record is still referenced by an approved leave."""


class NotFoundError(SchedulingError, KeyError):
    """Raised when a guard, area, shift or leave ID is unknown."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")

    def __str__(self) -> str:
        return f"{self.kind} not found: {self.record_id}"
