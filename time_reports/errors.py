"""
Error taxonomy for the time report engine.

Validation errors are raised before any work is done. Collaborator failures
on single-entity operations surface as CollaboratorError; on the team report
they are isolated per member and never raised.
"""


class TimeReportError(Exception):
    """Base class for every error the engine reports to a caller."""


class ValidationError(TimeReportError):
    pass


class InvalidDateRange(ValidationError):
    pass


class InvalidDuration(ValidationError):
    pass


class InvalidTimezone(ValidationError):
    pass


class MemberNotFound(ValidationError):
    pass


class TaskNotFound(ValidationError):
    pass


class CollaboratorError(TimeReportError):
    """A data-source call returned a failure result."""


class TimerConflict(TimeReportError):
    """Start requested while a timer runs, or stop requested with none running."""

    def __init__(self, message: str, timer=None):
        super().__init__(message)
        self.timer = timer
