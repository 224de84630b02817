"""
Error kinds raised by the approval core.

All of them are recoverable: the HTTP layer maps each kind onto a status
code (see academics.views.api_errors). Batch operations raise one error
whose `failures` maps every offending record id to its reason.
"""


class ApprovalError(Exception):
    """Base class for approval-core errors."""

    def __init__(self, message="", *, failures=None):
        super().__init__(message)
        self.message = message
        self.failures = dict(failures or {})


class NotFound(ApprovalError):
    """Referenced result, registration, course or student does not exist."""


class InvalidState(ApprovalError):
    """The record's current status does not allow the requested action."""


class Unauthorized(ApprovalError):
    """Actor's level or scope does not permit acting on the record."""


class Conflict(ApprovalError):
    """Idempotency guard fired, e.g. a duplicate enrollment."""


# Order used when one batch collects failures of different kinds.
PRECEDENCE = (NotFound, Unauthorized, InvalidState, Conflict)
