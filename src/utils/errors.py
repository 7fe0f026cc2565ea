"""Exception hierarchy shared by the pipeline components."""


class SkillMatcherError(Exception):
    """Base class for every error raised by this project."""


class PersistenceError(SkillMatcherError):
    """The candidate / request store is unavailable or rejected a write."""


class TaxonomyError(SkillMatcherError):
    """The skill taxonomy could not be loaded."""


class ResolutionError(SkillMatcherError):
    """An extraction carries no identity (no email and no name)."""


class RequestNotFound(SkillMatcherError):
    pass


class InvalidTransition(SkillMatcherError):
    """A lifecycle operation was attempted from a status that forbids it."""

    def __init__(self, request_id, status, operation):
        self.request_id = request_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} request {request_id} while it is '{status}'"
        )


class UnsupportedAttachmentError(SkillMatcherError):
    pass
