"""Error taxonomy shared by the moderation modules.

Routers translate these into HTTP responses; workers decide per type whether
to retry, absorb or dead-letter.
"""


class ModerationError(Exception):
    """Base exception for moderation pipeline errors."""

    code: str = "moderation_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or (self.__class__.__doc__ or self.code)


class ValidationError(ModerationError):
    """Text is empty or exceeds the maximum length."""

    code = "validation_error"


class ServiceUnavailable(ModerationError):
    """The classifier could not be reached or timed out."""

    code = "service_unavailable"


class QueueUnavailable(ModerationError):
    """The moderation queue broker is unreachable."""

    code = "queue_unavailable"


class AlreadyFlagged(ModerationError):
    """A flag record already exists for this content."""

    code = "already_flagged"

    def __init__(self, content_type: str, content_id: str):
        super().__init__(f"{content_type} {content_id} is already flagged")
        self.content_type = content_type
        self.content_id = content_id


class InvalidTransition(ModerationError):
    """The flag record is no longer pending."""

    code = "invalid_transition"

    def __init__(self, flag_id, current_status: str):
        super().__init__(f"Flag {flag_id} is already {current_status}")
        self.flag_id = flag_id
        self.current_status = current_status


class Forbidden(ModerationError):
    """The principal's role does not allow this operation."""

    code = "forbidden"


class NotFound(ModerationError):
    """The requested flag record or content does not exist."""

    code = "not_found"
