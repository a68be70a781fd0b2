"""Invite-code errors.

Every error here is user-facing and recoverable. Each one carries the HTTP
status and the machine-readable code the API returns for it.
"""


class InviteError(Exception):
    """Base class for invite issuance and redemption failures."""

    status_code: int = 400
    code: str = "INVITE_ERROR"
    default_message: str = "Invite request failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class GenerationExhausted(InviteError):
    """Raised when no unused code could be drawn within the retry budget."""

    status_code = 503
    code = "GENERATION_EXHAUSTED"
    default_message = "Could not generate a unique invite code. Try again later."


class InvalidCode(InviteError):
    status_code = 404
    code = "INVALID_CODE"
    default_message = "Invite code not found."


class Expired(InviteError):
    status_code = 410
    code = "EXPIRED"
    default_message = "This invite code has expired."


class UsesExhausted(InviteError):
    status_code = 409
    code = "USES_EXHAUSTED"
    default_message = "This invite code has reached its usage limit."


class AlreadyEnrolled(InviteError):
    status_code = 409
    code = "ALREADY_ENROLLED"
    default_message = "You are already enrolled in this class."
