"""Error taxonomy for the tagging conversation.

Every failure in the conversation flow is recoverable: the flow catches these,
sends one user-visible message and ends the turn.  Nothing here is meant to
reach the Telegram layer.
"""

GENERIC_NOT_FOUND = "Could not find the original message to tag."


class OrganizerError(Exception):
    """Base class for all organizer errors."""
    pass


class ParseError(OrganizerError):
    """Malformed conversation marker or callback data."""
    pass


class NotFound(OrganizerError):
    """Resolved id does not exist for this user."""
    pass


class NotFoundOrForbidden(NotFound):
    """Row belongs to another user or does not exist."""
    pass


class ValidationError(OrganizerError):
    """User input rejected; the message is shown to the user as-is."""

    def __init__(self, user_message: str):
        super().__init__(user_message)
        self.user_message = user_message


class StoreError(OrganizerError):
    """Any persistence failure."""
    pass


class Conflict(StoreError):
    """Uniqueness constraint hit where the caller expected a fresh row."""
    pass


def user_message(e: Exception, store_fallback: str = "Something went wrong. Please try again.") -> str:
    """Map an error to the text sent back to the user.

    ParseError and NotFound share one message: a foreign id and a missing id
    must look the same to the user.
    """
    if isinstance(e, ValidationError):
        return e.user_message
    if isinstance(e, (ParseError, NotFound)):
        return GENERIC_NOT_FOUND
    if isinstance(e, Conflict):
        return "This message is already saved."
    if isinstance(e, StoreError):
        return store_fallback
    type_name = type(e).__name__
    return f"Something went wrong ({type_name}). Please try again."
