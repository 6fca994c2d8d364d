"""Exception hierarchy shared by the analytics and moderation layers."""


class GroupsAdminError(RuntimeError):
    """Base exception for all Groups Admin failures."""


class InvalidRequestError(GroupsAdminError, ValueError):
    """Raised when a caller supplies a malformed request.

    Reports never fail because of dirty historical data; only bad requests
    (unknown time zones, inverted date ranges) surface as errors.
    """


class InvalidTimeZoneError(InvalidRequestError):
    """Raised when a time-zone identifier is not a known IANA zone."""


class InvalidDateRangeError(InvalidRequestError):
    """Raised when a report window is empty or inverted."""


class UserNotFoundError(GroupsAdminError, LookupError):
    """Raised when a moderation action targets a user that does not exist."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"Telegram user {user_id} does not exist")
        self.user_id = user_id


class ConcurrencyConflictError(GroupsAdminError):
    """Raised when a moderation state write keeps losing to concurrent writers.

    The action insert and the state projection are rolled back together, so
    nothing is half-applied when this surfaces.
    """
