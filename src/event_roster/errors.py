"""event_roster.errors

Error taxonomy for roster scraping and attendee matching.

PageScraper.fetch reports a missing roster page as the FetchNotFound variant;
NotFoundError only surfaces through PageScraper.fetch_or_raise.
EventRosterError subclasses collapse into the ``ERROR: <message>`` status at
the resolver boundary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from event_roster.accounts import AttendeeProfile
    from event_roster.matcher import UserRecord


class EventRosterError(Exception):
    """Base class for failures raised while resolving an event roster."""


class NotFoundError(EventRosterError):
    """The roster page does not exist (HTTP 404). Expected, not logged as an error."""


class MalformedInputError(EventRosterError):
    """Raised when no numeric event id can be found in an event URL."""


class TransportError(EventRosterError):
    """Network failure or an HTTP status other than 200 / 404."""


class StructuralParseError(EventRosterError):
    """The page was fetched but the expected markup is missing."""


class AmbiguousMatchWarning(UserWarning):
    """More than one active user matched a single attendee profile.

    Never raised by the matcher: it is logged and handed to the
    ``on_ambiguous`` callback, and the profile resolves to no user.
    """

    def __init__(self, profile: AttendeeProfile, users: Sequence[UserRecord]) -> None:
        self.profile = profile
        self.users = list(users)
        super().__init__(
            f"Found more than one user for {profile.name!r}: "
            f"{[u.user_id for u in self.users]}"
        )
