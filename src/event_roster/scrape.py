"""event_roster.scrape

Fetch an event's roster page and turn it into an ordered list of profiles.

Processing order per fetch:
  1.  Derive the event id from the event URL       → FetchError if absent
  2.  GET the roster URL                           → 404 FetchNotFound,
                                                     other status FetchError
  3.  Parse with BeautifulSoup (html.parser)
  4.  Title from .event_title ("" when missing)
  5.  Probe legacy rows; if none, probe user-profile-details blocks
  6.  Map every block through accounts.extract_*  → any failure aborts the
                                                     whole fetch (no partial lists)

No retries. Outcomes are logged by the resolver; only the fetch attempt is
logged here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Union

import requests
from bs4 import BeautifulSoup

from event_roster.accounts import AttendeeProfile, extract_legacy_row, extract_profile_card
from event_roster.errors import MalformedInputError, NotFoundError, TransportError
from event_roster.normalize import DEFAULT_BASE_URL, normalize_space, parse_event_id, roster_url

log = logging.getLogger(__name__)

LEGACY_TITLE_SELECTOR = ".event_title"
LEGACY_ROW_SELECTOR = ".applicant_area .participation_table_area .participants_table tbody tr"
CARD_BLOCK_SELECTOR = "div.user-profile-details"

DEFAULT_USER_AGENT = "event-roster/0.1 (+attendee reconciliation)"


# ---------------------------------------------------------------------------
# Fetch results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FetchSuccess:
    title: str
    profiles: tuple[AttendeeProfile, ...]
    layout: str = "legacy"


@dataclass(frozen=True)
class FetchNotFound:
    url: str | None = None


@dataclass(frozen=True)
class FetchError:
    message: str
    # Kept for logging stack detail; never serialized.
    exc: BaseException | None = field(default=None, compare=False, repr=False)


FetchResult = Union[FetchSuccess, FetchNotFound, FetchError]


# ---------------------------------------------------------------------------
# Document parsing
# ---------------------------------------------------------------------------

def parse_title(soup: BeautifulSoup) -> str:
    """Text of every .event_title node, whitespace-collapsed; "" when absent."""
    text = " ".join(node.get_text(" ") for node in soup.select(LEGACY_TITLE_SELECTOR))
    return normalize_space(text) or ""


def parse_roster(html: str | bytes) -> FetchSuccess:
    """Parse a roster document into a FetchSuccess.

    Raises StructuralParseError when an attendee block lacks its name element.
    """
    soup = BeautifulSoup(html, "html.parser")
    title = parse_title(soup)

    rows = soup.select(LEGACY_ROW_SELECTOR)
    if rows:
        profiles = tuple(extract_legacy_row(row) for row in rows)
        return FetchSuccess(title=title, profiles=profiles, layout="legacy")

    blocks = soup.select(CARD_BLOCK_SELECTOR)
    profiles = tuple(extract_profile_card(block) for block in blocks)
    return FetchSuccess(title=title, profiles=profiles, layout="card" if blocks else "empty")


# ---------------------------------------------------------------------------
# PageScraper
# ---------------------------------------------------------------------------

class PageScraper:
    """Fetch + parse one event roster per call. Holds no per-request state."""

    def __init__(
        self,
        session: requests.Session | None = None,
        base_url: str = DEFAULT_BASE_URL,
        roster_path: str = "participation",
        timeout: float | None = 30,
        logger: logging.Logger | None = None,
    ) -> None:
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": DEFAULT_USER_AGENT})
        self._session = session
        self._base_url = base_url
        self._roster_path = roster_path
        self._timeout = timeout
        self._log = logger or log

    def roster_url_for(self, event_url: str) -> str:
        event_id = parse_event_id(event_url)
        if event_id is None:
            raise MalformedInputError(f"malformed event URL, no event id found: {event_url!r}")
        return roster_url(event_id, self._base_url, self._roster_path)

    def fetch(self, event_url: str) -> FetchResult:
        try:
            url = self.roster_url_for(event_url)
        except MalformedInputError as exc:
            return FetchError(str(exc), exc)

        self._log.info("Reading %s", url)
        try:
            resp = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            return FetchError(str(exc), exc)

        if resp.status_code == 404:
            return FetchNotFound(url)
        if resp.status_code != 200:
            exc = TransportError(
                f"Could not get event details: HTTP {resp.status_code} from {url}"
            )
            return FetchError(str(exc), exc)

        try:
            return parse_roster(resp.content)
        except Exception as exc:  # noqa: BLE001
            return FetchError(str(exc), exc)

    def fetch_or_raise(self, event_url: str) -> FetchSuccess:
        """Like fetch(), but raises instead of returning a failure variant.

        Raises:
            NotFoundError: the roster page returned 404.
            EventRosterError / requests.RequestException: the original
                exception held by the FetchError.
        """
        result = self.fetch(event_url)
        if isinstance(result, FetchNotFound):
            raise NotFoundError(f"roster page not found: {result.url}")
        if isinstance(result, FetchError):
            if result.exc is not None:
                raise result.exc
            raise TransportError(result.message)
        return result
