"""event_roster.resolver

EventAttendeeResolver: PageScraper → ProfileMatcher for every profile.

Envelope wire form (ResolutionEnvelope.to_dict):

    {"status": "success", "name": <title>, "attendee_user_ids": [id, ...]}
    {"status": "not_found"}
    {"status": "ERROR: <message>"}

Internally the status is an enum; the ``ERROR:`` prefix only exists in the
serialized form. Attendee ids keep profile order and are not de-duplicated.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from event_roster.matcher import ProfileMatcher
from event_roster.scrape import FetchError, FetchNotFound, FetchSuccess, PageScraper

log = logging.getLogger(__name__)

ERROR_STATUS_PREFIX = "ERROR: "


class ResolutionStatus(str, Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class ResolutionEnvelope:
    status: ResolutionStatus
    name: str | None = None
    attendee_user_ids: tuple[int, ...] | None = None
    error_message: str | None = None

    @classmethod
    def success(cls, name: str, attendee_user_ids: list[int]) -> ResolutionEnvelope:
        return cls(ResolutionStatus.SUCCESS, name=name, attendee_user_ids=tuple(attendee_user_ids))

    @classmethod
    def not_found(cls) -> ResolutionEnvelope:
        return cls(ResolutionStatus.NOT_FOUND)

    @classmethod
    def error(cls, message: str) -> ResolutionEnvelope:
        return cls(ResolutionStatus.ERROR, error_message=message)

    @property
    def wire_status(self) -> str:
        if self.status is ResolutionStatus.ERROR:
            return f"{ERROR_STATUS_PREFIX}{self.error_message}"
        return self.status.value

    def to_dict(self) -> dict[str, Any]:
        if self.status is not ResolutionStatus.SUCCESS:
            return {"status": self.wire_status}
        return {
            "status": self.wire_status,
            "name": self.name,
            "attendee_user_ids": list(self.attendee_user_ids or ()),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


# ---------------------------------------------------------------------------
# Counters
# ---------------------------------------------------------------------------

@dataclass
class ResolutionCounters:
    events_requested: int = 0
    events_resolved: int = 0
    events_not_found: int = 0
    events_failed: int = 0
    profiles_scraped: int = 0
    profiles_matched: int = 0
    profiles_unmatched: int = 0
    ambiguous_matches: int = 0
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        d = {k: v for k, v in self.__dict__.items() if k != "warnings"}
        d["warnings"] = self.warnings[:50]
        return d


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class EventAttendeeResolver:
    def __init__(
        self,
        scraper: PageScraper,
        matcher: ProfileMatcher,
        logger: logging.Logger | None = None,
    ) -> None:
        self._scraper = scraper
        self._matcher = matcher
        self._log = logger or log

    def resolve_event(
        self,
        event_url: str,
        counters: ResolutionCounters | None = None,
    ) -> ResolutionEnvelope:
        """Resolve the attendees of one event page to directory user ids.

        Directory lookup failures are not caught here; they propagate.
        """
        counters = counters if counters is not None else ResolutionCounters()
        counters.events_requested += 1

        result = self._scraper.fetch(event_url)

        if isinstance(result, FetchNotFound):
            counters.events_not_found += 1
            envelope = ResolutionEnvelope.not_found()
            self._log.info("Fetch event unsuccessfully: %s, %s", envelope.wire_status, event_url)
            return envelope

        if isinstance(result, FetchError):
            counters.events_failed += 1
            if result.exc is not None:
                self._log.error(
                    "%s", result.message,
                    exc_info=(type(result.exc), result.exc, result.exc.__traceback__),
                )
            envelope = ResolutionEnvelope.error(result.message)
            counters.warnings.append(f"{event_url}: {envelope.wire_status}")
            self._log.info("Fetch event unsuccessfully: %s, %s", envelope.wire_status, event_url)
            return envelope

        if not isinstance(result, FetchSuccess):
            raise TypeError(f"unexpected fetch result: {result!r}")

        user_ids: list[int] = []
        for profile in result.profiles:
            counters.profiles_scraped += 1
            user_id = self._matcher.resolve(profile)
            if user_id is None:
                counters.profiles_unmatched += 1
                continue
            counters.profiles_matched += 1
            user_ids.append(user_id)

        counters.events_resolved += 1
        envelope = ResolutionEnvelope.success(result.title, user_ids)
        self._log.info("Fetch event successfully: %s, %s", envelope.to_dict(), event_url)
        return envelope
