"""event_roster.matcher

Resolve one scraped AttendeeProfile to at most one active directory user.

Lookup keys (MatchCandidateSet), compared against user fields:

    github    lower(handle)                 = lower(nickname)
    twitter   lower(handle)                 = lower(twitter_name)
    facebook  lower(id)                     = lower(facebook_name)
    name      squash(display name)          = squash(name)
    nickname  squash(display name)          = squash(nickname)

where squash = lowercase with all whitespace removed. A key that is None
never matches, not even a directory row whose field is also empty.

Decision policy:
    0 matches → None
    1 match   → that user's id
    >1        → None + AmbiguousMatchWarning (logged, passed to on_ambiguous)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from event_roster.accounts import AttendeeProfile
from event_roster.errors import AmbiguousMatchWarning
from event_roster.normalize import normalize_handle, squash_name

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserRecord:
    user_id: int
    name: str | None = None
    nickname: str | None = None
    twitter_name: str | None = None
    facebook_name: str | None = None
    active: bool = True


@dataclass(frozen=True)
class MatchCandidateSet:
    github: str | None
    twitter: str | None
    facebook: str | None
    name: str | None
    nickname: str | None

    def is_empty(self) -> bool:
        return not any((self.github, self.twitter, self.facebook, self.name, self.nickname))

    def as_params(self) -> dict[str, str | None]:
        return {
            "github": self.github,
            "twitter": self.twitter,
            "facebook": self.facebook,
            "name": self.name,
            "nickname": self.nickname,
        }


def build_candidates(profile: AttendeeProfile) -> MatchCandidateSet:
    squashed = squash_name(profile.name)
    return MatchCandidateSet(
        github=normalize_handle(profile.github),
        twitter=normalize_handle(profile.twitter),
        facebook=normalize_handle(profile.facebook),
        name=squashed,
        nickname=squashed,
    )


def _eq(candidate: str | None, value: str | None) -> bool:
    return candidate is not None and value is not None and candidate == value


def record_matches(user: UserRecord, candidates: MatchCandidateSet) -> bool:
    """The OR-combined predicate, restricted to active users."""
    if not user.active:
        return False
    return (
        _eq(candidates.github, normalize_handle(user.nickname))
        or _eq(candidates.twitter, normalize_handle(user.twitter_name))
        or _eq(candidates.facebook, normalize_handle(user.facebook_name))
        or _eq(candidates.name, squash_name(user.name))
        or _eq(candidates.nickname, squash_name(user.nickname))
    )


class UserDirectory(Protocol):
    def find_active_users(self, candidates: MatchCandidateSet) -> list[UserRecord]:
        """Return every active user matching at least one candidate key."""
        ...


class ProfileMatcher:
    """Apply the ambiguous-match policy on top of a UserDirectory lookup."""

    def __init__(
        self,
        directory: UserDirectory,
        logger: logging.Logger | None = None,
        on_ambiguous: Callable[[AmbiguousMatchWarning], None] | None = None,
    ) -> None:
        self._directory = directory
        self._log = logger or log
        self._on_ambiguous = on_ambiguous

    def resolve(self, profile: AttendeeProfile) -> int | None:
        candidates = build_candidates(profile)
        if candidates.is_empty():
            return None

        users = self._directory.find_active_users(candidates)
        if len(users) > 1:
            warning = AmbiguousMatchWarning(profile, users)
            self._log.warning("Found more than one user: %r", users)
            if self._on_ambiguous is not None:
                self._on_ambiguous(warning)
            return None
        if users:
            return users[0].user_id
        return None
