"""event_roster.accounts

Turn one attendee block of a roster page into an AttendeeProfile.

Two markup shapes exist on the source site:
  - legacy table row:  tr > .user .display_name a   (name)
                       tr .social a[href]           (social links)
  - newer card block:  div.user-profile-details > div.user-name   (name)
                       div.user-profile-details > div.user-social > a[href]

Handles are stored exactly as scraped. Lowercasing happens at match time.
"""

from __future__ import annotations

import re
import urllib.parse
from dataclasses import dataclass
from typing import Iterable

from bs4 import Tag

from event_roster.errors import StructuralParseError
from event_roster.normalize import first_path_segment, query_param, trim

PROVIDERS = ("twitter", "facebook", "github")


@dataclass(frozen=True)
class AttendeeProfile:
    name: str
    twitter: str | None = None
    facebook: str | None = None
    github: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "name": self.name,
            "twitter": self.twitter,
            "facebook": self.facebook,
            "github": self.github,
        }


# ---------------------------------------------------------------------------
# Link classification
# ---------------------------------------------------------------------------

_TWITTER_HOST_RE = re.compile(r"(^|\.)(twitter\.com|x\.com)$", re.IGNORECASE)
_FACEBOOK_HOST_RE = re.compile(r"(^|\.)(facebook\.com|fb\.com)$", re.IGNORECASE)
_GITHUB_HOST_RE = re.compile(r"(^|\.)github\.com$", re.IGNORECASE)

# twitter.com/<segment> paths that are site features, not accounts.
_TWITTER_RESERVED_SEGMENTS = frozenset({"intent", "i", "share", "home", "search", "hashtag"})


def _parse(href: str) -> urllib.parse.ParseResult:
    """urlparse, treating a scheme-less "github.com/janed" as host + path."""
    parsed = urllib.parse.urlparse(href)
    if not parsed.netloc and not parsed.scheme and not href.startswith("/"):
        parsed = urllib.parse.urlparse("//" + href)
    return parsed


def _host(parsed: urllib.parse.ParseResult) -> str:
    try:
        return (parsed.hostname or "").lower()
    except ValueError:
        return ""


def _twitter_handle(href: str, parsed: urllib.parse.ParseResult) -> str | None:
    screen_name = query_param(href, "screen_name")
    if screen_name:
        return screen_name
    segment = first_path_segment(parsed.path)
    if segment is None or segment.lower() in _TWITTER_RESERVED_SEGMENTS:
        return None
    return segment


def _facebook_handle(href: str, parsed: urllib.parse.ParseResult) -> str | None:
    path = parsed.path
    if "app_scoped_user_id" in path.split("/"):
        return first_path_segment(path, after="app_scoped_user_id")
    segment = first_path_segment(path)
    if segment == "profile.php":
        return query_param(href, "id")
    return segment


def _github_handle(href: str, parsed: urllib.parse.ParseResult) -> str | None:
    return first_path_segment(parsed.path)


def classify_link(href: str | None) -> tuple[str, str] | None:
    """Return (provider, handle) for a social link, or None if unrecognised.

    A ``screen_name`` query parameter marks a twitter link regardless of host
    (legacy pages route twitter profiles through an intent URL). Links without
    a scheme ("github.com/janed") are classified by their leading host.
    """
    v = trim(href)
    if not v:
        return None
    try:
        parsed = _parse(v)
    except ValueError:
        return None
    host = _host(parsed)

    if _TWITTER_HOST_RE.search(host) or query_param(v, "screen_name"):
        handle = _twitter_handle(v, parsed)
        return ("twitter", handle) if handle else None
    if _FACEBOOK_HOST_RE.search(host):
        handle = _facebook_handle(v, parsed)
        return ("facebook", handle) if handle else None
    if _GITHUB_HOST_RE.search(host):
        handle = _github_handle(v, parsed)
        return ("github", handle) if handle else None
    return None


def extract_accounts(hrefs: Iterable[str | None]) -> dict[str, str | None]:
    """Fold social links into {provider: handle}; a later link overwrites an earlier one."""
    accounts: dict[str, str | None] = {p: None for p in PROVIDERS}
    for href in hrefs:
        classified = classify_link(href)
        if classified is None:
            continue
        provider, handle = classified
        accounts[provider] = handle
    return accounts


# ---------------------------------------------------------------------------
# Block extractors
# ---------------------------------------------------------------------------

def extract_legacy_row(row: Tag) -> AttendeeProfile:
    """Extract a profile from a legacy participants_table row."""
    name_link = row.select_one(".user .display_name a")
    if name_link is None:
        raise StructuralParseError(
            "participant row has no '.user .display_name a' element; "
            "the page layout may have changed"
        )
    hrefs = [a.get("href") for a in row.select(".social a")]
    return AttendeeProfile(name=name_link.get_text().strip(), **extract_accounts(hrefs))


def extract_profile_card(block: Tag) -> AttendeeProfile:
    """Extract a profile from a newer ``user-profile-details`` block."""
    name_div = block.find("div", class_="user-name", recursive=False)
    if name_div is None:
        raise StructuralParseError(
            "user-profile-details block has no 'user-name' div; "
            "the page layout may have changed"
        )
    hrefs: list[str | None] = []
    for social in block.find_all("div", class_="user-social", recursive=False):
        hrefs.extend(a.get("href") for a in social.find_all("a", recursive=False))
    return AttendeeProfile(name=name_div.get_text().strip(), **extract_accounts(hrefs))
