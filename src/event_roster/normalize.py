"""Normalization functions for event roster scraping and matching.

All functions accept str | None and return the appropriate type or None.
Scraped values are stored as-is; these helpers are applied at match time.
"""

from __future__ import annotations

import re
import urllib.parse

DEFAULT_BASE_URL = "https://connpass.com"


# ---------------------------------------------------------------------------
# Rule 1: trim
# ---------------------------------------------------------------------------

def trim(value: str | None) -> str | None:
    """Strip leading/trailing whitespace; treat empty string as None."""
    if value is None:
        return None
    v = value.strip()
    return v if v else None


# ---------------------------------------------------------------------------
# Rule 2: normalize_space
# ---------------------------------------------------------------------------

def normalize_space(value: str | None) -> str | None:
    """Collapse internal runs of whitespace to single spaces, then trim."""
    v = trim(value)
    if v is None:
        return None
    return re.sub(r"\s+", " ", v)


# Whitespace stripped from handles and names at match time. The SQL lookup in
# directory.py is handed these same two values so both backends agree.
MATCH_SPACE_CHARS = " \t\n\r\f\v\u3000"
MATCH_SPACE_PATTERN = r"[ \t\n\r\f\v\u3000]"
_MATCH_SPACE_RE = re.compile(MATCH_SPACE_PATTERN)


# ---------------------------------------------------------------------------
# Rule 3: normalize_handle  (twitter / facebook / github lookups)
# ---------------------------------------------------------------------------

def normalize_handle(value: str | None) -> str | None:
    """Lowercase and trim a social-media handle. Blank → None."""
    if value is None:
        return None
    v = value.strip(MATCH_SPACE_CHARS)
    return v.lower() if v else None


# ---------------------------------------------------------------------------
# Rule 4: squash_name  (display name vs. name / nickname lookups)
# ---------------------------------------------------------------------------

def squash_name(value: str | None) -> str | None:
    """Lowercase and drop every MATCH_SPACE_CHARS character.

    "Jane  Doe" and "janedoe" compare equal. A name that is blank after
    squashing yields None so it can never match an empty directory field.
    """
    if value is None:
        return None
    v = _MATCH_SPACE_RE.sub("", value).lower()
    return v if v else None


# ---------------------------------------------------------------------------
# Event URL helpers
# ---------------------------------------------------------------------------

_EVENT_ID_RE = re.compile(r"event/(\d+)")


def parse_event_id(url: str | None) -> str | None:
    """Return the digits following an ``event/`` segment, or None."""
    v = trim(url)
    if not v:
        return None
    m = _EVENT_ID_RE.search(v)
    return m.group(1) if m else None


def roster_url(event_id: str, base_url: str = DEFAULT_BASE_URL, roster_path: str = "participation") -> str:
    """Build the roster page URL for an event id.

    roster_path is ``participation`` for the legacy table layout and
    ``participants`` for the newer card layout.
    """
    base = base_url.rstrip("/")
    return f"{base}/event/{event_id}/{roster_path.strip('/')}/"


# ---------------------------------------------------------------------------
# Link helpers
# ---------------------------------------------------------------------------

def first_path_segment(path: str, after: str | None = None) -> str | None:
    """Return the path segment following ``after`` (or the first segment).

    >>> first_path_segment("/app_scoped_user_id/123/", after="app_scoped_user_id")
    '123'
    """
    segments = [s for s in path.split("/") if s]
    if after is not None:
        if after not in segments:
            return None
        segments = segments[segments.index(after) + 1:]
    return segments[0] if segments else None


def query_param(url: str, name: str) -> str | None:
    """Return the first value of a query parameter, or None."""
    try:
        qs = urllib.parse.parse_qs(urllib.parse.urlparse(url).query)
    except ValueError:
        return None
    return trim(qs.get(name, [None])[0])
