"""Inline roster pages and test doubles shared by the unit tests."""

from __future__ import annotations

from unittest.mock import MagicMock

from event_roster.directory import CsvUserDirectory
from event_roster.matcher import MatchCandidateSet, UserRecord

TITLE = "Python Meetup #42"


def legacy_row(name: str, *hrefs: str) -> str:
    links = "".join(f'<a href="{h}">link</a>' for h in hrefs)
    return (
        "<tr>"
        f'<td class="user"><p class="display_name"><a href="https://connpass.com/user/x/">{name}</a></p></td>'
        f'<td class="social">{links}</td>'
        "</tr>"
    )


def legacy_page(*rows: str, title: str | None = TITLE) -> str:
    title_html = f'<h2 class="event_title">{title}</h2>' if title is not None else ""
    return (
        "<html><body>"
        f"{title_html}"
        '<div class="applicant_area"><div class="participation_table_area">'
        '<table class="participants_table">'
        "<thead><tr><th>Participant</th></tr></thead>"
        f"<tbody>{''.join(rows)}</tbody>"
        "</table></div></div></body></html>"
    )


def card_block(name: str, *hrefs: str) -> str:
    links = "".join(f'<a href="{h}">link</a>' for h in hrefs)
    return (
        '<div class="user-profile-details">'
        f'<div class="user-name">{name}</div>'
        f'<div class="user-social">{links}</div>'
        "</div>"
    )


def card_page(*blocks: str, title: str = TITLE) -> str:
    return (
        "<html><body>"
        f'<h2 class="event_title">{title}</h2>'
        f'<div class="participants">{"".join(blocks)}</div>'
        "</body></html>"
    )


JANE_BOB_PAGE = legacy_page(
    legacy_row("Jane Doe", "https://github.com/janed"),
    legacy_row("Bob"),
)


def make_session(
    status: int = 200,
    html: str = "",
    exc: Exception | None = None,
) -> MagicMock:
    """A requests.Session stand-in whose get() returns one canned response."""
    session = MagicMock()
    if exc is not None:
        session.get.side_effect = exc
        return session
    resp = MagicMock()
    resp.status_code = status
    resp.content = html.encode("utf-8")
    resp.text = html
    session.get.return_value = resp
    return session


class RecordingDirectory:
    """UserDirectory stub that records every lookup."""

    def __init__(self, users: list[UserRecord] | None = None) -> None:
        self.calls: list[MatchCandidateSet] = []
        self._inner = CsvUserDirectory(users or [])

    def find_active_users(self, candidates: MatchCandidateSet) -> list[UserRecord]:
        self.calls.append(candidates)
        return self._inner.find_active_users(candidates)
