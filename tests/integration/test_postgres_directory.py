"""Integration tests for PostgresUserDirectory and the full resolve path.

Requires a real PostgreSQL database (via pytest-postgresql).
No live HTTP requests are made; the session is mocked.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from event_roster.accounts import AttendeeProfile
from event_roster.cli import main
from event_roster.directory import CsvUserDirectory, PostgresUserDirectory
from event_roster.matcher import MatchCandidateSet, ProfileMatcher, UserRecord, build_candidates
from event_roster.resolver import EventAttendeeResolver
from event_roster.scrape import PageScraper

EVENT_URL = "https://connpass.com/event/12345/"

ROSTER_HTML = """
<html><body>
<h2 class="event_title">DB Night</h2>
<div class="applicant_area"><div class="participation_table_area">
<table class="participants_table"><tbody>
<tr>
  <td class="user"><p class="display_name"><a href="#">Jane Doe</a></p></td>
  <td class="social"><a href="https://github.com/JaneD">gh</a></td>
</tr>
<tr>
  <td class="user"><p class="display_name"><a href="#">Carol  Lee</a></p></td>
  <td class="social"><a href="https://twitter.com/intent/user?screen_name=carol_l">tw</a></td>
</tr>
<tr>
  <td class="user"><p class="display_name"><a href="#">Nobody</a></p></td>
  <td class="social"></td>
</tr>
</tbody></table></div></div>
</body></html>
"""


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def conn(db_conn):
    connection, _ = db_conn
    yield connection


@pytest.fixture()
def dsn(db_conn):
    _, dsn = db_conn
    yield dsn


def _insert_user(
    conn,
    user_id: int,
    name: str | None = None,
    nickname: str | None = None,
    twitter_name: str | None = None,
    facebook_name: str | None = None,
    active: bool = True,
) -> None:
    conn.execute(
        """
        INSERT INTO users (id, name, nickname, twitter_name, facebook_name, active)
        VALUES (%s, %s, %s, %s, %s, %s)
        """,
        (user_id, name, nickname, twitter_name, facebook_name, active),
    )


def _candidates(**kw) -> MatchCandidateSet:
    base = dict(github=None, twitter=None, facebook=None, name=None, nickname=None)
    base.update(kw)
    return MatchCandidateSet(**base)


def _session(html: str) -> MagicMock:
    resp = MagicMock()
    resp.status_code = 200
    resp.content = html.encode("utf-8")
    resp.text = html
    session = MagicMock()
    session.get.return_value = resp
    return session


# ---------------------------------------------------------------------------
# find_active_users
# ---------------------------------------------------------------------------

class TestFindActiveUsers:
    def test_github_matches_nickname_case_insensitive(self, conn):
        _insert_user(conn, 7, name="Janet Dough", nickname="JaneD")
        users = PostgresUserDirectory(conn).find_active_users(_candidates(github="janed"))
        assert [u.user_id for u in users] == [7]
        assert users[0].nickname == "JaneD"

    def test_twitter_and_facebook_columns(self, conn):
        _insert_user(conn, 1, twitter_name="Carol_L")
        _insert_user(conn, 2, facebook_name="100012345")
        directory = PostgresUserDirectory(conn)
        assert [u.user_id for u in directory.find_active_users(_candidates(twitter="carol_l"))] == [1]
        assert [u.user_id for u in directory.find_active_users(_candidates(facebook="100012345"))] == [2]

    def test_none_candidate_never_matches_null_or_blank(self, conn):
        _insert_user(conn, 1, name="Bob")
        _insert_user(conn, 2, name="Ann", nickname="", twitter_name=None)
        users = PostgresUserDirectory(conn).find_active_users(_candidates(name="zed"))
        assert users == []

    def test_all_none_returns_nothing(self, conn):
        _insert_user(conn, 1)
        assert PostgresUserDirectory(conn).find_active_users(_candidates()) == []

    def test_name_whitespace_is_squashed(self, conn):
        _insert_user(conn, 3, name="Carol  Lee")
        _insert_user(conn, 4, nickname="Mary\tAnn")
        directory = PostgresUserDirectory(conn)
        assert [u.user_id for u in directory.find_active_users(_candidates(name="carollee"))] == [3]
        assert [u.user_id for u in directory.find_active_users(_candidates(nickname="maryann"))] == [4]

    def test_full_width_space_in_stored_name(self, conn):
        _insert_user(conn, 11, name="山田\u3000太郎")
        _insert_user(conn, 12, nickname="\u3000花子")
        directory = PostgresUserDirectory(conn)
        taro = build_candidates(AttendeeProfile(name="山田\u3000太郎"))
        assert [u.user_id for u in directory.find_active_users(taro)] == [11]
        hanako = build_candidates(AttendeeProfile(name="花子"))
        assert [u.user_id for u in directory.find_active_users(hanako)] == [12]

    def test_handle_columns_trimmed(self, conn):
        _insert_user(conn, 13, nickname=" JaneD\t", twitter_name="\u3000carol_l ", facebook_name=" 42 ")
        directory = PostgresUserDirectory(conn)
        assert [u.user_id for u in directory.find_active_users(_candidates(github="janed"))] == [13]
        assert [u.user_id for u in directory.find_active_users(_candidates(twitter="carol_l"))] == [13]
        assert [u.user_id for u in directory.find_active_users(_candidates(facebook="42"))] == [13]

    def test_backends_agree_on_full_width_names(self, conn):
        users = [
            UserRecord(user_id=21, name="山田\u3000太郎"),
            UserRecord(user_id=22, name="Jane\u00a0Doe"),
        ]
        for user in users:
            _insert_user(conn, user.user_id, name=user.name)
        pg = PostgresUserDirectory(conn)
        csv_dir = CsvUserDirectory(users)
        for name in ("山田 太郎", "janedoe", "Jane\u00a0Doe"):
            candidates = build_candidates(AttendeeProfile(name=name))
            assert [u.user_id for u in pg.find_active_users(candidates)] == [
                u.user_id for u in csv_dir.find_active_users(candidates)
            ]

    def test_inactive_excluded(self, conn):
        _insert_user(conn, 5, nickname="janed", active=False)
        assert PostgresUserDirectory(conn).find_active_users(_candidates(github="janed")) == []

    def test_multiple_matches_ordered_by_id(self, conn):
        _insert_user(conn, 9, name="Bob")
        _insert_user(conn, 2, nickname="bob")
        users = PostgresUserDirectory(conn).find_active_users(
            build_candidates(AttendeeProfile(name="Bob"))
        )
        assert [u.user_id for u in users] == [2, 9]


# ---------------------------------------------------------------------------
# ProfileMatcher over PostgreSQL
# ---------------------------------------------------------------------------

class TestProfileMatcherPostgres:
    def test_ambiguous_returns_none(self, conn):
        _insert_user(conn, 1, name="Bob")
        _insert_user(conn, 2, name="bob")
        seen = []
        matcher = ProfileMatcher(PostgresUserDirectory(conn), on_ambiguous=seen.append)
        assert matcher.resolve(AttendeeProfile(name="Bob")) is None
        assert [u.user_id for u in seen[0].users] == [1, 2]

    def test_unique_match(self, conn):
        _insert_user(conn, 1, name="Bob", twitter_name="bobby")
        matcher = ProfileMatcher(PostgresUserDirectory(conn))
        assert matcher.resolve(AttendeeProfile(name="Robert", twitter="Bobby")) == 1


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------

class TestResolveEventPostgres:
    def test_resolver_against_database(self, conn):
        _insert_user(conn, 7, name="Janet Dough", nickname="janed")
        _insert_user(conn, 8, name="Someone", twitter_name="carol_l")
        _insert_user(conn, 9, name="Nobody", active=False)

        resolver = EventAttendeeResolver(
            PageScraper(session=_session(ROSTER_HTML)),
            ProfileMatcher(PostgresUserDirectory(conn)),
        )
        envelope = resolver.resolve_event(EVENT_URL)
        assert envelope.to_dict() == {
            "status": "success",
            "name": "DB Night",
            "attendee_user_ids": [7, 8],
        }

    def test_cli_with_dsn(self, conn, dsn, tmp_path):
        _insert_user(conn, 7, name="Janet Dough", nickname="janed")

        runner = CliRunner()
        with patch("event_roster.cli.requests.Session", return_value=_session(ROSTER_HTML)):
            result = runner.invoke(
                main,
                [
                    "--event-url", EVENT_URL,
                    "--db-dsn", dsn,
                    "--run-id", "pg-run",
                    "--reports-dir", str(tmp_path),
                ],
            )
        assert result.exit_code == 0, result.output
        lines = [json.loads(l) for l in result.output.splitlines() if l.startswith("{")]
        assert lines == [{"status": "success", "name": "DB Night", "attendee_user_ids": [7]}]
        assert (tmp_path / "pg-run.json").exists()
