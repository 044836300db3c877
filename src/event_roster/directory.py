"""event_roster.directory

User directory backends for ProfileMatcher.

  - PostgresUserDirectory: one OR-combined query against the ``users`` table
    (schema in migrations/0001_users.sql).
  - CsvUserDirectory: an in-process copy of a users export, filtered with
    matcher.record_matches. Handy for dry runs without a database.

Both are read-only.
"""

from __future__ import annotations

import csv
from pathlib import Path

import psycopg

from event_roster.matcher import MatchCandidateSet, UserRecord, record_matches
from event_roster.normalize import MATCH_SPACE_CHARS, MATCH_SPACE_PATTERN, trim

REQUIRED_USER_COLS = {"id", "name", "nickname", "twitter_name", "facebook_name", "active"}

_TRUE_VALUES = {"1", "t", "true", "y", "yes"}

# Each clause is guarded so a NULL candidate can never match a NULL/blank column.
# %(space_chars)s / %(space_re)s are normalize.MATCH_SPACE_CHARS / MATCH_SPACE_PATTERN,
# so trimming and squashing strip exactly what normalize_handle / squash_name strip.
_FIND_ACTIVE_USERS_SQL = """
SELECT id, name, nickname, twitter_name, facebook_name, active
FROM users
WHERE active
  AND (
       (%(github)s::text IS NOT NULL
        AND LOWER(BTRIM(nickname, %(space_chars)s)) = %(github)s)
    OR (%(twitter)s::text IS NOT NULL
        AND LOWER(BTRIM(twitter_name, %(space_chars)s)) = %(twitter)s)
    OR (%(facebook)s::text IS NOT NULL
        AND LOWER(BTRIM(facebook_name, %(space_chars)s)) = %(facebook)s)
    OR (%(name)s::text IS NOT NULL
        AND LOWER(regexp_replace(name, %(space_re)s, '', 'g')) = %(name)s)
    OR (%(nickname)s::text IS NOT NULL
        AND LOWER(regexp_replace(nickname, %(space_re)s, '', 'g')) = %(nickname)s)
  )
ORDER BY id ASC
"""


# ---------------------------------------------------------------------------
# PostgreSQL
# ---------------------------------------------------------------------------

class PostgresUserDirectory:
    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def find_active_users(self, candidates: MatchCandidateSet) -> list[UserRecord]:
        params = {
            **candidates.as_params(),
            "space_chars": MATCH_SPACE_CHARS,
            "space_re": MATCH_SPACE_PATTERN,
        }
        rows = self._conn.execute(_FIND_ACTIVE_USERS_SQL, params).fetchall()
        return [
            UserRecord(
                user_id=int(row[0]),
                name=row[1],
                nickname=row[2],
                twitter_name=row[3],
                facebook_name=row[4],
                active=bool(row[5]),
            )
            for row in rows
        ]


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------

class UserCsvError(ValueError):
    """Raised when a users CSV is missing columns or has a bad id."""


def _parse_active(value: str | None) -> bool:
    v = trim(value)
    return v is not None and v.lower() in _TRUE_VALUES


def parse_user_row(row: dict[str, str]) -> UserRecord:
    raw_id = trim(row.get("id"))
    if raw_id is None or not raw_id.isdigit():
        raise UserCsvError(f"invalid user id: {row.get('id')!r}")
    return UserRecord(
        user_id=int(raw_id),
        name=trim(row.get("name")),
        nickname=trim(row.get("nickname")),
        twitter_name=trim(row.get("twitter_name")),
        facebook_name=trim(row.get("facebook_name")),
        active=_parse_active(row.get("active")),
    )


class CsvUserDirectory:
    def __init__(self, users: list[UserRecord]) -> None:
        self._users = list(users)

    @classmethod
    def from_path(cls, path: Path) -> CsvUserDirectory:
        with path.open(encoding="utf-8-sig", newline="") as fh:
            reader = csv.DictReader(fh)
            fields = {k.strip() for k in (reader.fieldnames or [])}
            missing = REQUIRED_USER_COLS - fields
            if missing:
                raise UserCsvError(f"users file missing required columns: {sorted(missing)}")
            users = [
                parse_user_row({k.strip(): v for k, v in raw.items() if k is not None})
                for raw in reader
            ]
        return cls(users)

    def __len__(self) -> int:
        return len(self._users)

    def find_active_users(self, candidates: MatchCandidateSet) -> list[UserRecord]:
        return [u for u in self._users if record_matches(u, candidates)]
