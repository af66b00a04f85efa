"""Community views over registry data: visibility, gallery, leaderboard and stats.

Visibility is stored per token id and survives ownership changes. Aggregates
only count active tokens and credit them to their current owner.
"""

from __future__ import annotations

import logging

from .errors import Unauthorized
from .grades import Grade
from .records import CommunityStats, LeaderboardEntry, Token, TokenDisplay
from .registry import CarbonRegistry

log = logging.getLogger(__name__)

MAX_GALLERY_PAGE = 100
MAX_LEADERBOARD_SIZE = 50


def _floor_grade(total: int, count: int) -> Grade:
    if count <= 0:
        return Grade.F
    return Grade(total // count)


class CarbonCommunity:
    def __init__(self, registry: CarbonRegistry) -> None:
        self.registry = registry
        self.lock = registry.lock
        self.events = registry.events
        with self.lock:
            self._public: set[int] = set()

    def reset(self) -> None:
        with self.lock:
            self._public = set()

    def _display_locked(self, token: Token) -> TokenDisplay:
        return TokenDisplay(
            token_id=token.id,
            owner=token.owner,
            grade=token.grade,
            score=token.score,
            endorsements=token.endorsements,
            theme=token.theme,
            metadata_uri=token.metadata_uri,
            is_public=token.id in self._public,
        )

    def set_visibility(self, token_id: int, caller: str, is_public: bool, *, now: int | None = None) -> TokenDisplay:
        """Show or hide a token in the public gallery; owner only."""
        who = str(caller or "").strip()
        if not isinstance(is_public, bool):
            raise ValueError(f"is_public must be a boolean, got {is_public!r}")
        with self.lock:
            ts = self.registry.now_locked(now)
            token = self.registry.require_token_locked(token_id)
            if token.owner != who:
                raise Unauthorized(f"{who} does not own token {token.id}")
            if is_public:
                self._public.add(token.id)
            else:
                self._public.discard(token.id)
            self.registry.commit_time_locked(ts)
            self.events.append("set_visibility", who, ts, {"tokenId": token.id, "isPublic": is_public})
            log.info("token %d made %s by %s", token.id, "public" if is_public else "private", who)
            return self._display_locked(token)

    def is_public(self, token_id: int) -> bool:
        with self.lock:
            self.registry.require_token_locked(token_id)
            return int(token_id) in self._public

    def get_display(self, token_id: int, viewer: str | None = None) -> TokenDisplay:
        """Public tokens are visible to anyone, private ones only to their owner."""
        with self.lock:
            token = self.registry.require_token_locked(token_id)
            if token.id not in self._public and (viewer is None or str(viewer).strip() != token.owner):
                raise Unauthorized(f"Token {token.id} is private")
            return self._display_locked(token)

    def gallery_page(self, offset: int = 0, limit: int = 10) -> tuple[int, list[TokenDisplay]]:
        """`(public_count, page)` read in one snapshot."""
        if int(offset) < 0:
            raise ValueError("offset must be >= 0")
        if not 0 < int(limit) <= MAX_GALLERY_PAGE:
            raise ValueError(f"limit must be between 1 and {MAX_GALLERY_PAGE}")
        with self.lock:
            tokens = [t for t in self.registry.active_tokens_locked() if t.id in self._public]
            page = tokens[int(offset) : int(offset) + int(limit)]
            return len(tokens), [self._display_locked(t) for t in page]

    def public_tokens(self, offset: int = 0, limit: int = 10) -> list[TokenDisplay]:
        return self.gallery_page(offset, limit)[1]

    def public_count(self) -> int:
        with self.lock:
            return sum(1 for t in self.registry.active_tokens_locked() if t.id in self._public)

    def leaderboard(self, limit: int = 10) -> list[LeaderboardEntry]:
        """Owners ranked by total score, ties broken by address."""
        if not 0 < int(limit) <= MAX_LEADERBOARD_SIZE:
            raise ValueError(f"limit must be between 1 and {MAX_LEADERBOARD_SIZE}")
        with self.lock:
            totals: dict[str, list[int]] = {}
            for t in self.registry.active_tokens_locked():
                acc = totals.setdefault(t.owner, [0, 0, 0])
                acc[0] += t.score
                acc[1] += 1
                acc[2] += int(t.grade)

        entries = [
            LeaderboardEntry(
                address=addr,
                total_score=score,
                token_count=count,
                average_grade=_floor_grade(grades, count),
            )
            for addr, (score, count, grades) in totals.items()
        ]
        entries.sort(key=lambda e: (-e.total_score, e.address))
        return entries[: int(limit)]

    def stats(self) -> CommunityStats:
        with self.lock:
            tokens = self.registry.active_tokens_locked()
        grades = sum(int(t.grade) for t in tokens)
        return CommunityStats(
            total_users=len({t.owner for t in tokens}),
            total_tokens=len(tokens),
            total_score=sum(t.score for t in tokens),
            average_grade=_floor_grade(grades, len(tokens)),
        )
