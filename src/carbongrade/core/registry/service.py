from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from typing import Any, Callable

from ..config import MarketConfig
from ..errors import (
    AlreadyEndorsed,
    AlreadyRegistered,
    NotRegistered,
    SelfEndorsement,
    TokenInactive,
    TokenNotFound,
    Unauthorized,
    UploadLimitExceeded,
)
from ..grades import Grade, UserType
from ..ledger import EventLog
from ..records import Token, User
from ..window import UploadWindow, effective_window, remaining_in, window_resets_at
from .policy import GraderPolicy, config_grader_policy

log = logging.getLogger(__name__)

FIRST_TOKEN_ID = 1


def _wall_clock() -> int:
    return int(time.time())


class CarbonRegistry:
    """Users, tokens and their grading state.

    All state sits behind one re-entrant lock which the exchange shares, so a
    settlement can check and transfer ownership in a single critical section.
    Methods suffixed `_locked` expect the caller to already hold `lock`.
    """

    def __init__(
        self,
        config: MarketConfig | None = None,
        *,
        grader_policy: GraderPolicy | None = None,
        clock: Callable[[], int] | None = None,
        events: EventLog | None = None,
    ) -> None:
        self.config = config if config is not None else MarketConfig()
        self.grader_policy: GraderPolicy = grader_policy or config_grader_policy(self.config)
        self.lock = threading.RLock()
        self.events = events if events is not None else EventLog()
        self._clock = clock or _wall_clock
        self._reset_state_locked()

    def _reset_state_locked(self) -> None:
        self._users: dict[str, User] = {}
        self._tokens: dict[int, Token] = {}
        self._windows: dict[str, UploadWindow] = {}
        self._minted_by: dict[str, list[int]] = {}
        self._endorsers: dict[int, set[str]] = {}
        self._next_token_id = FIRST_TOKEN_ID
        self._last_timestamp = 0

    def reset(self) -> None:
        with self.lock:
            self._reset_state_locked()
            self.events.clear()

    # --- helpers -----------------------------------------------------------

    @staticmethod
    def _require_address(value: Any, *, name: str = "address") -> str:
        addr = str(value if value is not None else "").strip()
        if not addr:
            raise ValueError(f"{name} cannot be empty")
        return addr

    @staticmethod
    def _require_score(value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError("score must be an integer")
        try:
            score = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"score must be an integer, got {value!r}") from None
        if score < 0:
            raise ValueError("score must be >= 0")
        return score

    def now_locked(self, now: int | None) -> int:
        """Resolve the timestamp of a mutating call and enforce ordering."""
        ts = int(now) if now is not None else max(int(self._clock()), self._last_timestamp)
        if ts < self._last_timestamp:
            raise ValueError(f"timestamp {ts} is earlier than the last committed timestamp {self._last_timestamp}")
        return ts

    def commit_time_locked(self, ts: int) -> None:
        self._last_timestamp = max(self._last_timestamp, int(ts))

    def _read_time(self, now: int | None) -> int:
        return int(now) if now is not None else max(int(self._clock()), self._last_timestamp)

    def require_token_locked(self, token_id: int) -> Token:
        token = self._tokens.get(int(token_id))
        if token is None:
            raise TokenNotFound(f"Token {token_id} does not exist")
        return token

    def _require_active_token_locked(self, token_id: int) -> Token:
        token = self.require_token_locked(token_id)
        if not token.is_active:
            raise TokenNotFound(f"Token {token_id} is not active")
        return token

    def _reserve_upload_locked(self, user: str, ts: int, *, action: str) -> UploadWindow:
        """Return the incremented window for `user` without storing it."""
        window = effective_window(ts, self._windows.get(user), self.config.window_seconds)
        if window.uploads_this_week >= self.config.max_weekly_uploads:
            retry_at = window_resets_at(window, self.config.window_seconds)
            log.debug("upload limit reached for %s (%s), retry at %d", user, action, retry_at)
            raise UploadLimitExceeded(
                f"Weekly upload limit of {self.config.max_weekly_uploads} reached for {user}",
                retry_at=retry_at,
            )
        return replace(window, uploads_this_week=window.uploads_this_week + 1)

    # --- users -------------------------------------------------------------

    def register_user(self, address: str, user_type: UserType | str | int = UserType.INDIVIDUAL, *, now: int | None = None) -> User:
        addr = self._require_address(address)
        utype = UserType.from_any(user_type)
        with self.lock:
            ts = self.now_locked(now)
            if addr in self._users:
                raise AlreadyRegistered(f"User {addr} is already registered")
            user = User(address=addr, user_type=utype, registered_at=ts)
            self._users[addr] = user
            self.commit_time_locked(ts)
            self.events.append("register_user", addr, ts, {"userType": int(utype)})
            log.info("registered %s user %s", utype.name.lower(), addr)
            return user

    def is_registered(self, address: str) -> bool:
        with self.lock:
            return str(address).strip() in self._users

    def get_user(self, address: str) -> User:
        with self.lock:
            user = self._users.get(str(address).strip())
            if user is None:
                raise NotRegistered(f"User {address} is not registered")
            return user

    def list_users(self) -> list[User]:
        with self.lock:
            return list(self._users.values())

    # --- rate limit queries -----------------------------------------------

    def upload_window(self, user: str, *, now: int | None = None) -> UploadWindow:
        """The user's window as it stands at `now`; rollover is simulated, not stored."""
        with self.lock:
            ts = self._read_time(now)
            return effective_window(ts, self._windows.get(str(user).strip()), self.config.window_seconds)

    def remaining_uploads(self, user: str, *, now: int | None = None) -> int:
        return remaining_in(self.upload_window(user, now=now), self.config.max_weekly_uploads)

    def can_upload(self, user: str, *, now: int | None = None) -> bool:
        return self.remaining_uploads(user, now=now) > 0

    def current_week(self, *, now: int | None = None) -> int:
        return self._read_time(now) // self.config.window_seconds

    # --- tokens ------------------------------------------------------------

    def mint_token(
        self,
        recipient: str,
        metadata_uri: str,
        theme: str,
        initial_grade: Grade | str | int,
        initial_score: int,
        *,
        now: int | None = None,
    ) -> int:
        addr = self._require_address(recipient, name="recipient")
        grade = Grade.from_any(initial_grade)
        score = self._require_score(initial_score)
        with self.lock:
            ts = self.now_locked(now)
            if addr not in self._users:
                raise NotRegistered(f"Recipient {addr} must be registered first")
            window = self._reserve_upload_locked(addr, ts, action="mint")

            token_id = self._next_token_id
            token = Token(
                id=token_id,
                owner=addr,
                minter=addr,
                grade=grade,
                score=score,
                endorsements=0,
                theme=str(theme),
                metadata_uri=str(metadata_uri),
                is_active=True,
                minted_at=ts,
                last_updated=ts,
            )
            self._next_token_id += 1
            self._tokens[token_id] = token
            self._minted_by.setdefault(addr, []).append(token_id)
            self._windows[addr] = window
            self.commit_time_locked(ts)
            self.events.append(
                "mint_token",
                addr,
                ts,
                {
                    "tokenId": token_id,
                    "recipient": addr,
                    "metadataURI": token.metadata_uri,
                    "theme": token.theme,
                    "grade": int(grade),
                    "score": score,
                },
            )
            log.info("minted token %d for %s (grade %s, score %d)", token_id, addr, grade.name, score)
            return token_id

    def update_grade(
        self,
        token_id: int,
        new_grade: Grade | str | int,
        new_score: int,
        new_metadata_uri: str,
        *,
        caller: str,
        now: int | None = None,
    ) -> Token:
        grade = Grade.from_any(new_grade)
        score = self._require_score(new_score)
        who = self._require_address(caller, name="caller")
        with self.lock:
            ts = self.now_locked(now)
            token = self._require_active_token_locked(token_id)
            if not self.grader_policy(who, token.owner):
                raise Unauthorized(f"{who} is not an authorized grader for token {token.id}")
            window = self._reserve_upload_locked(token.owner, ts, action="grade update")

            updated = replace(
                token,
                grade=grade,
                score=score,
                metadata_uri=str(new_metadata_uri),
                last_updated=ts,
            )
            self._tokens[token.id] = updated
            self._windows[token.owner] = window
            self.commit_time_locked(ts)
            self.events.append(
                "update_grade",
                who,
                ts,
                {"tokenId": token.id, "grade": int(grade), "score": score, "metadataURI": updated.metadata_uri},
            )
            log.info("token %d graded %s -> %s (score %d) by %s", token.id, token.grade.name, grade.name, score, who)
            return updated

    def endorse_token(self, token_id: int, endorser: str, *, now: int | None = None) -> Token:
        who = self._require_address(endorser, name="endorser")
        with self.lock:
            ts = self.now_locked(now)
            if who not in self._users:
                raise NotRegistered(f"Endorser {who} must be registered first")
            token = self._require_active_token_locked(token_id)
            if token.owner == who:
                raise SelfEndorsement(f"{who} cannot endorse own token {token.id}")
            endorsers = self._endorsers.setdefault(token.id, set())
            if who in endorsers:
                raise AlreadyEndorsed(f"{who} already endorsed token {token.id}")

            updated = replace(
                token,
                endorsements=token.endorsements + 1,
                score=token.score + self.config.endorsement_reward,
                last_updated=ts,
            )
            endorsers.add(who)
            self._tokens[token.id] = updated
            self.commit_time_locked(ts)
            self.events.append("endorse_token", who, ts, {"tokenId": token.id})
            log.info("token %d endorsed by %s (%d endorsements)", token.id, who, updated.endorsements)
            return updated

    def has_endorsed(self, token_id: int, endorser: str) -> bool:
        with self.lock:
            return str(endorser).strip() in self._endorsers.get(int(token_id), set())

    def deactivate_token(self, token_id: int, *, caller: str, now: int | None = None) -> Token:
        who = self._require_address(caller, name="caller")
        with self.lock:
            ts = self.now_locked(now)
            token = self.require_token_locked(token_id)
            if not token.is_active:
                raise TokenInactive(f"Token {token.id} is already inactive")
            if who != token.owner and not self.grader_policy(who, token.owner):
                raise Unauthorized(f"{who} may not deactivate token {token.id}")

            updated = replace(token, is_active=False, last_updated=ts)
            self._tokens[token.id] = updated
            self.commit_time_locked(ts)
            self.events.append("deactivate_token", who, ts, {"tokenId": token.id})
            log.info("token %d deactivated by %s", token.id, who)
            return updated

    def get_token(self, token_id: int) -> Token:
        with self.lock:
            return self.require_token_locked(token_id)

    def owner_of(self, token_id: int) -> str:
        return self.get_token(token_id).owner

    def get_user_tokens(self, user: str) -> list[int]:
        with self.lock:
            return list(self._minted_by.get(str(user).strip(), []))

    def tokens_owned_by(self, address: str) -> list[int]:
        addr = str(address).strip()
        with self.lock:
            return [t.id for t in self._tokens.values() if t.owner == addr]

    def list_active_tokens(self, offset: int = 0, limit: int = 50) -> list[Token]:
        if int(offset) < 0:
            raise ValueError("offset must be >= 0")
        if int(limit) <= 0:
            raise ValueError("limit must be a positive integer")
        with self.lock:
            active = self.active_tokens_locked()
            return active[int(offset) : int(offset) + int(limit)]

    def active_tokens_locked(self) -> list[Token]:
        return [t for t in self._tokens.values() if t.is_active]

    def total_tokens(self) -> int:
        with self.lock:
            return len(self._tokens)

    # --- settlement hook ----------------------------------------------------

    def transfer_locked(self, token_id: int, from_address: str, to_address: str, ts: int) -> Token:
        """Move ownership; only the exchange calls this, while holding `lock`."""
        token = self.require_token_locked(token_id)
        if token.owner != from_address:
            raise ValueError(f"Token {token.id} is owned by {token.owner}, not {from_address}")
        updated = replace(token, owner=self._require_address(to_address, name="to_address"))
        self._tokens[token.id] = updated
        self.commit_time_locked(ts)
        return updated
