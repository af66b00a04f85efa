from __future__ import annotations

import pytest

from carbongrade.core import (
    AlreadyEndorsed,
    AlreadyRegistered,
    CarbonRegistry,
    Grade,
    MarketConfig,
    NotRegistered,
    SelfEndorsement,
    TokenInactive,
    TokenNotFound,
    Unauthorized,
    UploadLimitExceeded,
    UserType,
    allow_any_grader,
)

WEEK = 604_800


def _registry(**cfg: object) -> CarbonRegistry:
    return CarbonRegistry(MarketConfig(**cfg), clock=lambda: 0)  # type: ignore[arg-type]


def test_register_user_only_once() -> None:
    reg = _registry()
    user = reg.register_user("alice", UserType.COMPANY, now=10)

    assert user.address == "alice"
    assert user.user_type is UserType.COMPANY
    assert user.registered_at == 10
    assert reg.is_registered("alice")

    with pytest.raises(AlreadyRegistered):
        reg.register_user("alice", "individual", now=11)
    assert reg.get_user("alice").user_type is UserType.COMPANY


def test_mint_requires_registration_and_assigns_sequential_ids() -> None:
    reg = _registry(max_weekly_uploads=10)

    with pytest.raises(NotRegistered):
        reg.mint_token("bob", "ipfs://x", "Ocean", Grade.C, 500, now=1)

    reg.register_user("bob", now=1)
    ids = [reg.mint_token("bob", f"ipfs://{i}", f"theme-{i}", Grade.C, 500, now=2) for i in range(3)]
    assert ids == [1, 2, 3]

    token = reg.get_token(2)
    assert token.owner == "bob"
    assert token.minter == "bob"
    assert token.grade is Grade.C
    assert token.score == 500
    assert token.endorsements == 0
    assert token.theme == "theme-1"
    assert token.metadata_uri == "ipfs://1"
    assert token.is_active
    assert token.minted_at == 2
    assert reg.get_user_tokens("bob") == [1, 2, 3]
    assert reg.get_user_tokens("nobody") == []


def test_failed_mint_does_not_consume_an_id() -> None:
    reg = _registry(max_weekly_uploads=1)
    reg.register_user("bob", now=0)
    reg.register_user("carol", now=0)

    assert reg.mint_token("bob", "u", "t", "A", 1, now=1) == 1
    with pytest.raises(UploadLimitExceeded):
        reg.mint_token("bob", "u", "t", "A", 1, now=2)
    with pytest.raises(NotRegistered):
        reg.mint_token("dave", "u", "t", "A", 1, now=2)

    assert reg.mint_token("carol", "u", "t", "B", 1, now=3) == 2


def test_mint_rejects_bad_arguments_without_side_effects() -> None:
    reg = _registry()
    reg.register_user("bob", now=0)

    with pytest.raises(ValueError):
        reg.mint_token("bob", "u", "t", "Z", 1, now=1)
    with pytest.raises(ValueError):
        reg.mint_token("bob", "u", "t", Grade.A, -1, now=1)

    assert reg.remaining_uploads("bob", now=1) == 1
    assert reg.mint_token("bob", "u", "t", Grade.A, 0, now=1) == 1


def test_upload_limit_resets_after_sliding_window() -> None:
    reg = _registry(max_weekly_uploads=2)
    reg.register_user("u1", now=100)

    reg.mint_token("u1", "a", "t", Grade.F, 1, now=100)
    assert reg.remaining_uploads("u1", now=100) == 1
    reg.mint_token("u1", "b", "t", Grade.F, 1, now=200)
    assert reg.remaining_uploads("u1", now=200) == 0
    assert not reg.can_upload("u1", now=200)

    with pytest.raises(UploadLimitExceeded) as exc:
        reg.mint_token("u1", "c", "t", Grade.F, 1, now=100 + WEEK - 1)
    assert exc.value.retry_at == 100 + WEEK

    # Window started at the first upload, not at the latest one.
    assert reg.can_upload("u1", now=100 + WEEK)
    reg.mint_token("u1", "c", "t", Grade.F, 1, now=100 + WEEK)
    assert reg.upload_window("u1", now=100 + WEEK).week_start == 100 + WEEK
    assert reg.remaining_uploads("u1", now=100 + WEEK) == 1


def test_upload_queries_simulate_rollover_without_mutating() -> None:
    reg = _registry(max_weekly_uploads=1)
    reg.register_user("u1", now=0)
    reg.mint_token("u1", "a", "t", Grade.F, 1, now=0)

    assert reg.remaining_uploads("u1", now=WEEK) == 1
    assert reg.can_upload("u1", now=WEEK)
    # The stored window is untouched, so an earlier read still sees it full.
    assert reg.remaining_uploads("u1", now=WEEK - 1) == 0
    assert reg.upload_window("u1", now=WEEK - 1).week_start == 0

    assert reg.remaining_uploads("stranger", now=5) == 1


def test_update_grade_overwrites_grade_score_and_uri_only() -> None:
    reg = _registry(max_weekly_uploads=5, graders=frozenset({"oracle"}))
    reg.register_user("owner", now=0)
    reg.register_user("fan", now=0)
    token_id = reg.mint_token("owner", "ipfs://old", "Forest", Grade.F, 100, now=1)
    reg.endorse_token(token_id, "fan", now=2)

    updated = reg.update_grade(token_id, Grade.A, 950, "ipfs://new", caller="oracle", now=3)

    assert updated.grade is Grade.A
    assert updated.score == 950
    assert updated.metadata_uri == "ipfs://new"
    assert updated.endorsements == 1
    assert updated.owner == "owner"
    assert updated.theme == "Forest"
    assert updated.last_updated == 3
    assert reg.remaining_uploads("owner", now=3) == 3


def test_update_grade_failures() -> None:
    reg = _registry(max_weekly_uploads=1)
    reg.register_user("owner", now=0)
    token_id = reg.mint_token("owner", "u", "t", Grade.C, 10, now=0)

    with pytest.raises(TokenNotFound):
        reg.update_grade(99, Grade.A, 1, "u", caller="operator", now=1)

    # Owners cannot self-grade; grading is an attested role.
    with pytest.raises(Unauthorized):
        reg.update_grade(token_id, Grade.A, 1, "u", caller="owner", now=1)

    # The mint used the owner's only upload this week.
    with pytest.raises(UploadLimitExceeded):
        reg.update_grade(token_id, Grade.A, 1, "u", caller="operator", now=1)
    assert reg.get_token(token_id).grade is Grade.C

    updated = reg.update_grade(token_id, Grade.B, 20, "u2", caller="operator", now=WEEK)
    assert updated.grade is Grade.B


def test_update_grade_counts_against_the_owners_window() -> None:
    reg = _registry(max_weekly_uploads=2)
    reg.register_user("owner", now=0)
    token_id = reg.mint_token("owner", "u", "t", Grade.C, 10, now=0)

    reg.update_grade(token_id, Grade.B, 20, "u", caller="operator", now=1)

    assert reg.remaining_uploads("owner", now=1) == 0
    assert reg.remaining_uploads("operator", now=1) == 2


def test_grade_updates_on_inactive_tokens_fail() -> None:
    reg = _registry(max_weekly_uploads=5)
    reg.register_user("owner", now=0)
    token_id = reg.mint_token("owner", "u", "t", Grade.C, 10, now=0)

    retired = reg.deactivate_token(token_id, caller="owner", now=1)
    assert not retired.is_active
    assert reg.get_token(token_id).is_active is False
    assert reg.get_user_tokens("owner") == [token_id]

    with pytest.raises(TokenNotFound):
        reg.update_grade(token_id, Grade.A, 1, "u", caller="operator", now=2)
    with pytest.raises(TokenInactive):
        reg.deactivate_token(token_id, caller="owner", now=2)


def test_deactivate_requires_owner_or_grader() -> None:
    reg = _registry(max_weekly_uploads=5)
    reg.register_user("owner", now=0)
    token_id = reg.mint_token("owner", "u", "t", Grade.C, 10, now=0)

    with pytest.raises(Unauthorized):
        reg.deactivate_token(token_id, caller="mallory", now=1)
    assert reg.deactivate_token(token_id, caller="operator", now=1).is_active is False


def test_endorsements_reward_score_once_per_endorser() -> None:
    reg = _registry()
    for who in ("owner", "fan", "other"):
        reg.register_user(who, now=0)
    token_id = reg.mint_token("owner", "u", "t", Grade.C, 500, now=0)

    endorsed = reg.endorse_token(token_id, "fan", now=1)
    assert endorsed.endorsements == 1
    assert endorsed.score == 510
    assert reg.has_endorsed(token_id, "fan")
    assert not reg.has_endorsed(token_id, "other")

    with pytest.raises(AlreadyEndorsed):
        reg.endorse_token(token_id, "fan", now=2)
    with pytest.raises(SelfEndorsement):
        reg.endorse_token(token_id, "owner", now=2)
    with pytest.raises(NotRegistered):
        reg.endorse_token(token_id, "ghost", now=2)
    with pytest.raises(TokenNotFound):
        reg.endorse_token(42, "other", now=2)

    # Endorsing is not an upload.
    assert reg.remaining_uploads("owner", now=2) == 0
    assert reg.get_token(token_id).endorsements == 1


def test_get_token_unknown_id() -> None:
    reg = _registry()
    with pytest.raises(TokenNotFound):
        reg.get_token(1)


def test_active_token_pagination() -> None:
    reg = _registry(max_weekly_uploads=10)
    reg.register_user("u", now=0)
    for i in range(5):
        reg.mint_token("u", f"uri-{i}", f"theme-{i}", Grade.C, i, now=0)
    reg.deactivate_token(2, caller="u", now=1)

    page = reg.list_active_tokens(offset=0, limit=3)
    assert [t.id for t in page] == [1, 3, 4]
    assert [t.id for t in reg.list_active_tokens(offset=3, limit=3)] == [5]
    assert reg.list_active_tokens(offset=10) == []
    with pytest.raises(ValueError):
        reg.list_active_tokens(limit=0)


def test_timestamps_must_not_go_backwards() -> None:
    reg = _registry()
    reg.register_user("a", now=50)
    with pytest.raises(ValueError):
        reg.register_user("b", now=49)
    assert not reg.is_registered("b")
    reg.register_user("b", now=50)


def test_current_week_uses_window_length() -> None:
    reg = _registry()
    assert reg.current_week(now=0) == 0
    assert reg.current_week(now=WEEK * 3 + 5) == 3


def test_custom_grader_policy() -> None:
    reg = CarbonRegistry(
        MarketConfig(max_weekly_uploads=5),
        grader_policy=lambda caller, owner: caller != owner,
    )
    reg.register_user("owner", now=0)
    token_id = reg.mint_token("owner", "u", "t", Grade.D, 1, now=0)

    with pytest.raises(Unauthorized):
        reg.update_grade(token_id, Grade.A, 1, "u", caller="owner", now=1)
    assert reg.update_grade(token_id, Grade.A, 1, "u", caller="anyone-else", now=1).grade is Grade.A


def test_allow_any_grader_lets_owners_grade() -> None:
    reg = CarbonRegistry(MarketConfig(max_weekly_uploads=5), grader_policy=allow_any_grader, clock=lambda: 0)
    reg.register_user("owner")
    token_id = reg.mint_token("owner", "u", "t", Grade.D, 1)

    token = reg.update_grade(token_id, Grade.B, 40, "u2", caller="owner")
    assert (token.grade, token.score) == (Grade.B, 40)
    reg.deactivate_token(token_id, caller="someone-else")
    assert not reg.get_token(token_id).is_active


def test_list_users_in_registration_order() -> None:
    reg = _registry()
    assert reg.list_users() == []
    reg.register_user("bob", now=1)
    reg.register_user("alice", "company", now=2)
    assert [(u.address, u.user_type) for u in reg.list_users()] == [
        ("bob", UserType.INDIVIDUAL),
        ("alice", UserType.COMPANY),
    ]


def test_clock_stepping_backwards_reuses_the_last_timestamp() -> None:
    wall = [100]
    reg = CarbonRegistry(MarketConfig(max_weekly_uploads=5), clock=lambda: wall[0])

    assert reg.register_user("a").registered_at == 100
    wall[0] = 50
    assert reg.register_user("b").registered_at == 100
    wall[0] = 60
    token_id = reg.mint_token("a", "u", "t", Grade.C, 1)
    assert reg.get_token(token_id).minted_at == 100
