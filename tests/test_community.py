from __future__ import annotations

import pytest

from carbongrade.core import CarbonMarket, Grade, MarketConfig, TokenNotFound, Unauthorized


def _market() -> CarbonMarket:
    m = CarbonMarket.create(MarketConfig(max_weekly_uploads=10), clock=lambda: 0)
    for who in ("user1", "user2", "user3"):
        m.registry.register_user(who)
    return m


def test_visibility_defaults_private_and_is_owner_only() -> None:
    m = _market()
    t1 = m.registry.mint_token("user1", "ipfs://1", "nature", Grade.B, 100)

    assert m.community.is_public(t1) is False
    with pytest.raises(Unauthorized):
        m.community.set_visibility(t1, "user2", True)
    with pytest.raises(TokenNotFound):
        m.community.set_visibility(999, "user1", True)
    with pytest.raises(ValueError):
        m.community.set_visibility(t1, "user1", 1)  # type: ignore[arg-type]

    shown = m.community.set_visibility(t1, "user1", True)
    assert shown.is_public
    assert m.community.is_public(t1)
    m.community.set_visibility(t1, "user1", False)
    assert m.community.is_public(t1) is False


def test_display_access() -> None:
    m = _market()
    t1 = m.registry.mint_token("user1", "ipfs://1", "nature", Grade.B, 100)
    t2 = m.registry.mint_token("user2", "ipfs://2", "renewable", Grade.A, 150)
    m.community.set_visibility(t1, "user1", True)
    m.registry.endorse_token(t1, "user2")

    display = m.community.get_display(t1, "user3")
    assert display.owner == "user1"
    assert display.grade is Grade.B
    assert display.score == 110
    assert display.endorsements == 1
    assert display.theme == "nature"

    assert m.community.get_display(t2, "user2").is_public is False
    with pytest.raises(Unauthorized):
        m.community.get_display(t2, "user3")
    with pytest.raises(Unauthorized):
        m.community.get_display(t2)
    with pytest.raises(TokenNotFound):
        m.community.get_display(999)


def test_gallery_lists_public_active_tokens_in_pages() -> None:
    m = _market()
    t1 = m.registry.mint_token("user1", "ipfs://1", "nature", Grade.B, 100)
    t2 = m.registry.mint_token("user2", "ipfs://2", "renewable", Grade.A, 150)
    t3 = m.registry.mint_token("user3", "ipfs://3", "transport", Grade.C, 80)
    m.community.set_visibility(t1, "user1", True)
    m.community.set_visibility(t2, "user2", True)

    assert [d.token_id for d in m.community.public_tokens(0, 10)] == [t1, t2]
    assert [d.token_id for d in m.community.public_tokens(1, 1)] == [t2]
    assert m.community.public_tokens(1000, 10) == []
    assert m.community.gallery_page(0, 1) == (2, m.community.public_tokens(0, 1))
    for bad in (0, 101):
        with pytest.raises(ValueError):
            m.community.public_tokens(0, bad)

    m.community.set_visibility(t3, "user3", True)
    assert m.community.public_count() == 3
    m.registry.deactivate_token(t3, caller="user3")
    assert m.community.public_count() == 2


def test_visibility_survives_a_sale() -> None:
    m = _market()
    t1 = m.registry.mint_token("user1", "ipfs://1", "nature", Grade.C, 100)
    m.community.set_visibility(t1, "user1", True)
    m.exchange.create_listing(t1, "user1", 1_000)
    m.exchange.purchase(t1, "user2", 1_000)

    display = m.community.get_display(t1)
    assert display.owner == "user2"
    assert display.is_public
    with pytest.raises(Unauthorized):
        m.community.set_visibility(t1, "user1", False)


def test_leaderboard_ranks_owners_by_total_score() -> None:
    m = _market()
    m.registry.mint_token("user1", "u", "nature", Grade.A, 200)
    m.registry.mint_token("user1", "u", "renewable", Grade.B, 150)
    m.registry.mint_token("user2", "u", "transport", Grade.A, 180)
    m.registry.mint_token("user3", "u", "energy", Grade.C, 100)

    board = m.community.leaderboard(10)
    assert [(e.address, e.total_score, e.token_count) for e in board] == [
        ("user1", 350, 2),
        ("user2", 180, 1),
        ("user3", 100, 1),
    ]
    # (A + B) / 2 floors to B.
    assert [e.average_grade for e in board] == [Grade.B, Grade.A, Grade.C]
    assert len(m.community.leaderboard(2)) == 2
    for bad in (0, 51):
        with pytest.raises(ValueError):
            m.community.leaderboard(bad)

    assert _market().community.leaderboard(10) == []


def test_community_stats() -> None:
    m = _market()
    empty = m.community.stats()
    assert (empty.total_users, empty.total_tokens, empty.total_score, empty.average_grade) == (0, 0, 0, Grade.F)

    m.registry.mint_token("user1", "u", "nature", Grade.A, 200)
    m.registry.mint_token("user2", "u", "renewable", Grade.B, 150)
    m.registry.mint_token("user2", "u", "transport", Grade.C, 100)

    stats = m.community.stats()
    assert stats.total_users == 2
    assert stats.total_tokens == 3
    assert stats.total_score == 450
    assert stats.average_grade is Grade.B
