from __future__ import annotations

from pathlib import Path

import pytest

from carbongrade.core import (
    CarbonMarket,
    EventLog,
    Grade,
    InsufficientPayment,
    LedgerEvent,
    MarketConfig,
    UploadLimitExceeded,
    UploadWindow,
    effective_window,
    replay,
)


def test_effective_window_rolls_over_at_exactly_one_window() -> None:
    stored = UploadWindow(week_start=100, uploads_this_week=3)
    assert effective_window(150, stored, 100) is stored
    assert effective_window(199, stored, 100) is stored
    assert effective_window(200, stored, 100) == UploadWindow(week_start=200, uploads_this_week=0)
    assert effective_window(7, None, 100) == UploadWindow(week_start=7, uploads_this_week=0)


def _busy_market() -> CarbonMarket:
    m = CarbonMarket.create(MarketConfig(max_weekly_uploads=3), clock=lambda: 0)
    reg, ex = m.registry, m.exchange
    reg.register_user("seller", "individual", now=1)
    reg.register_user("buyer", "company", now=1)
    t1 = reg.mint_token("seller", "ipfs://1", "Ocean", Grade.F, 100, now=2)
    t2 = reg.mint_token("seller", "ipfs://2", "Forest", Grade.B, 700, now=2)
    reg.endorse_token(t1, "buyer", now=3)
    ex.create_listing(t1, "seller", 1_000, now=4)
    reg.update_grade(t1, Grade.A, 900, "ipfs://1b", caller="operator", now=5)
    with pytest.raises(InsufficientPayment):
        ex.purchase(t1, "buyer", 10, now=6)
    ex.purchase(t1, "buyer", 2_500, now=6)
    ex.create_listing(t2, "seller", 500, now=7)
    ex.update_listing_price(t2, "seller", 600, now=8)
    ex.cancel_listing(t2, "seller", now=9)
    reg.deactivate_token(t2, caller="seller", now=10)
    ex.withdraw("seller", now=11)
    return m


def test_only_committed_operations_are_logged() -> None:
    m = _busy_market()
    kinds = [ev.kind for ev in m.events]
    assert kinds == [
        "register_user",
        "register_user",
        "mint_token",
        "mint_token",
        "endorse_token",
        "create_listing",
        "update_grade",
        "purchase",
        "create_listing",
        "update_listing_price",
        "cancel_listing",
        "deactivate_token",
        "withdraw",
    ]
    assert [ev.seq for ev in m.events] == list(range(1, 14))
    assert [ev.seq for ev in m.events.since(11)] == [12, 13]
    purchase = next(ev for ev in m.events if ev.kind == "purchase")
    assert purchase.actor == "buyer"
    assert purchase.payload["salePrice"] == 2_000


def test_replay_rebuilds_identical_state_and_log() -> None:
    m = _busy_market()
    rebuilt = replay(m.events, m.config)

    assert [ev.to_dict() for ev in rebuilt.events] == [ev.to_dict() for ev in m.events]
    for token_id in (1, 2):
        assert rebuilt.registry.get_token(token_id) == m.registry.get_token(token_id)
    assert rebuilt.exchange.stats() == m.exchange.stats()
    assert rebuilt.exchange.balance_of("buyer") == m.exchange.balance_of("buyer") == 500
    assert rebuilt.exchange.balance_of("seller") == 0
    assert rebuilt.registry.remaining_uploads("seller", now=11) == m.registry.remaining_uploads("seller", now=11)


def test_jsonl_round_trip_through_a_file(tmp_path: Path) -> None:
    m = _busy_market()
    path = m.events.dump(tmp_path / "log" / "events.jsonl")

    loaded = EventLog.load(path)
    assert len(loaded) == len(m.events)
    assert replay(loaded, m.config).registry.owner_of(1) == "buyer"


def test_log_rejects_gaps_and_unknown_kinds() -> None:
    with pytest.raises(ValueError):
        EventLog([LedgerEvent(seq=2, kind="withdraw", actor="a", timestamp=0)])
    with pytest.raises(ValueError):
        EventLog.from_jsonl('{"seq": 1, "kind": "mystery", "actor": "a", "timestamp": 0, "payload": {}}\n')
    with pytest.raises(ValueError):
        EventLog.from_jsonl("not json\n")
    with pytest.raises(ValueError):
        EventLog().append("mystery", "a", 0)


def test_replay_under_a_stricter_config_fails_loudly() -> None:
    m = _busy_market()
    with pytest.raises(UploadLimitExceeded):
        replay(m.events, MarketConfig(max_weekly_uploads=1))


def test_reset_clears_state_and_log() -> None:
    m = _busy_market()
    m.reset()
    assert len(m.events) == 0
    assert m.registry.total_tokens() == 0
    assert m.exchange.stats().total_listings == 0
    m.registry.register_user("seller", now=0)
    assert m.registry.mint_token("seller", "u", "t", Grade.C, 1, now=0) == 1


def test_malformed_events_raise_value_error() -> None:
    with pytest.raises(ValueError, match="missing field"):
        LedgerEvent.from_dict({"kind": "withdraw", "actor": "a", "timestamp": 0, "payload": {}})
    with pytest.raises(ValueError):
        LedgerEvent.from_dict({"seq": "one", "kind": "withdraw", "actor": "a", "timestamp": 0})
    with pytest.raises(ValueError):
        EventLog.from_jsonl('{"kind": "withdraw", "actor": "a", "timestamp": 0, "payload": {}}\n')
    with pytest.raises(ValueError):
        EventLog.from_jsonl("[1, 2, 3]\n")


def test_visibility_changes_are_replayed() -> None:
    m = CarbonMarket.create(MarketConfig(max_weekly_uploads=5), clock=lambda: 0)
    m.registry.register_user("alice")
    t1 = m.registry.mint_token("alice", "u", "t", Grade.B, 10)
    t2 = m.registry.mint_token("alice", "u", "t", Grade.C, 10)
    m.community.set_visibility(t1, "alice", True)
    m.community.set_visibility(t2, "alice", True)
    m.community.set_visibility(t2, "alice", False)

    rebuilt = replay(m.events, m.config)
    assert [ev.to_dict() for ev in rebuilt.events] == [ev.to_dict() for ev in m.events]
    assert rebuilt.community.is_public(t1)
    assert not rebuilt.community.is_public(t2)
    assert rebuilt.community.public_count() == 1
