from __future__ import annotations

import random

import pytest

from kol_tracker.analytics.ledger import build_ledger, find_matching_trader, group_by_trader, recent_activity
from kol_tracker.datalake.schemas import Position, RawEvent, TxType


def _event(label, tx_type, amount, timestamp, address=None) -> RawEvent:
    return RawEvent(
        trader_label=label,
        trader_address=address,
        tx_type=TxType(tx_type) if tx_type else None,
        timestamp=timestamp,
        amount=amount,
    )


def test_trader_whose_last_action_is_sell_is_omitted() -> None:
    events = [_event("X", "buy", 100, 1000), _event("X", "sell", 40, 2000)]

    assert build_ledger(events) == {}


def test_accumulating_trader_is_included() -> None:
    events = [_event("Y", "buy", 50, 1000), _event("Y", "buy", 30, 2000)]

    assert build_ledger(events) == {
        "Y": Position(current_balance=80.0, last_action=TxType.BUY, last_action_time=2_000_000)
    }


def test_oversell_without_history_clamps_to_zero_and_is_omitted() -> None:
    assert build_ledger([_event("Z", "sell", 100, 1000)]) == {}


def test_oversell_then_buy_starts_from_zero() -> None:
    events = [
        _event("W", "buy", 10, 1000),
        _event("W", "sell", 50, 2000),
        _event("W", "buy", 5, 3000),
    ]

    ledger = build_ledger(events)

    assert ledger["W"].current_balance == 5.0


def test_events_are_ordered_chronologically_across_units() -> None:
    # Milliseconds, seconds and ISO strings interleave once reconciled.
    events = [
        _event("K", "buy", 20, 1739155600000),
        _event("K", "sell", 5, 1739155500),
        _event("K", "buy", 10, "2025-02-10T02:40:00Z"),
    ]

    ledger = build_ledger(events)

    assert ledger["K"].current_balance == 25.0
    assert ledger["K"].last_action_time == 1739155600000


def test_result_is_independent_of_literal_order() -> None:
    events = [
        _event("A", "buy", 10, 100),
        _event("A", "sell", 4, 200),
        _event("A", "buy", 7, 300),
        _event("B", "buy", 3, 150),
        _event("B", "buy", 2, 250),
        _event("C", "buy", 9, 120),
        _event("C", "sell", 1, 400),
    ]
    expected = build_ledger(events)
    shuffled = list(events)
    random.Random(7).shuffle(shuffled)

    assert build_ledger(shuffled) == expected
    assert set(expected) == {"A", "B"}


def test_equal_timestamps_keep_input_order() -> None:
    buy_then_sell = [_event("T", "buy", 10, 500), _event("T", "sell", 3, 500)]
    sell_then_buy = [_event("T", "sell", 3, 500), _event("T", "buy", 10, 500)]

    assert build_ledger(buy_then_sell) == {}
    assert build_ledger(sell_then_buy)["T"].current_balance == 10.0


def test_balances_are_never_negative() -> None:
    rng = random.Random(42)
    events = [
        _event(f"t{rng.randint(0, 4)}", rng.choice(["buy", "sell", "sell"]), rng.uniform(1, 100), rng.randint(1, 10_000))
        for _ in range(300)
    ]

    for position in build_ledger(events).values():
        assert position.current_balance > 0
        assert position.last_action is TxType.BUY


def test_unknown_timestamps_sort_first() -> None:
    events = [_event("U", "buy", 10, 1000), _event("U", "sell", 10, "not a time")]

    ledger = build_ledger(events)

    # The sell is ordered first, clamps at zero, and the later buy stands.
    assert ledger["U"] == Position(current_balance=10.0, last_action=TxType.BUY, last_action_time=1_000_000)


def test_events_without_amount_are_skipped_without_aborting() -> None:
    events = [
        _event("M", None, 5, 500),
        _event("M", "buy", 10, 1000),
        _event("M", "sell", None, 2000),
        _event("M", "sell", 0, 4000),
        _event("M", None, None, 5000),
    ]

    assert build_ledger(events) == {
        "M": Position(current_balance=10.0, last_action=TxType.BUY, last_action_time=1_000_000)
    }


def test_trailing_unrecognized_type_counts_as_last_action() -> None:
    events = [
        _event("X", "buy", 10, 1739155000),
        {"label": "X", "txType": "swap", "position": 10, "timestamp": 1739155100},
    ]

    assert build_ledger(events) == {}


def test_unrecognized_type_leaves_balance_untouched() -> None:
    events = [
        _event("X", "buy", 10, 1000),
        {"label": "X", "txType": "swap", "position": 4, "timestamp": 2000},
        _event("X", "buy", 5, 3000),
    ]

    assert build_ledger(events)["X"].current_balance == 15.0


def test_identity_falls_back_to_address_and_drops_anonymous_events() -> None:
    events = [
        _event(None, "buy", 10, 1000, address="7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"),
        _event("   ", "buy", 10, 1000, address="  "),
        _event(None, "buy", 10, 1000),
    ]

    groups = group_by_trader(events)

    assert list(groups) == ["Trader 7xKX"]
    assert list(build_ledger(events)) == ["Trader 7xKX"]


def test_raw_mappings_are_accepted() -> None:
    events = [
        {"label": "Ansem", "txType": "buy", "position": 100, "timestamp": 1739155000},
        {"label": "Ansem", "txType": "buy", "position": "25", "timestamp": 1739155100},
    ]

    assert build_ledger(events)["Ansem"].current_balance == 125.0


@pytest.mark.parametrize("events", [None, "events", {"label": "x"}, 5, (e for e in [])])
def test_non_sequence_input_is_rejected(events) -> None:
    with pytest.raises(TypeError):
        build_ledger(events)


def test_non_event_items_are_rejected() -> None:
    with pytest.raises(TypeError):
        build_ledger([_event("A", "buy", 1, 1), 42])


def test_recent_activity_lists_latest_trade_per_trader() -> None:
    events = [
        _event("A", "buy", 10, 100),
        _event("B", "sell", 4, 300),
        _event("A", "sell", 2, 400),
        _event("C", "buy", 1, 200),
        _event(None, "buy", 99, 999),
    ]

    activity = recent_activity(events, limit=2)

    assert [(item.label, item.tx_type, item.amount) for item in activity] == [
        ("A", TxType.SELL, 2),
        ("B", TxType.SELL, 4),
    ]
    assert activity[0].timestamp == 400_000


def test_recent_activity_skips_traders_whose_latest_trade_has_no_amount() -> None:
    events = [_event("A", "buy", 10, 100), _event("A", "buy", None, 200), _event("B", "buy", 1, 50)]

    assert [item.label for item in recent_activity(events, limit=5)] == ["B"]


def test_find_matching_trader_searches_lists_in_order() -> None:
    kols = [_event("KOL", "sell", 5, 1739155552)]
    trades = [_event("Other", "buy", 1, 1739155552000)]

    match = find_matching_trader(1739155552400, kols, trades)

    assert match is not None
    assert match.label == "KOL"
    assert match.tx_type is TxType.SELL
    assert find_matching_trader(1739155552400, [], trades).label == "Other"


def test_find_matching_trader_respects_tolerance() -> None:
    events = [_event("A", "buy", 1, 1739155552000)]

    assert find_matching_trader(1739155553000, events) is None
    assert find_matching_trader(1739155553000, events, tolerance_ms=1001) is not None
    assert find_matching_trader(None, events) is None


def test_ledger_output_is_serializable() -> None:
    ledger = build_ledger([_event("Y", "buy", 50, 1000)])

    assert {trader: position.to_payload() for trader, position in ledger.items()} == {
        "Y": {"currentBalance": 50.0, "lastAction": "buy", "lastActionTime": 1_000_000}
    }
