from __future__ import annotations

from kol_tracker.utils.fields import first_present, path, resolve_path, to_count, to_number, to_text
from kol_tracker.utils.traders import resolve_trader_identity, resolve_trader_label


def test_resolve_path_handles_dotted_and_bracket_access() -> None:
    payload = {
        "stats": {"24h": {"volume": {"total": 12.5}}, "1m": {"buys": 3}},
        "events": [{"label": "alpha"}, {"label": "beta"}],
    }

    assert resolve_path(payload, "stats.24h.volume.total") == 12.5
    assert resolve_path(payload, "stats['1m'].buys") == 3
    assert resolve_path(payload, "events[1].label") == "beta"


def test_resolve_path_is_safe_against_missing_levels() -> None:
    payload = {"stats": None, "events": [], "name": "Token"}

    assert resolve_path(payload, "stats.24h.volume") is None
    assert resolve_path(payload, "events[3].label") is None
    assert resolve_path(payload, "name.first") is None
    assert resolve_path(None, "anything") is None
    assert resolve_path(payload, "") is None


def test_resolve_path_prefers_literal_dotted_keys() -> None:
    payload = {"stats.24h": {"volume": 1}, "stats": {"24h": {"volume": 2}}}

    assert resolve_path(payload, "stats.24h") == {"volume": 1}


def test_to_number_keeps_zero_and_rejects_garbage() -> None:
    assert to_number(0) == 0.0
    assert to_number("0") == 0.0
    assert to_number("51196.17") == 51196.17
    assert to_number("abc") is None
    assert to_number("") is None
    assert to_number(True) is None
    assert to_number(float("nan")) is None
    assert to_number({"total": 1}) is None


def test_to_count_requires_integral_values() -> None:
    assert to_count("12") == 12
    assert to_count(4.0) == 4
    assert to_count(4.5) is None


def test_to_text_strips_and_blanks_become_unknown() -> None:
    assert to_text("  PEPE ") == "PEPE"
    assert to_text("   ") is None
    assert to_text(42) is None


def test_first_present_returns_first_usable_value() -> None:
    accessors = [path("marketCap", to_number), path("market_cap", to_number)]

    assert first_present({"marketCap": "n/a", "market_cap": "10"}, accessors) == 10.0
    assert first_present({"marketCap": 0, "market_cap": 10}, accessors) == 0.0
    assert first_present({}, accessors) is None


def test_trader_label_fallbacks() -> None:
    assert resolve_trader_label(" Ansem ", "7xKXabc") == "Ansem"
    assert resolve_trader_label("", "7xKXabc") == "Trader 7xKX"
    assert resolve_trader_label("  ", None) == "Unknown"
    assert resolve_trader_identity(None, "   ") is None
