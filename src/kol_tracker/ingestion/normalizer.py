"""Normalize heterogeneous token payloads into :class:`TokenSnapshot` records.

Every canonical field is resolved through an ordered list of accessors in
``FIELD_RESOLVERS``; the first accessor that yields a usable value wins. The
canonical key is always probed first so that normalizing an already canonical
payload (``TokenSnapshot.to_payload()``) reproduces the same snapshot as long as
its epoch values are past the millisecond threshold. A snapshot passed in
directly comes back as an equal copy.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..datalake.schemas import RawEvent, TimeframeStats, TokenSnapshot, TopTrader, TxType
from ..utils.constants import TELEGRAM_BASE_URL, TIMEFRAME_INTERVALS, TWITTER_BASE_URL
from ..utils.fields import (
    Accessor,
    first_present,
    path,
    resolve_path,
    to_count,
    to_flag,
    to_number,
    to_text,
)
from ..utils.timestamps import normalize_timestamp

_URL_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


def _event_list(value: Any) -> Optional[List[Mapping[str, Any]]]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        # An empty list defers to the next candidate key.
        return [item for item in value if isinstance(item, Mapping)] or None
    return None


def _mapping(value: Any) -> Optional[Mapping[str, Any]]:
    return value if isinstance(value, Mapping) else None


def _derived_market_cap(payload: Any) -> Optional[float]:
    supply = to_number(resolve_path(payload, "total_supply"))
    price = first_present(payload, FIELD_RESOLVERS["price"])
    if supply is None or price is None:
        return None
    return supply * price


def _social_url(handle: Optional[str], base_url: str) -> Optional[str]:
    if handle is None:
        return None
    if _URL_SCHEME_RE.match(handle):
        return handle
    cleaned = handle.lstrip("@").strip()
    if not cleaned:
        return None
    return f"{base_url}{cleaned}"


def _social_paths(name: str) -> List[Accessor[str]]:
    return [
        path(name, to_text),
        path(f"socials.{name}", to_text),
        path(f"stats.token.{name}", to_text),
        path(f"links.{name}", to_text),
    ]


FIELD_RESOLVERS: Dict[str, Sequence[Accessor[Any]]] = {
    "name": (path("name", to_text), path("stats.token.name", to_text)),
    "symbol": (path("symbol", to_text), path("stats.token.symbol", to_text)),
    "mint": (path("mint", to_text), path("contract_address", to_text), path("address", to_text)),
    "logo": (
        path("logo", to_text),
        path("image", to_text),
        path("image_uri", to_text),
        path("stats.token.image", to_text),
    ),
    "price": (path("price", to_number), path("priceUsd", to_number), path("price_usd", to_number)),
    "volume_24h": (
        path("volume24h", to_number),
        path("stats.24h.volume.total", to_number),
        path("stats_24h.volume.total", to_number),
    ),
    "price_change_24h": (
        path("priceChange24h", to_number),
        path("stats.24h.priceChangePercentage", to_number),
        path("price_change_percent", to_number),
    ),
    "swaps_24h": (
        path("swaps24h", to_count),
        path("swaps_24h", to_count),
        path("stats.24h.transactions", to_count),
        path("stats_24h.transactions", to_count),
    ),
    "transactions_24h": (
        path("transactions24h", to_count),
        path("total_txns", to_count),
        path("txns", to_count),
        path("transactions", to_count),
        path("stats.24h.transactions", to_count),
    ),
    "buys": (path("buys", to_count),),
    "sells": (path("sells", to_count),),
    "boost_count": (path("boostCount", to_count), path("boost_count", to_count)),
    "kol_count": (path("kolCount", to_count), path("kol_count", to_count)),
    "twitter": _social_paths("twitter"),
    "telegram": _social_paths("telegram"),
    "website": (
        path("website", to_text),
        path("socials.website", to_text),
        path("stats.token.website", to_text),
    ),
    "last_trader": (path("lastTrader", to_text), path("last_trader", to_text)),
    "last_tx_type": (path("lastTxType", TxType.parse), path("last_tx_type", TxType.parse)),
    "last_tx_time": (
        path("lastTxTime", normalize_timestamp),
        path("last_tx_time", normalize_timestamp),
    ),
    "timestamp": (
        path("timestamp", normalize_timestamp),
        path("time", normalize_timestamp),
        path("king_of_the_hill_timestamp", normalize_timestamp),
        path("last_update", normalize_timestamp),
        path("lastTxTime", normalize_timestamp),
        path("last_tx_time", normalize_timestamp),
    ),
    "quick_swap_enabled": (path("quickSwapEnabled", to_flag), path("quick_swap_enabled", to_flag)),
    "top_trader": (path("topTrader", _mapping), path("top_trader", _mapping)),
    "events": (
        path("events", _event_list),
        path("kolTracker", _event_list),
        path("kol_tracker", _event_list),
        path("trades", _event_list),
    ),
}

# Registered after the table exists because the derivation reads the price resolvers.
FIELD_RESOLVERS["market_cap"] = (
    path("marketCap", to_number),
    path("market_cap", to_number),
    path("usd_market_cap", to_number),
    _derived_market_cap,
)

TIMEFRAME_BUCKET_PATHS = ("timeframes.{interval}", "stats.{interval}", "{interval}", "stats_{interval}")

TIMEFRAME_RESOLVERS: Dict[str, Sequence[Accessor[Any]]] = {
    "volume": (path("volume", to_number), path("volume.total", to_number)),
    "swap_count": (path("swapCount", to_count), path("transactions", to_count), path("swaps", to_count)),
    "price_change_percent": (
        path("priceChangePercent", to_number),
        path("priceChangePercentage", to_number),
        path("price_change_percent", to_number),
    ),
    "buys": (path("buys", to_count),),
    "sells": (path("sells", to_count),),
}

_EVENT_TYPE_KEYS = ("txType", "tx_type", "type", "side")

EVENT_RESOLVERS: Dict[str, Sequence[Accessor[Any]]] = {
    "trader_label": (
        path("traderLabel", to_text),
        path("label", to_text),
        path("trader.label", to_text),
        path("trader", to_text),
    ),
    "trader_address": (
        path("traderAddress", to_text),
        path("address", to_text),
        path("trader.address", to_text),
        path("wallet", to_text),
    ),
    "tx_type": tuple(path(key, TxType.parse) for key in _EVENT_TYPE_KEYS),
    "amount": (path("amount", to_number), path("position", to_number), path("tokenAmount", to_number)),
}

_EVENT_TIMESTAMP_KEYS = ("timestamp", "time", "blockTime")


def _resolve(payload: Any, name: str) -> Any:
    return first_present(payload, FIELD_RESOLVERS[name])


def _event_tx_type(raw: Mapping[str, Any]) -> Optional[TxType]:
    resolved = first_present(raw, EVENT_RESOLVERS["tx_type"])
    if resolved is not None:
        return resolved
    if any(key in raw for key in _EVENT_TYPE_KEYS):
        # Present but unrecognized: leave the type unknown.
        return None
    return TxType.BUY


def parse_event(raw: Mapping[str, Any]) -> RawEvent:
    """Convert one upstream trader activity entry into a :class:`RawEvent`."""

    amount = first_present(raw, EVENT_RESOLVERS["amount"])
    timestamp = None
    for key in _EVENT_TIMESTAMP_KEYS:
        if raw.get(key) is not None:
            timestamp = raw[key]
            break
    return RawEvent(
        trader_label=first_present(raw, EVENT_RESOLVERS["trader_label"]),
        trader_address=first_present(raw, EVENT_RESOLVERS["trader_address"]),
        tx_type=_event_tx_type(raw),
        timestamp=timestamp,
        amount=abs(amount) if amount is not None else None,
    )


def _parse_timeframes(payload: Any) -> Dict[str, TimeframeStats]:
    timeframes: Dict[str, TimeframeStats] = {}
    for interval in TIMEFRAME_INTERVALS:
        bucket = first_present(
            payload,
            [path(template.format(interval=interval), _mapping) for template in TIMEFRAME_BUCKET_PATHS],
        )
        if bucket is None:
            continue
        timeframes[interval] = TimeframeStats(
            **{name: first_present(bucket, accessors) for name, accessors in TIMEFRAME_RESOLVERS.items()}
        )
    return timeframes


def _parse_top_trader(raw: Optional[Mapping[str, Any]]) -> Optional[TopTrader]:
    if raw is None:
        return None
    return TopTrader(
        rank=to_count(raw.get("rank")),
        amount=to_number(raw.get("amount")),
        timestamp=normalize_timestamp(raw.get("timestamp")),
    )


def _copy_snapshot(snapshot: TokenSnapshot) -> TokenSnapshot:
    return replace(
        snapshot,
        timeframes={label: replace(stats) for label, stats in snapshot.timeframes.items()},
        top_trader=replace(snapshot.top_trader) if snapshot.top_trader is not None else None,
        events=[replace(event) for event in snapshot.events],
    )


def normalize(payload: Any) -> TokenSnapshot:
    """Normalize ``payload`` into a :class:`TokenSnapshot`.

    Missing or malformed fields resolve to ``None`` one at a time; the call
    itself only fails when ``payload`` is not a mapping (or snapshot).
    """

    if isinstance(payload, TokenSnapshot):
        # Already canonical; re-resolving would re-read millisecond values below
        # the threshold as seconds.
        return _copy_snapshot(payload)
    if not isinstance(payload, Mapping):
        raise TypeError(f"token payload must be a mapping, got {type(payload).__name__}")

    raw_events = _resolve(payload, "events") or []
    return TokenSnapshot(
        mint=_resolve(payload, "mint") or "",
        symbol=_resolve(payload, "symbol") or "",
        name=_resolve(payload, "name"),
        logo=_resolve(payload, "logo"),
        price=_resolve(payload, "price"),
        market_cap=_resolve(payload, "market_cap"),
        volume_24h=_resolve(payload, "volume_24h"),
        price_change_24h=_resolve(payload, "price_change_24h"),
        swaps_24h=_resolve(payload, "swaps_24h"),
        transactions_24h=_resolve(payload, "transactions_24h"),
        buys=_resolve(payload, "buys"),
        sells=_resolve(payload, "sells"),
        boost_count=_resolve(payload, "boost_count"),
        kol_count=_resolve(payload, "kol_count"),
        twitter=_social_url(_resolve(payload, "twitter"), TWITTER_BASE_URL),
        telegram=_social_url(_resolve(payload, "telegram"), TELEGRAM_BASE_URL),
        website=_resolve(payload, "website"),
        timeframes=_parse_timeframes(payload),
        last_trader=_resolve(payload, "last_trader"),
        last_tx_type=_resolve(payload, "last_tx_type"),
        last_tx_time=_resolve(payload, "last_tx_time"),
        timestamp=_resolve(payload, "timestamp"),
        top_trader=_parse_top_trader(_resolve(payload, "top_trader")),
        quick_swap_enabled=_resolve(payload, "quick_swap_enabled"),
        events=[parse_event(raw) for raw in raw_events],
    )


__all__ = [
    "EVENT_RESOLVERS",
    "FIELD_RESOLVERS",
    "TIMEFRAME_RESOLVERS",
    "normalize",
    "parse_event",
]
