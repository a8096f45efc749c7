"""Event-sourced trader positions.

Positions are recomputed from the complete event list on every call; nothing
is carried between calls, so the output depends on the input list alone.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..datalake.schemas import Position, RawEvent, TraderActivity, TxType
from ..ingestion.normalizer import parse_event
from ..monitoring.logger import get_logger
from ..utils.timestamps import normalize_timestamp, timestamp_sort_key
from ..utils.traders import resolve_trader_identity

EventInput = Union[RawEvent, Mapping[str, Any]]

logger = get_logger(__name__)


@dataclass(slots=True)
class _Fold:
    balance: float = 0.0
    last_action: Optional[TxType] = None
    last_action_time: Optional[int] = None


def _require_sequence(events: Any) -> Sequence[Any]:
    if isinstance(events, (str, bytes, Mapping)) or not isinstance(events, Sequence):
        raise TypeError(f"events must be a sequence, got {type(events).__name__}")
    return events


def _coerce_events(events: Any) -> List[RawEvent]:
    coerced: List[RawEvent] = []
    for event in _require_sequence(events):
        if isinstance(event, RawEvent):
            coerced.append(event)
        elif isinstance(event, Mapping):
            coerced.append(parse_event(event))
        else:
            raise TypeError(f"event must be a RawEvent or mapping, got {type(event).__name__}")
    return coerced


def _has_amount(event: RawEvent) -> bool:
    return event.amount is not None and event.amount > 0


def _chronological(events: Iterable[RawEvent]) -> List[RawEvent]:
    # sorted() is stable, so equal timestamps keep their input order.
    return sorted(events, key=lambda event: timestamp_sort_key(event.timestamp))


def _fold(events: Iterable[RawEvent]) -> _Fold:
    state = _Fold()
    for event in events:
        if not _has_amount(event):
            continue
        amount = float(event.amount)
        if event.tx_type is TxType.BUY:
            state.balance += amount
        elif event.tx_type is TxType.SELL:
            state.balance = max(0.0, state.balance - amount)
        # Unrecognized types move no balance but still count as the last action.
        state.last_action = event.tx_type
        state.last_action_time = normalize_timestamp(event.timestamp)
    return state


def group_by_trader(events: Sequence[EventInput]) -> Dict[str, List[RawEvent]]:
    """Group events by resolved trader identity, dropping unidentifiable ones."""

    groups: Dict[str, List[RawEvent]] = defaultdict(list)
    dropped = 0
    for event in _coerce_events(events):
        identity = resolve_trader_identity(event.trader_label, event.trader_address)
        if identity is None:
            dropped += 1
            continue
        groups[identity].append(event)
    if dropped:
        logger.debug("Dropped %d events without trader identity", dropped)
    return dict(groups)


def build_ledger(events: Sequence[EventInput]) -> Dict[str, Position]:
    """Return current positions keyed by trader identity.

    A trader is included only while the tracked balance is positive and the
    chronologically last trade was a buy. Sells beyond the tracked balance
    clamp it to zero.
    """

    ledger: Dict[str, Position] = {}
    for identity, trader_events in group_by_trader(events).items():
        state = _fold(_chronological(trader_events))
        if state.balance > 0 and state.last_action is TxType.BUY:
            ledger[identity] = Position(
                current_balance=state.balance,
                last_action=state.last_action,
                last_action_time=state.last_action_time,
            )
    return ledger


def recent_activity(events: Sequence[EventInput], limit: int = 2) -> List[TraderActivity]:
    """Latest trade per trader, newest first, limited to ``limit`` traders."""

    indexed: List[Tuple[int, RawEvent]] = [
        (index, event)
        for index, event in enumerate(_coerce_events(events))
        if resolve_trader_identity(event.trader_label, event.trader_address) is not None
    ]
    # Newest first; among equal timestamps the later input entry wins.
    indexed.sort(key=lambda item: (timestamp_sort_key(item[1].timestamp), item[0]), reverse=True)

    latest: Dict[str, RawEvent] = {}
    for _, event in indexed:
        label = resolve_trader_identity(event.trader_label, event.trader_address)
        if label is not None and label not in latest:
            latest[label] = event

    activity: List[TraderActivity] = []
    for label, event in latest.items():
        if event.amount is None or event.amount <= 0:
            continue
        activity.append(
            TraderActivity(
                label=label,
                tx_type=event.tx_type or TxType.BUY,
                amount=event.amount,
                timestamp=normalize_timestamp(event.timestamp),
            )
        )
        if len(activity) >= limit:
            break
    return activity


def find_matching_trader(
    timestamp: Any,
    *event_lists: Sequence[EventInput],
    tolerance_ms: int = 1_000,
) -> Optional[TraderActivity]:
    """Find the first labelled event within ``tolerance_ms`` of ``timestamp``.

    Lists are searched in the order given, so a primary source (such as the
    KOL tracker) takes precedence over later ones.
    """

    target = normalize_timestamp(timestamp)
    if target is None:
        return None
    for events in event_lists:
        for event in _coerce_events(events):
            event_time = normalize_timestamp(event.timestamp)
            if event_time is None or abs(event_time - target) >= tolerance_ms:
                continue
            label = resolve_trader_identity(event.trader_label, event.trader_address)
            if label is None:
                continue
            return TraderActivity(
                label=label,
                tx_type=event.tx_type or TxType.BUY,
                amount=event.amount,
                timestamp=event_time,
            )
    return None


__all__ = ["build_ledger", "find_matching_trader", "group_by_trader", "recent_activity"]
