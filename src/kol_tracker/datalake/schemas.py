"""Canonical data models shared by the normalizer, the ledger and the host layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TxType(str, Enum):
    """Direction of an observed trade."""

    BUY = "buy"
    SELL = "sell"

    @classmethod
    def parse(cls, value: Any) -> Optional["TxType"]:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return None
        return None


def _tx_value(tx_type: Optional[TxType]) -> Optional[str]:
    return tx_type.value if tx_type is not None else None


@dataclass(slots=True)
class TimeframeStats:
    """Aggregated activity for one rolling interval."""

    volume: Optional[float] = None
    swap_count: Optional[int] = None
    price_change_percent: Optional[float] = None
    buys: Optional[int] = None
    sells: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "volume": self.volume,
            "swapCount": self.swap_count,
            "priceChangePercent": self.price_change_percent,
            "buys": self.buys,
            "sells": self.sells,
        }


@dataclass(slots=True)
class TopTrader:
    rank: Optional[int] = None
    amount: Optional[float] = None
    timestamp: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        return {"rank": self.rank, "amount": self.amount, "timestamp": self.timestamp}


@dataclass(slots=True)
class RawEvent:
    """One observed trade as reported upstream.

    ``timestamp`` is passed through untouched; its unit is only reconciled
    when the ledger orders events.
    """

    trader_label: Optional[str] = None
    trader_address: Optional[str] = None
    tx_type: Optional[TxType] = None
    timestamp: Any = None
    amount: Optional[float] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "traderLabel": self.trader_label,
            "traderAddress": self.trader_address,
            "txType": _tx_value(self.tx_type),
            "timestamp": self.timestamp,
            "amount": self.amount,
        }


@dataclass(slots=True)
class TokenSnapshot:
    """Canonical token record. ``None`` marks an unknown value."""

    mint: str
    symbol: str
    name: Optional[str] = None
    logo: Optional[str] = None
    price: Optional[float] = None
    market_cap: Optional[float] = None
    volume_24h: Optional[float] = None
    price_change_24h: Optional[float] = None
    swaps_24h: Optional[int] = None
    transactions_24h: Optional[int] = None
    buys: Optional[int] = None
    sells: Optional[int] = None
    boost_count: Optional[int] = None
    kol_count: Optional[int] = None
    twitter: Optional[str] = None
    telegram: Optional[str] = None
    website: Optional[str] = None
    timeframes: Dict[str, TimeframeStats] = field(default_factory=dict)
    last_trader: Optional[str] = None
    last_tx_type: Optional[TxType] = None
    last_tx_time: Optional[int] = None
    timestamp: Optional[int] = None
    top_trader: Optional[TopTrader] = None
    quick_swap_enabled: Optional[bool] = None
    events: List[RawEvent] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        """Canonical JSON shape; normalizing it yields an equal snapshot."""

        return {
            "mint": self.mint,
            "symbol": self.symbol,
            "name": self.name,
            "logo": self.logo,
            "price": self.price,
            "marketCap": self.market_cap,
            "volume24h": self.volume_24h,
            "priceChange24h": self.price_change_24h,
            "swaps24h": self.swaps_24h,
            "transactions24h": self.transactions_24h,
            "buys": self.buys,
            "sells": self.sells,
            "boostCount": self.boost_count,
            "kolCount": self.kol_count,
            "twitter": self.twitter,
            "telegram": self.telegram,
            "website": self.website,
            "timeframes": {label: stats.to_payload() for label, stats in self.timeframes.items()},
            "lastTrader": self.last_trader,
            "lastTxType": _tx_value(self.last_tx_type),
            "lastTxTime": self.last_tx_time,
            "timestamp": self.timestamp,
            "topTrader": self.top_trader.to_payload() if self.top_trader is not None else None,
            "quickSwapEnabled": self.quick_swap_enabled,
            "events": [event.to_payload() for event in self.events],
        }


@dataclass(slots=True)
class Position:
    """A trader's tracked holding derived from their event history."""

    current_balance: float
    last_action: TxType
    last_action_time: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "currentBalance": self.current_balance,
            "lastAction": self.last_action.value,
            "lastActionTime": self.last_action_time,
        }


@dataclass(slots=True)
class TraderActivity:
    """Latest observed trade for a trader, for activity feeds."""

    label: str
    tx_type: TxType
    amount: Optional[float] = None
    timestamp: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "txType": self.tx_type.value,
            "amount": self.amount,
            "timestamp": self.timestamp,
        }


__all__ = [
    "Position",
    "RawEvent",
    "TimeframeStats",
    "TokenSnapshot",
    "TopTrader",
    "TraderActivity",
    "TxType",
]
