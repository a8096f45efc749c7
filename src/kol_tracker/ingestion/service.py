"""Host-side processing: normalize payloads and derive trader views per token."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..analytics.ledger import build_ledger, find_matching_trader, recent_activity
from ..config.settings import AppConfig, get_app_config
from ..datalake.schemas import Position, TokenSnapshot, TraderActivity
from ..monitoring.logger import correlation_scope, get_logger
from ..monitoring.metrics import METRICS
from ..utils.traders import resolve_trader_identity
from .feed_client import FeedClient
from .normalizer import normalize


@dataclass(slots=True)
class TokenView:
    """Normalized snapshot together with the positions derived from its events."""

    snapshot: TokenSnapshot
    positions: Dict[str, Position] = field(default_factory=dict)
    recent: List[TraderActivity] = field(default_factory=list)
    last_trade: Optional[TraderActivity] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "token": self.snapshot.to_payload(),
            "positions": {trader: position.to_payload() for trader, position in self.positions.items()},
            "recentActivity": [activity.to_payload() for activity in self.recent],
            "lastTrade": self.last_trade.to_payload() if self.last_trade is not None else None,
        }


class TokenFeedService:
    """Runs the normalizer and the ledger for each incoming token payload."""

    def __init__(
        self,
        app_config: Optional[AppConfig] = None,
        feed_client: Optional[FeedClient] = None,
    ) -> None:
        self._app_config = app_config or get_app_config()
        self._feed_client = feed_client
        self._logger = get_logger(__name__)

    @property
    def feed_client(self) -> FeedClient:
        if self._feed_client is None:
            self._feed_client = FeedClient(self._app_config.data_sources)
        return self._feed_client

    def process(self, payload: Mapping[str, Any]) -> TokenView:
        started = time.perf_counter()
        snapshot = normalize(payload)
        with correlation_scope(snapshot.mint or None):
            # Each token's events are ledgered on their own, never merged across tokens.
            positions = build_ledger(snapshot.events)
            recent = recent_activity(
                snapshot.events,
                limit=self._app_config.ledger.recent_activity_limit,
            )
            # Attribute the token's most recent trade to a known trader when one lines up.
            last_trade = find_matching_trader(
                snapshot.last_tx_time,
                snapshot.events,
                tolerance_ms=self._app_config.ledger.match_tolerance_ms,
            )
            unidentified = sum(
                1
                for event in snapshot.events
                if resolve_trader_identity(event.trader_label, event.trader_address) is None
            )
            METRICS.increment("service.payloads_processed")
            METRICS.increment("service.positions_emitted", len(positions))
            if unidentified:
                METRICS.increment("service.events_unidentified", unidentified)
            METRICS.observe("service.process_seconds", time.perf_counter() - started)
            self._logger.debug(
                "Processed token %s: %d events, %d open positions",
                snapshot.symbol or snapshot.mint or "?",
                len(snapshot.events),
                len(positions),
            )
        return TokenView(snapshot=snapshot, positions=positions, recent=recent, last_trade=last_trade)

    def process_many(self, payloads: Sequence[Mapping[str, Any]]) -> List[TokenView]:
        """Process independent payloads concurrently; output keeps input order."""

        if not payloads:
            return []
        max_workers = min(self._app_config.service.max_workers, len(payloads))
        if max_workers <= 1:
            return [self.process(payload) for payload in payloads]
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(self.process, payloads))

    def refresh(self, limit: int = 20) -> List[TokenView]:
        payloads = self.feed_client.fetch_payloads(limit)
        views = self.process_many(payloads)
        METRICS.gauge("service.tokens_tracked", len(views))
        self._logger.info("Refreshed %d tokens from feed", len(views))
        return views


__all__ = ["TokenFeedService", "TokenView"]
