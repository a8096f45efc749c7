"""Shared constants for token record normalization."""

# Numeric timestamps below this are epoch seconds, at or above it epoch
# milliseconds. 1e12 ms is 2001-09-09.
MILLISECOND_THRESHOLD = 1.0e12

# Rolling stat intervals reported by upstream feeds, shortest first.
TIMEFRAME_INTERVALS: tuple[str, ...] = ("1m", "5m", "15m", "30m", "1h", "2h", "3h", "4h", "24h")

UNKNOWN_TRADER_LABEL = "Unknown"
TRADER_LABEL_PREFIX = "Trader"
ADDRESS_PREFIX_LENGTH = 4

TWITTER_BASE_URL = "https://twitter.com/"
TELEGRAM_BASE_URL = "https://t.me/"

__all__ = [
    "ADDRESS_PREFIX_LENGTH",
    "MILLISECOND_THRESHOLD",
    "TELEGRAM_BASE_URL",
    "TIMEFRAME_INTERVALS",
    "TRADER_LABEL_PREFIX",
    "TWITTER_BASE_URL",
    "UNKNOWN_TRADER_LABEL",
]
