"""Command line entry point for the KOL tracker."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, TextIO

from .config.settings import get_app_config
from .ingestion.service import TokenFeedService, TokenView
from .monitoring import bootstrap_observability
from .monitoring.logger import get_logger
from .utils.formatting import UNKNOWN_PLACEHOLDER, format_compact
from .utils.serialization import to_serializable
from .utils.traders import resolve_trader_label

logger = get_logger(__name__)

EXIT_BAD_INPUT = 2


def load_payloads(source: Path) -> List[Mapping[str, Any]]:
    """Read one payload or a list of payloads from a JSON file."""

    with source.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if isinstance(data, Mapping):
        return [data]
    if isinstance(data, list):
        return [item for item in data if isinstance(item, Mapping)]
    raise ValueError(f"{source} must contain a JSON object or a list of objects")


def render_table(views: Sequence[TokenView]) -> str:
    lines: List[str] = []
    for view in views:
        token = view.snapshot
        lines.append(
            f"{token.symbol or UNKNOWN_PLACEHOLDER} ({token.mint or UNKNOWN_PLACEHOLDER})"
            f"  mcap {format_compact(token.market_cap)}"
            f"  vol24h {format_compact(token.volume_24h)}"
        )
        if token.last_tx_type is not None:
            last_label = view.last_trade.label if view.last_trade is not None else token.last_trader
            lines.append(f"  last {token.last_tx_type.value} by {resolve_trader_label(last_label, None)}")
        if not view.positions:
            lines.append("  no open KOL positions")
        for trader, position in view.positions.items():
            lines.append(f"  {trader}: +{format_compact(position.current_balance)}")
    return "\n".join(lines)


def render(views: Sequence[TokenView], output_format: str, stream: TextIO) -> None:
    if output_format == "table":
        stream.write(render_table(views) + "\n")
        return
    json.dump(to_serializable(list(views)), stream, indent=2)
    stream.write("\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Normalize token feeds and derive KOL positions")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", type=Path, help="JSON file with one payload or a list of payloads")
    source.add_argument("--fetch", action="store_true", help="Pull payloads from the configured feed")
    parser.add_argument("--limit", type=int, default=20, help="Number of tokens to fetch (default: 20)")
    parser.add_argument("--format", choices=("json", "table"), default="json", dest="output_format")
    parser.add_argument("--log-level", help="Override the configured log level")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = get_app_config()
    if args.log_level:
        config = config.model_copy(
            update={"monitoring": config.monitoring.model_copy(update={"log_level": args.log_level.upper()})}
        )
    bootstrap_observability(config)

    service = TokenFeedService(app_config=config)
    if args.fetch:
        views = service.refresh(limit=args.limit)
    else:
        try:
            payloads = load_payloads(args.input)
        except (OSError, ValueError) as exc:
            logger.error("Unable to read %s: %s", args.input, exc)
            return EXIT_BAD_INPUT
        views = service.process_many(payloads)

    render(views, args.output_format, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
