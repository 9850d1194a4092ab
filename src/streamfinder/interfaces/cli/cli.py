from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Iterable
from dataclasses import asdict
from pathlib import Path
from typing import Any

from streamfinder.domain.entities.candidate import Candidate
from streamfinder.domain.entities.session import SessionSnapshot
from streamfinder.infrastructure.config import AppConfig, load_config
from streamfinder.infrastructure.logging.setup import (
    configure_logging,
    shutdown_logging,
)
from streamfinder.interfaces.composition import lifespan


def _failure_arg(value: str) -> tuple[str, int]:
    """Parse ``SOURCE:EPISODE`` (episode is 1-based)."""
    source, sep, episode = value.rpartition(":")
    if not sep or not source:
        raise argparse.ArgumentTypeError(f"expected SOURCE:EPISODE, got {value!r}")
    try:
        number = int(episode)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid episode number: {episode!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("episode numbers start at 1")
    return source, number


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="streamfinder")
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Search every provider for a title.")
    search.add_argument("title", help="Exact title to search for.")
    search.add_argument(
        "--prefer",
        default=None,
        metavar="SOURCE",
        help="Preferred source key (fast path).",
    )
    search.add_argument(
        "--id",
        dest="title_id",
        default=None,
        help="Known title id within the preferred source.",
    )
    search.add_argument(
        "--fail",
        action="append",
        default=[],
        type=_failure_arg,
        metavar="SOURCE:EPISODE",
        help="Simulate a playback failure after the search (repeatable).",
    )
    search.add_argument(
        "--metrics",
        action="store_true",
        help="Include the metrics snapshot in the output.",
    )

    # Config wiring flags (no business logic)
    search.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    search.add_argument(
        "--dotenv",
        default=None,
        help="Path to .env file.",
    )
    search.add_argument(
        "--api-url",
        default=None,
        help="Override the provider API base URL.",
    )
    search.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    search.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )

    return parser.parse_args(argv)


def _candidate_to_dict(candidate: Candidate | None) -> dict[str, Any] | None:
    return asdict(candidate) if candidate is not None else None


def snapshot_to_dict(snapshot: SessionSnapshot) -> dict[str, Any]:
    """JSON-serializable view of a session snapshot."""
    return {
        "query": snapshot.query,
        "phase": snapshot.phase.value,
        "loading": snapshot.loading,
        "all_sources_loaded": snapshot.all_sources_loaded,
        "error": snapshot.error_message,
        "is_favorited": snapshot.is_favorited,
        "detail": (
            snapshot.detail.source_key if snapshot.detail is not None else None
        ),
        "failed_sources": sorted(snapshot.failed_sources),
        "results": [_candidate_to_dict(c) for c in snapshot.results],
    }


async def _run_search(config: AppConfig, args: argparse.Namespace) -> dict[str, Any]:
    async with lifespan(config) as container:
        orchestrator = container.orchestrator
        await orchestrator.start_search(
            args.title,
            preferred_source=args.prefer,
            known_title_id=args.title_id,
        )

        failovers = []
        for source, episode in args.fail:
            replacement = orchestrator.report_playback_failure(
                source, episode - 1, reason="cli"
            )
            failovers.append(
                {
                    "failed": source,
                    "episode": episode,
                    "next": replacement.source_key if replacement else None,
                }
            )

        output = snapshot_to_dict(orchestrator.snapshot())
        if failovers:
            output["failover"] = failovers
        if args.metrics:
            output["metrics"] = container.metrics.snapshot()
        return output


def start(argv: Iterable[str] | None = None) -> int:
    """
    Process entrypoint.

    Loads config exactly once, runs one search session and prints its
    snapshot as JSON. Returns 1 when the session ended with an error.
    """

    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    config_path = Path(args.config) if args.config else None
    dotenv_path = Path(args.dotenv) if args.dotenv else None

    cli_overrides: dict[str, Any] = {}
    if args.api_url:
        cli_overrides["api_base_url"] = args.api_url
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    config = load_config(
        config_path=config_path,
        dotenv_path=dotenv_path,
        cli_overrides=cli_overrides,
    )

    configure_logging(config)
    try:
        output = asyncio.run(_run_search(config, args))
    finally:
        shutdown_logging()

    json.dump(output, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 1 if output["error"] else 0


if __name__ == "__main__":
    raise SystemExit(start())
