"""CLI entrypoint for link checking runs."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import Any

from .backends import create_backend
from .config import RunConfig, load_config_payload
from .constants import SUPPORTED_BACKENDS
from .extractor import HtmlExtractor
from .fetcher import Fetcher
from .orchestrator import Orchestrator
from .report import build_report, print_report, save_report
from .state import StateStore
from .url import URIResolver


_BOOTSTRAP_FLAGS = ("reset", "resume", "recheck")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="linkcrawl",
        description="Crawl a site from seed URLs and report broken and invalid links.",
    )

    parser.add_argument("seeds", nargs="*", help="Start URLs; their hosts are treated as local.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML run config. Command line flags override it.",
    )

    bootstrap = parser.add_mutually_exclusive_group()
    bootstrap.add_argument(
        "--reset",
        action="store_true",
        help="Discard all persisted state and start from the seeds.",
    )
    bootstrap.add_argument(
        "--resume",
        action="store_true",
        help="Continue from persisted state (default).",
    )
    bootstrap.add_argument(
        "--recheck",
        action="store_true",
        help="Re-fetch pages that referred to broken or invalid links.",
    )
    parser.add_argument("--no-recheck", action="store_true", help="Suppress --recheck.")
    parser.add_argument(
        "--recheck-only-errors",
        action="store_true",
        help="With --recheck, re-fetch the failing URLs instead of their referrers.",
    )
    parser.add_argument(
        "--follow-from-local",
        action="store_true",
        help="Also check external links found on local pages.",
    )
    parser.add_argument(
        "--no-follow",
        action="store_true",
        help="Only check the seeds; do not extract links.",
    )

    parser.add_argument("--threads", type=int, default=None)
    parser.add_argument("--delay-ms", type=int, default=None)
    parser.add_argument("--timeout-seconds", type=float, default=None)

    parser.add_argument(
        "--include",
        action="append",
        default=[],
        help="Regex on the URL path; when given, only matching links are followed. "
        "Repeatable, comma-separated values allowed.",
    )
    parser.add_argument(
        "--ignore",
        action="append",
        default=[],
        help="Regex on the full URL; matching links are not followed. "
        "Repeatable, comma-separated values allowed.",
    )
    parser.add_argument("--ignore-ssl-errors", action="store_true")
    parser.add_argument("--user-agent", type=str, default=None)

    parser.add_argument("--backend", choices=list(SUPPORTED_BACKENDS), default=None)
    parser.add_argument("--redis-host", type=str, default=None)
    parser.add_argument("--redis-port", type=int, default=None)
    parser.add_argument("--redis-db", type=int, default=None)
    parser.add_argument("--redis-prefix", type=str, default=None)

    parser.add_argument("--report", action="store_true", help="Print the link report after the run.")
    parser.add_argument(
        "--report-all",
        action="store_true",
        help="Include successful URLs in the report (implies --report).",
    )
    parser.add_argument("--report-file", type=Path, default=None, help="Also write the report as JSON.")
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")

    return parser.parse_args(argv)


def _split_patterns(values: list[str]) -> list[str]:
    patterns: list[str] = []
    for value in values:
        patterns.extend(item.strip() for item in value.split(",") if item.strip())
    return patterns


def build_config(args: argparse.Namespace) -> RunConfig:
    payload: dict[str, Any] = {}
    if args.config is not None:
        payload = load_config_payload(args.config)

    if args.seeds:
        payload["seeds"] = list(args.seeds)

    if any(getattr(args, name) for name in _BOOTSTRAP_FLAGS):
        for name in _BOOTSTRAP_FLAGS:
            payload[name] = bool(getattr(args, name))

    for name in (
        "no_recheck",
        "recheck_only_errors",
        "follow_from_local",
        "no_follow",
        "ignore_ssl_errors",
        "report",
        "report_all",
    ):
        if getattr(args, name):
            payload[name] = True

    if args.threads is not None:
        payload["threads"] = args.threads
    if args.delay_ms is not None:
        payload["delay_ms"] = args.delay_ms
    if args.timeout_seconds is not None:
        payload["timeout_seconds"] = args.timeout_seconds

    if args.include:
        payload["include_patterns"] = _split_patterns(args.include)
    if args.ignore:
        payload["ignore_patterns"] = _split_patterns(args.ignore)

    if args.user_agent is not None:
        payload["user_agent"] = args.user_agent
    if args.backend is not None:
        payload["backend"] = args.backend
    if args.redis_host is not None:
        payload["redis_host"] = args.redis_host
    if args.redis_port is not None:
        payload["redis_port"] = args.redis_port
    if args.redis_db is not None:
        payload["redis_db"] = args.redis_db
    if args.redis_prefix is not None:
        payload["redis_prefix"] = args.redis_prefix

    return RunConfig.from_dict(payload)


def setup_logging(log_file: Path | None, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Connection pool chatter drowns out crawl progress at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, verbose=args.verbose)

    try:
        config = build_config(args)
    except Exception as exc:
        logging.error("Failed to build config: %s", exc)
        return 2

    if not config.seeds:
        logging.warning("No seeds given; no host is local, so only --include matches are followed")

    logging.info(
        "Starting link check: mode=%s, backend=%s, seeds=%d, threads=%d",
        config.bootstrap_mode.value,
        config.backend,
        len(config.seeds),
        config.threads,
    )

    try:
        with create_backend(config) as backend:
            state = StateStore(backend, config)
            fetcher = Fetcher(
                HtmlExtractor(),
                URIResolver(),
                config.extraction_policy(),
                timeout_seconds=config.timeout_seconds,
            )
            Orchestrator(config, state, fetcher).run()

            if config.report or config.report_all or args.report_file is not None:
                report = build_report(state, include_all=config.report_all)
                if config.report or config.report_all:
                    print_report(report)
                if args.report_file is not None:
                    save_report(report, args.report_file)
                    logging.info("Report written to %s", args.report_file)
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 130
    except Exception:
        logging.exception("Link check failed")
        return 1

    return 0


__all__ = ["build_config", "main", "parse_args", "setup_logging"]
