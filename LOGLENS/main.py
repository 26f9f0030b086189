#!/usr/bin/env python3
"""
LOGLENS - Main Entry Point
Run the terminal log viewer over files and/or piped standard input
"""
import argparse
import logging
import os
import sys
from typing import List, Optional

from LOGLENS.config import RuleConfig, RuleManager, ViewerSettings, load_rule_config
from LOGLENS.ingest import FileSource, FollowedFileSource, IngestionController, StreamSource
from LOGLENS.log_analysis.alert import setup_logging
from LOGLENS.rules.compiler import RuleError
from LOGLENS.store.log_store import LogStore
from LOGLENS.UI import run_app

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="loglens",
        description="Interactive terminal viewer for log files and streams",
    )
    parser.add_argument("files", nargs="*", help="log files to open")
    parser.add_argument("-r", "--rules", help="JSON file with highlight, event and filter rules")
    parser.add_argument("-c", "--capacity", type=int, help="keep at most this many lines in memory")
    parser.add_argument("-s", "--save", help="append piped input to this file")
    parser.add_argument("-f", "--follow", action="store_true", help="keep reading files as they grow")
    parser.add_argument("-b", "--buckets", type=int, help="number of timeline buckets")
    return parser


def detach_stdin() -> Optional[StreamSource]:
    """
    Take over piped standard input as a stream source

    The pipe is moved to a new descriptor and the controlling terminal is
    reopened on descriptor 0 so the UI can still read the keyboard.

    Returns:
        StreamSource over the pipe, or None when stdin is a terminal
    """
    if sys.stdin is None or sys.stdin.isatty():
        return None

    pipe_fd = os.dup(sys.stdin.fileno())
    tty_fd = os.open("/dev/tty", os.O_RDONLY)
    os.dup2(tty_fd, 0)
    os.close(tty_fd)
    return StreamSource(os.fdopen(pipe_fd, "rb"), name="<stdin>")


def load_rules(path: Optional[str]) -> RuleConfig:
    if not path:
        return RuleConfig()
    return load_rule_config(path)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ViewerSettings.from_env(
            capacity=args.capacity,
            save_path=args.save,
            follow=True if args.follow else None,
            timeline_buckets=args.buckets,
        )
    except ValueError as e:
        parser.error(str(e))

    log_path = setup_logging(settings.log_dir)

    try:
        rule_config = load_rules(args.rules)
        ruleset = rule_config.compile()
    except RuleError as e:
        print(f"Invalid rule: {e}", file=sys.stderr)
        return 2
    except (OSError, ValueError) as e:
        print(f"Could not load rules from {args.rules}: {e}", file=sys.stderr)
        return 2

    store = LogStore(ruleset, capacity=settings.capacity)
    rules = RuleManager(store, rule_config, path=args.rules)
    controller = IngestionController(store, save_path=settings.save_path)

    source_class = FollowedFileSource if settings.follow else FileSource
    for path in args.files:
        controller.add_source(source_class(path, chunk_size=settings.chunk_size))

    try:
        stream = detach_stdin()
    except OSError as e:
        print(f"Cannot read piped input without a terminal: {e}", file=sys.stderr)
        return 1
    if stream is not None:
        stream.chunk_size = settings.chunk_size
        controller.add_source(stream)

    if not controller.sources:
        parser.error("no input: pass log files or pipe data on stdin")

    logger.info(f"Starting LOGLENS with {len(controller.sources)} source(s), logging to {log_path}")

    try:
        run_app(
            store,
            controller,
            rules=rules,
            refresh_interval=settings.refresh_interval,
            timeline_buckets=settings.timeline_buckets,
        )
    except KeyboardInterrupt:
        print("\nLOGLENS terminated by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
