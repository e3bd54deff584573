#!/usr/bin/env python3
"""Terminal dashboard for a local ZeroTier node and ZeroTier Central."""
from __future__ import annotations

import argparse
import curses
import locale
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from central_client import CentralClient
from config_store import ConfigStore, LoadResult
from constants import CENTRAL_API_URL, CENTRAL_TOKEN_ENV, FILES, LOCAL_API_URL, REFRESH, default_config_dir
from dashboard import Dashboard
from display import draw_dashboard, init_colors
from errors import AuthRejected
from events import EventChannel, Ticker
from local_client import LocalNodeClient, authtoken_path, read_authtoken
from refresh import RefreshScheduler
from templates import CommandEngine

logger = logging.getLogger("ztui")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Terminal UI for ZeroTier networks and Central members")
    parser.add_argument("--config-dir", type=Path, default=None, help="directory holding settings.json and config.json")
    parser.add_argument("-s", "--authtoken", type=Path, default=None, help="path to the node's authtoken.secret")
    parser.add_argument("--token", default=None, help=f"Central API token (default: ${CENTRAL_TOKEN_ENV})")
    parser.add_argument("--local-url", default=LOCAL_API_URL)
    parser.add_argument("--central-url", default=CENTRAL_API_URL)
    parser.add_argument("--interval", type=float, default=None, help="refresh interval in seconds")
    parser.add_argument("--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def setup_logging(config_dir: Path, verbose: bool) -> None:
    config_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=config_dir / FILES.LOG,
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(asctime)s] %(message)s",
    )


def build_node_client(args: argparse.Namespace, loaded: LoadResult, timeout: float) -> LocalNodeClient:
    try:
        authtoken = read_authtoken(authtoken_path(args.authtoken))
    except AuthRejected as exc:
        loaded.warnings.append(exc.to_app_error())
        authtoken = None
    return LocalNodeClient(authtoken, base_url=args.local_url, timeout=timeout)


def run_tui(stdscr: "curses._CursesWindow", args: argparse.Namespace, store: ConfigStore, loaded: LoadResult) -> None:
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    init_colors()
    stdscr.keypad(True)

    timeout = loaded.config.request_timeout
    interval = args.interval if args.interval else loaded.config.refresh_interval
    interval = max(REFRESH.MIN_INTERVAL, interval)

    channel = EventChannel()
    node = build_node_client(args, loaded, timeout)
    central = CentralClient(args.token or os.environ.get(CENTRAL_TOKEN_ENV), base_url=args.central_url, timeout=timeout)
    scheduler = RefreshScheduler(channel, node, central)
    engine = CommandEngine(loaded.config, stdscr=stdscr)
    dashboard = Dashboard(store, loaded, scheduler, engine, stdscr=stdscr)

    ticker = Ticker(channel, interval)
    ticker.start()
    try:
        dashboard.run(stdscr, channel, draw_dashboard)
    finally:
        ticker.stop()
        if dashboard.running:
            dashboard.stop()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    config_dir = (args.config_dir or default_config_dir()).expanduser()
    setup_logging(config_dir, args.verbose)
    load_dotenv(config_dir / FILES.ENV)
    load_dotenv(Path.cwd() / FILES.ENV)
    locale.setlocale(locale.LC_ALL, "")

    store = ConfigStore(config_dir)
    loaded = store.load()
    logger.info("loaded %d bookmark(s), %d binding(s)", len(loaded.settings.bookmarks), len(loaded.config.bindings))

    try:
        curses.wrapper(run_tui, args, store, loaded)
    except curses.error as exc:
        logger.error("terminal setup failed: %s", exc)
        print(f"Could not initialise the terminal: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
