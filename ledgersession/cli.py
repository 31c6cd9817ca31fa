"""Command line helpers for checking network readiness and profiles."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Sequence

from .config import AppConfig, load_config
from .errors import ConfigError, EndpointTimeoutError
from .models import ProfileMode
from .probe import PortProbe
from .profiles import ProfileResolver
from .readiness import ReadinessGate


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ledgersession", description=__doc__)
    parser.add_argument("--config", type=Path, default=None, help="Path to config.toml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    wait = sub.add_parser("wait", help="Wait until every endpoint of a profile accepts connections")
    wait.add_argument("--mode", default=ProfileMode.NETWORKED.value, choices=[mode.value for mode in ProfileMode])
    wait.add_argument("--name", default=None, help="Profile name (defaults to the configured one)")
    wait.add_argument("--max-wait", type=int, default=None, help="Seconds to wait per endpoint")

    profile = sub.add_parser("profile", help="Print the resolved connection profile as JSON")
    profile.add_argument("--mode", default=ProfileMode.NETWORKED.value, choices=[mode.value for mode in ProfileMode])
    profile.add_argument("--name", default=None, help="Profile name (defaults to the configured one)")
    return parser


def main(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = load_config(args.config).with_overrides(os.environ if environ is None else environ)
        if args.command == "wait" and args.max_wait is not None:
            config = config.with_timing(port_wait_secs=args.max_wait)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    if args.command == "wait":
        return asyncio.run(_wait(config, ProfileMode.parse(args.mode), args.name))
    return _profile(config, ProfileMode.parse(args.mode), args.name)


async def _wait(config: AppConfig, mode: ProfileMode, name: str | None) -> int:
    profile = ProfileResolver(config).resolve(mode, profile_name=name)
    timing = config.timing
    gate = ReadinessGate(
        PortProbe(connect_timeout=timing.connect_timeout),
        interval=timing.probe_interval,
        grace_period=timing.grace_period,
    )
    try:
        report = await gate.await_all(profile.endpoints, timing.port_wait_secs)
    except EndpointTimeoutError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    for endpoint, entry in report.endpoints.items():
        print(f"{endpoint} ready after {entry.attempts} attempt(s) ({entry.elapsed:.1f}s)")
    print(f"ready in {report.elapsed:.1f}s")
    return 0


def _profile(config: AppConfig, mode: ProfileMode, name: str | None) -> int:
    profile = ProfileResolver(config).resolve(mode, profile_name=name)
    print(json.dumps(profile.to_options(), indent=2, sort_keys=True))
    return 0


__all__ = ["build_parser", "main"]
