#!/usr/bin/env python3
"""
Emporia Vue history exporter

Copies the energy history of every Vue channel into VictoriaMetrics. Each run
only fetches what the store doesn't already have.

Usage:
    python export_history.py --dest localhost:8428 --lookback 240h
"""
import argparse
import asyncio
import getpass
import logging
import sys
from datetime import timedelta
from typing import List, Optional, Tuple

from vuesync.config import Settings, settings as default_settings
from vuesync.dependencies import build_export_service, build_store_client, build_vue_client
from vuesync.infrastructure.auth.token_store import TokenStore
from vuesync.schemas.auth import Token
from vuesync.utils import durations
from vuesync.utils.atom import Atom

logger = logging.getLogger(__name__)


def parse_duration(value: str) -> timedelta:
    """argparse type for durations such as ``240h``, ``1h30m`` or ``10d``."""
    try:
        return durations.parse_duration(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid duration '{value}'. Use e.g. 240h, 90m or 10d.") from None


def parse_args(argv: Optional[List[str]], settings: Settings) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Export Emporia Vue energy history to VictoriaMetrics")
    p.add_argument("--dest", default=settings.VM_DEST, help="VictoriaMetrics host:port (or VM_DEST)")
    p.add_argument("--lookback", type=parse_duration, default=settings.LOOKBACK, help="how far back to look for history")
    p.add_argument("--username", default=settings.VUE_USERNAME, help="Emporia account (prompted when needed)")
    p.add_argument("--password", default=settings.VUE_PASSWORD, help="Emporia password (prompted when needed)")
    p.add_argument("--log-level", default=settings.LOG_LEVEL, help="logging level, e.g. DEBUG")
    args = p.parse_args(argv)
    if not args.dest:
        p.error("--dest is required (or set VM_DEST)")
    return args


def prompt_credentials(username: Optional[str], password: Optional[str]):
    """Credentials function asking on the terminal for whatever is missing."""

    def credentials() -> Tuple[str, str]:
        user = username or input("username: ").strip()
        pw = password or getpass.getpass("password: ")
        return user, pw

    return credentials


async def run(args: argparse.Namespace, settings: Settings) -> None:
    store_file = TokenStore(settings.TOKEN_FILE)
    holder: Atom[Optional[Token]] = Atom(store_file.load())
    holder.watch(store_file.on_token_change)

    vue = build_vue_client(settings, holder, prompt_credentials(args.username, args.password))
    store = build_store_client(settings, args.dest)
    try:
        service = build_export_service(settings, vue, store)
        summary = await service.export_all(args.lookback)
        logger.info(f"📋 {len(summary.channels)} channels, {summary.total_new_samples} new samples")
    finally:
        await vue.close()
        await store.close()


def main(argv: Optional[List[str]] = None) -> int:
    settings = default_settings
    args = parse_args(argv, settings)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    try:
        asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 1
    except Exception as e:
        logger.error(f"❌ Export failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
