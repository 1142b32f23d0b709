"""
Entry point: python -m wolfcast [data_dir] [--level N] [--perf]

The data directory must hold VSWAP.<ext>, MAPHEAD.<ext>, GAMEMAPS.<ext>
and the palette file (settings in .env / WOLFCAST_* variables).
"""

import argparse
import asyncio
import logging
import sys

from wolfcast.config import LOG_LEVELS, Settings, console, setup_logging
from wolfcast.defs import LoadError
from wolfcast.game import Game
from wolfcast.level import fetch_bundle, open_assets
from wolfcast.perf import perf

log = logging.getLogger("wolfcast")


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="wolfcast", description="Grid raycaster for Wolfenstein 3D data files")
    p.add_argument("data_dir", nargs="?", default=None, help="directory with the game data files")
    p.add_argument("--level", type=int, default=None, help="level index to start on")
    p.add_argument("--perf", action="store_true", help="record frame timings to runs/*.jsonl")
    p.add_argument("--log-level", choices=LOG_LEVELS, default=None)
    return p.parse_args(argv)


def apply_args(settings: Settings, args: argparse.Namespace) -> Settings:
    if args.data_dir is not None:
        settings.data_dir = args.data_dir
    if args.level is not None:
        if args.level < 0:
            raise SystemExit("Error: --level must be non-negative")
        settings.level = args.level
    if args.log_level is not None:
        settings.log_level = args.log_level
    return settings


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = apply_args(Settings.from_env(), args)
    setup_logging(settings.log_level)
    log.info("data %s, level %d", settings.data_dir, settings.level)

    perf.enabled = args.perf
    perf.start()
    perf.stage("load")

    try:
        bundle = asyncio.run(fetch_bundle(settings.data_dir, settings.extension, settings.palette))
        with perf.timer("open_assets"):
            store, maps = open_assets(bundle)

        game = Game(store, maps, settings)
    except LoadError as e:
        console.print(f"[bold red]Load failed:[/bold red] {e}", highlight=False)
        return 1

    perf.stage("play")
    try:
        game.run()
    finally:
        perf.finish()
        if args.perf:
            perf.summary()
            perf.save()
    return 0


if __name__ == "__main__":
    sys.exit(main())
