"""Run the periodic ranking refresh once.

Rolls the season over when it has expired, recomputes the power, battle
and explorer leaderboards and stores their snapshots.  Reads the store
location from ``REDIS_URL``.

Usage:
    uv run python scripts/refresh_rankings.py [--season-info]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from eth_rpg.config import Settings
from eth_rpg.context import AppServices
from eth_rpg.errors import EthRpgError

logger = logging.getLogger("refresh_rankings")


async def run(show_season_info: bool) -> int:
    services = AppServices.from_settings(Settings.from_env())
    try:
        if not services.ranking_store.configured:
            logger.error("REDIS_URL is not set; nothing to refresh")
            return 1
        summary = await services.ranking.refresh()
        print(summary.model_dump_json(indent=2))
        if show_season_info:
            info = await services.ranking.get_season_info()
            print(f"{info.season.name} ({info.season.id}): "
                  f"{info.remaining.days}d {info.remaining.hours}h remaining")
        return 0
    except EthRpgError as exc:
        logger.error("%s: %s", exc.code.value, exc.message)
        return 1
    finally:
        await services.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Refresh season leaderboards")
    parser.add_argument("--season-info", action="store_true", help="Print time left in the season")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    sys.exit(asyncio.run(run(args.season_info)))


if __name__ == "__main__":
    main()
