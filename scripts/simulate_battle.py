"""Simulate one battle between two character sheets and print the log.

Each sheet is a JSON file holding a ``CharacterSheet`` (stats may use the
short names ``str``/``int``/``dex``).  The same sheets and nonce always
print the same battle.

Usage:
    uv run python scripts/simulate_battle.py fighter0.json fighter1.json [--nonce test-1] [--json]
"""

from __future__ import annotations

import argparse
import logging
import uuid
from pathlib import Path

from eth_rpg.battle import MAX_TURNS, simulate_battle
from eth_rpg.models import CharacterSheet


def load_sheet(path: str) -> CharacterSheet:
    return CharacterSheet.model_validate_json(Path(path).read_text(encoding="utf-8"))


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate a deterministic battle")
    parser.add_argument("fighter0", help="Path to fighter 0's character sheet JSON")
    parser.add_argument("fighter1", help="Path to fighter 1's character sheet JSON")
    parser.add_argument("--nonce", type=str, default=None, help="Battle nonce (random if omitted)")
    parser.add_argument("--max-turns", type=int, default=MAX_TURNS, help="Action cap")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    fighters = (load_sheet(args.fighter0), load_sheet(args.fighter1))
    nonce = args.nonce or str(uuid.uuid4())
    result = simulate_battle(fighters[0], fighters[1], nonce, max_turns=args.max_turns)

    if args.json:
        print(result.model_dump_json(indent=2, by_alias=True))
        return

    names = [f.display_name for f in result.fighters]
    print(f"{names[0]} ({fighters[0].class_id.display_name}) vs "
          f"{names[1]} ({fighters[1].class_id.display_name})")
    print(f"nonce={result.nonce} seed={result.battle_seed} "
          f"matchup={result.matchup.fighter0_advantage.value}/"
          f"{result.matchup.fighter1_advantage.value}")
    print()
    for action in result.turns:
        print(f"[{action.turn:2d}] {action.narrative}  "
              f"(HP {action.actor_hp_after} / {action.target_hp_after})")
    print()
    print(f"Winner: {names[result.winner]} after {result.total_turns} turns, "
          f"{result.winner_hp_remaining} HP left ({result.winner_hp_percent}%)")


if __name__ == "__main__":
    main()
