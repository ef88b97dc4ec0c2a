"""
Run a typing race from the command line with an AutoTypist at the keyboard.

Usage:
    python scripts/run_race.py --mode practice --difficulty adept --wpm 70
    python scripts/run_race.py --mode placement --wpm 40 --errors 0.05
    python scripts/run_race.py --mode lobby --npc-level hard --realtime

Headless runs use a manual clock and finish instantly; --realtime drives
the same race on asyncio timers at wall-clock speed. --dump writes the
per-tick telemetry as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import random
import sys
from pathlib import Path

# Ensure repo root is on sys.path when script is executed from anywhere
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.append(REPO_ROOT)

from typerace_game.autotypist import AutoTypist  # noqa: E402
from typerace_game.engine import (  # noqa: E402
    Difficulty,
    ManualClock,
    NpcLevel,
    RaceController,
    TelemetryCollector,
)
from typerace_game.engine.metrics import round_wpm  # noqa: E402
from typerace_game.engine.placement import RewardPolicy  # noqa: E402
from typerace_game.engine.scheduler import monotonic_ms  # noqa: E402
from typerace_game.rosters import (  # noqa: E402
    campaign_roster,
    faction_label,
    fill_with_npcs,
    human_spec,
    pick_prompt,
    practice_roster,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a typed-text race.")
    parser.add_argument("--mode", choices=("practice", "placement", "campaign", "lobby"), default="practice")
    parser.add_argument("--difficulty", choices=[d.value for d in Difficulty], default="adept")
    parser.add_argument("--faction", default="d4", help="Player faction (practice mode).")
    parser.add_argument("--npc-level", choices=[lvl.value for lvl in NpcLevel], default="normal")
    parser.add_argument("--campaign-race", type=int, default=1, help="Campaign race number for the XP bonus.")
    parser.add_argument("--wpm", type=float, default=60.0, help="AutoTypist speed.")
    parser.add_argument("--errors", type=float, default=0.0, help="AutoTypist wrong-key rate (0-1).")
    parser.add_argument("--prompt", default=None, help="Target text; defaults to a configured prompt.")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--realtime", action="store_true", help="Run on asyncio timers at wall-clock speed.")
    parser.add_argument("--dump", type=Path, default=None, help="Write telemetry frames to this JSON file.")
    parser.add_argument("--silent", action="store_true", help="Only print the final standings.")
    return parser.parse_args()


def build_controller(args: argparse.Namespace, clock, telemetry) -> RaceController:
    seed = args.seed if args.seed is not None else random.randrange(1_000_000)
    rng = random.Random(seed)
    prompt = args.prompt or pick_prompt(rng)
    options = dict(clock=clock, telemetry=telemetry, rng_seed=seed, verbose=not args.silent)

    if args.mode == "practice":
        specs = practice_roster(player_faction=args.faction)
        options["difficulty"] = Difficulty.from_str(args.difficulty)
    elif args.mode == "placement":
        specs = practice_roster(player_faction=None)
    elif args.mode == "campaign":
        specs = campaign_roster(["Steve", "Auto", "Matikah"], ["d6", "d8", "d12"])
        options["reward_policy"] = RewardPolicy.from_config(campaign_race_number=args.campaign_race)
    else:
        specs = fill_with_npcs([human_spec()], NpcLevel.from_str(args.npc_level), 8, rng)

    controller = RaceController(prompt, specs, **options)
    if not args.silent:
        print(f"Prompt ({len(prompt)} chars): {prompt}")
        for state in controller.participants:
            kind = "you" if state.is_human else f"{state.pacing.target_wpm:.0f} WPM"
            print(f"  Lane {state.lane + 1}: {state.name} [{faction_label(state.spec.faction)}] ({kind})")
    return controller


async def run_realtime(controller: RaceController, typist: AutoTypist):
    controller.scheduler.schedule("typist", 20, lambda: typist(controller, monotonic_ms()))
    try:
        return await controller.run()
    finally:
        controller.teardown()


def main() -> None:
    args = parse_args()
    telemetry = TelemetryCollector() if args.dump else None
    clock = None if args.realtime else ManualClock()
    controller = build_controller(args, clock, telemetry)
    typist = AutoTypist(args.wpm, error_rate=args.errors, seed=args.seed)

    if args.realtime:
        try:
            asyncio.run(run_realtime(controller, typist))
        except KeyboardInterrupt:
            controller.teardown()
            print("Race stopped by user.")
            return
    else:
        controller.run_until_finished(before_tick=typist)
        controller.teardown()

    print("\nFinish Order:")
    for state in controller.results():
        if state.position is None:
            print(f"-- {state.name} (DNF, {state.progress:.0f}%)")
            continue
        print(
            f"{state.position}. {state.name} {state.finish_time_ms / 1000:.2f}s "
            f"{round_wpm(state.wpm)} WPM {state.accuracy:.0f}% +{state.reward} XP"
        )

    if args.dump and telemetry is not None:
        telemetry.dump(args.dump)
        print(f"Telemetry written to {args.dump}")


if __name__ == "__main__":
    main()
