#!/usr/bin/env python3
"""Locked In invariant checks against the contract parameter file."""

import json
import math
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
PARAMS_PATH = ROOT / "config" / "contract_params.json"


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def ratio(section: dict, key: str, label: str, errors: list[str]) -> Decimal:
    """Read a string ratio, recording an error if it is not in [0, 1]."""
    try:
        value = Decimal(str(section[key]))
    except (KeyError, InvalidOperation):
        errors.append(f"{label}.{key} must be a decimal string")
        return Decimal("0")
    if not Decimal("0") <= value <= Decimal("1"):
        errors.append(f"{label}.{key} must be within [0, 1]")
    return value


def check_schedule_feasibility(rewards: dict, bounds: dict, errors: list[str]) -> None:
    """Every generation duration must admit a schedule meeting all bounds."""
    min_days_ratio = ratio(rewards, "min_reward_day_ratio", "reward_constraints", errors)
    max_days_ratio = ratio(rewards, "max_reward_day_ratio", "reward_constraints", errors)
    min_reward = ratio(rewards, "min_reward_ratio", "reward_constraints", errors)
    max_reward = ratio(rewards, "max_reward_ratio", "reward_constraints", errors)

    if min_days_ratio > max_days_ratio:
        errors.append("min_reward_day_ratio must not exceed max_reward_day_ratio")
    if min_reward > max_reward:
        errors.append("min_reward_ratio must not exceed max_reward_ratio")
    # two slots at the cap must be able to absorb the whole deposit
    if max_reward * 2 < 1:
        errors.append("max_reward_ratio must be >= 0.5")

    low_duration = bounds.get("min_generation_duration", 0)
    high_duration = bounds.get("max_generation_duration", 0)
    if low_duration < 1 or low_duration > high_duration:
        errors.append("generation duration range must satisfy 1 <= min <= max")
        return

    for duration in range(low_duration, high_duration + 1):
        low = max(1, math.floor(duration * min_days_ratio))
        high = math.floor(duration * max_days_ratio)
        if low > high:
            errors.append(f"duration {duration}: reward day range [{low}, {high}] is empty")
        if high * min_reward > 1:
            errors.append(
                f"duration {duration}: {high} reward days cannot all meet the "
                f"{min_reward} floor"
            )


def check(params_path: Path = PARAMS_PATH) -> int:
    errors: list[str] = []
    params = load_json(params_path)

    if "version" not in params:
        errors.append("contract params missing version")

    rewards = params.get("reward_constraints", {})
    bounds = params.get("contract_bounds", {})
    check_schedule_feasibility(rewards, bounds, errors)

    # --- Offered contract terms ---
    durations = bounds.get("allowed_durations", [])
    if not durations:
        errors.append("allowed_durations must not be empty")
    for duration in durations:
        if not bounds.get("min_generation_duration", 0) <= duration <= bounds.get(
            "max_generation_duration", 0
        ):
            errors.append(f"allowed duration {duration} is outside the generation range")

    try:
        min_deposit = Decimal(str(bounds["min_deposit"]))
        max_deposit = Decimal(str(bounds["max_deposit"]))
        if not Decimal("0") < min_deposit <= max_deposit:
            errors.append("deposit bounds must satisfy 0 < min <= max")
    except (KeyError, InvalidOperation):
        errors.append("min_deposit and max_deposit must be decimal strings")

    if bounds.get("min_habit_title_length", 0) > bounds.get("max_habit_title_length", 0):
        errors.append("min_habit_title_length exceeds max_habit_title_length")

    # --- Simulation and cycle settings ---
    simulation = params.get("simulation", {})
    ratio(simulation, "random_completion_ratio", "simulation", errors)
    for weekday in simulation.get("weekend_days_of_week", []):
        if not 1 <= weekday <= 7:
            errors.append(f"weekend day {weekday} must be within 1-7")

    cycle = params.get("cycle", {})
    if cycle.get("finalization_grace_days", 0) < 0:
        errors.append("finalization_grace_days must be >= 0")
    if not 0 <= cycle.get("evening_reminder_hour", 18) <= 23:
        errors.append("evening_reminder_hour must be within 0-23")

    if errors:
        print("Invariant check failed:")
        for err in errors:
            print(f"- {err}")
        return 1

    print("Invariant check passed.")
    return 0


if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else PARAMS_PATH
    raise SystemExit(check(path))
