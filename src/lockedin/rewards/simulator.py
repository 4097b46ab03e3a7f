"""Simulation engine — replays a schedule against a completion set.

Used for the user-facing "what happened" totals and for administrative
what-if analysis. Every reward day is classified as either recovered
(completed) or forfeited (not completed), so

    total_recovered + total_forfeited == deposit_amount

holds for any schedule and any completion set.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from lockedin.models.schedule import CENT, RewardSchedule
from lockedin.policy import SimulationSettings
from lockedin.rewards.prng import SeededRandom, SeedPurpose


class SimulationPreset(str, enum.Enum):
    """Named completion scenarios."""
    PERFECT = "perfect"
    MISS_ALL = "miss-all"
    WEEKEND_SKIPPER = "weekend-skipper"
    RANDOM_80 = "random-80"


@dataclass(frozen=True)
class DayBreakdown:
    day: int
    has_reward: bool
    reward_amount: Decimal
    completed: bool
    recovered: Decimal
    forfeited: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "hasReward": self.has_reward,
            "rewardAmount": str(self.reward_amount),
            "completed": self.completed,
            "recovered": str(self.recovered),
            "forfeited": str(self.forfeited),
        }


@dataclass(frozen=True)
class SimulationResult:
    total_recovered: Decimal
    total_forfeited: Decimal
    completed_days: Tuple[int, ...]
    day_breakdown: Tuple[DayBreakdown, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRecovered": str(self.total_recovered),
            "totalForfeited": str(self.total_forfeited),
            "completedDays": list(self.completed_days),
            "dayBreakdown": [d.to_dict() for d in self.day_breakdown],
        }


def preset_completed_days(
    preset: SimulationPreset,
    schedule: RewardSchedule,
    settings: Optional[SimulationSettings] = None,
) -> List[int]:
    """Return the sorted completed days for a preset scenario.

    weekend-skipper assumes day 1 is a Monday, so days 6 and 7 of each
    7-day block are skipped. random-80 uses its own stream derived from
    the schedule seed, independent of the schedule's own stream.
    """
    if settings is None:
        settings = SimulationSettings()
    all_days = list(range(1, schedule.duration + 1))

    if preset == SimulationPreset.PERFECT:
        return all_days
    if preset == SimulationPreset.MISS_ALL:
        return []
    if preset == SimulationPreset.WEEKEND_SKIPPER:
        weekend = set(settings.weekend_days_of_week)
        return [d for d in all_days if ((d - 1) % 7) + 1 not in weekend]
    if preset == SimulationPreset.RANDOM_80:
        rng = SeededRandom.for_purpose(schedule.seed, SeedPurpose.SIMULATION)
        target = int(
            (schedule.duration * settings.random_completion_ratio).to_integral_value(
                rounding=ROUND_HALF_UP
            )
        )
        return rng.sample_sorted(all_days, target)
    raise ValueError(f"Unknown simulation preset: {preset!r}")


def simulate(
    schedule: RewardSchedule,
    completed_days: Optional[Iterable[int]] = None,
    preset: Optional[SimulationPreset] = None,
    settings: Optional[SimulationSettings] = None,
) -> SimulationResult:
    """Classify every day of the schedule against a completion set.

    Exactly one of completed_days / preset must be given.

    Raises:
        ValueError: If neither or both are given.
    """
    if (completed_days is None) == (preset is None):
        raise ValueError("Either completed_days or preset must be provided")
    if preset is not None:
        days = preset_completed_days(SimulationPreset(preset), schedule, settings)
    else:
        days = sorted(set(int(d) for d in completed_days))

    completed = set(days)
    total_recovered = Decimal("0")
    total_forfeited = Decimal("0")
    breakdown: List[DayBreakdown] = []

    for day in range(1, schedule.duration + 1):
        has_reward = schedule.has_reward(day)
        amount = schedule.reward_for_day(day)
        is_completed = day in completed
        recovered = amount if is_completed and has_reward else Decimal("0.00")
        forfeited = amount if not is_completed and has_reward else Decimal("0.00")
        total_recovered += recovered
        total_forfeited += forfeited
        breakdown.append(
            DayBreakdown(
                day=day,
                has_reward=has_reward,
                reward_amount=amount,
                completed=is_completed,
                recovered=recovered,
                forfeited=forfeited,
            )
        )

    return SimulationResult(
        total_recovered=total_recovered.quantize(CENT, rounding=ROUND_HALF_UP),
        total_forfeited=total_forfeited.quantize(CENT, rounding=ROUND_HALF_UP),
        completed_days=tuple(days),
        day_breakdown=tuple(breakdown),
    )
