"""Reward subsystem — seeded randomness, schedule generation, simulation."""

from lockedin.rewards.generator import (
    ScheduleInvariantError,
    check_schedule_invariants,
    generate_reward_schedule,
)
from lockedin.rewards.prng import SeededRandom, SeedPurpose, derive_seed
from lockedin.rewards.simulator import SimulationPreset, SimulationResult, simulate

__all__ = [
    "ScheduleInvariantError",
    "SeededRandom",
    "SeedPurpose",
    "SimulationPreset",
    "SimulationResult",
    "check_schedule_invariants",
    "derive_seed",
    "generate_reward_schedule",
    "simulate",
]
