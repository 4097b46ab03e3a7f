"""Reward schedule models — the hidden day → amount mapping of a contract.

All monetary values use Decimal quantized to cents. No floats in finance.

Invariants (audited by rewards.generator.check_schedule_invariants):
- 1 <= reward_day_count <= duration
- every reward day is unique and within [1, duration]
- sum of reward amounts equals the deposit to the cent
- the schedule is immutable once generated
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Tuple

CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Coerce a number or numeric string to a cent-quantized Decimal."""
    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Reward:
    """A single earmarked reward day."""
    day: int
    amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"day": self.day, "amount": str(self.amount)}


@dataclass(frozen=True)
class RewardSchedule:
    """A complete, deterministic reward schedule.

    Produced by generate_reward_schedule() as a pure function of
    (seed, duration, deposit_amount). Rewards are sorted by day.
    """
    seed: str
    duration: int
    deposit_amount: Decimal
    reward_day_count: int
    rewards: Tuple[Reward, ...]

    @property
    def reward_days(self) -> Tuple[int, ...]:
        return tuple(r.day for r in self.rewards)

    def has_reward(self, day: int) -> bool:
        return any(r.day == day for r in self.rewards)

    def reward_for_day(self, day: int) -> Decimal:
        """Return the reward earmarked for a day, or 0.00 if none."""
        for reward in self.rewards:
            if reward.day == day:
                return reward.amount
        return Decimal("0.00")

    def total(self) -> Decimal:
        return sum((r.amount for r in self.rewards), Decimal("0.00"))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the wire keys of the stored contract JSON."""
        return {
            "seed": self.seed,
            "duration": self.duration,
            "depositAmount": str(self.deposit_amount),
            "rewardDayCount": self.reward_day_count,
            "rewards": [r.to_dict() for r in self.rewards],
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> RewardSchedule:
        """Rebuild a schedule from its serialized form.

        Raises:
            ValueError: If a required field is missing or malformed.
        """
        try:
            rewards = tuple(
                sorted(
                    (
                        Reward(day=int(r["day"]), amount=to_money(r["amount"]))
                        for r in data["rewards"]
                    ),
                    key=lambda r: r.day,
                )
            )
            return RewardSchedule(
                seed=str(data["seed"]),
                duration=int(data["duration"]),
                deposit_amount=to_money(data["depositAmount"]),
                reward_day_count=int(data["rewardDayCount"]),
                rewards=rewards,
            )
        except (KeyError, TypeError, ArithmeticError) as exc:
            raise ValueError(f"Malformed reward schedule: {exc}") from exc
