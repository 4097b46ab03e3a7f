"""Contract model — the staked deposit, its habit, and its hidden schedule."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Tuple

from lockedin.models.schedule import RewardSchedule, to_money


class StartOption(str, enum.Enum):
    """When the cycle begins relative to contract creation."""
    TODAY = "today"
    TOMORROW = "tomorrow"


@dataclass(frozen=True)
class Contract:
    """An active commitment contract.

    The contract_id doubles as the reward schedule seed.
    activity_types lists the external activity types that count as
    completing the habit (empty means manual check-in only).
    """
    contract_id: str
    habit_title: str
    duration: int
    deposit_amount: Decimal
    start_option: StartOption
    created_at: datetime
    reward_schedule: RewardSchedule
    activity_types: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.contract_id,
            "habitTitle": self.habit_title,
            "duration": self.duration,
            "depositAmount": str(self.deposit_amount),
            "startDate": self.start_option.value,
            "createdAt": self.created_at.isoformat(),
            "rewardSchedule": self.reward_schedule.to_dict(),
            "activityTypes": list(self.activity_types),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Contract:
        """Rebuild a stored contract.

        Raises:
            ValueError: If the stored contract is malformed.
        """
        try:
            created_at = datetime.fromisoformat(
                str(data["createdAt"]).replace("Z", "+00:00")
            )
            return Contract(
                contract_id=str(data["id"]),
                habit_title=str(data["habitTitle"]),
                duration=int(data["duration"]),
                deposit_amount=to_money(data["depositAmount"]),
                start_option=StartOption(data["startDate"]),
                created_at=created_at,
                reward_schedule=RewardSchedule.from_dict(data["rewardSchedule"]),
                activity_types=tuple(data.get("activityTypes") or ()),
            )
        except (KeyError, TypeError, ArithmeticError) as exc:
            raise ValueError(f"Malformed contract: {exc}") from exc
