"""Contract policy — loads, validates, and applies contract parameters.

Parameters live in config/contract_params.json. Ratios and money are
stored as strings and read as Decimal so no float rounding enters the
reward arithmetic.

Usage:
    policy = ContractPolicy.from_config_dir(Path("config"))
    errors = policy.validate_terms("Meditate", 14, Decimal("250"), "today")
    tz = policy.tzinfo()
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from lockedin.models.contract import StartOption


@dataclass(frozen=True)
class RewardConstraints:
    """Numeric bounds every generated schedule must honor."""
    min_reward_day_ratio: Decimal = Decimal("0.2")
    max_reward_day_ratio: Decimal = Decimal("0.85")
    min_reward_ratio: Decimal = Decimal("0.02")
    max_reward_ratio: Decimal = Decimal("0.8")

    def reward_day_bounds(self, duration: int) -> Tuple[int, int]:
        """Return (min, max) reward day count for a cycle length."""
        low = max(1, int(duration * self.min_reward_day_ratio))
        high = int(duration * self.max_reward_day_ratio)
        return low, high


@dataclass(frozen=True)
class ContractBounds:
    allowed_durations: Tuple[int, ...] = (7, 14, 21, 30)
    min_generation_duration: int = 7
    max_generation_duration: int = 30
    min_deposit: Decimal = Decimal("100")
    max_deposit: Decimal = Decimal("1000")
    min_habit_title_length: int = 3
    max_habit_title_length: int = 60


@dataclass(frozen=True)
class SimulationSettings:
    random_completion_ratio: Decimal = Decimal("0.8")
    weekend_days_of_week: Tuple[int, ...] = (6, 7)


@dataclass(frozen=True)
class CycleSettings:
    timezone: str = "UTC"
    finalization_grace_days: int = 0
    evening_reminder_hour: int = 18


@dataclass(frozen=True)
class ContractPolicy:
    """All tunable parameters of the commitment cycle.

    The defaults equal the shipped config file, so ContractPolicy()
    is usable without a config directory.
    """
    version: str = "1.0"
    rewards: RewardConstraints = field(default_factory=RewardConstraints)
    bounds: ContractBounds = field(default_factory=ContractBounds)
    simulation: SimulationSettings = field(default_factory=SimulationSettings)
    cycle: CycleSettings = field(default_factory=CycleSettings)

    PARAMS_FILENAME = "contract_params.json"

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> ContractPolicy:
        """Load policy from the canonical config directory.

        Raises:
            FileNotFoundError: If contract_params.json does not exist.
            ValueError: If the parameters are structurally invalid.
        """
        path = config_dir / cls.PARAMS_FILENAME
        if not path.exists():
            raise FileNotFoundError(f"Contract params not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ContractPolicy:
        if "version" not in data:
            raise ValueError("Contract params missing 'version' field")
        try:
            r, b, s, c = (
                _section(data, name)
                for name in ("reward_constraints", "contract_bounds", "simulation", "cycle")
            )
            policy = cls(
                version=str(data["version"]),
                rewards=RewardConstraints(
                    min_reward_day_ratio=Decimal(r.get("min_reward_day_ratio", "0.2")),
                    max_reward_day_ratio=Decimal(r.get("max_reward_day_ratio", "0.85")),
                    min_reward_ratio=Decimal(r.get("min_reward_ratio", "0.02")),
                    max_reward_ratio=Decimal(r.get("max_reward_ratio", "0.8")),
                ),
                bounds=ContractBounds(
                    allowed_durations=tuple(
                        int(d) for d in b.get("allowed_durations", (7, 14, 21, 30))
                    ),
                    min_generation_duration=int(b.get("min_generation_duration", 7)),
                    max_generation_duration=int(b.get("max_generation_duration", 30)),
                    min_deposit=Decimal(b.get("min_deposit", "100")),
                    max_deposit=Decimal(b.get("max_deposit", "1000")),
                    min_habit_title_length=int(b.get("min_habit_title_length", 3)),
                    max_habit_title_length=int(b.get("max_habit_title_length", 60)),
                ),
                simulation=SimulationSettings(
                    random_completion_ratio=Decimal(
                        s.get("random_completion_ratio", "0.8")
                    ),
                    weekend_days_of_week=tuple(
                        int(d) for d in s.get("weekend_days_of_week", (6, 7))
                    ),
                ),
                cycle=CycleSettings(
                    timezone=str(c.get("timezone", "UTC")),
                    finalization_grace_days=int(c.get("finalization_grace_days", 0)),
                    evening_reminder_hour=int(c.get("evening_reminder_hour", 18)),
                ),
            )
        except (TypeError, InvalidOperation) as exc:
            raise ValueError(f"Invalid contract params: {exc}") from exc
        policy._validate()
        return policy

    def _validate(self) -> None:
        r = self.rewards
        if not Decimal("0") <= r.min_reward_day_ratio <= r.max_reward_day_ratio <= Decimal("1"):
            raise ValueError("Reward day ratios must satisfy 0 <= min <= max <= 1")
        if not Decimal("0") <= r.min_reward_ratio <= r.max_reward_ratio <= Decimal("1"):
            raise ValueError("Reward ratios must satisfy 0 <= min <= max <= 1")
        b = self.bounds
        if not b.allowed_durations:
            raise ValueError("At least one contract duration must be allowed")
        if b.min_generation_duration > b.max_generation_duration:
            raise ValueError("min_generation_duration exceeds max_generation_duration")
        if b.min_deposit <= 0 or b.min_deposit > b.max_deposit:
            raise ValueError("Deposit bounds must satisfy 0 < min <= max")
        if self.cycle.finalization_grace_days < 0:
            raise ValueError("finalization_grace_days must be >= 0")
        if not 0 <= self.cycle.evening_reminder_hour <= 23:
            raise ValueError("evening_reminder_hour must be within 0-23")
        if not Decimal("0") <= self.simulation.random_completion_ratio <= Decimal("1"):
            raise ValueError("random_completion_ratio must be within [0, 1]")

    def tzinfo(self) -> tzinfo:
        """Resolve the configured local timezone.

        Raises:
            ValueError: If the zone name is unknown.
        """
        if self.cycle.timezone.upper() == "UTC":
            return timezone.utc
        try:
            return ZoneInfo(self.cycle.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {self.cycle.timezone}") from exc

    def validate_generation_input(
        self, seed: str, duration: int, deposit_amount: Decimal
    ) -> list[str]:
        """Check admin generation inputs. Returns errors (empty = OK)."""
        errors: list[str] = []
        b = self.bounds
        if not seed:
            errors.append("Seed is required")
        if isinstance(duration, bool) or not isinstance(duration, int):
            errors.append("Duration must be a whole number")
        elif not b.min_generation_duration <= duration <= b.max_generation_duration:
            errors.append(
                f"Duration must be between {b.min_generation_duration} "
                f"and {b.max_generation_duration} days"
            )
        errors.extend(self._validate_deposit(deposit_amount))
        return errors

    def validate_terms(
        self,
        habit_title: str,
        duration: int,
        deposit_amount: Decimal,
        start_option: str,
    ) -> list[str]:
        """Check contract terms before creation. Returns errors (empty = OK)."""
        errors: list[str] = []
        b = self.bounds
        title = (habit_title or "").strip()
        if len(title) < b.min_habit_title_length:
            errors.append(
                f"Habit title must be at least {b.min_habit_title_length} characters"
            )
        elif len(title) > b.max_habit_title_length:
            errors.append(
                f"Habit title must be at most {b.max_habit_title_length} characters"
            )
        if duration not in b.allowed_durations:
            allowed = ", ".join(str(d) for d in b.allowed_durations)
            errors.append(f"Duration must be one of: {allowed} days")
        errors.extend(self._validate_deposit(deposit_amount))
        if start_option not in [o.value for o in StartOption]:
            errors.append(f"Start date must be 'today' or 'tomorrow', got {start_option!r}")
        return errors

    def _validate_deposit(self, deposit_amount: Decimal) -> list[str]:
        b = self.bounds
        if not isinstance(deposit_amount, Decimal) or not deposit_amount.is_finite():
            return ["Deposit must be a number"]
        if deposit_amount < b.min_deposit:
            return [f"Deposit must be at least ${b.min_deposit}"]
        if deposit_amount > b.max_deposit:
            return [f"Deposit must be at most ${b.max_deposit}"]
        return []


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ValueError(f"Invalid contract params: '{name}' must be an object")
    return section
