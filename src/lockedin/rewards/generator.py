"""Reward schedule generator — hides the deposit across a subset of days.

Given (seed, duration, deposit_amount) the generator:
1. Draws how many days carry a reward (20–85% of the cycle).
2. Shuffles [1..duration] and keeps the first N days, sorted.
3. Distributes the deposit across those days in integer cents, each
   slot between 2% and 80% of the deposit, summing exactly to it.

The generator is a pure function of its inputs. It does no range
validation: the caller rejects out-of-range durations and deposits
before calling (see ContractPolicy.validate_generation_input).

A single reward day receives the whole deposit. This deliberately
exceeds the 80% cap.

If the 2% floor cannot be met for every slot (only reachable far
outside the valid duration range), the floor drops to an even split
with the leftover cents given one each to the leading slots. For two
or more slots the 80% cap always has room for the whole deposit, so
a leftover after the sweep means the invariant was broken and raises
ScheduleInvariantError instead of overflowing a slot.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from lockedin.models.schedule import CENT, Reward, RewardSchedule, to_money
from lockedin.policy import RewardConstraints
from lockedin.rewards.prng import SeededRandom, SeedPurpose


class ScheduleInvariantError(Exception):
    """Raised when a distribution cannot satisfy its own postconditions."""


def _to_cents(amount: Decimal) -> int:
    return int((amount / CENT).to_integral_value(rounding=ROUND_HALF_UP))


def _round_half_up(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_HALF_UP))


def generate_reward_schedule(
    seed: str,
    duration: int,
    deposit_amount: Decimal,
    constraints: Optional[RewardConstraints] = None,
) -> RewardSchedule:
    """Generate the deterministic reward schedule for a contract.

    Args:
        seed: Seed string, normally the contract ID.
        duration: Cycle length in days.
        deposit_amount: Deposit to distribute.
        constraints: Reward bounds (defaults to the standard 20/85/2/80).

    Returns:
        The RewardSchedule. Identical arguments always yield an
        identical schedule.
    """
    if constraints is None:
        constraints = RewardConstraints()
    deposit = to_money(deposit_amount)
    rng = SeededRandom.for_purpose(seed, SeedPurpose.SCHEDULE)

    min_days, max_days = constraints.reward_day_bounds(duration)
    reward_day_count = rng.next_int(min_days, max_days)

    reward_days = rng.sample_sorted(list(range(1, duration + 1)), reward_day_count)
    rewards = distribute_rewards(rng, reward_days, deposit, constraints)

    return RewardSchedule(
        seed=seed,
        duration=duration,
        deposit_amount=deposit,
        reward_day_count=reward_day_count,
        rewards=tuple(rewards),
    )


def distribute_rewards(
    rng: SeededRandom,
    reward_days: List[int],
    deposit_amount: Decimal,
    constraints: Optional[RewardConstraints] = None,
) -> List[Reward]:
    """Split deposit_amount across reward_days.

    Consumes one random draw per slot when there is anything to
    distribute above the floors.
    """
    if constraints is None:
        constraints = RewardConstraints()
    if not reward_days:
        return []
    deposit_cents = _to_cents(deposit_amount)

    if len(reward_days) == 1:
        return [Reward(day=reward_days[0], amount=_cents_to_money(deposit_cents))]

    min_cents = _round_half_up(deposit_cents * constraints.min_reward_ratio)
    max_cents = _round_half_up(deposit_cents * constraints.max_reward_ratio)
    amounts = constrained_amounts(rng, len(reward_days), deposit_cents, min_cents, max_cents)
    return [
        Reward(day=day, amount=_cents_to_money(cents))
        for day, cents in zip(reward_days, amounts)
    ]


def constrained_amounts(
    rng: SeededRandom,
    count: int,
    target_cents: int,
    min_cents: int,
    max_cents: int,
) -> List[int]:
    """Return count integer amounts summing exactly to target_cents.

    1. Every slot starts at the floor.
    2. The remainder is spread over slots 0..count-2 in proportion to
       one random weight per slot, each addition capped at the slot's
       headroom.
    3. The last slot takes what is left up to its cap.
    4. Anything still left is swept into earlier slots with headroom,
       in index order.
    """
    if min_cents * count > target_cents:
        base, extra = divmod(target_cents, count)
        return [base + (1 if i < extra else 0) for i in range(count)]

    amounts = [min_cents] * count
    remaining = target_cents - min_cents * count
    if remaining <= 0:
        return amounts

    weights = [rng.next_float() for _ in range(count)]
    total_weight = sum(weights)

    for i in range(count - 1):
        if remaining <= 0:
            break
        share = math.floor(weights[i] / total_weight * remaining)
        addition = min(share, max_cents - amounts[i], remaining)
        amounts[i] += addition
        remaining -= addition

    last = count - 1
    last_room = max_cents - amounts[last]
    if remaining > last_room:
        amounts[last] += last_room
        remaining -= last_room
        for i in range(last):
            if remaining <= 0:
                break
            addition = min(max_cents - amounts[i], remaining)
            amounts[i] += addition
            remaining -= addition
    else:
        amounts[last] += remaining
        remaining = 0

    if remaining > 0:
        raise ScheduleInvariantError(
            f"{remaining} cents left after filling {count} slots "
            f"capped at {max_cents} cents"
        )
    return amounts


def _cents_to_money(cents: int) -> Decimal:
    return (Decimal(cents) * CENT).quantize(CENT)


def check_schedule_invariants(
    schedule: RewardSchedule,
    constraints: Optional[RewardConstraints] = None,
) -> list[str]:
    """Audit a schedule. Returns violated invariants (empty = OK)."""
    if constraints is None:
        constraints = RewardConstraints()
    errors: list[str] = []
    label = f"schedule[{schedule.seed}]"

    min_days, max_days = constraints.reward_day_bounds(schedule.duration)
    if not 1 <= schedule.reward_day_count <= schedule.duration:
        errors.append(
            f"{label}: reward_day_count {schedule.reward_day_count} outside "
            f"[1, {schedule.duration}]"
        )
    if not min_days <= schedule.reward_day_count <= max_days:
        errors.append(
            f"{label}: reward_day_count {schedule.reward_day_count} outside "
            f"[{min_days}, {max_days}]"
        )
    if len(schedule.rewards) != schedule.reward_day_count:
        errors.append(
            f"{label}: {len(schedule.rewards)} rewards for reward_day_count "
            f"{schedule.reward_day_count}"
        )

    days = [r.day for r in schedule.rewards]
    if len(set(days)) != len(days):
        errors.append(f"{label}: duplicate reward days")
    out_of_range = [d for d in days if not 1 <= d <= schedule.duration]
    if out_of_range:
        errors.append(f"{label}: reward days out of range: {out_of_range}")

    if schedule.total() != to_money(schedule.deposit_amount):
        errors.append(
            f"{label}: rewards sum to {schedule.total()}, "
            f"deposit is {schedule.deposit_amount}"
        )

    if schedule.reward_day_count > 1:
        low = (schedule.deposit_amount * constraints.min_reward_ratio) - CENT
        high = (schedule.deposit_amount * constraints.max_reward_ratio) + CENT
        for reward in schedule.rewards:
            if not low <= reward.amount <= high:
                errors.append(
                    f"{label}: day {reward.day} amount {reward.amount} "
                    f"outside [{low}, {high}]"
                )
    return errors
