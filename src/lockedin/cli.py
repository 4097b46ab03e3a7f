"""Locked In CLI — administrative tools and a local contract session.

Usage:
    python -m lockedin.cli generate --seed contract-123 --duration 14 --deposit 100
    python -m lockedin.cli simulate --seed contract-123 --duration 14 --deposit 100 --preset random-80
    python -m lockedin.cli simulate --schedule schedule.json --days 2,5,8
    python -m lockedin.cli create-contract --title "Run 5k" --duration 14 --deposit 200
    python -m lockedin.cli status
    python -m lockedin.cli check-in
    python -m lockedin.cli reveal --all
    python -m lockedin.cli sync --activities activities.json
    python -m lockedin.cli check-invariants

Defaults for --config, --data-dir, --timezone and --log-level may be set
in a .env file or the environment (LOCKEDIN_CONFIG_DIR, LOCKEDIN_DATA_DIR,
LOCKEDIN_TIMEZONE, LOCKEDIN_LOG_LEVEL).
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from lockedin.cycle.storage import JsonFileKeyValueStore
from lockedin.models.activity import Activity
from lockedin.models.schedule import RewardSchedule
from lockedin.persistence.event_log import EventLog
from lockedin.policy import ContractPolicy
from lockedin.rewards.generator import check_schedule_invariants, generate_reward_schedule
from lockedin.rewards.simulator import SimulationPreset
from lockedin.service import LockedInService
from lockedin.verification.sync import StaticActivitySource


DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "config"
DEFAULT_DATA = Path(__file__).resolve().parents[2] / "data"

logger = logging.getLogger(__name__)


def _load_policy(args: argparse.Namespace) -> ContractPolicy:
    policy = ContractPolicy.from_config_dir(args.config)
    if args.timezone:
        policy = replace(policy, cycle=replace(policy.cycle, timezone=args.timezone))
    return policy


def _make_service(args: argparse.Namespace) -> LockedInService:
    """Create a service with file-backed storage under the data dir."""
    data_dir: Path = args.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    return LockedInService(
        _load_policy(args),
        store=JsonFileKeyValueStore(data_dir / "store.json"),
        event_log=EventLog(storage_path=data_dir / "events.jsonl"),
    )


def _open_service(args: argparse.Namespace) -> Optional[LockedInService]:
    service = _make_service(args)
    result = service.open_cycle()
    if not result.success:
        _fail(result.errors)
        return None
    return service


def _print(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _fail(errors: list[str]) -> int:
    print(f"Failed: {'; '.join(errors)}", file=sys.stderr)
    return 1


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")


def _day_list(value: str) -> list[int]:
    if not value.strip():
        return []
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma-separated day numbers: {value!r}")


def cmd_generate(args: argparse.Namespace) -> int:
    service = LockedInService(_load_policy(args))
    result = service.generate_schedule(args.seed, args.duration, args.deposit)
    if not result.success:
        return _fail(result.errors)
    _print(result.data["schedule"].to_dict())
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    service = LockedInService(_load_policy(args))
    if args.schedule is not None:
        try:
            with args.schedule.open("r", encoding="utf-8") as f:
                schedule = RewardSchedule.from_dict(json.load(f))
        except (OSError, ValueError) as exc:
            return _fail([f"Cannot read schedule: {exc}"])
    else:
        if args.seed is None or args.duration is None or args.deposit is None:
            return _fail(["Provide --schedule or all of --seed, --duration, --deposit"])
        generated = service.generate_schedule(args.seed, args.duration, args.deposit)
        if not generated.success:
            return _fail(generated.errors)
        schedule = generated.data["schedule"]

    result = service.simulate_schedule(
        schedule, completed_days=args.days, preset=args.preset
    )
    if not result.success:
        return _fail(result.errors)
    _print(result.data["simulation"].to_dict())
    return 0


def cmd_create_contract(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.create_contract(
        habit_title=args.title,
        duration=args.duration,
        deposit_amount=args.deposit,
        start_option=args.start,
        activity_types=args.activity_type or (),
    )
    if not result.success:
        return _fail(result.errors)
    contract = result.data["contract"]
    print(f"Created contract: {contract.contract_id} ({contract.duration} days)")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    service = _open_service(args)
    if service is None:
        return 1
    _print(service.status().data["summary"])
    return 0


def cmd_check_in(args: argparse.Namespace) -> int:
    service = _open_service(args)
    if service is None:
        return 1
    result = service.check_in()
    if not result.success:
        return _fail(result.errors)
    _print(result.data)
    return 0


def cmd_miss(args: argparse.Namespace) -> int:
    service = _open_service(args)
    if service is None:
        return 1
    result = service.mark_missed()
    if not result.success:
        return _fail(result.errors)
    _print(result.data)
    return 0


def cmd_reveal(args: argparse.Namespace) -> int:
    service = _open_service(args)
    if service is None:
        return 1
    if args.all:
        days = service.status().data["summary"]["unrevealed_days"]
    elif args.day is not None:
        days = [args.day]
    else:
        return _fail(["Provide --day or --all"])

    outcomes = []
    for day in days:
        result = service.reveal_day(day)
        if not result.success:
            return _fail(result.errors)
        outcomes.append(result.data)
    _print(outcomes)
    return 0


def cmd_sync(args: argparse.Namespace) -> int:
    service = _open_service(args)
    if service is None:
        return 1
    try:
        with args.activities.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, list):
            raise ValueError("activities file must hold a JSON list")
        activities = [Activity.from_dict(item) for item in raw]
    except (OSError, ValueError, TypeError) as exc:
        return _fail([f"Cannot read activities: {exc}"])

    source = StaticActivitySource(activities, service.policy.tzinfo())
    result = service.sync_verification(source)
    if not result.success:
        return _fail(result.errors)
    _print(result.data)
    return 0


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Audit the parameter file, then every schedule across the input space."""
    # Import and run the standalone parameter check first
    tools_dir = Path(__file__).resolve().parents[2] / "tools"
    sys.path.insert(0, str(tools_dir))
    from check_invariants import check
    if check(args.config / ContractPolicy.PARAMS_FILENAME) != 0:
        return 1

    policy = _load_policy(args)
    bounds = policy.bounds
    deposits = [bounds.min_deposit, Decimal("333.33"), Decimal("517.29"), bounds.max_deposit]
    errors: list[str] = []
    checked = 0
    for i in range(args.seeds):
        seed = f"invariant-{i}"
        for duration in range(bounds.min_generation_duration, bounds.max_generation_duration + 1):
            for deposit in deposits:
                schedule = generate_reward_schedule(seed, duration, deposit, policy.rewards)
                errors.extend(check_schedule_invariants(schedule, policy.rewards))
                checked += 1
    if errors:
        for error in errors[:50]:
            print(error, file=sys.stderr)
        print(f"{len(errors)} violation(s) in {checked} schedules", file=sys.stderr)
        return 1
    print(f"All invariants hold for {checked} schedules")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lockedin",
        description="Locked In — commitment contract core CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(os.environ.get("LOCKEDIN_CONFIG_DIR", DEFAULT_CONFIG)),
        help="Path to config directory (default: config/)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path(os.environ.get("LOCKEDIN_DATA_DIR", DEFAULT_DATA)),
        help="Directory for the contract store and event log (default: data/)",
    )
    parser.add_argument(
        "--timezone",
        default=os.environ.get("LOCKEDIN_TIMEZONE"),
        help="IANA timezone overriding the configured one",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOCKEDIN_LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    sub = parser.add_subparsers(dest="command")

    # generate
    p_gen = sub.add_parser("generate", help="Generate a reward schedule")
    p_gen.add_argument("--seed", required=True, help="Seed string (e.g. contract ID)")
    p_gen.add_argument("--duration", type=int, required=True, help="Cycle length in days")
    p_gen.add_argument("--deposit", type=_decimal, required=True, help="Deposit amount")

    # simulate
    p_sim = sub.add_parser("simulate", help="Simulate a completion scenario")
    p_sim.add_argument("--schedule", type=Path, help="Schedule JSON file")
    p_sim.add_argument("--seed", help="Seed (when generating the schedule)")
    p_sim.add_argument("--duration", type=int, help="Cycle length in days")
    p_sim.add_argument("--deposit", type=_decimal, help="Deposit amount")
    group = p_sim.add_mutually_exclusive_group(required=True)
    group.add_argument("--preset", choices=[p.value for p in SimulationPreset])
    group.add_argument("--days", type=_day_list, help="Completed days, e.g. 2,5,8")

    # create-contract
    p_create = sub.add_parser("create-contract", help="Create the active contract")
    p_create.add_argument("--title", required=True, help="Habit title")
    p_create.add_argument("--duration", type=int, required=True, help="Cycle length in days")
    p_create.add_argument("--deposit", type=_decimal, required=True, help="Deposit amount")
    p_create.add_argument("--start", default="today", choices=["today", "tomorrow"])
    p_create.add_argument(
        "--activity-type", action="append",
        help="Activity type that verifies the habit (repeatable)",
    )

    sub.add_parser("status", help="Show cycle metrics")
    sub.add_parser("check-in", help="Complete today's check-in")
    sub.add_parser("miss", help="Mark today as missed")

    p_reveal = sub.add_parser("reveal", help="Reveal past day outcomes")
    p_reveal.add_argument("--day", type=int, help="Day number to reveal")
    p_reveal.add_argument("--all", action="store_true", help="Reveal every pending day")

    p_sync = sub.add_parser("sync", help="Verify unrevealed days from an activity export")
    p_sync.add_argument("--activities", type=Path, required=True, help="Activity JSON file")

    p_inv = sub.add_parser("check-invariants", help="Audit generated schedules")
    p_inv.add_argument("--seeds", type=int, default=25, help="Seeds per configuration")

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "generate": cmd_generate,
        "simulate": cmd_simulate,
        "create-contract": cmd_create_contract,
        "status": cmd_status,
        "check-in": cmd_check_in,
        "miss": cmd_miss,
        "reveal": cmd_reveal,
        "sync": cmd_sync,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return _fail([str(exc)])


if __name__ == "__main__":
    raise SystemExit(main())
