"""Tests for Locked In CLI — proves CLI dispatches correctly."""

import json
from pathlib import Path

import pytest

from lockedin.cli import build_parser, main


def _base(tmp_path: Path) -> list[str]:
    return ["--data-dir", str(tmp_path / "data")]


class TestCLIParsing:
    def test_generate_command(self) -> None:
        args = build_parser().parse_args(
            ["generate", "--seed", "contract-123", "--duration", "14", "--deposit", "100"]
        )
        assert args.command == "generate"
        assert args.duration == 14
        assert str(args.deposit) == "100"

    def test_simulate_days_list(self) -> None:
        args = build_parser().parse_args(["simulate", "--schedule", "s.json", "--days", "2,5,8"])
        assert args.days == [2, 5, 8]
        assert args.preset is None

    def test_simulate_requires_preset_or_days(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["simulate", "--seed", "x"])

    def test_create_contract_activity_types(self) -> None:
        args = build_parser().parse_args([
            "create-contract", "--title", "Run 5k", "--duration", "14",
            "--deposit", "200", "--activity-type", "Run", "--activity-type", "TrailRun",
        ])
        assert args.activity_type == ["Run", "TrailRun"]
        assert args.start == "today"


class TestCLIExecution:
    def test_no_command_shows_help(self, capsys) -> None:
        assert main([]) == 0

    def test_generate_prints_schedule(self, capsys) -> None:
        exit_code = main(
            ["generate", "--seed", "contract-123", "--duration", "14", "--deposit", "100"]
        )
        assert exit_code == 0
        schedule = json.loads(capsys.readouterr().out)
        assert schedule["seed"] == "contract-123"
        assert schedule["depositAmount"] == "100.00"
        assert len(schedule["rewards"]) == schedule["rewardDayCount"]

    def test_generate_rejects_bad_duration(self) -> None:
        assert main(["generate", "--seed", "s", "--duration", "45", "--deposit", "100"]) == 1

    def test_simulate_preset(self, capsys) -> None:
        exit_code = main([
            "simulate", "--seed", "contract-123", "--duration", "14",
            "--deposit", "100", "--preset", "miss-all",
        ])
        assert exit_code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["totalRecovered"] == "0.00"
        assert result["totalForfeited"] == "100.00"

    def test_simulate_from_schedule_file(self, tmp_path: Path, capsys) -> None:
        schedule = {
            "seed": "example", "duration": 14, "depositAmount": "100.00", "rewardDayCount": 5,
            "rewards": [
                {"day": 2, "amount": "15.00"}, {"day": 5, "amount": "25.00"},
                {"day": 8, "amount": "20.00"}, {"day": 11, "amount": "30.00"},
                {"day": 14, "amount": "10.00"},
            ],
        }
        path = tmp_path / "schedule.json"
        path.write_text(json.dumps(schedule), encoding="utf-8")
        assert main(["simulate", "--schedule", str(path), "--days", "2,5,8"]) == 0
        result = json.loads(capsys.readouterr().out)
        assert result["totalRecovered"] == "60.00"
        assert result["totalForfeited"] == "40.00"

    def test_contract_session_e2e(self, tmp_path: Path, capsys) -> None:
        base = _base(tmp_path)
        assert main(base + [
            "create-contract", "--title", "Run 5k", "--duration", "7", "--deposit", "150",
        ]) == 0
        assert main(base + ["check-in"]) == 0
        capsys.readouterr()

        assert main(base + ["status"]) == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["current_day_number"] == 1
        assert summary["days_completed"] == 1
        assert summary["checked_in_today"] is True
        assert (tmp_path / "data" / "events.jsonl").exists()

    def test_status_without_contract_fails(self, tmp_path: Path) -> None:
        assert main(_base(tmp_path) + ["status"]) == 1

    def test_create_contract_rejects_bad_terms(self, tmp_path: Path) -> None:
        assert main(_base(tmp_path) + [
            "create-contract", "--title", "Run", "--duration", "10", "--deposit", "150",
        ]) == 1

    def test_missing_config_dir(self, tmp_path: Path) -> None:
        exit_code = main([
            "--config", str(tmp_path / "nowhere"),
            "generate", "--seed", "s", "--duration", "14", "--deposit", "100",
        ])
        assert exit_code == 1

    def test_check_invariants_runs(self) -> None:
        assert main(["check-invariants", "--seeds", "2"]) == 0

    def test_check_invariants_rejects_infeasible_params(self, tmp_path: Path) -> None:
        params = json.loads(
            (Path(__file__).resolve().parents[1] / "config" / "contract_params.json").read_text(
                encoding="utf-8"
            )
        )
        params["reward_constraints"]["min_reward_ratio"] = "0.3"
        params["reward_constraints"]["max_reward_ratio"] = "0.4"
        (tmp_path / "contract_params.json").write_text(json.dumps(params), encoding="utf-8")
        assert main(["--config", str(tmp_path), "check-invariants", "--seeds", "1"]) == 1

    def test_sync_rejects_object_shaped_activity_file(self, tmp_path: Path, capsys) -> None:
        base = _base(tmp_path)
        assert main(base + [
            "create-contract", "--title", "Run 5k", "--duration", "7", "--deposit", "150",
            "--activity-type", "Run",
        ]) == 0
        path = tmp_path / "acts.json"
        path.write_text(json.dumps({"activities": []}), encoding="utf-8")
        assert main(base + ["sync", "--activities", str(path)]) == 1
        assert "JSON list" in capsys.readouterr().err

    def test_sync_rejects_non_object_activity(self, tmp_path: Path, capsys) -> None:
        base = _base(tmp_path)
        assert main(base + [
            "create-contract", "--title", "Run 5k", "--duration", "7", "--deposit", "150",
            "--activity-type", "Run",
        ]) == 0
        path = tmp_path / "acts.json"
        path.write_text(json.dumps(["not-an-activity"]), encoding="utf-8")
        assert main(base + ["sync", "--activities", str(path)]) == 1
        assert "Cannot read activities" in capsys.readouterr().err
