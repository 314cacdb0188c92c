"""
Tests for the command line entry point (in-memory backend only)
"""

import json

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

import main
from membership_fee.service import ReconciliationService


REAL_SETUP_LOGGING = main.setup_logging

SEED = {
    "club_id": 1,
    "members": [
        {"id": 1, "display_name": "김철수"},
        {"id": 2, "display_name": "이영희"},
        {"id": 3, "display_name": "박민수"},
        {"id": 4, "display_name": "최지영"},
    ],
    "couple_groups": [{"id": 10, "member_ids": [3, 4]}],
    "exemptions": [{"member_id": 2, "year": 2024, "reason": "코치"}],
    "fee_schedules": [{"year": 2024, "regular_amount": 15000, "couple_amount": 25000}],
}

ROWS = [
    {"transaction_date": "2024-01-05", "depositor_name": "김철수", "amount": 45000},
    {"transaction_date": "2024-01-06", "depositor_name": "박민수·최지영", "amount": 25000, "memo": "1월"},
    {"transaction_date": "2024-01-07", "depositor_name": "홍길동", "amount": 7000},
]


@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps(SEED, ensure_ascii=False), encoding="utf-8")
    return str(path)


@pytest.fixture
def rows_file(tmp_path):
    path = tmp_path / "rows.json"
    path.write_text(json.dumps(ROWS, ensure_ascii=False), encoding="utf-8")
    return str(path)


@pytest.fixture(autouse=True)
def no_file_logging(monkeypatch):
    monkeypatch.setattr(main, "setup_logging", lambda *args, **kwargs: None)


class TestLoadRows:
    """Tests for load_rows"""

    def test_list(self, rows_file):
        assert len(main.load_rows(rows_file)) == 3

    def test_wrapped_in_object(self, tmp_path):
        path = tmp_path / "wrapped.json"
        path.write_text(json.dumps({"rows": ROWS}), encoding="utf-8")
        assert len(main.load_rows(str(path))) == 3

    def test_invalid_shape(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"rows": "nope"}), encoding="utf-8")
        with pytest.raises(ValueError):
            main.load_rows(str(path))


class TestBuildService:
    """Tests for build_service"""

    def test_memory_backend(self):
        service = main.build_service("memory", SEED)
        assert isinstance(service, ReconciliationService)
        assert len(service.directory.list_members(1)) == 4
        assert len(service.directory.list_couple_groups(1)) == 1
        assert service.fee_schedules.get_fee_schedule(1, 2024).couple_amount == 25000

    def test_memory_backend_without_seed(self):
        service = main.build_service("memory")
        assert service.directory.list_members(1) == []


class TestParser:
    """Tests for build_parser"""

    def test_confirm_months(self):
        args = main.build_parser().parse_args(
            ["confirm", "--club", "1", "--record", "r1", "--year", "2024", "--months", "1", "2", "3"]
        )
        assert args.months == [1, 2, 3]
        assert args.admin is None

    def test_reassign_without_member_clears(self):
        args = main.build_parser().parse_args(["reassign", "--club", "1", "--record", "r1"])
        assert args.member is None

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main.build_parser().parse_args([])


class TestMain:
    """End-to-end CLI runs against the in-memory backend"""

    def test_ingest(self, seed_file, rows_file, capsys):
        code = main.main([
            "--backend", "memory", "--seed", seed_file,
            "ingest", "--club", "1", "--year", "2024", "--rows", rows_file,
        ])
        assert code == 0

        output = json.loads(capsys.readouterr().out)
        assert output["summary"] == {"total": 3, "matched": 2, "error": 1, "pending": 0}
        assert output["batch"]["file_name"] == "rows.json"

    def test_dashboard(self, seed_file, capsys):
        code = main.main(["--backend", "memory", "--seed", seed_file, "dashboard", "--club", "1", "--year", "2024"])
        assert code == 0

        output = json.loads(capsys.readouterr().out)
        assert [m["name"] for m in output["members"]] == ["김철수", "이영희", "박민수·최지영"]
        assert output["summary"]["exempt_members"] == 1

    def test_unpaid(self, seed_file, capsys):
        code = main.main([
            "--backend", "memory", "--seed", seed_file,
            "unpaid", "--club", "1", "--year", "2024", "--month", "1",
        ])
        assert code == 0

        output = json.loads(capsys.readouterr().out)
        assert output["total_unpaid"] == 2

    def test_domain_error_exit_code(self, seed_file, rows_file, capsys):
        """회비 설정이 없는 연도는 오류 종료"""
        code = main.main([
            "--backend", "memory", "--seed", seed_file,
            "ingest", "--club", "1", "--year", "2023", "--rows", rows_file,
        ])
        assert code == 1
        assert capsys.readouterr().out == ""

    def test_unknown_record(self, seed_file):
        code = main.main(["--backend", "memory", "--seed", seed_file, "skip", "--club", "1", "--record", "missing"])
        assert code == 1


def test_setup_logging_writes_file(tmp_path):
    """File sink keeps DEBUG lines even when the console level is WARNING"""
    try:
        REAL_SETUP_LOGGING("WARNING", str(tmp_path))
        logger.debug("디버그 메시지")
    finally:
        logger.remove()
        logger.add(sys.stderr)

    log_files = list(tmp_path.glob("membership_fee_*.log"))
    assert len(log_files) == 1
    assert "디버그 메시지" in log_files[0].read_text(encoding="utf-8")
