"""
회비 입금 정산 CLI

사용 예:
    python main.py ingest --club 1 --year 2024 --rows rows.json --file 2024_01.xlsx
    python main.py bulk-confirm --club 1 --year 2024 --records <id> <id>
    python main.py --backend memory --seed seed.json ingest --club 1 --year 2024 --rows rows.json
"""
import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from membership_fee.config import reconciliation_config
from membership_fee.errors import ReconciliationError
from membership_fee.models import CoupleGroup, FeeExemption, Member, RecordStatus
from membership_fee.service import ReconciliationService
from database.memory_store import InMemoryFeeScheduleStore, InMemoryLedger, InMemoryMemberDirectory


def setup_logging(level: Optional[str] = None, log_dir: Optional[str] = None):
    """로깅 설정"""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level or reconciliation_config.log_level
    )
    logger.add(
        f"{log_dir or reconciliation_config.log_dir}/membership_fee_{{time:YYYY-MM-DD}}.log",
        rotation="1 day",
        retention="30 days",
        level="DEBUG"
    )


def load_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_rows(path: str) -> List[Dict[str, Any]]:
    """정규화된 입금 행 JSON 파일 읽기 ([{transaction_date, depositor_name, amount, memo}])"""
    data = load_json(path)
    if isinstance(data, dict):
        data = data.get("rows", [])
    if not isinstance(data, list):
        raise ValueError(f"입금 행 목록 형식이 아닙니다: {path}")
    return data


def build_memory_backend(seed: Optional[Dict[str, Any]] = None):
    """
    인메모리 저장소 구성 (미리보기용)

    seed 형식:
        {"club_id": 1,
         "members": [{"id": 1, "display_name": "김철수"}],
         "couple_groups": [{"id": 1, "member_ids": [2, 3]}],
         "exemptions": [{"member_id": 4, "year": 2024, "reason": "코치"}],
         "fee_schedules": [{"year": 2024, "regular_amount": 15000, "couple_amount": 25000}]}
    """
    ledger = InMemoryLedger()
    directory = InMemoryMemberDirectory()
    fee_schedules = InMemoryFeeScheduleStore()

    seed = seed or {}
    club_id = seed.get("club_id", 1)
    directory.add_members(club_id, [Member.model_validate(m) for m in seed.get("members", [])])
    for group in seed.get("couple_groups", []):
        directory.add_couple_group(club_id, CoupleGroup.model_validate(group))
    for exemption in seed.get("exemptions", []):
        directory.add_exemption(club_id, FeeExemption.model_validate(exemption))
    for schedule in seed.get("fee_schedules", []):
        fee_schedules.set_fee_schedule(
            club_id,
            schedule["year"],
            schedule["regular_amount"],
            schedule.get("couple_amount"),
        )
    return ledger, directory, fee_schedules


def build_service(backend: Optional[str] = None, seed: Optional[Dict[str, Any]] = None) -> ReconciliationService:
    """저장소 종류에 맞는 정산 서비스 생성"""
    backend = backend or reconciliation_config.backend
    if backend == "memory":
        ledger, directory, fee_schedules = build_memory_backend(seed)
        logger.info("인메모리 저장소 사용 (저장 내용은 프로세스 종료 시 사라집니다)")
    else:
        from database.supabase_client import (
            SupabaseFeeScheduleStore,
            SupabaseLedger,
            SupabaseMemberDirectory,
            get_supabase_client,
        )
        client = get_supabase_client()
        ledger = SupabaseLedger(client)
        directory = SupabaseMemberDirectory(client)
        fee_schedules = SupabaseFeeScheduleStore(client)
    return ReconciliationService(ledger, directory, fee_schedules)


def print_json(data: Any):
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="회비 입금 내역 정산")
    parser.add_argument("--backend", choices=["supabase", "memory"], default=None, help="저장소 종류")
    parser.add_argument("--seed", default=None, help="인메모리 저장소 초기 데이터 (JSON)")
    parser.add_argument("--log-level", default=None, help="콘솔 로그 레벨")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("ingest", help="입금 내역 업로드 분석")
    p.add_argument("--club", type=int, required=True)
    p.add_argument("--year", type=int, required=True)
    p.add_argument("--rows", required=True, help="정규화된 입금 행 JSON 파일")
    p.add_argument("--file", default=None, help="원본 파일명")
    p.add_argument("--uploaded-by", type=int, default=None)

    p = sub.add_parser("records", help="입금 내역 목록")
    p.add_argument("--club", type=int, required=True)
    p.add_argument("--batch", default=None)
    p.add_argument("--status", choices=[s.value for s in RecordStatus], default=None)

    p = sub.add_parser("reassign", help="회원 수동 지정")
    p.add_argument("--club", type=int, required=True)
    p.add_argument("--record", required=True)
    p.add_argument("--member", type=int, default=None, help="생략하면 매칭 해제")

    p = sub.add_parser("confirm", help="단건 납부 확정")
    p.add_argument("--club", type=int, required=True)
    p.add_argument("--record", required=True)
    p.add_argument("--year", type=int, required=True)
    p.add_argument("--months", type=int, nargs="+", required=True)
    p.add_argument("--admin", type=int, default=None)

    p = sub.add_parser("skip", help="입금 내역 건너뛰기")
    p.add_argument("--club", type=int, required=True)
    p.add_argument("--record", required=True)

    p = sub.add_parser("bulk-confirm", help="일괄 납부 확정")
    p.add_argument("--club", type=int, required=True)
    p.add_argument("--year", type=int, required=True)
    p.add_argument("--records", nargs="+", required=True)
    p.add_argument("--admin", type=int, default=None)

    p = sub.add_parser("dashboard", help="연간 납부 현황")
    p.add_argument("--club", type=int, required=True)
    p.add_argument("--year", type=int, required=True)

    p = sub.add_parser("unpaid", help="월별 미납 회원")
    p.add_argument("--club", type=int, required=True)
    p.add_argument("--year", type=int, required=True)
    p.add_argument("--month", type=int, required=True)

    sub.add_parser("migrate", help="Supabase 테이블 확인 및 마이그레이션 SQL 출력")

    return parser


def run_command(service: ReconciliationService, args: argparse.Namespace) -> Any:
    """서브커맨드 실행 후 출력할 데이터 반환"""
    if args.command == "ingest":
        rows = load_rows(args.rows)
        result = service.ingest_batch(
            args.club,
            args.year,
            rows,
            file_name=args.file or Path(args.rows).name,
            uploaded_by=args.uploaded_by,
        )
        return result.model_dump(mode="json")

    elif args.command == "records":
        status = RecordStatus(args.status) if args.status else None
        records = service.list_records(args.club, batch_id=args.batch, status=status)
        return [r.model_dump(mode="json") for r in records]

    elif args.command == "reassign":
        return service.reassign_record(args.club, args.record, args.member).model_dump(mode="json")

    elif args.command == "confirm":
        result = service.confirm_record(args.club, args.record, args.year, args.months, args.admin)
        return result.model_dump(mode="json")

    elif args.command == "skip":
        return service.skip_record(args.club, args.record).model_dump(mode="json")

    elif args.command == "bulk-confirm":
        return service.bulk_confirm(args.club, args.records, args.year, args.admin).model_dump(mode="json")

    elif args.command == "dashboard":
        return service.get_dashboard(args.club, args.year).model_dump(mode="json")

    elif args.command == "unpaid":
        result = service.list_unpaid_members(args.club, args.year, args.month)
        data = result.model_dump(mode="json")
        data["total_unpaid"] = result.total_unpaid
        return data

    raise ValueError(f"알 수 없는 명령: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """메인 함수"""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)

    if args.command == "migrate":
        from database.run_migration import run_migration
        return 0 if run_migration() else 1

    seed = load_json(args.seed) if args.seed else None
    service = build_service(args.backend, seed)

    try:
        output = run_command(service, args)
    except ReconciliationError as e:
        logger.error(f"❌ [{e.code}] {e.message}")
        return 1

    print_json(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
