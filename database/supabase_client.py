"""
Supabase 데이터베이스 클라이언트

회비 정산용 저장소 구현.
쓰기 목록은 apply_payment_writes RPC(migrations/001_membership_fee.sql)로 넘겨
하나의 Postgres 트랜잭션 안에서 반영한다.
"""
import re
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger
from postgrest.exceptions import APIError
from supabase import create_client, Client

from membership_fee.config import supabase_config
from membership_fee.errors import StaleRecordError, StorageError, UniqueViolationError
from membership_fee.ledger import (
    FeeScheduleStore,
    LedgerWrite,
    MemberDirectory,
    PaymentLedger,
    UpdateRecord,
)
from membership_fee.models import (
    CoupleGroup,
    FeeExemption,
    FeeSchedule,
    Member,
    PaymentEntry,
    PaymentRecord,
    RecordStatus,
    UploadBatch,
)


# Postgres SQLSTATE
UNIQUE_VIOLATION_CODE = "23505"
STALE_RECORD_CODE = "RC409"  # apply_payment_writes()에서 발생

_DUPLICATE_KEY_PATTERN = re.compile(r"\(member_id, year, month\)=\((\d+), (\d+), (\d+)\)")


# 싱글톤 클라이언트
_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Supabase 클라이언트 인스턴스 반환 (싱글톤)
    """
    global _supabase_client
    if _supabase_client is None:
        if not supabase_config.supabase_url or not supabase_config.supabase_key:
            raise ValueError("SUPABASE_URL과 SUPABASE_KEY 환경변수를 설정해주세요")
        _supabase_client = create_client(
            supabase_config.supabase_url,
            supabase_config.supabase_key
        )
    return _supabase_client


def _execute(query, action: str):
    """쿼리 실행 (실패 시 StorageError)"""
    try:
        return query.execute()
    except Exception as e:
        logger.error(f"{action} 오류: {e}")
        raise StorageError(f"{action} 중 저장소 오류가 발생했습니다") from e


def _duplicate_months(error: APIError) -> List[int]:
    """유일성 위반 메시지에서 중복된 월 추출"""
    text = f"{error.details or ''} {error.message or ''}"
    return [int(m.group(3)) for m in _DUPLICATE_KEY_PATTERN.finditer(text)]


class SupabaseLedger(PaymentLedger):
    """Supabase 납부 원장"""

    BATCH_TABLE = "payment_upload_batches"
    RECORD_TABLE = "payment_records"
    ENTRY_TABLE = "payment_entries"

    def __init__(self, client: Optional[Client] = None):
        self.client: Client = client or get_supabase_client()

    # ==================== 쓰기 ====================

    def apply(self, writes: Sequence[LedgerWrite]) -> None:
        payload = [write.to_payload() for write in writes]
        if not payload:
            return

        try:
            self.client.rpc("apply_payment_writes", {"writes": payload}).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION_CODE:
                raise UniqueViolationError(months=_duplicate_months(e)) from e
            if e.code == STALE_RECORD_CODE:
                record_id = next(
                    (w.record_id for w in writes if isinstance(w, UpdateRecord)),
                    "",
                )
                raise StaleRecordError(record_id) from e
            logger.error(f"납부 원장 반영 오류 [{e.code}]: {e.message}")
            raise StorageError(f"저장 실패: {e.message}") from e
        except Exception as e:
            logger.error(f"납부 원장 반영 오류: {e}")
            raise StorageError("저장소에 연결할 수 없습니다") from e

    # ==================== 조회 ====================

    def get_batch(self, batch_id: str) -> Optional[UploadBatch]:
        result = _execute(
            self.client.table(self.BATCH_TABLE).select("*").eq("id", batch_id).limit(1),
            "업로드 배치 조회",
        )
        if result.data:
            return UploadBatch.model_validate(result.data[0])
        return None

    def get_record(self, record_id: str) -> Optional[PaymentRecord]:
        result = _execute(
            self.client.table(self.RECORD_TABLE).select("*").eq("id", record_id).limit(1),
            "입금 내역 조회",
        )
        if result.data:
            return PaymentRecord.model_validate(result.data[0])
        return None

    def list_records(
        self,
        club_id: int,
        batch_id: Optional[str] = None,
        status: Optional[RecordStatus] = None
    ) -> List[PaymentRecord]:
        query = self.client.table(self.RECORD_TABLE).select("*").eq("club_id", club_id)
        if batch_id:
            query = query.eq("batch_id", batch_id)
        if status:
            query = query.eq("status", status.value)
        query = query.order("transaction_date", desc=True)

        result = _execute(query, "입금 내역 목록 조회")
        return [PaymentRecord.model_validate(row) for row in result.data or []]

    def list_entries(self, member_id: int, year: int) -> List[PaymentEntry]:
        result = _execute(
            self.client.table(self.ENTRY_TABLE)
            .select("*")
            .eq("member_id", member_id)
            .eq("year", year)
            .order("month"),
            "납부 내역 조회",
        )
        return [PaymentEntry.model_validate(row) for row in result.data or []]

    def entries_for_record(self, record_id: str) -> List[PaymentEntry]:
        result = _execute(
            self.client.table(self.ENTRY_TABLE)
            .select("*")
            .eq("payment_record_id", record_id)
            .order("year")
            .order("month"),
            "입금 내역별 납부 내역 조회",
        )
        return [PaymentEntry.model_validate(row) for row in result.data or []]

    def list_club_entries(self, club_id: int, year: int) -> List[PaymentEntry]:
        # 납부 내역에는 club_id가 없으므로 입금 내역과 inner join
        result = _execute(
            self.client.table(self.ENTRY_TABLE)
            .select("*, payment_records!inner(club_id)")
            .eq("payment_records.club_id", club_id)
            .eq("year", year),
            "클럽 납부 내역 조회",
        )
        return [PaymentEntry.model_validate(row) for row in result.data or []]


class SupabaseMemberDirectory(MemberDirectory):
    """Supabase 클럽 회원 명부 (승인된 회원만)"""

    def __init__(self, client: Optional[Client] = None):
        self.client: Client = client or get_supabase_client()

    def list_members(self, club_id: int) -> List[Member]:
        result = _execute(
            self.client.table("club_members")
            .select("id, name")
            .eq("club_id", club_id)
            .eq("status", "APPROVED")
            .order("id"),
            "클럽 회원 조회",
        )
        return [
            Member(id=row["id"], display_name=row.get("name") or "")
            for row in result.data or []
        ]

    def list_couple_groups(self, club_id: int) -> List[CoupleGroup]:
        result = _execute(
            self.client.table("couple_groups")
            .select("id, couple_members(id, club_member_id)")
            .eq("club_id", club_id)
            .order("id"),
            "부부 그룹 조회",
        )

        groups: List[CoupleGroup] = []
        for row in result.data or []:
            # 먼저 등록된 회원이 대표 회원
            links = sorted(row.get("couple_members") or [], key=lambda m: m["id"])
            member_ids = [link["club_member_id"] for link in links]
            if len(member_ids) != 2:
                logger.warning(f"⚠️ 부부 그룹 {row['id']} 구성원이 {len(member_ids)}명이라 무시합니다")
                continue
            groups.append(CoupleGroup(id=row["id"], member_ids=member_ids))
        return groups

    def list_exemptions(self, club_id: int, year: int) -> List[FeeExemption]:
        result = _execute(
            self.client.table("fee_exemptions")
            .select("club_member_id, year, reason")
            .eq("club_id", club_id)
            .eq("year", year),
            "회비 면제 조회",
        )
        return [
            FeeExemption(
                member_id=row["club_member_id"],
                year=row["year"],
                reason=row.get("reason") or "",
            )
            for row in result.data or []
        ]


class SupabaseFeeScheduleStore(FeeScheduleStore):
    """Supabase 연도별 회비 설정"""

    def __init__(self, client: Optional[Client] = None):
        self.client: Client = client or get_supabase_client()

    def get_fee_schedule(self, club_id: int, year: int) -> Optional[FeeSchedule]:
        result = _execute(
            self.client.table("membership_fees")
            .select("club_id, year, regular_amount, couple_amount")
            .eq("club_id", club_id)
            .eq("year", year)
            .limit(1),
            "회비 설정 조회",
        )
        if not result.data:
            return None

        row: Dict[str, Any] = result.data[0]
        return FeeSchedule(
            club_id=row["club_id"],
            year=row["year"],
            regular_amount=row["regular_amount"],
            couple_amount=row.get("couple_amount") or None,
        )
