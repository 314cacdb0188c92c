"""
회비 입금 정산 서비스

엑셀 업로드 1건의 전체 흐름:
1. ingest_batch   - 행별 회원 매칭 + 금액 검증 후 임시 입금 내역 저장
2. reassign_record - 운영자 수동 재매칭
3. confirm_record / bulk_confirm - 납부 확정 (월별 납부 내역 생성)
4. skip_record    - 회비가 아닌 입금 건너뛰기

행 단위 문제는 상태(status)와 사유(error_reason)로 기록하고,
배치 전제 조건 위반과 저장소 오류만 예외로 올린다.
"""

import uuid
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from loguru import logger

from .amount_validator import describe_hint, detect_member_type, format_won, validate_amount
from .config import ReconciliationConfig, reconciliation_config
from .directory import DirectorySnapshot
from .errors import (
    AllocationInsufficientError,
    AlreadyPaidError,
    AmountMismatchError,
    BatchTooLargeError,
    ConfigurationError,
    EmptyBatchError,
    InvalidMonthSelectionError,
    InvalidTransitionError,
    MemberNotFoundError,
    MemberNotMatchedError,
    RecordNotFoundError,
    StaleRecordError,
    StorageError,
    UniqueViolationError,
)
from .ledger import (
    FeeScheduleStore,
    InsertBatch,
    InsertEntry,
    InsertRecord,
    MemberDirectory,
    PaymentLedger,
    UpdateRecord,
)
from .models import (
    BulkConfirmResult,
    BulkFailure,
    ConfirmResult,
    FeeSchedule,
    IngestResult,
    IngestSummary,
    NormalizedRow,
    PaymentDashboard,
    PaymentEntry,
    PaymentRecord,
    RecordDetail,
    RecordStatus,
    UnpaidMembersResult,
    UploadBatch,
)
from .month_allocator import MONTHS_IN_YEAR, suggest_months
from .report import build_dashboard, find_unpaid_members
from .status import TERMINAL_STATUSES, ensure_transition


# 일괄 확정에서 레코드별 실패로 처리하는 예외 (나머지는 전체 중단)
BULK_RECORD_FAILURES = (
    RecordNotFoundError,
    MemberNotFoundError,
    MemberNotMatchedError,
    InvalidTransitionError,
    AmountMismatchError,
    AllocationInsufficientError,
    AlreadyPaidError,
)


class ReconciliationService:
    """회비 입금 정산 오케스트레이터"""

    def __init__(
        self,
        ledger: PaymentLedger,
        directory: MemberDirectory,
        fee_schedules: FeeScheduleStore,
        config: Optional[ReconciliationConfig] = None
    ):
        self.ledger = ledger
        self.directory = directory
        self.fee_schedules = fee_schedules
        self.config = config or reconciliation_config

    # =============================================
    # 공통
    # =============================================

    def _require_schedule(self, club_id: int, year: int) -> FeeSchedule:
        schedule = self.fee_schedules.get_fee_schedule(club_id, year)
        if schedule is None:
            raise ConfigurationError(f"{year}년 회비 설정이 없습니다")
        return schedule

    def _load_record(self, club_id: int, record_id: str) -> PaymentRecord:
        record = self.ledger.get_record(record_id)
        if record is None or record.club_id != club_id:
            raise RecordNotFoundError(record_id)
        return record

    def _snapshot(self, club_id: int, year: Optional[int] = None) -> DirectorySnapshot:
        return DirectorySnapshot.load(self.directory, club_id, year)

    @staticmethod
    def _evaluate(
        amount: int,
        member_id: Optional[int],
        snapshot: DirectorySnapshot,
        schedule: FeeSchedule
    ) -> Tuple[RecordStatus, Optional[str]]:
        """매칭 결과 + 금액으로 레코드 상태 결정"""
        if member_id is None:
            hint = detect_member_type(amount, schedule)
            status = RecordStatus.PENDING if hint is not None else RecordStatus.ERROR
            return status, describe_hint(amount, schedule, hint)

        validation = validate_amount(amount, schedule, snapshot.member_type(member_id))
        if validation.is_valid:
            return RecordStatus.MATCHED, None
        return RecordStatus.ERROR, validation.error

    def _apply_status_change(
        self,
        record: PaymentRecord,
        target: RecordStatus,
        changes: dict
    ) -> PaymentRecord:
        now = datetime.now()
        changes = {**changes, "status": target, "updated_at": now}
        try:
            self.ledger.apply([
                UpdateRecord(record.id, changes, expected_status=record.status)
            ])
        except StaleRecordError as e:
            raise InvalidTransitionError(record.status, target, e.message) from e
        return record.model_copy(update=changes)

    # =============================================
    # 업로드 분석
    # =============================================

    def ingest_batch(
        self,
        club_id: int,
        year: int,
        rows: Iterable[Union[NormalizedRow, dict]],
        file_name: str = "unknown.xlsx",
        uploaded_by: Optional[int] = None
    ) -> IngestResult:
        """
        입금 내역 업로드 분석

        회비 설정이 없으면 아무것도 저장하지 않고 ConfigurationError.
        배치와 모든 입금 내역은 하나의 트랜잭션으로 저장된다.
        """
        parsed = [
            row if isinstance(row, NormalizedRow) else NormalizedRow.model_validate(row)
            for row in rows
        ]
        if not parsed:
            raise EmptyBatchError("입금 내역이 없습니다")
        if len(parsed) > self.config.max_upload_rows:
            raise BatchTooLargeError(
                f"한 번에 최대 {self.config.max_upload_rows}건까지 업로드할 수 있습니다 ({len(parsed)}건)"
            )

        schedule = self._require_schedule(club_id, year)
        snapshot = self._snapshot(club_id)
        matcher = snapshot.matcher

        now = datetime.now()
        batch = UploadBatch(
            id=str(uuid.uuid4()),
            club_id=club_id,
            year=year,
            file_name=file_name,
            uploaded_at=now,
            record_count=len(parsed),
            uploaded_by=uploaded_by,
        )

        records: List[PaymentRecord] = []
        for row in parsed:
            match = matcher.match(row.depositor_name)
            status, reason = self._evaluate(row.amount, match.member_id, snapshot, schedule)

            if match.is_ambiguous:
                names = ", ".join(matcher.candidate_names(match))
                reason = f"{reason} - 후보 회원 {len(match.candidate_ids)}명: {names}"

            records.append(PaymentRecord(
                id=str(uuid.uuid4()),
                batch_id=batch.id,
                club_id=club_id,
                transaction_date=row.transaction_date,
                depositor_name=row.depositor_name,
                amount=row.amount,
                memo=row.memo,
                matched_member_id=match.member_id,
                status=status,
                error_reason=reason,
                created_at=now,
                updated_at=now,
            ))

        try:
            self.ledger.apply([InsertBatch(batch)] + [InsertRecord(r) for r in records])
        except StorageError as e:
            logger.error(f"업로드 저장 실패 ({file_name}): {e.message}")
            raise

        summary = IngestSummary(
            total=len(records),
            matched=sum(1 for r in records if r.status == RecordStatus.MATCHED),
            error=sum(1 for r in records if r.status == RecordStatus.ERROR),
            pending=sum(1 for r in records if r.status == RecordStatus.PENDING),
        )
        logger.info(
            f"📥 업로드 분석 완료: {file_name} (club={club_id}, {year}년) "
            f"총 {summary.total}건 / 매칭 {summary.matched} / 오류 {summary.error} / 대기 {summary.pending}"
        )
        return IngestResult(batch=batch, records=records, summary=summary)

    # =============================================
    # 수동 재매칭 / 건너뛰기
    # =============================================

    def reassign_record(
        self,
        club_id: int,
        record_id: str,
        member_id: Optional[int]
    ) -> PaymentRecord:
        """
        운영자 수동 회원 지정 (None이면 매칭 해제)

        확정/건너뛴 레코드는 변경 불가. 새 회원 유형으로 금액을 다시 검증한다.
        """
        record = self._load_record(club_id, record_id)
        if record.status in TERMINAL_STATUSES:
            ensure_transition(record.status, RecordStatus.MATCHED)

        snapshot = self._snapshot(club_id)
        if member_id is not None and not snapshot.has_member(member_id):
            raise MemberNotFoundError(member_id)

        batch = self.ledger.get_batch(record.batch_id)
        year = batch.year if batch else record.transaction_date.year
        schedule = self._require_schedule(club_id, year)

        status, reason = self._evaluate(record.amount, member_id, snapshot, schedule)
        ensure_transition(record.status, status)

        updated = self._apply_status_change(record, status, {
            "matched_member_id": member_id,
            "error_reason": reason,
        })
        logger.info(f"입금 내역 재매칭: {record_id} -> member={member_id} ({status.value})")
        return updated

    def skip_record(self, club_id: int, record_id: str) -> PaymentRecord:
        """회비가 아닌 입금 건너뛰기 (종료 상태)"""
        record = self._load_record(club_id, record_id)
        ensure_transition(record.status, RecordStatus.SKIPPED)

        updated = self._apply_status_change(record, RecordStatus.SKIPPED, {})
        logger.info(f"입금 내역 건너뜀: {record_id} ({record.depositor_name}, {format_won(record.amount)})")
        return updated

    # =============================================
    # 납부 확정
    # =============================================

    @staticmethod
    def _validate_month_selection(months: Sequence[int]) -> List[int]:
        if not months:
            raise InvalidMonthSelectionError("최소 1개월을 선택해야 합니다")
        invalid = [m for m in months if isinstance(m, bool) or not isinstance(m, int) or not 1 <= m <= MONTHS_IN_YEAR]
        if invalid:
            raise InvalidMonthSelectionError(f"월은 1~12 사이여야 합니다: {invalid}")
        if len(set(months)) != len(months):
            raise InvalidMonthSelectionError("같은 월을 중복 선택할 수 없습니다")
        return sorted(months)

    def _commit_confirmation(
        self,
        record: PaymentRecord,
        member_id: int,
        year: int,
        months: List[int],
        rate: int,
        admin_id: Optional[int]
    ) -> Tuple[PaymentRecord, List[PaymentEntry]]:
        """납부 내역 생성 + 상태 확정을 하나의 트랜잭션으로"""
        now = datetime.now()
        entries = [
            PaymentEntry(
                id=str(uuid.uuid4()),
                member_id=member_id,
                payment_record_id=record.id,
                year=year,
                month=month,
                amount=rate,
                confirmed_by_admin_id=admin_id,
                confirmed_at=now,
            )
            for month in months
        ]
        changes = {"status": RecordStatus.CONFIRMED, "error_reason": None, "updated_at": now}
        writes = [InsertEntry(e) for e in entries]
        writes.append(UpdateRecord(record.id, changes, expected_status=record.status))

        try:
            self.ledger.apply(writes)
        except UniqueViolationError as e:
            raise AlreadyPaidError(e.months or months) from e
        except StaleRecordError as e:
            raise InvalidTransitionError(record.status, RecordStatus.CONFIRMED, e.message) from e

        return record.model_copy(update=changes), entries

    def confirm_record(
        self,
        club_id: int,
        record_id: str,
        year: int,
        months: Sequence[int],
        admin_id: Optional[int] = None
    ) -> ConfirmResult:
        """
        단건 확정 (운영자가 월을 직접 선택)

        검증 순서: 레코드 존재 -> 회원 매칭 -> 확정 여부 -> 금액 == 월 회비 x 개월 수 -> 기납부 월
        부부는 누구 이름으로 입금했든 대표 회원 기준으로 기납부 월을 확인하고 기록한다.
        """
        record = self._load_record(club_id, record_id)
        if record.matched_member_id is None:
            raise MemberNotMatchedError()
        ensure_transition(record.status, RecordStatus.CONFIRMED)

        selected = self._validate_month_selection(months)
        schedule = self._require_schedule(club_id, year)
        snapshot = self._snapshot(club_id)

        member_id = record.matched_member_id
        if not snapshot.has_member(member_id):
            raise MemberNotFoundError(member_id)

        rate = schedule.rate_for(snapshot.member_type(member_id))
        expected = rate * len(selected)
        if rate <= 0 or record.amount != expected:
            raise AmountMismatchError(
                f"입금액({format_won(record.amount)})과 선택한 월 수"
                f"({len(selected)}개월, {format_won(expected)})가 일치하지 않습니다"
            )

        payer_id = snapshot.payer_id(member_id)
        already_paid = set(self.ledger.paid_months(payer_id, year)) & set(selected)
        if already_paid:
            raise AlreadyPaidError(already_paid)

        updated, entries = self._commit_confirmation(record, payer_id, year, selected, rate, admin_id)
        logger.info(f"✅ 납부 확정: {record_id} member={payer_id} {year}년 {selected}")
        return ConfirmResult(record=updated, entries=entries)

    def _auto_confirm(
        self,
        record: PaymentRecord,
        year: int,
        schedule: FeeSchedule,
        snapshot: DirectorySnapshot,
        admin_id: Optional[int]
    ) -> List[PaymentEntry]:
        member_id = record.matched_member_id
        if not snapshot.has_member(member_id):
            raise MemberNotFoundError(member_id)

        # 업로드 이후 설정/명부가 바뀌었을 수 있으므로 다시 검증
        validation = validate_amount(record.amount, schedule, snapshot.member_type(member_id))
        if not validation.is_valid:
            raise AmountMismatchError(validation.error or "금액 검증 실패")

        payer_id = snapshot.payer_id(member_id)
        paid = self.ledger.paid_months(payer_id, year)
        months = suggest_months(validation.month_count, paid)
        if len(months) < validation.month_count:
            raise AllocationInsufficientError(validation.month_count, len(months))

        _, entries = self._commit_confirmation(record, payer_id, year, months, validation.rate, admin_id)
        return entries

    def bulk_confirm(
        self,
        club_id: int,
        record_ids: Sequence[str],
        year: int,
        admin_id: Optional[int] = None
    ) -> BulkConfirmResult:
        """
        일괄 확정 (월은 미납 월 중 1월부터 자동 배정)

        레코드마다 별도 트랜잭션으로 확정하므로 일부 실패가 나머지 성공을 되돌리지 않는다.
        """
        schedule = self._require_schedule(club_id, year)
        snapshot = self._snapshot(club_id)

        unique_ids = list(dict.fromkeys(record_ids))
        result = BulkConfirmResult(total=len(unique_ids))

        for record_id in unique_ids:
            try:
                record = self._load_record(club_id, record_id)
                if record.status != RecordStatus.MATCHED or record.matched_member_id is None:
                    ensure_transition(record.status, RecordStatus.CONFIRMED)
                    raise InvalidTransitionError(
                        record.status,
                        RecordStatus.CONFIRMED,
                        f"일괄 확정은 매칭 완료(MATCHED) 상태만 가능합니다 (현재: {record.status.value})",
                    )
                result.processed += 1
                self._auto_confirm(record, year, schedule, snapshot, admin_id)
                result.success_ids.append(record_id)
            except BULK_RECORD_FAILURES as e:
                logger.warning(f"일괄 확정 제외: {record_id} - {e.message}")
                result.failures.append(BulkFailure(record_id=record_id, code=e.code, reason=e.message))
            except StorageError as e:
                logger.error(f"일괄 확정 중 저장소 오류로 중단: {record_id} - {e.message}")
                raise

        logger.info(
            f"일괄 확정 완료: {len(result.success_ids)}건 확정, {len(result.failures)}건 실패 "
            f"(요청 {result.total}건)"
        )
        return result

    # =============================================
    # 조회
    # =============================================

    def list_records(
        self,
        club_id: int,
        batch_id: Optional[str] = None,
        status: Optional[RecordStatus] = None
    ) -> List[PaymentRecord]:
        return self.ledger.list_records(club_id, batch_id=batch_id, status=status)

    def get_record_detail(self, club_id: int, record_id: str) -> RecordDetail:
        record = self._load_record(club_id, record_id)
        return RecordDetail(record=record, entries=self.ledger.entries_for_record(record_id))

    def get_dashboard(self, club_id: int, year: int, today: Optional[date] = None) -> PaymentDashboard:
        """연간 납부 대시보드 (회비 설정이 없어도 조회 가능)"""
        snapshot = self._snapshot(club_id, year)
        schedule = self.fee_schedules.get_fee_schedule(club_id, year)
        entries = self.ledger.list_club_entries(club_id, year)
        return build_dashboard(snapshot, entries, year, schedule, today)

    def list_unpaid_members(self, club_id: int, year: int, month: int) -> UnpaidMembersResult:
        snapshot = self._snapshot(club_id, year)
        entries = self.ledger.list_club_entries(club_id, year)
        return find_unpaid_members(snapshot, entries, year, month)
