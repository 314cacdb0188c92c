"""
인메모리 저장소

테스트와 업로드 미리보기(dry-run)용.
Supabase 저장소와 같은 제약을 지킨다:
- apply()는 전부 반영 또는 전부 취소
- (member_id, year, month) 유일성
- expected_status 불일치 시 StaleRecordError
"""
import threading
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from membership_fee.errors import StaleRecordError, StorageError, UniqueViolationError
from membership_fee.ledger import (
    FeeScheduleStore,
    InsertBatch,
    InsertEntry,
    InsertRecord,
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


class InMemoryLedger(PaymentLedger):
    """스레드 안전 인메모리 납부 원장"""

    def __init__(self):
        self._lock = threading.RLock()
        self.batches: Dict[str, UploadBatch] = {}
        self.records: Dict[str, PaymentRecord] = {}
        self.entries: Dict[str, PaymentEntry] = {}
        self._entry_keys: Dict[Tuple[int, int, int], str] = {}
        self.apply_count = 0

    # ==================== 쓰기 ====================

    def apply(self, writes: Sequence[LedgerWrite]) -> None:
        with self._lock:
            batches = dict(self.batches)
            records = dict(self.records)
            entries = dict(self.entries)
            entry_keys = dict(self._entry_keys)

            for write in writes:
                if isinstance(write, InsertBatch):
                    if write.batch.id in batches:
                        raise StorageError(f"중복 배치 ID: {write.batch.id}")
                    batches[write.batch.id] = write.batch

                elif isinstance(write, InsertRecord):
                    if write.record.id in records:
                        raise StorageError(f"중복 입금 내역 ID: {write.record.id}")
                    if write.record.batch_id not in batches:
                        raise StorageError(f"배치가 없습니다: {write.record.batch_id}")
                    records[write.record.id] = write.record.model_copy()

                elif isinstance(write, InsertEntry):
                    entry = write.entry
                    key = (entry.member_id, entry.year, entry.month)
                    if key in entry_keys:
                        raise UniqueViolationError(months=[entry.month])
                    if entry.payment_record_id not in records:
                        raise StorageError(f"입금 내역이 없습니다: {entry.payment_record_id}")
                    entries[entry.id] = entry
                    entry_keys[key] = entry.id

                elif isinstance(write, UpdateRecord):
                    current = records.get(write.record_id)
                    if current is None:
                        raise StorageError(f"입금 내역이 없습니다: {write.record_id}")
                    if write.expected_status is not None and current.status != write.expected_status:
                        raise StaleRecordError(write.record_id)
                    records[write.record_id] = current.model_copy(update=write.changes)

                else:
                    raise StorageError(f"알 수 없는 쓰기 유형: {type(write).__name__}")

            # 모든 쓰기가 통과한 경우에만 반영
            self.batches = batches
            self.records = records
            self.entries = entries
            self._entry_keys = entry_keys
            self.apply_count += 1

    # ==================== 조회 ====================

    def get_batch(self, batch_id: str) -> Optional[UploadBatch]:
        with self._lock:
            return self.batches.get(batch_id)

    def get_record(self, record_id: str) -> Optional[PaymentRecord]:
        with self._lock:
            record = self.records.get(record_id)
            return record.model_copy() if record else None

    def list_records(
        self,
        club_id: int,
        batch_id: Optional[str] = None,
        status: Optional[RecordStatus] = None
    ) -> List[PaymentRecord]:
        with self._lock:
            result = [
                r.model_copy() for r in self.records.values()
                if r.club_id == club_id
                and (batch_id is None or r.batch_id == batch_id)
                and (status is None or r.status == status)
            ]
        result.sort(key=lambda r: r.transaction_date, reverse=True)
        return result

    def list_entries(self, member_id: int, year: int) -> List[PaymentEntry]:
        with self._lock:
            return sorted(
                (e for e in self.entries.values() if e.member_id == member_id and e.year == year),
                key=lambda e: e.month,
            )

    def entries_for_record(self, record_id: str) -> List[PaymentEntry]:
        with self._lock:
            return sorted(
                (e for e in self.entries.values() if e.payment_record_id == record_id),
                key=lambda e: (e.year, e.month),
            )

    def list_club_entries(self, club_id: int, year: int) -> List[PaymentEntry]:
        with self._lock:
            return [
                e for e in self.entries.values()
                if e.year == year and self.records[e.payment_record_id].club_id == club_id
            ]


class InMemoryMemberDirectory(MemberDirectory):
    """인메모리 회원 명부"""

    def __init__(self):
        self._members: Dict[int, List[Member]] = defaultdict(list)
        self._couples: Dict[int, List[CoupleGroup]] = defaultdict(list)
        self._exemptions: Dict[int, List[FeeExemption]] = defaultdict(list)

    def add_members(self, club_id: int, members: Iterable[Member]) -> None:
        self._members[club_id].extend(members)

    def add_couple_group(self, club_id: int, group: CoupleGroup) -> None:
        self._couples[club_id].append(group)

    def add_exemption(self, club_id: int, exemption: FeeExemption) -> None:
        self._exemptions[club_id].append(exemption)

    def list_members(self, club_id: int) -> List[Member]:
        return list(self._members.get(club_id, []))

    def list_couple_groups(self, club_id: int) -> List[CoupleGroup]:
        return list(self._couples.get(club_id, []))

    def list_exemptions(self, club_id: int, year: int) -> List[FeeExemption]:
        return [e for e in self._exemptions.get(club_id, []) if e.year == year]


class InMemoryFeeScheduleStore(FeeScheduleStore):
    """인메모리 회비 설정"""

    def __init__(self):
        self._schedules: Dict[Tuple[int, int], FeeSchedule] = {}

    def set_fee_schedule(self, club_id: int, year: int, regular_amount: int, couple_amount: Optional[int] = None) -> FeeSchedule:
        schedule = FeeSchedule(
            club_id=club_id,
            year=year,
            regular_amount=regular_amount,
            couple_amount=couple_amount,
        )
        self._schedules[(club_id, year)] = schedule
        return schedule

    def get_fee_schedule(self, club_id: int, year: int) -> Optional[FeeSchedule]:
        return self._schedules.get((club_id, year))
