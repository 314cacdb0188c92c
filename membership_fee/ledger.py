"""
저장소 인터페이스

매칭/검증/월 배정 로직은 저장소를 모른다.
오케스트레이터는 아래 추상 클래스만 사용하며, 쓰기는 모두
PaymentLedger.apply()에 넘기는 쓰기 목록(Unit of Work) 단위로 원자적으로 반영된다.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from .models import (
    CoupleGroup,
    FeeExemption,
    FeeSchedule,
    Member,
    PaymentEntry,
    PaymentRecord,
    RecordStatus,
    UploadBatch,
)


# =============================================
# 쓰기 (Unit of Work 구성 요소)
# =============================================

@dataclass(frozen=True)
class InsertBatch:
    batch: UploadBatch

    def to_payload(self) -> Dict[str, Any]:
        return {"op": "insert_batch", "data": self.batch.model_dump(mode="json")}


@dataclass(frozen=True)
class InsertRecord:
    record: PaymentRecord

    def to_payload(self) -> Dict[str, Any]:
        return {"op": "insert_record", "data": self.record.model_dump(mode="json")}


@dataclass(frozen=True)
class InsertEntry:
    entry: PaymentEntry

    def to_payload(self) -> Dict[str, Any]:
        return {"op": "insert_entry", "data": self.entry.model_dump(mode="json")}


@dataclass(frozen=True)
class UpdateRecord:
    """
    입금 내역 필드 갱신

    expected_status가 있으면 현재 상태가 같을 때만 반영 (compare-and-set).
    다르면 StaleRecordError로 전체 작업이 취소된다.
    """
    record_id: str
    changes: Dict[str, Any] = field(default_factory=dict)
    expected_status: Optional[RecordStatus] = None

    def to_payload(self) -> Dict[str, Any]:
        changes = {key: _jsonable(value) for key, value in self.changes.items()}
        return {
            "op": "update_record",
            "record_id": self.record_id,
            "changes": changes,
            "expected_status": self.expected_status.value if self.expected_status else None,
        }


LedgerWrite = Union[InsertBatch, InsertRecord, InsertEntry, UpdateRecord]


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


# =============================================
# 납부 원장
# =============================================

class PaymentLedger(ABC):
    """입금 내역/납부 내역 저장소"""

    @abstractmethod
    def apply(self, writes: Sequence[LedgerWrite]) -> None:
        """
        쓰기 목록을 하나의 트랜잭션으로 반영 (전부 반영 또는 전부 취소)

        Raises:
            UniqueViolationError: (member_id, year, month) 중복
            StaleRecordError: expected_status 불일치
            StorageError: 그 외 저장소 오류
        """

    @abstractmethod
    def get_batch(self, batch_id: str) -> Optional[UploadBatch]:
        pass

    @abstractmethod
    def get_record(self, record_id: str) -> Optional[PaymentRecord]:
        pass

    @abstractmethod
    def list_records(
        self,
        club_id: int,
        batch_id: Optional[str] = None,
        status: Optional[RecordStatus] = None
    ) -> List[PaymentRecord]:
        """거래일 최신순"""

    @abstractmethod
    def list_entries(self, member_id: int, year: int) -> List[PaymentEntry]:
        pass

    @abstractmethod
    def entries_for_record(self, record_id: str) -> List[PaymentEntry]:
        pass

    @abstractmethod
    def list_club_entries(self, club_id: int, year: int) -> List[PaymentEntry]:
        pass

    def paid_months(self, member_id: int, year: int) -> List[int]:
        return sorted({e.month for e in self.list_entries(member_id, year)})


# =============================================
# 외부 조회 전용 저장소
# =============================================

class MemberDirectory(ABC):
    """클럽 회원 명부 (읽기 전용)"""

    @abstractmethod
    def list_members(self, club_id: int) -> List[Member]:
        pass

    @abstractmethod
    def list_couple_groups(self, club_id: int) -> List[CoupleGroup]:
        pass

    def list_exemptions(self, club_id: int, year: int) -> List[FeeExemption]:
        return []


class FeeScheduleStore(ABC):
    """연도별 회비 설정 (읽기 전용)"""

    @abstractmethod
    def get_fee_schedule(self, club_id: int, year: int) -> Optional[FeeSchedule]:
        pass
