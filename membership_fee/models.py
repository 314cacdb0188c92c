"""
Membership Fee Models

회비 입금 정산 Pydantic 모델 정의
"""

from datetime import date, datetime
from typing import Optional, List, Dict
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================
# Enums
# =============================================

class RecordStatus(str, Enum):
    """입금 내역 상태"""
    PENDING = "PENDING"       # 회원 매칭 대기
    MATCHED = "MATCHED"       # 매칭 + 금액 검증 완료
    ERROR = "ERROR"           # 검증 실패 (수동 확인 필요)
    CONFIRMED = "CONFIRMED"   # 납부 확정 (종료)
    SKIPPED = "SKIPPED"       # 회비 아님 (종료)


class MemberType(str, Enum):
    """회비 유형"""
    regular = "regular"       # 일반
    couple = "couple"         # 부부


class DetectedMemberType(str, Enum):
    """금액으로 추정한 회비 유형 (매칭 실패 시 운영자 참고용)"""
    regular = "regular"
    couple = "couple"
    undetermined = "undetermined"  # 일반/부부 모두 가능


class MatchType(str, Enum):
    """입금자명 매칭 유형"""
    exact = "exact"           # 정확 일치 (부부 공동명 포함)
    partial = "partial"       # 포함 관계 일치
    none = "none"             # 매칭 실패


# =============================================
# Directory Models (외부 회원 명부)
# =============================================

class Member(BaseModel):
    """납부 대상 회원"""
    model_config = ConfigDict(frozen=True)

    id: int
    display_name: str


class CoupleGroup(BaseModel):
    """부부 그룹 (두 회원이 하나의 부부 회비를 납부)"""
    model_config = ConfigDict(frozen=True)

    id: int
    member_ids: List[int]  # 첫 번째 회원이 대표 회원

    @field_validator("member_ids")
    @classmethod
    def validate_pair(cls, v: List[int]) -> List[int]:
        if len(v) != 2 or v[0] == v[1]:
            raise ValueError("부부 그룹은 서로 다른 회원 2명으로 구성되어야 합니다")
        return v

    @property
    def primary_member_id(self) -> int:
        return self.member_ids[0]


class FeeSchedule(BaseModel):
    """연도별 월 회비 (원 단위 정수)"""
    club_id: Optional[int] = None
    year: Optional[int] = None
    regular_amount: int = Field(..., gt=0, description="일반 월 회비")
    couple_amount: Optional[int] = Field(None, gt=0, description="부부 월 회비")

    def rate_for(self, member_type: MemberType) -> int:
        """회비 유형별 월 금액 (미설정이면 0)"""
        if member_type == MemberType.couple:
            return self.couple_amount or 0
        return self.regular_amount


class FeeExemption(BaseModel):
    """회비 면제"""
    member_id: int
    year: int
    reason: str = ""


# =============================================
# Reconciliation Models
# =============================================

class NormalizedRow(BaseModel):
    """엑셀에서 추출된 입금 1건"""
    transaction_date: date
    depositor_name: str
    amount: int
    memo: Optional[str] = None


class UploadBatch(BaseModel):
    """엑셀 업로드 1회"""
    model_config = ConfigDict(frozen=True)

    id: str
    club_id: int
    year: int
    file_name: str
    uploaded_at: datetime
    record_count: int
    uploaded_by: Optional[int] = None


class PaymentRecord(BaseModel):
    """입금 내역 (정산 전 임시 레코드)"""
    id: str
    batch_id: str
    club_id: int
    transaction_date: date
    depositor_name: str
    amount: int
    memo: Optional[str] = None
    matched_member_id: Optional[int] = None
    status: RecordStatus = RecordStatus.PENDING
    error_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class PaymentEntry(BaseModel):
    """월별 납부 내역 - (member_id, year, month)당 최대 1건"""
    model_config = ConfigDict(frozen=True)

    id: str
    member_id: int
    payment_record_id: str
    year: int
    month: int = Field(..., ge=1, le=12)
    amount: int
    confirmed_by_admin_id: Optional[int] = None
    confirmed_at: datetime = Field(default_factory=datetime.now)


# =============================================
# Result Models
# =============================================

class MatchResult(BaseModel):
    """입금자 매칭 결과"""
    member_id: Optional[int] = None
    member_name: Optional[str] = None
    match_type: MatchType = MatchType.none
    candidate_ids: List[int] = []  # 모호한 경우 후보 회원

    @property
    def is_ambiguous(self) -> bool:
        return self.member_id is None and len(self.candidate_ids) > 1


class AmountValidationResult(BaseModel):
    """금액 검증 결과"""
    is_valid: bool
    member_type: Optional[MemberType] = None
    month_count: int = 0
    rate: int = 0
    error: Optional[str] = None


class IngestSummary(BaseModel):
    """업로드 분석 요약"""
    total: int = 0
    matched: int = 0
    error: int = 0
    pending: int = 0


class IngestResult(BaseModel):
    """업로드 결과"""
    batch: UploadBatch
    records: List[PaymentRecord]
    summary: IngestSummary

    @property
    def batch_id(self) -> str:
        return self.batch.id


class ConfirmResult(BaseModel):
    """단건 확정 결과"""
    record: PaymentRecord
    entries: List[PaymentEntry]


class BulkFailure(BaseModel):
    """일괄 확정 실패 건"""
    record_id: str
    code: str
    reason: str


class BulkConfirmResult(BaseModel):
    """일괄 확정 결과"""
    success_ids: List[str] = []
    failures: List[BulkFailure] = []
    total: int = 0       # 요청된 레코드 수
    processed: int = 0   # 실제 확정 시도한 레코드 수


class RecordDetail(BaseModel):
    """입금 내역 상세"""
    record: PaymentRecord
    entries: List[PaymentEntry]


# =============================================
# Dashboard Models
# =============================================

class MemberPaymentStatus(BaseModel):
    """회원별 연간 납부 현황"""
    member_id: int
    name: str
    member_type: str  # regular, couple, exempt
    couple_partner_name: Optional[str] = None
    payments: Dict[int, bool]  # month -> paid
    paid_count: int
    unpaid_months: List[int] = []  # 기준일까지 미납 월
    total_months: int = 12


class MonthlyStats(BaseModel):
    """월별 통계"""
    month: int
    paid_count: int
    total_count: int
    amount: int


class DashboardSummary(BaseModel):
    """대시보드 요약"""
    total_members: int
    exempt_members: int
    couple_groups: int
    monthly_stats: List[MonthlyStats]
    year_total: int


class PaymentDashboard(BaseModel):
    """연간 납부 대시보드"""
    year: int
    fee_schedule: Optional[FeeSchedule] = None
    members: List[MemberPaymentStatus]
    summary: DashboardSummary


class UnpaidMember(BaseModel):
    """미납 회원"""
    member_id: int
    name: str
    member_type: MemberType
    partner_name: Optional[str] = None


class UnpaidMembersResult(BaseModel):
    """월별 미납 회원 목록"""
    year: int
    month: int
    unpaid_members: List[UnpaidMember]

    @property
    def total_unpaid(self) -> int:
        return len(self.unpaid_members)
