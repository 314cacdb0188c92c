"""
회비 정산 예외 정의

행 단위 문제(매칭 실패, 금액 불일치)는 예외가 아니라 레코드 상태와 사유로 기록된다.
여기 정의된 예외는 배치 전체를 중단시키는 구조적 오류와
단건 작업(확정/재매칭/건너뛰기)의 거부 사유다.
"""

from typing import Iterable, List, Optional


class ReconciliationError(Exception):
    """회비 정산 오류 기본 클래스"""

    code = "RECONCILIATION_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# =============================================
# 배치 단위 오류
# =============================================

class ConfigurationError(ReconciliationError):
    """회비 설정 누락 또는 회원 명부 불일치"""
    code = "CONFIGURATION_ERROR"


class EmptyBatchError(ReconciliationError):
    """입금 내역이 없는 업로드"""
    code = "EMPTY_BATCH"


class BatchTooLargeError(ReconciliationError):
    """업로드 행 수 초과"""
    code = "BATCH_TOO_LARGE"


class RecordNotFoundError(ReconciliationError):
    """입금 내역 없음 (또는 다른 클럽 소속)"""
    code = "RECORD_NOT_FOUND"

    def __init__(self, record_id: str):
        super().__init__("입금 내역을 찾을 수 없습니다")
        self.record_id = record_id


class MemberNotFoundError(ReconciliationError):
    """클럽에 속하지 않은 회원"""
    code = "MEMBER_NOT_FOUND"

    def __init__(self, member_id: int):
        super().__init__("해당 클럽에 속하지 않은 회원입니다")
        self.member_id = member_id


# =============================================
# 레코드 단위 거부 사유
# =============================================

class MemberNotMatchedError(ReconciliationError):
    code = "MEMBER_NOT_MATCHED"

    def __init__(self):
        super().__init__("매칭된 회원이 없습니다")


class InvalidTransitionError(ReconciliationError):
    """허용되지 않는 상태 전이"""
    code = "INVALID_TRANSITION"

    def __init__(self, current, target, message: Optional[str] = None):
        super().__init__(message or f"{current.value} 상태에서 {target.value}(으)로 변경할 수 없습니다")
        self.current = current
        self.target = target


class AmountMismatchError(ReconciliationError):
    """입금액이 회비 금액과 맞지 않음"""
    code = "AMOUNT_INVALID"


class InvalidMonthSelectionError(ReconciliationError):
    code = "INVALID_MONTHS"


class AlreadyPaidError(ReconciliationError):
    """이미 납부된 월 포함"""
    code = "ALREADY_PAID"

    def __init__(self, months: Iterable[int] = ()):
        self.months: List[int] = sorted(set(months))
        if self.months:
            paid = ", ".join(f"{m}월" for m in self.months)
            message = f"이미 납부된 월이 있습니다: {paid}"
        else:
            message = "이미 납부된 월이 있습니다"
        super().__init__(message)


class AllocationInsufficientError(ReconciliationError):
    """남은 미납 월이 필요한 개월 수보다 적음"""
    code = "ALLOCATION_INSUFFICIENT"

    def __init__(self, required: int, available: int):
        super().__init__(f"납부 가능한 월이 부족합니다 (필요 {required}개월, 가능 {available}개월)")
        self.required = required
        self.available = available


# =============================================
# 저장소 오류
# =============================================

class StorageError(ReconciliationError):
    """저장소 오류 (연결 실패 등) - 부분 반영 없음"""
    code = "STORAGE_ERROR"


class UniqueViolationError(StorageError):
    """(member_id, year, month) 유일성 제약 위반"""
    code = "UNIQUE_VIOLATION"

    def __init__(self, message: str = "이미 납부된 월이 있습니다", months: Iterable[int] = ()):
        super().__init__(message)
        self.months = sorted(set(months))


class StaleRecordError(StorageError):
    """레코드 상태가 검증 이후 다른 작업에 의해 변경됨"""
    code = "STALE_RECORD"

    def __init__(self, record_id: str, message: Optional[str] = None):
        super().__init__(message or "다른 작업에서 입금 내역이 변경되었습니다")
        self.record_id = record_id
