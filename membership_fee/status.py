"""
입금 내역 상태 전이

PENDING -> {MATCHED | ERROR} -> {CONFIRMED | SKIPPED}
MATCHED <-> ERROR는 수동 재매칭(금액 재검증)으로 이동.
MATCHED/ERROR -> PENDING은 매칭 해제(회원 None 지정) 전용이며,
금액으로 회비 유형을 추정할 수 없는 매칭 해제는 ERROR로 간다.
CONFIRMED, SKIPPED는 종료 상태.
"""

from typing import Dict, FrozenSet

from .errors import InvalidTransitionError
from .models import RecordStatus


TERMINAL_STATUSES: FrozenSet[RecordStatus] = frozenset({
    RecordStatus.CONFIRMED,
    RecordStatus.SKIPPED,
})

ALLOWED_TRANSITIONS: Dict[RecordStatus, FrozenSet[RecordStatus]] = {
    RecordStatus.PENDING: frozenset({
        RecordStatus.PENDING,
        RecordStatus.MATCHED,
        RecordStatus.ERROR,
        RecordStatus.SKIPPED,
    }),
    RecordStatus.MATCHED: frozenset({
        RecordStatus.PENDING,
        RecordStatus.MATCHED,
        RecordStatus.ERROR,
        RecordStatus.CONFIRMED,
        RecordStatus.SKIPPED,
    }),
    RecordStatus.ERROR: frozenset({
        RecordStatus.PENDING,
        RecordStatus.MATCHED,
        RecordStatus.ERROR,
        RecordStatus.CONFIRMED,
        RecordStatus.SKIPPED,
    }),
    RecordStatus.CONFIRMED: frozenset(),
    RecordStatus.SKIPPED: frozenset(),
}

_TERMINAL_MESSAGES = {
    RecordStatus.CONFIRMED: "이미 확정된 입금 내역입니다",
    RecordStatus.SKIPPED: "이미 건너뛴 입금 내역입니다",
}


def can_transition(current: RecordStatus, target: RecordStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: RecordStatus, target: RecordStatus) -> None:
    """상태 전이 검증 - 허용되지 않으면 InvalidTransitionError"""
    if can_transition(current, target):
        return
    raise InvalidTransitionError(current, target, _TERMINAL_MESSAGES.get(current))
