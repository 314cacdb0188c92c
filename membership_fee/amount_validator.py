"""
입금액 검증

모든 금액은 원 단위 정수로만 계산한다 (부동소수점 사용 금지).
"""

from typing import Optional

from .models import AmountValidationResult, DetectedMemberType, FeeSchedule, MemberType


MEMBER_TYPE_LABELS = {
    MemberType.regular: "일반",
    MemberType.couple: "부부",
}


def format_won(amount: int) -> str:
    """12000 -> '12,000원'"""
    return f"{amount:,}원"


def validate_amount(
    amount: int,
    schedule: FeeSchedule,
    member_type: MemberType
) -> AmountValidationResult:
    """
    입금액이 회비 유형별 월 금액의 정수배인지 검증

    Returns:
        유효하면 month_count = amount / rate
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"입금액은 정수여야 합니다: {amount!r}")

    label = MEMBER_TYPE_LABELS[member_type]
    rate = schedule.rate_for(member_type)

    if amount <= 0:
        return AmountValidationResult(
            is_valid=False,
            member_type=member_type,
            rate=rate,
            error="입금액이 0 이하입니다",
        )

    if rate <= 0:
        return AmountValidationResult(
            is_valid=False,
            member_type=member_type,
            error=f"{label} 회비 금액이 설정되지 않았습니다",
        )

    month_count, remainder = divmod(amount, rate)
    if remainder != 0 or month_count < 1:
        return AmountValidationResult(
            is_valid=False,
            member_type=member_type,
            rate=rate,
            error=f"{label} 회비 금액({format_won(rate)})의 배수가 아닙니다",
        )

    return AmountValidationResult(
        is_valid=True,
        member_type=member_type,
        month_count=month_count,
        rate=rate,
    )


def detect_member_type(amount: int, schedule: FeeSchedule) -> Optional[DetectedMemberType]:
    """
    회원 매칭 실패 시 금액만으로 회비 유형 추정 (운영자 참고용, 회원 자동 지정 안 함)

    Returns:
        regular / couple: 한쪽 금액의 배수
        undetermined: 양쪽 모두의 배수 (금액이 서로 다를 때)
        None: 어느 쪽 배수도 아님
    """
    if amount <= 0:
        return None

    regular_rate = schedule.rate_for(MemberType.regular)
    couple_rate = schedule.rate_for(MemberType.couple)

    fits_regular = regular_rate > 0 and amount % regular_rate == 0
    fits_couple = couple_rate > 0 and amount % couple_rate == 0

    if fits_regular and fits_couple:
        if regular_rate == couple_rate:
            return DetectedMemberType.regular
        return DetectedMemberType.undetermined
    if fits_regular:
        return DetectedMemberType.regular
    if fits_couple:
        return DetectedMemberType.couple
    return None


def describe_hint(amount: int, schedule: FeeSchedule, hint: Optional[DetectedMemberType]) -> str:
    """매칭 실패 레코드의 사유 문구"""
    if hint is None:
        return "회원 매칭 실패 및 금액 형식 불일치"
    if hint == DetectedMemberType.undetermined:
        return "회원 매칭 실패 (일반/부부 회비 모두 가능한 금액)"

    member_type = MemberType(hint.value)
    months = amount // schedule.rate_for(member_type)
    return f"회원 매칭 실패 ({MEMBER_TYPE_LABELS[member_type]} 회비 {months}개월분으로 추정)"
