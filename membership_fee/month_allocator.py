"""
납부 월 배정

순수 함수 - I/O 없음, 같은 입력이면 항상 같은 결과.
"""

from datetime import date
from typing import Iterable, List, Optional

MONTHS_IN_YEAR = 12
ALL_MONTHS = tuple(range(1, MONTHS_IN_YEAR + 1))


def suggest_months(month_count: int, already_paid_months: Iterable[int]) -> List[int]:
    """
    1월부터 오름차순으로 미납 월을 최대 month_count개 선택

    남은 미납 월이 부족하면 month_count보다 짧은 목록을 돌려준다.
    다음 해로 넘기지 않으므로 호출 측에서 길이를 확인해 확정을 거부해야 한다.

    >>> suggest_months(3, {1, 2})
    [3, 4, 5]
    >>> suggest_months(3, set(range(1, 11)))
    [11, 12]
    """
    if month_count <= 0:
        return []

    paid = set(already_paid_months)
    suggestions: List[int] = []
    for month in ALL_MONTHS:
        if len(suggestions) >= month_count:
            break
        if month not in paid:
            suggestions.append(month)
    return suggestions


def get_unpaid_months(
    already_paid_months: Iterable[int],
    year: int,
    today: Optional[date] = None
) -> List[int]:
    """
    연도별 미납 월 목록

    올해는 이번 달까지만, 지난해는 12월까지 전부, 내년 이후는 없음.
    """
    today = today or date.today()
    paid = set(already_paid_months)

    if year > today.year:
        return []
    last_month = today.month if year == today.year else MONTHS_IN_YEAR
    return [m for m in ALL_MONTHS if m <= last_month and m not in paid]
