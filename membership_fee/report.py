"""
납부 현황 리포트

- 연간 납부 대시보드 (회원별 12개월 납부 여부 + 월별 통계)
- 월별 미납 회원 목록

부부는 대표 회원 한 줄로 합치고, 두 사람 중 누구 이름으로 납부되었든 납부로 본다.
"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Set

from .directory import DirectorySnapshot
from .models import (
    DashboardSummary,
    FeeSchedule,
    MemberPaymentStatus,
    MemberType,
    MonthlyStats,
    PaymentDashboard,
    PaymentEntry,
    UnpaidMember,
    UnpaidMembersResult,
)
from .month_allocator import ALL_MONTHS, MONTHS_IN_YEAR, get_unpaid_months


def _months_by_member(entries: Iterable[PaymentEntry]) -> Dict[int, Set[int]]:
    paid: Dict[int, Set[int]] = defaultdict(set)
    for entry in entries:
        paid[entry.member_id].add(entry.month)
    return paid


def _payer_rows(snapshot: DirectorySnapshot):
    """
    납부 단위 목록 (member_id, 표시 이름, 유형, 배우자 이름, 합산할 회원 id들)

    부부는 대표 회원 기준 한 번만 나온다.
    """
    seen_groups: Set[int] = set()
    for member in snapshot.members.values():
        group = snapshot.couple_group_of(member.id)
        if group is None:
            yield member.id, member.display_name, MemberType.regular, None, (member.id,)
            continue
        if group.id in seen_groups:
            continue
        seen_groups.add(group.id)

        primary = snapshot.members[group.primary_member_id]
        partner = snapshot.partner_of(primary.id)
        partner_name = partner.display_name if partner else None
        display = f"{primary.display_name}·{partner_name}" if partner_name else primary.display_name
        yield primary.id, display, MemberType.couple, partner_name, tuple(group.member_ids)


def build_dashboard(
    snapshot: DirectorySnapshot,
    entries: Iterable[PaymentEntry],
    year: int,
    schedule: Optional[FeeSchedule] = None,
    today: Optional[date] = None
) -> PaymentDashboard:
    """
    연간 납부 대시보드

    unpaid_months는 today 기준 (올해는 이번 달까지, 면제 회원은 빈 목록)
    """
    entries = list(entries)
    paid_by_member = _months_by_member(entries)

    amounts_by_month: Dict[int, int] = defaultdict(int)
    for entry in entries:
        amounts_by_month[entry.month] += entry.amount

    rows: List[MemberPaymentStatus] = []
    for member_id, name, member_type, partner_name, member_ids in _payer_rows(snapshot):
        paid: Set[int] = set()
        for mid in member_ids:
            paid |= paid_by_member.get(mid, set())

        type_label = member_type.value
        if member_type == MemberType.regular and snapshot.is_exempt(member_id):
            type_label = "exempt"
        unpaid = [] if type_label == "exempt" else get_unpaid_months(paid, year, today)

        rows.append(MemberPaymentStatus(
            member_id=member_id,
            name=name,
            member_type=type_label,
            couple_partner_name=partner_name,
            payments={m: m in paid for m in ALL_MONTHS},
            paid_count=len(paid),
            unpaid_months=unpaid,
            total_months=MONTHS_IN_YEAR,
        ))

    paying_rows = [r for r in rows if r.member_type != "exempt"]
    monthly_stats = [
        MonthlyStats(
            month=month,
            paid_count=sum(1 for r in paying_rows if r.payments[month]),
            total_count=len(paying_rows),
            amount=amounts_by_month.get(month, 0),
        )
        for month in ALL_MONTHS
    ]

    return PaymentDashboard(
        year=year,
        fee_schedule=schedule,
        members=rows,
        summary=DashboardSummary(
            total_members=len(snapshot.members),
            exempt_members=len(snapshot.exempt_member_ids & set(snapshot.members)),
            couple_groups=len(snapshot.couple_groups),
            monthly_stats=monthly_stats,
            year_total=sum(amounts_by_month.values()),
        ),
    )


def find_unpaid_members(
    snapshot: DirectorySnapshot,
    entries: Iterable[PaymentEntry],
    year: int,
    month: int
) -> UnpaidMembersResult:
    """해당 월 미납 회원 (면제 제외, 이름순)"""
    if month < 1 or month > MONTHS_IN_YEAR:
        raise ValueError(f"월은 1~12 사이여야 합니다: {month}")

    paid_ids = {e.member_id for e in entries if e.year == year and e.month == month}

    unpaid: List[UnpaidMember] = []
    for member_id, _, member_type, partner_name, member_ids in _payer_rows(snapshot):
        if any(snapshot.is_exempt(mid) for mid in member_ids):
            continue
        if any(mid in paid_ids for mid in member_ids):
            continue
        unpaid.append(UnpaidMember(
            member_id=member_id,
            name=snapshot.members[member_id].display_name,
            member_type=member_type,
            partner_name=partner_name,
        ))

    unpaid.sort(key=lambda m: m.name)
    return UnpaidMembersResult(year=year, month=month, unpaid_members=unpaid)
