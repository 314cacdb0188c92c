"""
입금자 매칭

은행 입금자명(자유 텍스트)을 클럽 회원 0명 또는 1명에게 연결한다.

매칭 순서:
1. 정확 일치 - 정규화된 입금자명 == 정규화된 회원명
2. 부부 공동명 - "김철수·박영희" 양쪽 이름이 같은 부부 그룹이면 대표 회원
3. 포함 관계 - "김철수(아들)" ⊃ "김철수", "철수" ⊂ "김철수"

후보가 둘 이상이면 추측하지 않고 매칭 실패로 돌려준다 (운영자 확인 대상).
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import reconciliation_config
from .models import CoupleGroup, Member, MatchResult, MatchType
from .normalizer import normalize_name, split_joint_name


class DepositorMatcher:
    """
    회원 명부 스냅샷 기반 입금자 매칭기

    정규화된 회원명을 생성 시 한 번만 계산하므로
    배치 1건 동안 재사용한다.
    """

    def __init__(
        self,
        members: Iterable[Member],
        couple_groups: Iterable[CoupleGroup] = (),
        min_partial_length: Optional[int] = None,
        separators: Optional[str] = None
    ):
        self.min_partial_length = (
            min_partial_length
            if min_partial_length is not None
            else reconciliation_config.min_partial_match_length
        )
        self.separators = separators

        self._members: List[Tuple[Member, str]] = []
        self._by_id: Dict[int, Member] = {}
        for member in members:
            self._by_id[member.id] = member
            normalized = normalize_name(member.display_name)
            if normalized:
                self._members.append((member, normalized))

        self._group_of: Dict[int, CoupleGroup] = {}
        for group in couple_groups:
            for member_id in group.member_ids:
                self._group_of[member_id] = group

    # =============================================
    # 매칭
    # =============================================

    def match(self, depositor_name: Optional[str]) -> MatchResult:
        normalized = normalize_name(depositor_name)
        if not normalized:
            return MatchResult()

        # 1. 정확 일치
        exact = self._exact_candidates(normalized)
        if len(exact) == 1:
            return self._result(exact[0], MatchType.exact)
        if len(exact) > 1:
            # 동명이인
            return self._ambiguous(exact)

        # 2. 부부 공동명
        joint = split_joint_name(depositor_name, self.separators)
        if joint:
            couple_member = self._match_couple(*joint)
            if couple_member:
                return self._result(couple_member, MatchType.exact)

        # 3. 포함 관계
        partial = self._partial_candidates(normalized)
        if len(partial) == 1:
            return self._result(partial[0], MatchType.partial)
        if len(partial) == 2:
            group = self._shared_group(partial[0].id, partial[1].id)
            if group:
                # 구분자 없이 붙여 쓴 부부 이름 ("김철수박영희")
                return self._result(self._by_id[group.primary_member_id], MatchType.partial)
        if partial:
            return self._ambiguous(partial)

        return MatchResult()

    def _exact_candidates(self, normalized: str) -> List[Member]:
        return [m for m, name in self._members if name == normalized]

    def _partial_candidates(self, normalized: str) -> List[Member]:
        candidates = []
        for member, name in self._members:
            shorter = min(len(name), len(normalized))
            if shorter < self.min_partial_length:
                continue
            if name in normalized or normalized in name:
                candidates.append(member)
        return candidates

    def _resolve_half(self, half: str) -> Optional[Member]:
        """공동명의 한쪽 이름을 단일 회원으로 확정 (모호하면 None)"""
        exact = self._exact_candidates(half)
        if exact:
            return exact[0] if len(exact) == 1 else None
        partial = self._partial_candidates(half)
        return partial[0] if len(partial) == 1 else None

    def _match_couple(self, first: str, second: str) -> Optional[Member]:
        first_member = self._resolve_half(first)
        second_member = self._resolve_half(second)
        if not first_member or not second_member:
            return None

        group = self._shared_group(first_member.id, second_member.id)
        if not group:
            return None
        return self._by_id.get(group.primary_member_id, first_member)

    def _shared_group(self, member_a: int, member_b: int) -> Optional[CoupleGroup]:
        if member_a == member_b:
            return None
        group = self._group_of.get(member_a)
        if group and member_b in group.member_ids:
            return group
        return None

    @staticmethod
    def _result(member: Member, match_type: MatchType) -> MatchResult:
        return MatchResult(
            member_id=member.id,
            member_name=member.display_name,
            match_type=match_type,
            candidate_ids=[member.id],
        )

    @staticmethod
    def _ambiguous(candidates: Sequence[Member]) -> MatchResult:
        return MatchResult(
            match_type=MatchType.none,
            candidate_ids=[m.id for m in candidates],
        )

    def candidate_names(self, result: MatchResult) -> List[str]:
        return [self._by_id[i].display_name for i in result.candidate_ids if i in self._by_id]


def match_depositor(
    depositor_name: Optional[str],
    members: Iterable[Member],
    couple_groups: Iterable[CoupleGroup] = ()
) -> MatchResult:
    """입금자명 1건 매칭 (명부를 매번 정규화하므로 배치에서는 DepositorMatcher 사용)"""
    return DepositorMatcher(members, couple_groups).match(depositor_name)
