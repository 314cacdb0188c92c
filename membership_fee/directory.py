"""
회원 명부 스냅샷

배치 시작 시 한 번 읽어서 모든 행에 재사용한다.
부부 관계는 member_id -> CoupleGroup 조회표로 펼쳐 둔다.
"""

from typing import Dict, Iterable, List, Optional, Set

from .errors import ConfigurationError
from .matcher import DepositorMatcher
from .models import CoupleGroup, FeeExemption, Member, MemberType


class DirectorySnapshot:
    """클럽 회원/부부 그룹/면제 스냅샷"""

    def __init__(
        self,
        members: Iterable[Member],
        couple_groups: Iterable[CoupleGroup] = (),
        exemptions: Iterable[FeeExemption] = ()
    ):
        self.members: Dict[int, Member] = {m.id: m for m in members}
        self.couple_groups: List[CoupleGroup] = list(couple_groups)
        self.exempt_member_ids: Set[int] = {e.member_id for e in exemptions}

        self._group_of: Dict[int, CoupleGroup] = {}
        for group in self.couple_groups:
            for member_id in group.member_ids:
                if member_id not in self.members:
                    raise ConfigurationError(
                        f"부부 그룹 {group.id}에 클럽 회원이 아닌 회원({member_id})이 포함되어 있습니다"
                    )
                if member_id in self._group_of:
                    name = self.members[member_id].display_name
                    raise ConfigurationError(f"{name}님은 이미 다른 부부 그룹에 속해 있습니다")
                self._group_of[member_id] = group

        self._matcher: Optional[DepositorMatcher] = None

    @classmethod
    def load(cls, directory, club_id: int, year: Optional[int] = None) -> "DirectorySnapshot":
        """MemberDirectory에서 스냅샷 생성"""
        exemptions = directory.list_exemptions(club_id, year) if year is not None else []
        return cls(
            members=directory.list_members(club_id),
            couple_groups=directory.list_couple_groups(club_id),
            exemptions=exemptions,
        )

    @property
    def matcher(self) -> DepositorMatcher:
        if self._matcher is None:
            self._matcher = DepositorMatcher(self.members.values(), self.couple_groups)
        return self._matcher

    def has_member(self, member_id: int) -> bool:
        return member_id in self.members

    def couple_group_of(self, member_id: int) -> Optional[CoupleGroup]:
        return self._group_of.get(member_id)

    def member_type(self, member_id: int) -> MemberType:
        return MemberType.couple if member_id in self._group_of else MemberType.regular

    def payer_id(self, member_id: int) -> int:
        """납부 내역을 기록할 회원 (부부는 대표 회원)"""
        group = self._group_of.get(member_id)
        return group.primary_member_id if group else member_id

    def partner_of(self, member_id: int) -> Optional[Member]:
        group = self._group_of.get(member_id)
        if not group:
            return None
        partner_id = next(i for i in group.member_ids if i != member_id)
        return self.members.get(partner_id)

    def is_exempt(self, member_id: int) -> bool:
        return member_id in self.exempt_member_ids
