"""
회비 정산 저장소 구현
"""
from .memory_store import InMemoryFeeScheduleStore, InMemoryLedger, InMemoryMemberDirectory

__all__ = ['InMemoryLedger', 'InMemoryMemberDirectory', 'InMemoryFeeScheduleStore']
