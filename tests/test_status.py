"""
Unit tests for record status transitions
"""

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from membership_fee.errors import InvalidTransitionError
from membership_fee.models import RecordStatus
from membership_fee.status import TERMINAL_STATUSES, can_transition, ensure_transition


class TestTransitions:
    """PENDING -> MATCHED/ERROR -> CONFIRMED/SKIPPED"""

    @pytest.mark.parametrize("current,target", [
        (RecordStatus.PENDING, RecordStatus.MATCHED),
        (RecordStatus.PENDING, RecordStatus.ERROR),
        (RecordStatus.PENDING, RecordStatus.SKIPPED),
        (RecordStatus.MATCHED, RecordStatus.CONFIRMED),
        (RecordStatus.MATCHED, RecordStatus.ERROR),
        (RecordStatus.ERROR, RecordStatus.MATCHED),
        (RecordStatus.ERROR, RecordStatus.CONFIRMED),
        (RecordStatus.ERROR, RecordStatus.SKIPPED),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)
        ensure_transition(current, target)

    @pytest.mark.parametrize("current", [RecordStatus.MATCHED, RecordStatus.ERROR])
    def test_unmatch_returns_to_pending(self, current):
        """매칭 해제 시 PENDING으로 되돌릴 수 있음"""
        assert can_transition(current, RecordStatus.PENDING)

    def test_pending_cannot_confirm(self):
        """매칭되지 않은 레코드는 바로 확정할 수 없음"""
        assert not can_transition(RecordStatus.PENDING, RecordStatus.CONFIRMED)

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
    @pytest.mark.parametrize("target", list(RecordStatus))
    def test_terminal_states_are_final(self, terminal, target):
        assert not can_transition(terminal, target)

    def test_confirmed_message(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            ensure_transition(RecordStatus.CONFIRMED, RecordStatus.SKIPPED)
        assert exc_info.value.message == "이미 확정된 입금 내역입니다"
        assert exc_info.value.code == "INVALID_TRANSITION"

    def test_skipped_message(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            ensure_transition(RecordStatus.SKIPPED, RecordStatus.CONFIRMED)
        assert exc_info.value.message == "이미 건너뛴 입금 내역입니다"

    def test_generic_message(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            ensure_transition(RecordStatus.PENDING, RecordStatus.CONFIRMED)
        assert "PENDING" in exc_info.value.message
