"""
Unit tests for amount validation and fee-type detection
"""

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from membership_fee.amount_validator import (
    describe_hint,
    detect_member_type,
    format_won,
    validate_amount,
)
from membership_fee.models import DetectedMemberType, FeeSchedule, MemberType


@pytest.fixture
def schedule():
    return FeeSchedule(regular_amount=10000, couple_amount=18000)


class TestValidateAmount:
    """Tests for validate_amount"""

    def test_regular_three_months(self, schedule):
        result = validate_amount(30000, schedule, MemberType.regular)
        assert result.is_valid
        assert result.month_count == 3
        assert result.rate == 10000
        assert result.error is None

    def test_couple_two_months(self, schedule):
        result = validate_amount(36000, schedule, MemberType.couple)
        assert result.is_valid
        assert result.month_count == 2
        assert result.rate == 18000

    def test_not_a_multiple(self, schedule):
        result = validate_amount(25000, schedule, MemberType.regular)
        assert not result.is_valid
        assert result.month_count == 0
        assert "배수가 아닙니다" in result.error
        assert "10,000원" in result.error

    def test_regular_amount_for_couple_member(self, schedule):
        """일반 회비 금액을 부부 회원이 낸 경우"""
        result = validate_amount(10000, schedule, MemberType.couple)
        assert not result.is_valid
        assert "부부" in result.error

    def test_less_than_one_month(self, schedule):
        result = validate_amount(5000, schedule, MemberType.regular)
        assert not result.is_valid

    @pytest.mark.parametrize("amount", [0, -10000])
    def test_non_positive_amount(self, schedule, amount):
        result = validate_amount(amount, schedule, MemberType.regular)
        assert not result.is_valid
        assert result.error == "입금액이 0 이하입니다"

    def test_missing_couple_rate(self):
        schedule = FeeSchedule(regular_amount=10000)
        result = validate_amount(20000, schedule, MemberType.couple)
        assert not result.is_valid
        assert result.error == "부부 회비 금액이 설정되지 않았습니다"

    def test_twelve_months(self, schedule):
        result = validate_amount(120000, schedule, MemberType.regular)
        assert result.month_count == 12

    def test_rejects_float_amount(self, schedule):
        with pytest.raises(TypeError):
            validate_amount(30000.0, schedule, MemberType.regular)


class TestDetectMemberType:
    """Tests for detect_member_type (운영자 참고용 추정)"""

    def test_regular_only(self, schedule):
        assert detect_member_type(30000, schedule) == DetectedMemberType.regular

    def test_couple_only(self, schedule):
        assert detect_member_type(54000, schedule) == DetectedMemberType.couple

    def test_both_fit(self, schedule):
        """90,000원은 일반 9개월 / 부부 5개월 모두 가능"""
        assert detect_member_type(90000, schedule) == DetectedMemberType.undetermined

    def test_neither_fits(self, schedule):
        assert detect_member_type(25000, schedule) is None

    def test_non_positive(self, schedule):
        assert detect_member_type(0, schedule) is None

    def test_equal_rates_is_regular(self):
        schedule = FeeSchedule(regular_amount=10000, couple_amount=10000)
        assert detect_member_type(20000, schedule) == DetectedMemberType.regular

    def test_no_couple_rate(self):
        schedule = FeeSchedule(regular_amount=10000)
        assert detect_member_type(20000, schedule) == DetectedMemberType.regular
        assert detect_member_type(18000, schedule) is None


class TestDescribeHint:
    """Reason strings for unmatched records"""

    def test_regular_hint(self, schedule):
        text = describe_hint(30000, schedule, DetectedMemberType.regular)
        assert text == "회원 매칭 실패 (일반 회비 3개월분으로 추정)"

    def test_couple_hint(self, schedule):
        text = describe_hint(36000, schedule, DetectedMemberType.couple)
        assert text == "회원 매칭 실패 (부부 회비 2개월분으로 추정)"

    def test_undetermined_hint(self, schedule):
        assert "모두 가능" in describe_hint(90000, schedule, DetectedMemberType.undetermined)

    def test_no_hint(self, schedule):
        assert describe_hint(25000, schedule, None) == "회원 매칭 실패 및 금액 형식 불일치"


def test_format_won():
    assert format_won(1234567) == "1,234,567원"
