"""
Pytest configuration and fixtures for membership fee reconciliation tests
"""

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from membership_fee.models import CoupleGroup, FeeExemption, FeeSchedule, Member
from membership_fee.service import ReconciliationService
from database.memory_store import InMemoryFeeScheduleStore, InMemoryLedger, InMemoryMemberDirectory


CLUB_ID = 1
OTHER_CLUB_ID = 2
YEAR = 2024


@pytest.fixture(scope="session")
def club_id():
    return CLUB_ID


@pytest.fixture(scope="session")
def year():
    return YEAR


@pytest.fixture(scope="function")
def sample_members():
    """Club roster: two regular members, one couple, one exempt coach"""
    return [
        Member(id=1, display_name="김철수"),
        Member(id=2, display_name="이영희"),
        Member(id=3, display_name="박민수"),
        Member(id=4, display_name="최지영"),
        Member(id=5, display_name="정동훈"),
    ]


@pytest.fixture(scope="function")
def sample_couple():
    """박민수(대표) · 최지영 부부"""
    return CoupleGroup(id=10, member_ids=[3, 4])


@pytest.fixture(scope="function")
def sample_schedule():
    """2024 fee schedule: 15,000 regular / 25,000 couple"""
    return FeeSchedule(club_id=CLUB_ID, year=YEAR, regular_amount=15000, couple_amount=25000)


@pytest.fixture(scope="function")
def ledger():
    return InMemoryLedger()


@pytest.fixture(scope="function")
def directory(sample_members, sample_couple):
    directory = InMemoryMemberDirectory()
    directory.add_members(CLUB_ID, sample_members)
    directory.add_couple_group(CLUB_ID, sample_couple)
    directory.add_exemption(CLUB_ID, FeeExemption(member_id=5, year=YEAR, reason="코치"))
    directory.add_members(OTHER_CLUB_ID, [Member(id=99, display_name="홍길동")])
    return directory


@pytest.fixture(scope="function")
def fee_schedules(sample_schedule):
    store = InMemoryFeeScheduleStore()
    store.set_fee_schedule(CLUB_ID, YEAR, sample_schedule.regular_amount, sample_schedule.couple_amount)
    store.set_fee_schedule(OTHER_CLUB_ID, YEAR, 10000)
    return store


@pytest.fixture(scope="function")
def service(ledger, directory, fee_schedules):
    return ReconciliationService(ledger, directory, fee_schedules)


@pytest.fixture(scope="function")
def make_row():
    """Factory for normalized upload rows"""
    def _make(depositor_name, amount, transaction_date="2024-01-15", memo=None):
        return {
            "transaction_date": transaction_date,
            "depositor_name": depositor_name,
            "amount": amount,
            "memo": memo,
        }
    return _make
