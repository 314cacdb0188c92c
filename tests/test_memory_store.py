"""
Unit tests for the in-memory ledger

The in-memory backend must honor the same storage contract as Supabase:
all-or-nothing apply, (member_id, year, month) uniqueness, compare-and-set updates.
"""

import pytest
import sys
from datetime import date, datetime
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from membership_fee.errors import StaleRecordError, StorageError, UniqueViolationError
from membership_fee.ledger import InsertBatch, InsertEntry, InsertRecord, UpdateRecord
from membership_fee.models import PaymentEntry, PaymentRecord, RecordStatus, UploadBatch
from database.memory_store import InMemoryLedger


def make_batch(batch_id="b1", club_id=1):
    return UploadBatch(
        id=batch_id,
        club_id=club_id,
        year=2024,
        file_name="2024_01.xlsx",
        uploaded_at=datetime(2024, 1, 31, 9, 0),
        record_count=1,
    )


def make_record(record_id="r1", batch_id="b1", club_id=1, status=RecordStatus.MATCHED, day=15):
    return PaymentRecord(
        id=record_id,
        batch_id=batch_id,
        club_id=club_id,
        transaction_date=date(2024, 1, day),
        depositor_name="김철수",
        amount=30000,
        matched_member_id=1,
        status=status,
    )


def make_entry(entry_id, month, member_id=1, record_id="r1"):
    return PaymentEntry(
        id=entry_id,
        member_id=member_id,
        payment_record_id=record_id,
        year=2024,
        month=month,
        amount=10000,
    )


@pytest.fixture
def seeded_ledger():
    ledger = InMemoryLedger()
    ledger.apply([InsertBatch(make_batch()), InsertRecord(make_record())])
    return ledger


class TestApply:
    """Unit of work semantics"""

    def test_insert_and_read(self, seeded_ledger):
        assert seeded_ledger.get_batch("b1").file_name == "2024_01.xlsx"
        assert seeded_ledger.get_record("r1").depositor_name == "김철수"
        assert seeded_ledger.apply_count == 1

    def test_all_or_nothing(self, seeded_ledger):
        """두 번째 쓰기가 실패하면 첫 번째 쓰기도 반영되지 않음"""
        seeded_ledger.apply([InsertEntry(make_entry("e1", 1))])

        with pytest.raises(UniqueViolationError) as exc_info:
            seeded_ledger.apply([
                InsertEntry(make_entry("e2", 2)),
                InsertEntry(make_entry("e3", 1)),
                UpdateRecord("r1", {"status": RecordStatus.CONFIRMED}),
            ])

        assert exc_info.value.months == [1]
        assert seeded_ledger.paid_months(1, 2024) == [1]
        assert seeded_ledger.get_record("r1").status == RecordStatus.MATCHED

    def test_unique_member_year_month(self, seeded_ledger):
        seeded_ledger.apply([InsertEntry(make_entry("e1", 5))])
        with pytest.raises(UniqueViolationError):
            seeded_ledger.apply([InsertEntry(make_entry("e2", 5))])

    def test_same_month_different_member(self, seeded_ledger):
        seeded_ledger.apply([
            InsertEntry(make_entry("e1", 5, member_id=1)),
            InsertEntry(make_entry("e2", 5, member_id=2)),
        ])
        assert seeded_ledger.paid_months(2, 2024) == [5]

    def test_stale_expected_status(self, seeded_ledger):
        with pytest.raises(StaleRecordError) as exc_info:
            seeded_ledger.apply([
                UpdateRecord("r1", {"status": RecordStatus.SKIPPED}, expected_status=RecordStatus.PENDING)
            ])
        assert exc_info.value.record_id == "r1"
        assert seeded_ledger.get_record("r1").status == RecordStatus.MATCHED

    def test_expected_status_matches(self, seeded_ledger):
        seeded_ledger.apply([
            UpdateRecord("r1", {"status": RecordStatus.SKIPPED}, expected_status=RecordStatus.MATCHED)
        ])
        assert seeded_ledger.get_record("r1").status == RecordStatus.SKIPPED

    def test_record_requires_batch(self):
        ledger = InMemoryLedger()
        with pytest.raises(StorageError):
            ledger.apply([InsertRecord(make_record())])

    def test_entry_requires_record(self, seeded_ledger):
        with pytest.raises(StorageError):
            seeded_ledger.apply([InsertEntry(make_entry("e1", 1, record_id="missing"))])

    def test_duplicate_record_id(self, seeded_ledger):
        with pytest.raises(StorageError):
            seeded_ledger.apply([InsertRecord(make_record())])

    def test_update_missing_record(self, seeded_ledger):
        with pytest.raises(StorageError):
            seeded_ledger.apply([UpdateRecord("missing", {"status": RecordStatus.SKIPPED})])

    def test_failed_apply_not_counted(self, seeded_ledger):
        with pytest.raises(StorageError):
            seeded_ledger.apply([UpdateRecord("missing", {})])
        assert seeded_ledger.apply_count == 1


class TestReads:
    """Read helpers"""

    def test_returned_record_is_a_copy(self, seeded_ledger):
        record = seeded_ledger.get_record("r1")
        record.status = RecordStatus.SKIPPED
        assert seeded_ledger.get_record("r1").status == RecordStatus.MATCHED

    def test_list_records_filters_and_order(self, seeded_ledger):
        seeded_ledger.apply([
            InsertRecord(make_record("r2", status=RecordStatus.ERROR, day=20)),
            InsertBatch(make_batch("b2", club_id=2)),
            InsertRecord(make_record("r3", batch_id="b2", club_id=2)),
        ])

        records = seeded_ledger.list_records(1)
        assert [r.id for r in records] == ["r2", "r1"]
        assert [r.id for r in seeded_ledger.list_records(1, status=RecordStatus.ERROR)] == ["r2"]
        assert [r.id for r in seeded_ledger.list_records(2, batch_id="b2")] == ["r3"]

    def test_entries_for_record(self, seeded_ledger):
        seeded_ledger.apply([InsertEntry(make_entry("e2", 2)), InsertEntry(make_entry("e1", 1))])
        assert [e.month for e in seeded_ledger.entries_for_record("r1")] == [1, 2]

    def test_list_club_entries(self, seeded_ledger):
        seeded_ledger.apply([
            InsertEntry(make_entry("e1", 1)),
            InsertBatch(make_batch("b2", club_id=2)),
            InsertRecord(make_record("r9", batch_id="b2", club_id=2)),
            InsertEntry(make_entry("e9", 1, member_id=99, record_id="r9")),
        ])
        assert [e.id for e in seeded_ledger.list_club_entries(1, 2024)] == ["e1"]
        assert seeded_ledger.list_club_entries(1, 2023) == []
