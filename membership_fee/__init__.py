"""
회원 회비 입금 정산
"""
from .errors import ReconciliationError
from .models import (
    CoupleGroup,
    FeeExemption,
    FeeSchedule,
    Member,
    NormalizedRow,
    PaymentEntry,
    PaymentRecord,
    RecordStatus,
    UploadBatch,
)
from .service import ReconciliationService

__all__ = [
    'ReconciliationService', 'ReconciliationError',
    'Member', 'CoupleGroup', 'FeeSchedule', 'FeeExemption',
    'NormalizedRow', 'UploadBatch', 'PaymentRecord', 'PaymentEntry', 'RecordStatus',
]
