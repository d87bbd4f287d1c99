from .book import AccountBook, ClosingTemplate, PeriodStatus, TaxType
from .journal import FundAccount, InternalTransfer, JournalEntry
from .subject import Direction, Subject, SubjectCategory
from .voucher import AuxiliaryRef, Voucher, VoucherLine, VoucherOrigin, VoucherStatus

__all__ = [
    "AccountBook",
    "AuxiliaryRef",
    "ClosingTemplate",
    "Direction",
    "FundAccount",
    "InternalTransfer",
    "JournalEntry",
    "PeriodStatus",
    "Subject",
    "SubjectCategory",
    "TaxType",
    "Voucher",
    "VoucherLine",
    "VoucherOrigin",
    "VoucherStatus",
]
