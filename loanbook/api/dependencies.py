"""
Shared API dependencies: the loan book system and error mapping
"""

from typing import Optional
from fastapi import HTTPException, status

from ..audit import AuditTrail
from ..config import LoanbookConfig, get_config
from ..errors import (
    ClientInUse, ClientNotFound, DuplicateRecord, LoanbookError,
    LoanNotFound, PaymentNotFound
)
from ..loans import LoanManager
from ..storage import create_storage


class LoanbookSystem:
    """Loan book with all components initialized"""

    def __init__(self, config: Optional[LoanbookConfig] = None):
        self.config = config or get_config()
        self.storage = create_storage(self.config.storage_backend, self.config.database_path)
        self.audit_trail = AuditTrail(self.storage, enabled=self.config.enable_audit_logging)
        self.loan_manager = LoanManager(self.storage, self.audit_trail, self.config)

    def close(self) -> None:
        self.storage.close()


# Global loan book instance, created on first request
loanbook_system: Optional[LoanbookSystem] = None


def get_system() -> LoanbookSystem:
    global loanbook_system
    if loanbook_system is None:
        loanbook_system = LoanbookSystem()
    return loanbook_system


_STATUS_BY_ERROR = (
    ((LoanNotFound, PaymentNotFound, ClientNotFound), status.HTTP_404_NOT_FOUND),
    ((DuplicateRecord, ClientInUse), status.HTTP_409_CONFLICT),
)


def http_error(error: LoanbookError) -> HTTPException:
    """Translate a loan book error into the matching HTTP error"""
    for error_types, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_types):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
