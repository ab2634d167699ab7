"""
Error Kinds Module

Every failure raised by the loan book is a request-level, recoverable
validation error. They all derive from ValueError so callers that only
know about ValueError keep working.
"""


class LoanbookError(ValueError):
    """Base class for all loan book errors"""


class InvalidLoanParameters(LoanbookError):
    """Principal, rates or other loan fields are out of range"""


class InvalidTermCount(InvalidLoanParameters):
    """Term count is zero, negative or not an integer"""


class InvalidStartDate(InvalidLoanParameters):
    """Start date is missing or cannot be parsed"""


class InvalidPaymentAmount(LoanbookError):
    """Payment amount is zero, negative or not a number"""


class PaymentExceedsBalance(LoanbookError):
    """Payment would drive the outstanding balance below zero"""


class LoanNotFound(LoanbookError):
    """No loan with the given loan ID"""


class PaymentNotFound(LoanbookError):
    """No payment with the given payment ID"""


class ClientNotFound(LoanbookError):
    """No client with the given client ID"""


class DuplicateRecord(LoanbookError):
    """A record with the same unique field already exists"""


class ClientInUse(LoanbookError):
    """Client cannot be removed while loans still reference it"""
