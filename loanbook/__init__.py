"""
Loan Book

Loan amortization schedules, repayment standing and running-balance
reconciliation for a small lending business, with all money handled as
Decimal and every change recorded in a hash-chained audit trail.
"""

__version__ = "1.0.0"
