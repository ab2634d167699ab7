"""
Loan Module

Client, loan and payment records and the LoanManager service that creates,
updates and deletes them. The service is the only place that touches
storage; all amounts and schedules come from the pure engine modules
(amortization, standing, reconciliation).

Each loan's outstanding balance is a shared mutable value. Every
read-modify-write of it runs under a per-loan lock, and the payment write
and loan write that belong together run in one storage transaction.
"""

from decimal import Decimal
from datetime import datetime, timezone, date
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional
from contextlib import contextmanager
import threading
import uuid

from .amortization import (
    LoanTerms, TermEntry, ScheduleSummary, compute_schedule, summarize_schedule,
    parse_iso_date, coerce_policy
)
from .audit import AuditTrail, AuditEventType
from .config import LoanbookConfig, get_config
from .currency import (
    ZERO, DEFAULT_CURRENCY_CODE, Currency, format_money, is_currency_code,
    resolve_currency, round_money, to_decimal
)
from .errors import (
    ClientInUse, ClientNotFound, DuplicateRecord, InvalidLoanParameters,
    LoanNotFound, PaymentExceedsBalance, PaymentNotFound, LoanbookError
)
from .logging_config import get_logger, log_action
from .reconciliation import (
    LoanState, adjust_payment, admin_fee_amount, apply_payment, pending_admin_fee,
    refresh_state, reverse_payment
)
from .standing import StandingReport, assess_standing, delinquency_notice
from .storage import StorageInterface, StorageRecord


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


def _optional_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


@dataclass
class Client(StorageRecord):
    """Borrower identity and contact details"""
    name: str
    address: Optional[str] = None
    email: Optional[str] = None
    contact_number: Optional[str] = None
    national_id: Optional[str] = None
    passport: Optional[str] = None

    @property
    def client_id(self) -> str:
        return self.id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Client':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            name=data['name'],
            address=data.get('address'),
            email=data.get('email'),
            contact_number=data.get('contact_number'),
            national_id=data.get('national_id'),
            passport=data.get('passport')
        )


@dataclass
class Loan(StorageRecord):
    """Loan with its terms and current running balance"""
    client_id: str
    terms: LoanTerms
    currency_code: str = DEFAULT_CURRENCY_CODE
    outstanding_balance: Optional[Decimal] = None
    admin_fee_charged: bool = False
    state: LoanState = LoanState.ACTIVE
    end_date: Optional[date] = None

    def __post_init__(self):
        # Balance is seeded without the admin fee; the first payment adds it
        if self.outstanding_balance is None:
            self.outstanding_balance = self.terms.principal
        if self.end_date is None:
            self.end_date = self.terms.end_date
        self.state = LoanState(self.state)

    @property
    def loan_id(self) -> str:
        return self.id

    @property
    def start_date(self) -> date:
        return self.terms.start_date

    @property
    def currency(self) -> Currency:
        """Currency used for display (USD when the code is unknown)"""
        return resolve_currency(self.currency_code)

    @property
    def is_settled(self) -> bool:
        return self.state == LoanState.SETTLED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'client_id': self.client_id,
            'terms': self.terms.to_dict(),
            'currency_code': self.currency_code,
            'outstanding_balance': str(self.outstanding_balance),
            'admin_fee_charged': self.admin_fee_charged,
            'state': self.state.value,
            'end_date': self.end_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Loan':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            client_id=data['client_id'],
            terms=LoanTerms.from_dict(data['terms']),
            currency_code=data.get('currency_code', DEFAULT_CURRENCY_CODE),
            outstanding_balance=Decimal(data['outstanding_balance']),
            admin_fee_charged=data.get('admin_fee_charged', False),
            state=LoanState(data.get('state', LoanState.ACTIVE.value)),
            end_date=_optional_date(data.get('end_date'))
        )


@dataclass
class Payment(StorageRecord):
    """Ledger entry for one payment against a loan"""
    loan_id: str
    client_id: str
    amount: Decimal
    payment_date: date
    outstanding_balance: Decimal        # Loan balance right after this payment
    scheduled_date: Optional[date] = None
    term_number: Optional[int] = None
    interest_earned: Decimal = ZERO
    admin_fee: Decimal = ZERO
    description: str = ""

    @property
    def payment_id(self) -> str:
        return self.id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Payment':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            loan_id=data['loan_id'],
            client_id=data['client_id'],
            amount=Decimal(data['amount']),
            payment_date=date.fromisoformat(data['payment_date']),
            outstanding_balance=Decimal(data['outstanding_balance']),
            scheduled_date=_optional_date(data.get('scheduled_date')),
            term_number=data.get('term_number'),
            interest_earned=Decimal(data.get('interest_earned') or '0'),
            admin_fee=Decimal(data.get('admin_fee') or '0'),
            description=data.get('description') or ""
        )


@dataclass
class LoanReport:
    """Everything a loan report screen shows, computed in one pass"""
    loan: Loan
    schedule: List[TermEntry]
    summary: ScheduleSummary
    payments: List[Payment]
    standing: StandingReport
    total_paid: Decimal = ZERO
    total_interest_earned: Decimal = ZERO
    total_admin_fee_collected: Decimal = ZERO
    notes: List[str] = field(default_factory=list)


class LoanManager:
    """
    Manages clients, loans and payments on top of a storage backend
    """

    CLIENT_FIELDS = ('name', 'address', 'email', 'contact_number', 'national_id', 'passport')
    LOAN_TERM_FIELDS = (
        'principal', 'annual_interest_rate', 'term_count', 'start_date',
        'admin_fee_rate', 'amortization_policy'
    )

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: Optional[AuditTrail] = None,
        config: Optional[LoanbookConfig] = None
    ):
        self.storage = storage
        self.config = config or get_config()
        self.audit_trail = audit_trail or AuditTrail(storage, enabled=self.config.enable_audit_logging)
        self.logger = get_logger("loanbook.loans")

        self.clients_table = "clients"
        self.loans_table = "loans"
        self.payments_table = "payments"

        # loan id -> [lock, number of threads holding or waiting on it]
        self._locks: Dict[str, List[Any]] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _loan_lock(self, loan_id: str) -> Iterator[None]:
        """Serialize balance updates for one loan"""
        with self._locks_guard:
            entry = self._locks.setdefault(loan_id, [threading.RLock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[loan_id]

    # Clients

    def _check_client_unique(self, email: Optional[str], passport: Optional[str],
                             exclude_id: Optional[str] = None) -> None:
        for data in self.storage.load_all(self.clients_table):
            if data['id'] == exclude_id:
                continue
            if email and data.get('email') == email:
                raise DuplicateRecord(f"Client with email {email} already exists")
            if passport and data.get('passport') == passport:
                raise DuplicateRecord(f"Client with passport {passport} already exists")

    def create_client(self, name: str, client_id: Optional[str] = None, **details: Any) -> Client:
        """
        Register a client.

        Raises:
            InvalidLoanParameters: name is empty or an unknown field is given
            DuplicateRecord: client ID, email or passport already in use
        """
        if not name or not str(name).strip():
            raise InvalidLoanParameters("Client name is required")
        unknown = set(details) - set(self.CLIENT_FIELDS)
        if unknown:
            raise InvalidLoanParameters(f"Unknown client fields: {', '.join(sorted(unknown))}")

        client_id = (client_id or "").strip() or _new_id("CL")
        now = datetime.now(timezone.utc)

        with self.storage.atomic():
            if self.storage.exists(self.clients_table, client_id):
                raise DuplicateRecord(f"Client {client_id} already exists")
            self._check_client_unique(details.get('email'), details.get('passport'))

            client = Client(id=client_id, created_at=now, updated_at=now, name=str(name).strip(), **details)
            self.storage.save(self.clients_table, client.id, client.to_dict())
            self.audit_trail.log_event(
                AuditEventType.CLIENT_CREATED, "client", client.id, {"name": client.name}
            )

        log_action(self.logger, "info", "Client created", action="create_client",
                   resource=f"client:{client.id}")
        return client

    def get_client(self, client_id: str) -> Client:
        data = self.storage.load(self.clients_table, client_id)
        if not data:
            raise ClientNotFound(f"Client {client_id} not found")
        return Client.from_dict(data)

    def list_clients(self) -> List[Client]:
        return [Client.from_dict(data) for data in self.storage.load_all(self.clients_table)]

    def update_client(self, client_id: str, **changes: Any) -> Client:
        unknown = set(changes) - set(self.CLIENT_FIELDS)
        if unknown:
            raise InvalidLoanParameters(f"Unknown client fields: {', '.join(sorted(unknown))}")
        if 'name' in changes and not (changes['name'] or "").strip():
            raise InvalidLoanParameters("Client name is required")

        with self.storage.atomic():
            client = self.get_client(client_id)
            self._check_client_unique(changes.get('email'), changes.get('passport'), exclude_id=client_id)
            for key, value in changes.items():
                setattr(client, key, value)
            client.updated_at = datetime.now(timezone.utc)
            self.storage.save(self.clients_table, client.id, client.to_dict())
            self.audit_trail.log_event(
                AuditEventType.CLIENT_UPDATED, "client", client.id, {"fields": sorted(changes)}
            )
        return client

    def delete_client(self, client_id: str) -> Client:
        """Remove a client that no loan references"""
        with self.storage.atomic():
            client = self.get_client(client_id)
            loans = self.storage.find(self.loans_table, {"client_id": client_id})
            if loans:
                raise ClientInUse(f"Client {client_id} still has {len(loans)} loan(s)")
            self.storage.delete(self.clients_table, client_id)
            self.audit_trail.log_event(AuditEventType.CLIENT_DELETED, "client", client_id)

        log_action(self.logger, "info", "Client deleted", action="delete_client",
                   resource=f"client:{client_id}")
        return client

    # Loans

    def create_loan(
        self,
        client_id: str,
        principal: Any,
        annual_interest_rate: Any,
        term_count: Any,
        start_date: Any,
        admin_fee_rate: Any = ZERO,
        currency_code: Optional[str] = None,
        amortization_policy: Any = None,
        loan_id: Optional[str] = None
    ) -> Loan:
        """
        Create a loan.

        The outstanding balance starts at the principal; the admin fee is
        charged by the first payment.

        Raises:
            InvalidLoanParameters, InvalidTermCount, InvalidStartDate
            DuplicateRecord: loan ID already exists
        """
        if not client_id or not str(client_id).strip():
            raise InvalidLoanParameters("Client ID is required")

        currency_code = currency_code or self.config.default_currency
        if not is_currency_code(currency_code):
            raise InvalidLoanParameters(f"Invalid currency code: {currency_code!r}")

        terms = LoanTerms(
            principal=principal,
            annual_interest_rate=annual_interest_rate,
            term_count=term_count,
            start_date=start_date,
            admin_fee_rate=admin_fee_rate,
            amortization_policy=coerce_policy(amortization_policy or self.config.default_amortization_policy)
        )

        loan_id = (loan_id or "").strip() or _new_id("LN")
        now = datetime.now(timezone.utc)
        loan = Loan(
            id=loan_id,
            created_at=now,
            updated_at=now,
            client_id=str(client_id).strip(),
            terms=terms,
            currency_code=currency_code.strip().upper()
        )

        with self.storage.atomic():
            if self.storage.exists(self.loans_table, loan_id):
                raise DuplicateRecord(f"Loan {loan_id} already exists")
            self._save_loan(loan)
            self.audit_trail.log_event(
                AuditEventType.LOAN_CREATED, "loan", loan.id, {
                    "client_id": loan.client_id,
                    "terms": terms.to_dict(),
                    "currency_code": loan.currency_code,
                }
            )

        log_action(
            self.logger, "info", "Loan created", action="create_loan",
            resource=f"loan:{loan.id}",
            extra={
                "client_id": loan.client_id,
                "principal": format_money(terms.principal, loan.currency_code),
                "term_count": terms.term_count,
                "policy": terms.amortization_policy.value,
            }
        )
        return loan

    def get_loan(self, loan_id: str) -> Loan:
        data = self.storage.load(self.loans_table, loan_id)
        if not data:
            raise LoanNotFound(f"Loan {loan_id} not found")
        return Loan.from_dict(data)

    def list_loans(self, client_id: Optional[str] = None) -> List[Loan]:
        if client_id is None:
            loans_data = self.storage.load_all(self.loans_table)
        else:
            loans_data = self.storage.find(self.loans_table, {"client_id": client_id})
        return [Loan.from_dict(data) for data in loans_data]

    def update_loan(self, loan_id: str, /, **changes: Any) -> Loan:
        """
        Change a loan's client, currency or terms. The loan ID never changes.

        The end date is recomputed from the new terms. When the principal or
        admin fee rate changes, the balance is re-derived from the payments
        already recorded.

        Raises:
            LoanNotFound
            InvalidLoanParameters, InvalidTermCount, InvalidStartDate
            PaymentExceedsBalance: recorded payments exceed the new amount owed
        """
        allowed = set(self.LOAN_TERM_FIELDS) | {'client_id', 'currency_code'}
        unknown = set(changes) - allowed
        if unknown:
            raise InvalidLoanParameters(f"Cannot update loan fields: {', '.join(sorted(unknown))}")

        with self._loan_lock(loan_id), self.storage.atomic():
            loan = self.get_loan(loan_id)

            merged = loan.terms.to_dict()
            merged.update({k: v for k, v in changes.items() if k in self.LOAN_TERM_FIELDS})
            terms = LoanTerms(**merged)

            if 'currency_code' in changes:
                if not is_currency_code(changes['currency_code']):
                    raise InvalidLoanParameters(f"Invalid currency code: {changes['currency_code']!r}")
                loan.currency_code = changes['currency_code'].strip().upper()

            client_changed = 'client_id' in changes and changes['client_id'] != loan.client_id
            if client_changed:
                if not changes['client_id']:
                    raise InvalidLoanParameters("Client ID is required")
                loan.client_id = changes['client_id']

            payments = self.list_payments(loan_id)
            if terms.principal != loan.terms.principal or terms.admin_fee_rate != loan.terms.admin_fee_rate:
                total_paid = sum((p.amount for p in payments), ZERO)
                fee = admin_fee_amount(terms) if loan.admin_fee_charged else ZERO
                balance = terms.principal + fee - total_paid
                if balance < ZERO:
                    raise PaymentExceedsBalance(
                        f"Recorded payments {total_paid} exceed the amount owed under the new terms"
                    )
                loan.outstanding_balance = balance

            loan.terms = terms
            loan.end_date = terms.end_date
            refresh_state(loan)
            loan.updated_at = datetime.now(timezone.utc)
            self._save_loan(loan)

            if client_changed:
                for payment in payments:
                    payment.client_id = loan.client_id
                    self._save_payment(payment)

            self.audit_trail.log_event(
                AuditEventType.LOAN_UPDATED, "loan", loan.id, {
                    "fields": sorted(changes),
                    "outstanding_balance": str(loan.outstanding_balance),
                }
            )

        log_action(self.logger, "info", "Loan updated", action="update_loan",
                   resource=f"loan:{loan.id}", extra={"fields": sorted(changes)})
        return loan

    def delete_loan(self, loan_id: str) -> Loan:
        """Delete a loan and, first, all of its payments"""
        with self._loan_lock(loan_id), self.storage.atomic():
            loan = self.get_loan(loan_id)
            payments = self.storage.find(self.payments_table, {"loan_id": loan_id})
            for payment in payments:
                self.storage.delete(self.payments_table, payment['id'])
            self.storage.delete(self.loans_table, loan_id)
            self.audit_trail.log_event(
                AuditEventType.LOAN_DELETED, "loan", loan_id, {"payments_deleted": len(payments)}
            )

        log_action(self.logger, "info", "Loan deleted", action="delete_loan",
                   resource=f"loan:{loan_id}", extra={"payments_deleted": len(payments)})
        return loan

    # Payments

    def record_payment(
        self,
        loan_id: str,
        amount: Any,
        payment_date: Any = None,
        term_number: Optional[int] = None,
        scheduled_date: Any = None,
        description: str = "",
        payment_id: Optional[str] = None
    ) -> Payment:
        """
        Record a payment against a loan and update the loan balance.

        The term is either given or taken as the next one after the payments
        already recorded. Its due date and interest come from the schedule.
        The first payment on a loan also carries the admin fee.

        Raises:
            LoanNotFound
            InvalidPaymentAmount
            PaymentExceedsBalance: nothing is written
            DuplicateRecord: payment ID already exists
        """
        payment_date = self._parse_date(payment_date)
        payment_id = (payment_id or "").strip() or _new_id("PM")

        with self._loan_lock(loan_id):
            loan = self.get_loan(loan_id)
            schedule = compute_schedule(loan)
            payments = self.list_payments(loan_id)

            if term_number is None:
                term_number = min(len(payments) + 1, len(schedule))
            elif not 1 <= int(term_number) <= len(schedule):
                raise InvalidLoanParameters(
                    f"Term number must be between 1 and {len(schedule)}, got {term_number}"
                )
            entry = schedule[int(term_number) - 1]

            fee = pending_admin_fee(loan)
            try:
                apply_payment(loan, amount)
            except LoanbookError as e:
                log_action(self.logger, "warning", f"Payment rejected: {e}",
                           action="record_payment", resource=f"loan:{loan_id}",
                           extra={"amount": str(amount)})
                raise

            if scheduled_date:
                scheduled_date = self._parse_date(scheduled_date, "scheduled date")

            now = datetime.now(timezone.utc)
            payment = Payment(
                id=payment_id,
                created_at=now,
                updated_at=now,
                loan_id=loan.id,
                client_id=loan.client_id,
                amount=round_money(to_decimal(amount)),
                payment_date=payment_date,
                outstanding_balance=loan.outstanding_balance,
                scheduled_date=scheduled_date or entry.scheduled_date,
                term_number=entry.term_number,
                interest_earned=entry.interest,
                admin_fee=fee,
                description=description or ""
            )

            standing = assess_standing(schedule, payments + [payment],
                                       as_of_date=payment_date, start_date=loan.start_date)
            if standing.is_delinquent and self.config.append_delinquency_notice:
                notice = delinquency_notice(standing, loan.currency_code)
                payment.description = f"{payment.description} {notice}".strip()

            loan.updated_at = now

            with self.storage.atomic():
                if self.storage.exists(self.payments_table, payment.id):
                    raise DuplicateRecord(f"Payment {payment.id} already exists")
                self._save_payment(payment)
                self._save_loan(loan)
                self.audit_trail.log_event(
                    AuditEventType.PAYMENT_RECORDED, "payment", payment.id, {
                        "loan_id": loan.id,
                        "amount": str(payment.amount),
                        "outstanding_balance": str(loan.outstanding_balance),
                        "term_number": payment.term_number,
                    }
                )
                if fee > ZERO:
                    self.audit_trail.log_event(
                        AuditEventType.ADMIN_FEE_CHARGED, "loan", loan.id, {"admin_fee": str(fee)}
                    )
                if loan.is_settled:
                    self.audit_trail.log_event(AuditEventType.LOAN_SETTLED, "loan", loan.id)

        log_action(
            self.logger, "info", "Payment recorded", action="record_payment",
            resource=f"payment:{payment.id}",
            extra={
                "loan_id": loan.id,
                "amount": format_money(payment.amount, loan.currency_code),
                "outstanding_balance": format_money(loan.outstanding_balance, loan.currency_code),
                "delinquent": standing.is_delinquent,
            }
        )
        return payment

    def get_payment(self, payment_id: str) -> Payment:
        data = self.storage.load(self.payments_table, payment_id)
        if not data:
            raise PaymentNotFound(f"Payment {payment_id} not found")
        return Payment.from_dict(data)

    def list_payments(self, loan_id: Optional[str] = None) -> List[Payment]:
        """Payments ordered by payment date (then creation time)"""
        if loan_id is None:
            payments_data = self.storage.load_all(self.payments_table)
        else:
            payments_data = self.storage.find(self.payments_table, {"loan_id": loan_id})
        payments = [Payment.from_dict(data) for data in payments_data]
        payments.sort(key=lambda p: (p.payment_date, p.created_at))
        return payments

    def update_payment(
        self,
        payment_id: str,
        amount: Any = None,
        payment_date: Any = None,
        scheduled_date: Any = None,
        description: Optional[str] = None
    ) -> Payment:
        """
        Edit a payment. A changed amount is applied to the loan balance as
        the difference between the old and new amounts.

        Raises:
            PaymentNotFound, LoanNotFound
            InvalidPaymentAmount
            PaymentExceedsBalance: nothing is written
        """
        payment = self.get_payment(payment_id)

        with self._loan_lock(payment.loan_id):
            loan = self.get_loan(payment.loan_id)
            payment = self.get_payment(payment_id)

            if amount is not None:
                try:
                    adjust_payment(loan, payment.amount, amount)
                except LoanbookError as e:
                    log_action(self.logger, "warning", f"Payment update rejected: {e}",
                               action="update_payment", resource=f"payment:{payment_id}",
                               extra={"amount": str(amount)})
                    raise
                new_amount = round_money(to_decimal(amount))
                if new_amount != payment.amount:
                    payment.amount = new_amount
                    payment.outstanding_balance = loan.outstanding_balance
            if payment_date is not None:
                payment.payment_date = self._parse_date(payment_date)
            if scheduled_date is not None:
                payment.scheduled_date = self._parse_date(scheduled_date, "scheduled date")
            if description is not None:
                payment.description = description

            now = datetime.now(timezone.utc)
            payment.updated_at = now
            loan.updated_at = now

            with self.storage.atomic():
                self._save_payment(payment)
                self._save_loan(loan)
                self.audit_trail.log_event(
                    AuditEventType.PAYMENT_UPDATED, "payment", payment.id, {
                        "loan_id": loan.id,
                        "amount": str(payment.amount),
                        "outstanding_balance": str(loan.outstanding_balance),
                    }
                )

        log_action(self.logger, "info", "Payment updated", action="update_payment",
                   resource=f"payment:{payment.id}",
                   extra={"outstanding_balance": str(loan.outstanding_balance)})
        return payment

    def delete_payment(self, payment_id: str) -> Payment:
        """
        Delete a payment and put its amount back on the loan balance.
        The admin fee stays charged.
        """
        payment = self.get_payment(payment_id)

        with self._loan_lock(payment.loan_id):
            payment = self.get_payment(payment_id)
            loan_data = self.storage.load(self.loans_table, payment.loan_id)
            loan = Loan.from_dict(loan_data) if loan_data else None

            with self.storage.atomic():
                self.storage.delete(self.payments_table, payment.id)
                if loan is not None:
                    reverse_payment(loan, payment.amount)
                    loan.updated_at = datetime.now(timezone.utc)
                    self._save_loan(loan)
                self.audit_trail.log_event(
                    AuditEventType.PAYMENT_DELETED, "payment", payment.id, {
                        "loan_id": payment.loan_id,
                        "amount": str(payment.amount),
                    }
                )

        log_action(self.logger, "info", "Payment deleted", action="delete_payment",
                   resource=f"payment:{payment.id}", extra={"loan_id": payment.loan_id})
        return payment

    # Read models

    def get_schedule(self, loan_id: str) -> List[TermEntry]:
        return compute_schedule(self.get_loan(loan_id))

    def get_standing(self, loan_id: str, as_of_date: Any = None) -> StandingReport:
        as_of_date = self._parse_date(as_of_date, "as-of date")
        loan = self.get_loan(loan_id)
        return assess_standing(
            compute_schedule(loan), self.list_payments(loan_id),
            as_of_date=as_of_date, start_date=loan.start_date
        )

    def get_loan_report(self, loan_id: str, as_of_date: Any = None) -> LoanReport:
        """Schedule, totals, payment history and standing for one loan"""
        as_of_date = self._parse_date(as_of_date, "as-of date")
        loan = self.get_loan(loan_id)
        schedule = compute_schedule(loan)
        payments = self.list_payments(loan_id)
        standing = assess_standing(schedule, payments, as_of_date=as_of_date, start_date=loan.start_date)

        notes = []
        if standing.is_delinquent:
            notes.append(delinquency_notice(standing, loan.currency_code))
        if loan.is_settled:
            notes.append("Loan settled")

        return LoanReport(
            loan=loan,
            schedule=schedule,
            summary=summarize_schedule(schedule),
            payments=payments,
            standing=standing,
            total_paid=sum((p.amount for p in payments), ZERO),
            total_interest_earned=sum((p.interest_earned for p in payments), ZERO),
            total_admin_fee_collected=sum((p.admin_fee for p in payments), ZERO),
            notes=notes
        )

    def _parse_date(self, value: Any, label: str = "payment date") -> date:
        """Parse a date argument, defaulting to today when empty"""
        if value is None or value == "":
            return date.today()
        try:
            return parse_iso_date(value)
        except ValueError:
            raise InvalidLoanParameters(f"Invalid {label}: {value!r}")

    def _save_loan(self, loan: Loan) -> None:
        self.storage.save(self.loans_table, loan.id, loan.to_dict())

    def _save_payment(self, payment: Payment) -> None:
        self.storage.save(self.payments_table, payment.id, payment.to_dict())
