"""Saved-loan helpers: payment reminders, progress and portfolio totals.

A loan is saved with its installment frozen; at the same time one payment
reminder per installment is materialized with a due date one, two, ...
months after the start date. Payments must be marked in order and cannot be
un-marked.
"""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import uuid4

from .data_models import Loan, LoanCategory, LoanDefinition, LoanProgress, LoanStatus, Reminder
from .engine import compute_installment
from .exceptions import PaymentLockedError
from .utils import add_months, round_unit

PAYMENT = "payment"


def new_loan(
    definition: LoanDefinition,
    name: str,
    category: LoanCategory,
    start_date: date,
    loan_id: Optional[str] = None,
) -> Loan:
    """Create a loan record with its EMI computed once and frozen."""
    emi = round_unit(
        compute_installment(
            definition.principal, definition.annual_rate_percent, definition.tenure_months
        )
    )
    return Loan(
        id=loan_id or uuid4().hex,
        name=name.strip() or f"My {category.value} Loan",
        category=category,
        principal=definition.principal,
        annual_rate_percent=definition.annual_rate_percent,
        tenure_months=definition.tenure_months,
        start_date=start_date,
        emi=emi,
    )


def generate_reminders(loan: Loan, today: Optional[date] = None) -> List[Reminder]:
    """Return one payment reminder per installment of ``loan``.

    When ``today`` is given, installments already due before it are marked
    paid on their due date (used to seed loans that started in the past).
    """
    reminders: List[Reminder] = []
    for i in range(1, loan.tenure_months + 1):
        due = add_months(loan.start_date, i)
        is_past = today is not None and due < today
        reminders.append(
            Reminder(
                id=f"{loan.id}-emi-{i}",
                loan_id=loan.id,
                title=f"EMI Payment #{i} - {loan.name}",
                due_date=due,
                is_paid=is_past,
                paid_at=datetime.combine(due, datetime.min.time()) if is_past else None,
                kind=PAYMENT,
                sequence=i,
            )
        )
    return reminders


def _payments_in_order(reminders: Iterable[Reminder], loan_id: str) -> List[Reminder]:
    return sorted(
        (r for r in reminders if r.loan_id == loan_id and r.kind == PAYMENT),
        key=lambda r: (r.due_date, r.sequence),
    )


def is_locked(reminder: Reminder, loan_reminders: Sequence[Reminder]) -> bool:
    """True if an earlier payment of the same loan is still unpaid."""
    if reminder.is_paid or reminder.kind != PAYMENT:
        return False
    payments = _payments_in_order(loan_reminders, reminder.loan_id)
    for idx, payment in enumerate(payments):
        if payment.id == reminder.id:
            return idx > 0 and not payments[idx - 1].is_paid
    return False


def mark_paid(
    reminder: Reminder, loan_reminders: Sequence[Reminder], paid_at: Optional[datetime] = None
) -> Reminder:
    """Return a copy of ``reminder`` marked paid.

    A reminder that is already paid is returned unchanged; there is no undo.
    Raises ``PaymentLockedError`` if the previous installment is unpaid.
    """
    if reminder.is_paid:
        return reminder
    if is_locked(reminder, loan_reminders):
        raise PaymentLockedError(f"Complete previous EMIs before paying {reminder.title!r}")
    return replace(reminder, is_paid=True, paid_at=paid_at or datetime.now())


def loan_progress(
    loan: Loan, reminders: Iterable[Reminder], today: Optional[date] = None
) -> LoanProgress:
    """Summarize how much of ``loan`` has been repaid."""
    payments = _payments_in_order(reminders, loan.id)
    paid = [r for r in payments if r.is_paid]
    unpaid = [r for r in payments if not r.is_paid]
    total_payable = loan.emi * loan.tenure_months
    total_paid = len(paid) * loan.emi
    paid_times = [r.paid_at for r in paid if r.paid_at is not None]
    today = today or date.today()
    return LoanProgress(
        paid_count=len(paid),
        total_paid=total_paid,
        total_payable=total_payable,
        outstanding=total_payable - total_paid,
        progress_percent=len(paid) / loan.tenure_months * 100,
        next_due_date=unpaid[0].due_date if unpaid else None,
        last_paid_at=max(paid_times) if paid_times else None,
        overdue_count=sum(1 for r in unpaid if r.due_date < today),
    )


def upcoming_payments(
    reminders: Iterable[Reminder], today: date, window_days: int = 3
) -> List[Reminder]:
    """Unpaid payment reminders falling due within ``window_days`` of today."""
    horizon = today + timedelta(days=window_days)
    return sorted(
        (r for r in reminders if r.kind == PAYMENT and not r.is_paid and today <= r.due_date <= horizon),
        key=lambda r: r.due_date,
    )


def remaining_time_label(start_date: date, tenure_months: int, today: date) -> str:
    """Describe how long a loan still runs, e.g. ``"4.5 years left"``.

    Months are counted as 30 days and rounded up.
    """
    end = add_months(start_date, tenure_months)
    if end < today:
        return "Ended"
    months = math.ceil((end - today).days / 30)
    if months > 12:
        return f"{months / 12:.1f} years left"
    return f"{months} months left"


def portfolio_totals(loans: Iterable[Loan]) -> Dict[str, object]:
    """Total principal and combined monthly outflow of ``loans``."""
    loans = list(loans)
    return {
        "count": len(loans),
        "total_principal": round_unit(sum((loan.principal for loan in loans), Decimal("0"))),
        "total_monthly_emi": sum(loan.emi for loan in loans),
    }


def split_by_status(loans: Iterable[Loan]) -> Tuple[List[Loan], List[Loan]]:
    """Return ``(active, closed)`` loans preserving order."""
    active: List[Loan] = []
    closed: List[Loan] = []
    for loan in loans:
        (closed if loan.status == LoanStatus.CLOSED else active).append(loan)
    return active, closed


def demo_loans(today: date) -> List[Loan]:
    """Two sample loans already part-way through repayment."""
    home = new_loan(
        LoanDefinition(Decimal("5000000"), Decimal("8.5"), 240),
        "Dream Home Loan",
        LoanCategory.HOME,
        add_months(today, -12),
        loan_id=f"demo_home_{uuid4().hex[:8]}",
    )
    car = new_loan(
        LoanDefinition(Decimal("3500000"), Decimal("9.0"), 60),
        "Tesla Model 3",
        LoanCategory.VEHICLE,
        add_months(today, -6),
        loan_id=f"demo_car_{uuid4().hex[:8]}",
    )
    return [home, car]
