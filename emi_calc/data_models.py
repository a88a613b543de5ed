"""Data models for the EMI calculator.

This module defines dataclasses for the loan parameters fed to the engine,
the immutable plan it returns (period and yearly records) and the saved
entities kept by the loan store: loans and their payment reminders. Using
dataclasses makes it easy to construct, inspect and serialize these
structures.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


class LoanCategory(str, Enum):
    """The category tag shown next to a saved loan."""

    PERSONAL = "Personal"
    HOME = "Home"
    VEHICLE = "Vehicle"
    EDUCATION = "Education"

    @classmethod
    def parse(cls, value: str) -> "LoanCategory":
        """Return the category matching ``value`` case-insensitively."""
        for member in cls:
            if member.value.lower() == value.strip().lower():
                return member
        raise ValueError(f"Unknown loan category: {value}")


class LoanStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass(frozen=True)
class LoanDefinition:
    """The three financial terms of a loan.

    Attributes
    ----------
    principal: Decimal
        Amount borrowed, in whole currency units.
    annual_rate_percent: Decimal
        Nominal annual interest rate in percent. Zero means interest-free.
    tenure_months: int
        Number of monthly installments.
    """

    principal: Decimal
    annual_rate_percent: Decimal
    tenure_months: int


@dataclass(frozen=True)
class PeriodRecord:
    """One month of the amortization schedule."""

    index: int
    principal_component: Decimal
    interest_component: Decimal
    remaining_balance: Decimal


@dataclass(frozen=True)
class YearRecord:
    """Up to twelve consecutive periods folded into one row.

    ``months`` is 12 for every bucket except possibly the last one, which
    covers whatever is left of the tenure.
    """

    year_label: str
    principal_paid: Decimal
    interest_paid: Decimal
    balance_at_year_end: Decimal
    months: int


@dataclass(frozen=True)
class InstallmentPlan:
    """Everything the engine derives from a ``LoanDefinition``.

    All amounts are kept in full precision; rounding to whole units happens
    only when the plan is summarized for display.
    """

    definition: LoanDefinition
    installment_amount: Decimal
    total_payment: Decimal
    total_interest: Decimal
    periods: Tuple[PeriodRecord, ...]
    yearly_summary: Tuple[YearRecord, ...]


@dataclass
class Loan:
    """A saved loan.

    ``emi`` is the installment rounded to whole units at the time the loan
    was saved. It is never recomputed: the financial terms of a saved loan
    do not change.
    """

    id: str
    name: str
    category: LoanCategory
    principal: Decimal
    annual_rate_percent: Decimal
    tenure_months: int
    start_date: date
    emi: int
    status: LoanStatus = LoanStatus.ACTIVE
    closed_at: Optional[datetime] = None

    @property
    def definition(self) -> LoanDefinition:
        return LoanDefinition(self.principal, self.annual_rate_percent, self.tenure_months)

    @property
    def is_closed(self) -> bool:
        return self.status == LoanStatus.CLOSED


@dataclass
class Reminder:
    """A dated to-do attached to a loan.

    Reminders of kind ``"payment"`` are generated one per installment when a
    loan is saved; ``sequence`` is the installment number they stand for.
    """

    id: str
    loan_id: str
    title: str
    due_date: date
    is_paid: bool = False
    paid_at: Optional[datetime] = None
    kind: str = "payment"  # "payment" or "task"
    sequence: int = 0


@dataclass
class LoanProgress:
    """Repayment progress of a saved loan derived from its reminders."""

    paid_count: int
    total_paid: int
    total_payable: int
    outstanding: int
    progress_percent: float
    next_due_date: Optional[date] = None
    last_paid_at: Optional[datetime] = None
    overdue_count: int = field(default=0)
