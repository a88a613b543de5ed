"""Output helpers for the EMI calculator.

This module renders plans, yearly breakdowns, saved loans and reminders in a
tabular text format. Amounts are shown in whole rupees using Indian digit
grouping (``12,34,567``); only built-in printing and string formatting are
used.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, Optional

from .data_models import InstallmentPlan, Loan, Reminder
from .engine import summarize, yearly_rows
from .reminders import loan_progress, remaining_time_label
from .utils import Number, round_unit

CURRENCY_SYMBOL = "₹"


def group_indian(value: Number) -> str:
    """Format a whole number with Indian grouping: last three digits, then pairs."""
    number = round_unit(value)
    sign = "-" if number < 0 else ""
    digits = str(abs(number))
    if len(digits) <= 3:
        return sign + digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return sign + ",".join(pairs + [tail])


def format_amount(value: Number) -> str:
    return f"{CURRENCY_SYMBOL}{group_indian(value)}"


def print_summary(summary: Dict[str, object]) -> None:
    """Print the rounded plan figures produced by ``engine.summarize``."""
    print("Summary")
    print("-" * 72)
    print(f"Principal          : {format_amount(summary['principal'])}")
    print(f"Interest rate      : {summary['annual_rate_percent']:.2f}% p.a.")
    print(f"Tenure             : {summary['tenure_months']} months")
    print(f"Monthly EMI        : {format_amount(summary['installment'])}")
    print(f"Total interest     : {format_amount(summary['total_interest'])}")
    print(f"Total payment      : {format_amount(summary['total_payment'])}")
    print(f"Interest share     : {summary['interest_share_percent']:.2f}%")
    print("-" * 72)


def print_schedule(plan: InstallmentPlan) -> None:
    """Print the month-by-month schedule as a simple table."""
    print("\t".join(["Month", "Principal", "Interest", "Balance"]))
    for period in plan.periods:
        print(
            "\t".join(
                [
                    str(period.index),
                    f"{period.principal_component:.2f}",
                    f"{period.interest_component:.2f}",
                    f"{period.remaining_balance:.2f}",
                ]
            )
        )


def print_yearly(plan: InstallmentPlan) -> None:
    """Print the yearly principal/interest breakdown."""
    print(f"{'Year':10s} {'Months':>6s} {'Principal':>16s} {'Interest':>16s} {'Balance':>16s}")
    for row in yearly_rows(plan):
        print(
            f"{row['year']:10s} {row['months']:6d} "
            f"{format_amount(row['principal']):>16s} "
            f"{format_amount(row['interest']):>16s} "
            f"{format_amount(row['balance']):>16s}"
        )


def print_plan(plan: InstallmentPlan, yearly: bool = False) -> None:
    print_summary(summarize(plan))
    if yearly:
        print_yearly(plan)
    else:
        print_schedule(plan)


def print_loans(
    loans: Iterable[Loan], reminders: Iterable[Reminder], today: Optional[date] = None
) -> None:
    """Print saved loans with their repayment progress."""
    today = today or date.today()
    reminders = list(reminders)
    loans = list(loans)
    if not loans:
        print("No saved loans.")
        return
    print(f"{'ID':34s} {'Name':24s} {'Type':10s} {'EMI':>12s} {'Paid':>9s} {'Overdue':>7s}  Status")
    for loan in loans:
        progress = loan_progress(loan, reminders, today)
        if loan.is_closed:
            status = f"closed {loan.closed_at:%Y-%m-%d}" if loan.closed_at else "closed"
        else:
            status = remaining_time_label(loan.start_date, loan.tenure_months, today)
        print(
            f"{loan.id:34s} {loan.name[:24]:24s} {loan.category.value:10s} "
            f"{format_amount(loan.emi):>12s} {progress.progress_percent:8.1f}% {progress.overdue_count:7d}  {status}"
        )


def print_reminders(reminders: Iterable[Reminder], today: Optional[date] = None) -> None:
    today = today or date.today()
    for r in reminders:
        if r.is_paid:
            state = f"paid {r.paid_at:%d %b %Y %H:%M}" if r.paid_at else "paid"
        elif r.due_date < today:
            state = "overdue"
        else:
            state = "pending"
        print(f"{r.due_date.isoformat()}  {r.id:44s} {state:22s} {r.title}")
