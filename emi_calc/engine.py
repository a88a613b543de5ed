"""Core calculation engine for the EMI calculator.

This module implements reducing-balance amortization for fixed monthly
installment (EMI) loans. Given a principal, an annual interest rate and a
tenure in months it returns an ``InstallmentPlan``: the installment, the
totals over the life of the loan, one record per month and one record per
year of the schedule.

Everything here is pure. Iteration runs on unrounded ``Decimal`` values;
whole-unit rounding happens only in :func:`summarize` and
:func:`yearly_rows`, the reporting boundary.
"""

from __future__ import annotations

import logging
from decimal import Decimal, getcontext
from typing import Dict, List

from .data_models import InstallmentPlan, LoanDefinition, PeriodRecord, YearRecord
from .exceptions import InvalidLoanParameters
from .utils import Number, round_unit, to_decimal

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
MONTHS_PER_YEAR = 12
MAX_TENURE_MONTHS = 1200
# Residual balances below half a paisa are reported as settled
RESIDUAL = Decimal("0.005")


def validate_loan_parameters(
    principal: Number, annual_rate_percent: Number, tenure_months: int
) -> LoanDefinition:
    """Check the engine's input contract and return the normalized terms.

    Zero interest is valid. A non-positive principal, a negative rate or a
    tenure that is not a whole number of months between 1 and
    ``MAX_TENURE_MONTHS`` raises ``InvalidLoanParameters``.
    """
    if isinstance(tenure_months, bool) or not isinstance(tenure_months, int):
        raise InvalidLoanParameters(
            f"Tenure must be a whole number of months; got {tenure_months!r}"
        )
    if tenure_months < 1:
        raise InvalidLoanParameters(f"Tenure must be at least one month; got {tenure_months}")
    if tenure_months > MAX_TENURE_MONTHS:
        raise InvalidLoanParameters(
            f"Tenure cannot exceed {MAX_TENURE_MONTHS} months; got {tenure_months}"
        )
    try:
        principal_dec = to_decimal(principal)
        rate_dec = to_decimal(annual_rate_percent)
    except (TypeError, ValueError, ArithmeticError) as exc:
        raise InvalidLoanParameters(f"Loan amounts must be numeric: {exc}") from exc
    if not principal_dec.is_finite() or principal_dec <= 0:
        raise InvalidLoanParameters(f"Principal must be positive; got {principal}")
    if not rate_dec.is_finite() or rate_dec < 0:
        raise InvalidLoanParameters(f"Interest rate cannot be negative; got {annual_rate_percent}")
    return LoanDefinition(principal_dec, rate_dec, tenure_months)


def monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    """Convert an annual rate in percent to a monthly decimal rate."""
    return annual_rate_percent / Decimal(MONTHS_PER_YEAR) / Decimal(100)


def _reported(balance: Decimal) -> Decimal:
    # Drift can leave the final balance a hair above or below zero
    if balance < RESIDUAL:
        return ZERO
    return balance


def _installment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    # payment = P * i * (1 + i)^n / ((1 + i)^n - 1), or P / n when i == 0
    if rate_per_month == 0:
        return principal / Decimal(term)
    factor = (1 + rate_per_month) ** term
    return principal * rate_per_month * factor / (factor - 1)


def compute_installment(
    principal: Number, annual_rate_percent: Number, tenure_months: int
) -> Decimal:
    """Return the fixed monthly installment in full precision.

    When the interest rate is zero the installment is simply
    ``principal / tenure_months``.
    """
    terms = validate_loan_parameters(principal, annual_rate_percent, tenure_months)
    return _installment(
        terms.principal, monthly_rate(terms.annual_rate_percent), terms.tenure_months
    )


def build_schedule(
    principal: Number, annual_rate_percent: Number, tenure_months: int
) -> InstallmentPlan:
    """Compute the full amortization plan for a loan.

    Parameters
    ----------
    principal: Number
        Amount borrowed. Must be positive.
    annual_rate_percent: Number
        Nominal annual rate in percent. Zero gives an interest-free plan.
    tenure_months: int
        Number of monthly installments. Must be at least 1.

    Returns
    -------
    InstallmentPlan
        The installment, totals, one ``PeriodRecord`` per month and one
        ``YearRecord`` per twelve months (the last one may be shorter).
    """
    terms = validate_loan_parameters(principal, annual_rate_percent, tenure_months)
    amount = terms.principal
    term = terms.tenure_months
    rate_per_month = monthly_rate(terms.annual_rate_percent)
    interest_free = rate_per_month == 0

    installment = _installment(amount, rate_per_month, term)

    periods: List[PeriodRecord] = []
    years: List[YearRecord] = []
    balance = amount
    year_principal = ZERO
    year_interest = ZERO
    year_months = 0

    for i in range(1, term + 1):
        if interest_free:
            interest_payment = ZERO
            principal_payment = installment
        else:
            interest_payment = balance * rate_per_month
            principal_payment = installment - interest_payment
        balance -= principal_payment

        periods.append(
            PeriodRecord(
                index=i,
                principal_component=principal_payment,
                interest_component=interest_payment,
                remaining_balance=_reported(balance),
            )
        )

        year_principal += principal_payment
        year_interest += interest_payment
        year_months += 1
        if i % MONTHS_PER_YEAR == 0 or i == term:
            years.append(
                YearRecord(
                    year_label=f"Year {(i + MONTHS_PER_YEAR - 1) // MONTHS_PER_YEAR}",
                    principal_paid=year_principal,
                    interest_paid=year_interest,
                    balance_at_year_end=_reported(balance),
                    months=year_months,
                )
            )
            year_principal = ZERO
            year_interest = ZERO
            year_months = 0

    if interest_free:
        total_payment = amount
        total_interest = ZERO
    else:
        total_payment = installment * Decimal(term)
        total_interest = total_payment - amount

    logger.debug(
        "Built %d-month schedule for principal=%s rate=%s%%: installment=%s",
        term,
        amount,
        terms.annual_rate_percent,
        installment,
    )

    return InstallmentPlan(
        definition=terms,
        installment_amount=installment,
        total_payment=total_payment,
        total_interest=total_interest,
        periods=tuple(periods),
        yearly_summary=tuple(years),
    )


def plan_for(definition: LoanDefinition) -> InstallmentPlan:
    """Shortcut for ``build_schedule`` over a ``LoanDefinition``."""
    return build_schedule(
        definition.principal, definition.annual_rate_percent, definition.tenure_months
    )


def summarize(plan: InstallmentPlan) -> Dict[str, object]:
    """Round a plan's aggregates to whole units for display.

    The returned dictionary is what the formatter, the JSON export and the
    web views show. ``interest_share_percent`` is the interest portion of
    the total payment, used for the principal/interest split chart.
    """
    total_payment = plan.total_payment
    share = (plan.total_interest / total_payment * 100) if total_payment else ZERO
    return {
        "principal": round_unit(plan.definition.principal),
        "annual_rate_percent": float(plan.definition.annual_rate_percent),
        "tenure_months": plan.definition.tenure_months,
        "installment": round_unit(plan.installment_amount),
        "total_payment": round_unit(total_payment),
        "total_interest": round_unit(plan.total_interest),
        "interest_share_percent": round(float(share), 2),
    }


def yearly_rows(plan: InstallmentPlan) -> List[Dict[str, object]]:
    """Return the yearly summary with every amount rounded to whole units."""
    return [
        {
            "year": year.year_label,
            "principal": round_unit(year.principal_paid),
            "interest": round_unit(year.interest_paid),
            "balance": round_unit(year.balance_at_year_end),
            "months": year.months,
        }
        for year in plan.yearly_summary
    ]


def period_rows(plan: InstallmentPlan) -> List[Dict[str, object]]:
    """Return the monthly schedule as JSON-serialisable dictionaries.

    Values stay unrounded (as floats) so exports can be re-aggregated
    without drift.
    """
    return [
        {
            "period": p.index,
            "principal": float(p.principal_component),
            "interest": float(p.interest_component),
            "balance": float(p.remaining_balance),
        }
        for p in plan.periods
    ]
