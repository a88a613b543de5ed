"""Tests for the amortization engine."""

from decimal import Decimal

import pytest

from emi_calc.data_models import LoanDefinition
from emi_calc.engine import (
    build_schedule,
    compute_installment,
    monthly_rate,
    period_rows,
    plan_for,
    summarize,
    validate_loan_parameters,
    yearly_rows,
)
from emi_calc.exceptions import InvalidLoanParameters

TOLERANCE = Decimal("0.000001")


def close_to(a, b, tol=TOLERANCE) -> bool:
    return abs(Decimal(a) - Decimal(b)) <= tol


def test_known_home_loan_installment():
    """10 lakh at 8.5 % over 20 years costs about 8,678 a month."""
    installment = compute_installment(1_000_000, 8.5, 240)
    assert round(installment) == 8678

    r = Decimal("8.5") / 12 / 100
    factor = (1 + r) ** 240
    assert close_to(installment, Decimal(1_000_000) * r * factor / (factor - 1))


def test_zero_rate_is_simple_division():
    installment = compute_installment(Decimal("100000"), 0, 30)
    assert close_to(installment * 30, Decimal("100000"))


def test_zero_rate_schedule_has_no_interest():
    plan = build_schedule(Decimal("100000"), Decimal("0"), 30)
    assert all(p.interest_component == 0 for p in plan.periods)
    assert all(p.principal_component == plan.installment_amount for p in plan.periods)
    assert plan.total_payment == Decimal("100000")
    assert plan.total_interest == 0
    assert plan.periods[-1].remaining_balance == 0
    assert all(p.remaining_balance >= 0 for p in plan.periods)


@pytest.mark.parametrize(
    "principal, rate, months",
    [
        (Decimal("1000000"), Decimal("8.5"), 240),
        (Decimal("500000"), Decimal("10.5"), 24),
        (Decimal("4120000"), Decimal("8"), 144),
        (Decimal("75000"), Decimal("0"), 7),
        (Decimal("250000"), Decimal("36"), 1),
    ],
)
def test_principal_components_add_up_to_principal(principal, rate, months):
    plan = build_schedule(principal, rate, months)
    repaid = sum(p.principal_component for p in plan.periods)
    assert close_to(repaid, principal, Decimal("0.0001"))
    assert close_to(plan.periods[-1].remaining_balance, 0, Decimal("0.0001"))


def test_balance_decreases_every_month():
    plan = build_schedule(1_000_000, 8.5, 240)
    balances = [p.remaining_balance for p in plan.periods]
    assert all(later <= earlier for earlier, later in zip(balances, balances[1:]))
    assert all(b > 0 for b in balances[:-1])
    assert balances[-1] == 0


def test_interest_share_shrinks_over_time():
    plan = build_schedule(1_000_000, 8.5, 240)
    first, last = plan.periods[0], plan.periods[-1]
    assert first.interest_component > first.principal_component
    assert last.interest_component < last.principal_component
    assert close_to(first.interest_component, Decimal(1_000_000) * monthly_rate(Decimal("8.5")))


def test_periods_are_numbered_in_order():
    plan = build_schedule(200000, 12, 18)
    assert [p.index for p in plan.periods] == list(range(1, 19))


def test_totals_follow_installment():
    plan = build_schedule(1_000_000, 8.5, 240)
    assert plan.total_payment == plan.installment_amount * 240
    assert plan.total_interest == plan.total_payment - 1_000_000
    assert close_to(plan.total_interest, sum(p.interest_component for p in plan.periods), Decimal("0.0001"))


def test_schedule_is_deterministic():
    assert build_schedule(1_000_000, 8.5, 240) == build_schedule(1_000_000, 8.5, 240)


def test_single_month_loan():
    principal = Decimal("50000")
    plan = build_schedule(principal, Decimal("12"), 1)
    r = Decimal("0.01")
    assert close_to(plan.installment_amount, principal * (1 + r))
    assert close_to(plan.total_interest, principal * r)
    assert len(plan.periods) == 1
    assert len(plan.yearly_summary) == 1
    assert plan.yearly_summary[0].months == 1


def test_thirty_months_make_three_yearly_buckets():
    plan = build_schedule(300000, 9, 30)
    assert [y.months for y in plan.yearly_summary] == [12, 12, 6]
    assert [y.year_label for y in plan.yearly_summary] == ["Year 1", "Year 2", "Year 3"]
    assert plan.yearly_summary[-1].balance_at_year_end == 0


def test_twenty_four_months_make_two_full_years():
    plan = build_schedule(300000, 9, 24)
    assert [y.months for y in plan.yearly_summary] == [12, 12]


def test_yearly_buckets_match_periods():
    plan = build_schedule(1_000_000, 8.5, 40)
    first_year = plan.periods[:12]
    bucket = plan.yearly_summary[0]
    assert bucket.principal_paid == sum(p.principal_component for p in first_year)
    assert bucket.interest_paid == sum(p.interest_component for p in first_year)
    assert bucket.balance_at_year_end == plan.periods[11].remaining_balance


def test_plan_for_definition():
    definition = LoanDefinition(Decimal("1000000"), Decimal("8.5"), 240)
    plan = plan_for(definition)
    assert plan.definition == definition
    assert plan == build_schedule(1_000_000, Decimal("8.5"), 240)


def test_float_inputs_are_taken_at_face_value():
    plan = build_schedule(100000.0, 8.5, 12)
    assert plan.definition.annual_rate_percent == Decimal("8.5")
    assert plan.definition.principal == Decimal("100000.0")


@pytest.mark.parametrize(
    "principal, rate, months",
    [
        (0, 8.5, 12),
        (-1000, 8.5, 12),
        (100000, -1, 12),
        (100000, 8.5, 0),
        (100000, 8.5, -3),
        (100000, 8.5, 12.5),
        (100000, 8.5, True),
        (100000, 8.5, 1201),
        (100000, 8.5, 1_000_000_000),
        ("lots", 8.5, 12),
        (Decimal("NaN"), 8.5, 12),
        (100000, Decimal("Infinity"), 12),
    ],
)
def test_invalid_parameters_are_rejected(principal, rate, months):
    with pytest.raises(InvalidLoanParameters):
        build_schedule(principal, rate, months)


def test_invalid_parameters_are_value_errors():
    with pytest.raises(ValueError):
        compute_installment(100000, 8.5, 0)


def test_zero_rate_is_not_invalid():
    definition = validate_loan_parameters(1000, 0, 1)
    assert definition.annual_rate_percent == 0


def test_hundred_year_tenure_is_the_limit():
    assert validate_loan_parameters(1000, 8.5, 1200).tenure_months == 1200


def test_summarize_rounds_to_whole_units():
    plan = build_schedule(1_000_000, 8.5, 240)
    summary = summarize(plan)
    assert summary["installment"] == 8678
    assert summary["principal"] == 1_000_000
    assert summary["tenure_months"] == 240
    assert summary["annual_rate_percent"] == 8.5
    assert abs(summary["total_payment"] - summary["total_interest"] - 1_000_000) <= 1
    assert all(isinstance(summary[k], int) for k in ("installment", "total_payment", "total_interest"))
    assert 0 < summary["interest_share_percent"] < 100


def test_summarize_interest_free():
    summary = summarize(build_schedule(90000, 0, 9))
    assert summary["installment"] == 10000
    assert summary["total_payment"] == 90000
    assert summary["total_interest"] == 0
    assert summary["interest_share_percent"] == 0


def test_yearly_rows_are_rounded():
    rows = yearly_rows(build_schedule(1_000_000, 8.5, 30))
    assert [r["year"] for r in rows] == ["Year 1", "Year 2", "Year 3"]
    assert all(isinstance(r[key], int) for r in rows for key in ("principal", "interest", "balance"))
    assert rows[-1]["balance"] == 0
    assert abs(sum(r["principal"] for r in rows) - 1_000_000) <= len(rows)


def test_period_rows_keep_precision():
    plan = build_schedule(1_000_000, 8.5, 240)
    rows = period_rows(plan)
    assert len(rows) == 240
    assert rows[0]["period"] == 1
    assert rows[0]["interest"] == pytest.approx(float(Decimal(1_000_000) * monthly_rate(Decimal("8.5"))))
