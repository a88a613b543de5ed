"""Tests for text output."""

from datetime import date

from emi_calc.engine import build_schedule
from emi_calc.formatter import format_amount, group_indian, print_loans, print_plan, print_reminders
from emi_calc.reminders import generate_reminders


def test_group_indian():
    assert group_indian(999) == "999"
    assert group_indian(12345) == "12,345"
    assert group_indian(1000000) == "10,00,000"
    assert group_indian(123456789) == "12,34,56,789"
    assert group_indian(-1500) == "-1,500"


def test_format_amount_rounds():
    assert format_amount(43391.4) == "₹43,391"


def test_print_plan_yearly(capsys):
    print_plan(build_schedule(1_000_000, 8.5, 30), yearly=True)
    out = capsys.readouterr().out
    assert "Monthly EMI" in out
    assert "Year 3" in out
    assert "10,00,000" in out


def test_print_plan_monthly(capsys):
    print_plan(build_schedule(12000, 0, 12))
    lines = capsys.readouterr().out.splitlines()
    assert lines[-1].startswith("12\t1000.00\t0.00\t0.00")


def test_print_loans_and_reminders(capsys, interest_free_loan):
    reminders = generate_reminders(interest_free_loan, today=date(2024, 3, 1))
    print_loans([interest_free_loan], reminders, today=date(2024, 3, 1))
    print_reminders(reminders[:3], today=date(2024, 3, 20))
    out = capsys.readouterr().out
    assert "Laptop" in out
    assert "₹10,000" in out
    assert "paid" in out
    assert "overdue" in out
    assert "pending" in out


def test_print_loans_empty(capsys):
    print_loans([], [])
    assert "No saved loans." in capsys.readouterr().out


def test_print_loans_counts_overdue_payments(capsys, interest_free_loan):
    # February is settled; March and April are past due on 1 May
    reminders = generate_reminders(interest_free_loan, today=date(2024, 3, 1))
    print_loans([interest_free_loan], reminders, today=date(2024, 5, 1))
    header, row = capsys.readouterr().out.splitlines()
    assert "Overdue" in header
    assert row.split()[4:6] == ["8.3%", "2"]
