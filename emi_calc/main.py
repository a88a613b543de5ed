"""Command‑line interface for the EMI calculator.

This module uses the ``click`` library to implement a multi‑command
interface. Users can compute an EMI and its amortization schedule, export
schedules to JSON/CSV, and manage saved loans and their payment reminders in
a local database.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Optional

import click

from .data_models import InstallmentPlan, LoanCategory, LoanDefinition, LoanStatus
from .engine import build_schedule, period_rows, summarize, validate_loan_parameters, yearly_rows
from .exceptions import EmiCalcError
from .formatter import format_amount, print_loans, print_plan, print_reminders, print_summary
from .loan_store import DEFAULT_DATABASE_URL, LoanStore
from .reminders import new_loan, upcoming_payments
from .utils import decimal_from_str, parse_date, years_to_months

logger = logging.getLogger(__name__)

AMOUNT_SUFFIXES = (
    ("cr", Decimal("10000000")),
    ("l", Decimal("100000")),
    ("k", Decimal("1000")),
    ("m", Decimal("1000000")),
)


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000", "5,00,000") and shorthand with
    ``k``/``m``/``l`` (lakh)/``cr`` (crore) suffixes, e.g. "5l" meaning
    500,000.
    """
    value = value.strip().lower()
    factor = Decimal("1")
    for suffix, multiplier in AMOUNT_SUFFIXES:
        if value.endswith(suffix):
            factor = multiplier
            value = value[: -len(suffix)]
            break
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def build_definition(
    principal: str, rate: float, term: Optional[int], years: Optional[float]
) -> LoanDefinition:
    """Turn raw option values into validated loan terms."""
    if (term is None) == (years is None):
        raise click.UsageError("Give the tenure either as --term (months) or --years")
    try:
        months = term if term is not None else years_to_months(years)
        return validate_loan_parameters(parse_amount(principal), Decimal(repr(rate)), months)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def loan_options(func: Callable) -> Callable:
    """Attach the principal/rate/tenure options shared by several commands."""
    func = click.option("--years", "-y", "years", type=float, help="Tenure in years (decimals allowed)")(func)
    func = click.option("--term", "-t", "term", type=int, help="Tenure in months")(func)
    func = click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")(func)
    func = click.option("--principal", "-p", "principal", required=True, help="Loan amount, e.g. 500000, 5l, 1.2cr")(func)
    return func


def export_to_json(path: Path, plan: InstallmentPlan) -> None:
    """Export the summary, yearly breakdown and schedule to a JSON file."""
    data = {
        "summary": summarize(plan),
        "yearly": yearly_rows(plan),
        "schedule": period_rows(plan),
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, plan: InstallmentPlan) -> None:
    """Export the month-by-month schedule to a CSV file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["Month", "Principal", "Interest", "Balance"])
        for row in period_rows(plan):
            writer.writerow([row["period"], row["principal"], row["interest"], row["balance"]])


def _store(ctx: click.Context) -> LoanStore:
    obj = ctx.ensure_object(dict)
    if "store" not in obj:
        url = obj.get("db_url") or DEFAULT_DATABASE_URL
        logger.debug("Opening loan database %s", url)
        store = LoanStore(url)
        ctx.call_on_close(store.dispose)
        obj["store"] = store
    return obj["store"]


def _user(ctx: click.Context) -> str:
    return ctx.ensure_object(dict).get("user") or "local"


def _run(action: Callable[[], Any]) -> Any:
    try:
        return action()
    except EmiCalcError as exc:
        raise click.ClickException(str(exc))


@click.group()
@click.option("--db", "db_url", envvar="EMI_DATABASE_URL", help="SQLAlchemy URL of the loan database")
@click.option("--user", "user", envvar="EMI_USER", default="local", show_default=True, help="Whose loans to manage")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, db_url: Optional[str], user: str, verbose: bool) -> None:
    """Plan EMIs, inspect amortization schedules and track saved loans."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["db_url"] = db_url
    ctx.obj["user"] = user


@cli.command()
@loan_options
def emi(principal: str, rate: float, term: Optional[int], years: Optional[float]) -> None:
    """Compute and print the monthly EMI and totals."""
    definition = build_definition(principal, rate, term, years)
    plan = build_schedule(definition.principal, definition.annual_rate_percent, definition.tenure_months)
    print_summary(summarize(plan))


@cli.command()
@loan_options
@click.option("--yearly", is_flag=True, help="Show the year-by-year breakdown instead of every month")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: float,
    term: Optional[int],
    years: Optional[float],
    yearly: bool,
    output: Optional[str],
) -> None:
    """Compute and print the full amortization schedule."""
    definition = build_definition(principal, rate, term, years)
    plan = build_schedule(definition.principal, definition.annual_rate_percent, definition.tenure_months)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, plan)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, plan)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
    else:
        print_plan(plan, yearly=yearly)


@cli.command()
@loan_options
@click.option("--name", "name", default="", help="Display name of the loan")
@click.option(
    "--type",
    "category",
    type=click.Choice([c.value for c in LoanCategory], case_sensitive=False),
    default=LoanCategory.PERSONAL.value,
    show_default=True,
    help="Loan category",
)
@click.option("--start-date", "-s", "start_date", help="Start date (YYYY-MM-DD); defaults to today")
@click.pass_context
def save(
    ctx: click.Context,
    principal: str,
    rate: float,
    term: Optional[int],
    years: Optional[float],
    name: str,
    category: str,
    start_date: Optional[str],
) -> None:
    """Save a loan and generate one payment reminder per installment."""
    definition = build_definition(principal, rate, term, years)
    try:
        start = parse_date(start_date) if start_date else date.today()
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    loan = new_loan(definition, name, LoanCategory.parse(category), start)
    reminders = _store(ctx).add_loan(_user(ctx), loan)
    click.echo(f"Saved {loan.name} ({loan.id}): EMI {format_amount(loan.emi)}, {len(reminders)} reminders")


@cli.command()
@click.option("--closed", is_flag=True, help="List closed loans (history) instead of active ones")
@click.pass_context
def loans(ctx: click.Context, closed: bool) -> None:
    """List saved loans."""
    store = _store(ctx)
    user = _user(ctx)
    status = LoanStatus.CLOSED if closed else LoanStatus.ACTIVE
    print_loans(store.list_loans(user, status), store.list_reminders(user))


@cli.command()
@click.argument("loan_id")
@click.pass_context
def close(ctx: click.Context, loan_id: str) -> None:
    """Mark a loan as closed and move it to history."""
    loan = _run(lambda: _store(ctx).close_loan(_user(ctx), loan_id))
    click.echo(f"Closed {loan.name}")


@cli.command()
@click.argument("loan_id")
@click.pass_context
def restore(ctx: click.Context, loan_id: str) -> None:
    """Move a closed loan back to the active list."""
    loan = _run(lambda: _store(ctx).restore_loan(_user(ctx), loan_id))
    click.echo(f"Restored {loan.name}")


@cli.command()
@click.argument("loan_id")
@click.confirmation_option(prompt="Permanently delete this loan and its reminders?")
@click.pass_context
def delete(ctx: click.Context, loan_id: str) -> None:
    """Delete a loan and all of its reminders."""
    _run(lambda: _store(ctx).delete_loan(_user(ctx), loan_id))
    click.echo(f"Deleted {loan_id}")


@cli.command()
@click.option("--loan", "loan_id", help="Only reminders of this loan")
@click.option("--upcoming", is_flag=True, help="Only unpaid payments due within the next three days")
@click.pass_context
def reminders(ctx: click.Context, loan_id: Optional[str], upcoming: bool) -> None:
    """List payment reminders."""
    items = _store(ctx).list_reminders(_user(ctx), loan_id)
    today = date.today()
    if upcoming:
        items = upcoming_payments(items, today)
        if not items:
            click.echo("No EMI payments due in the next three days.")
            return
    print_reminders(items, today)


@cli.command()
@click.argument("reminder_id")
@click.pass_context
def pay(ctx: click.Context, reminder_id: str) -> None:
    """Mark a payment reminder as paid (earlier installments first)."""
    reminder = _run(lambda: _store(ctx).mark_reminder_paid(_user(ctx), reminder_id))
    click.echo(f"Paid: {reminder.title}")


@cli.command()
@click.pass_context
def demo(ctx: click.Context) -> None:
    """Load two sample loans with past installments already paid."""
    loaded = _store(ctx).load_demo_data(_user(ctx))
    for loan in loaded:
        click.echo(f"Loaded {loan.name} ({loan.id}): EMI {format_amount(loan.emi)}")


if __name__ == "__main__":
    cli()
