"""Shared pytest fixtures."""

from datetime import date
from decimal import Decimal

import pytest

from emi_calc.data_models import LoanCategory, LoanDefinition
from emi_calc.loan_store import LoanStore
from emi_calc.reminders import new_loan
from emi_calc_web.app import create_app


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'loans.sqlite3'}"


@pytest.fixture
def store(db_url):
    loan_store = LoanStore(db_url)
    yield loan_store
    loan_store.dispose()


@pytest.fixture
def interest_free_loan():
    """A 12-month 1,20,000 loan at 0 % starting mid-January 2024 (EMI 10,000)."""
    return new_loan(
        LoanDefinition(Decimal("120000"), Decimal("0"), 12),
        "Laptop",
        LoanCategory.PERSONAL,
        date(2024, 1, 15),
    )


@pytest.fixture
def app(store):
    flask_app = create_app(store=store, config={"TESTING": True})
    yield flask_app


@pytest.fixture
def client(app):
    test_client = app.test_client()
    with test_client.session_transaction() as sess:
        sess["user_token"] = "tester"
    return test_client
