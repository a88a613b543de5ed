"""Exceptions raised by the EMI calculator.

The engine historically signalled bad input with ``ValueError``; the
parameter error keeps that base so existing callers that catch
``ValueError`` continue to work.
"""


class EmiCalcError(Exception):
    """Base class for all calculator errors."""


class InvalidLoanParameters(EmiCalcError, ValueError):
    """Principal, rate or tenure is outside the range the engine accepts."""


class LoanNotFoundError(EmiCalcError, KeyError):
    """No saved loan with the given id exists for the user."""

    def __str__(self) -> str:
        return f"Loan not found: {self.args[0]}" if self.args else "Loan not found"


class ReminderNotFoundError(EmiCalcError, KeyError):
    """No reminder with the given id exists for the user."""

    def __str__(self) -> str:
        return f"Reminder not found: {self.args[0]}" if self.args else "Reminder not found"


class PaymentLockedError(EmiCalcError):
    """A payment reminder cannot be marked paid before the previous one."""
