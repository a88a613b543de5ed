"""EMI calculator: fixed-installment amortization and saved-loan tracking."""

from .engine import build_schedule, compute_installment, plan_for, summarize

__all__ = ["build_schedule", "compute_installment", "plan_for", "summarize"]
