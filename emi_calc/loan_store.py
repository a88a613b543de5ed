"""Persistence layer for saved loans and their payment reminders.

The store keeps, per user token, an ordered collection of loans and an
ordered collection of reminders keyed by loan id. It is an explicit object
handed to the CLI and the web app rather than module-level state. It
defaults to SQLite for local use, but accepts any SQLAlchemy-compatible URL
(e.g. PostgreSQL/MySQL).
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    create_engine,
    delete,
    select,
)
from sqlalchemy.orm import declarative_base, sessionmaker

from .data_models import Loan, LoanCategory, LoanStatus, Reminder
from .exceptions import LoanNotFoundError, ReminderNotFoundError
from .reminders import demo_loans, generate_reminders, mark_paid

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///emi_data.sqlite3"

Base = declarative_base()


class LoanModel(Base):
    __tablename__ = "loans"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, nullable=False)
    user_token = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    category = Column(String(32), nullable=False)
    # Stored as text so amounts round-trip exactly on every backend
    principal = Column(String(40), nullable=False)
    annual_rate_percent = Column(String(40), nullable=False)
    tenure_months = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    emi = Column(Integer, nullable=False)
    status = Column(String(16), nullable=False, default=LoanStatus.ACTIVE.value)
    closed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)


class ReminderModel(Base):
    __tablename__ = "reminders"

    id = Column(String(128), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    loan_id = Column(String(64), ForeignKey("loans.id"), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    kind = Column(String(16), nullable=False, default="payment")
    sequence = Column(Integer, nullable=False, default=0)
    due_date = Column(Date, nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)
    paid_at = Column(DateTime, nullable=True)


class LoanStore:
    """Database-backed loan and reminder store."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def dispose(self) -> None:
        self._engine.dispose()

    # Loans

    def list_loans(self, user_token: str, status: Optional[LoanStatus] = None) -> List[Loan]:
        if not user_token:
            return []
        query = select(LoanModel).where(LoanModel.user_token == user_token)
        if status is not None:
            query = query.where(LoanModel.status == status.value)
        with self._session_factory() as session:
            rows: Iterable[LoanModel] = session.execute(query.order_by(LoanModel.pk.asc())).scalars()
            return [self._to_loan(row) for row in rows]

    def get_loan(self, user_token: str, loan_id: str) -> Loan:
        with self._session_factory() as session:
            return self._to_loan(self._loan_row(session, user_token, loan_id))

    def add_loan(
        self, user_token: str, loan: Loan, reminders: Optional[List[Reminder]] = None
    ) -> List[Reminder]:
        """Save ``loan`` and one reminder per installment.

        Returns the reminders that were stored. ``reminders`` overrides the
        generated ones (used for demo data with past payments settled).
        """
        if not user_token:
            return []
        if reminders is None:
            reminders = generate_reminders(loan)
        with self._session_factory() as session:
            session.add(
                LoanModel(
                    id=loan.id,
                    user_token=user_token,
                    name=loan.name,
                    category=loan.category.value,
                    principal=str(loan.principal),
                    annual_rate_percent=str(loan.annual_rate_percent),
                    tenure_months=loan.tenure_months,
                    start_date=loan.start_date,
                    emi=loan.emi,
                    status=loan.status.value,
                    closed_at=loan.closed_at,
                )
            )
            # Parent row first so the reminder foreign keys resolve
            session.flush()
            session.add_all(self._from_reminder(user_token, r) for r in reminders)
            session.commit()
        logger.info("Saved loan %s (%s) with %d reminders", loan.id, loan.name, len(reminders))
        return reminders

    def delete_loan(self, user_token: str, loan_id: str) -> None:
        """Remove a loan together with all of its reminders."""
        with self._session_factory() as session:
            row = self._loan_row(session, user_token, loan_id)
            session.execute(
                delete(ReminderModel).where(
                    ReminderModel.loan_id == loan_id, ReminderModel.user_token == user_token
                )
            )
            session.delete(row)
            session.commit()
        logger.info("Deleted loan %s", loan_id)

    def close_loan(self, user_token: str, loan_id: str, closed_at: Optional[datetime] = None) -> Loan:
        with self._session_factory() as session:
            row = self._loan_row(session, user_token, loan_id)
            row.status = LoanStatus.CLOSED.value
            row.closed_at = closed_at or datetime.now()
            session.commit()
            logger.info("Closed loan %s", loan_id)
            return self._to_loan(row)

    def restore_loan(self, user_token: str, loan_id: str) -> Loan:
        with self._session_factory() as session:
            row = self._loan_row(session, user_token, loan_id)
            row.status = LoanStatus.ACTIVE.value
            row.closed_at = None
            session.commit()
            logger.info("Restored loan %s", loan_id)
            return self._to_loan(row)

    # Reminders

    def list_reminders(self, user_token: str, loan_id: Optional[str] = None) -> List[Reminder]:
        if not user_token:
            return []
        query = select(ReminderModel).where(ReminderModel.user_token == user_token)
        if loan_id is not None:
            query = query.where(ReminderModel.loan_id == loan_id)
        query = query.order_by(ReminderModel.due_date.asc(), ReminderModel.sequence.asc())
        with self._session_factory() as session:
            return [self._to_reminder(row) for row in session.execute(query).scalars()]

    def get_reminder(self, user_token: str, reminder_id: str) -> Reminder:
        with self._session_factory() as session:
            row = session.get(ReminderModel, reminder_id)
            if row is None or row.user_token != user_token:
                raise ReminderNotFoundError(reminder_id)
            return self._to_reminder(row)

    def mark_reminder_paid(
        self, user_token: str, reminder_id: str, paid_at: Optional[datetime] = None
    ) -> Reminder:
        """Mark a reminder paid; raises ``PaymentLockedError`` if out of order."""
        with self._session_factory() as session:
            row = session.get(ReminderModel, reminder_id)
            if row is None or row.user_token != user_token:
                raise ReminderNotFoundError(reminder_id)
            siblings = session.execute(
                select(ReminderModel).where(
                    ReminderModel.loan_id == row.loan_id, ReminderModel.user_token == user_token
                )
            ).scalars()
            updated = mark_paid(
                self._to_reminder(row), [self._to_reminder(s) for s in siblings], paid_at
            )
            if not row.is_paid:
                row.is_paid = True
                row.paid_at = updated.paid_at
                session.commit()
                logger.info("Marked reminder %s paid", reminder_id)
            return updated

    def load_demo_data(self, user_token: str, today: Optional[date] = None) -> List[Loan]:
        """Save the sample loans with installments before ``today`` settled."""
        today = today or date.today()
        loans = demo_loans(today)
        for loan in loans:
            self.add_loan(user_token, loan, generate_reminders(loan, today=today))
        return loans

    # Helpers

    @staticmethod
    def _loan_row(session, user_token: str, loan_id: str) -> LoanModel:
        row = session.execute(select(LoanModel).where(LoanModel.id == loan_id)).scalar_one_or_none()
        if row is None or row.user_token != user_token:
            raise LoanNotFoundError(loan_id)
        return row

    @staticmethod
    def _to_loan(row: LoanModel) -> Loan:
        return Loan(
            id=row.id,
            name=row.name,
            category=LoanCategory(row.category),
            principal=Decimal(row.principal),
            annual_rate_percent=Decimal(row.annual_rate_percent),
            tenure_months=row.tenure_months,
            start_date=row.start_date,
            emi=row.emi,
            status=LoanStatus(row.status),
            closed_at=row.closed_at,
        )

    @staticmethod
    def _to_reminder(row: ReminderModel) -> Reminder:
        return Reminder(
            id=row.id,
            loan_id=row.loan_id,
            title=row.title,
            due_date=row.due_date,
            is_paid=row.is_paid,
            paid_at=row.paid_at,
            kind=row.kind,
            sequence=row.sequence,
        )

    @staticmethod
    def _from_reminder(user_token: str, reminder: Reminder) -> ReminderModel:
        return ReminderModel(
            id=reminder.id,
            user_token=user_token,
            loan_id=reminder.loan_id,
            title=reminder.title,
            kind=reminder.kind,
            sequence=reminder.sequence,
            due_date=reminder.due_date,
            is_paid=reminder.is_paid,
            paid_at=reminder.paid_at,
        )


def create_store_from_env(url: Optional[str]) -> LoanStore:
    return LoanStore(url or DEFAULT_DATABASE_URL)
