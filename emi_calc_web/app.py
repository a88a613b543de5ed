import logging
import os
from datetime import date
from typing import Optional
from urllib.parse import urlsplit
from uuid import uuid4

from flask import Flask, abort, jsonify, redirect, render_template, request, session, url_for

from emi_calc.data_models import LoanCategory, LoanStatus
from emi_calc.engine import build_schedule, period_rows, summarize, validate_loan_parameters, yearly_rows
from emi_calc.exceptions import EmiCalcError, LoanNotFoundError, PaymentLockedError, ReminderNotFoundError
from emi_calc.formatter import format_amount
from emi_calc.loan_store import LoanStore, create_store_from_env
from emi_calc.reminders import (
    is_locked,
    loan_progress,
    new_loan,
    portfolio_totals,
    remaining_time_label,
    split_by_status,
    upcoming_payments,
)
from emi_calc.utils import decimal_from_str, years_to_months

logger = logging.getLogger(__name__)

DEFAULT_FORM = {"principal": "500000", "rate": "10.5", "years": "2", "category": "Personal", "name": ""}


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _local_path(target: Optional[str]) -> Optional[str]:
    """Return ``target`` if it is a path on this site, otherwise ``None``."""
    if not target or not target.startswith("/") or target.startswith("//") or "\\" in target:
        return None
    parts = urlsplit(target)
    if parts.scheme or parts.netloc:
        return None
    return target


def _form_to_definition(form):
    """Read principal, rate and tenure (in years) from the calculator form."""
    principal = decimal_from_str(form.get("principal", "").strip() or "0")
    rate = decimal_from_str(form.get("rate", "").strip() or "0")
    months = years_to_months(decimal_from_str(form.get("years", "").strip() or "0"))
    return validate_loan_parameters(principal, rate, months)


def _plan_payload(plan) -> dict:
    return {"summary": summarize(plan), "yearly": yearly_rows(plan), "schedule": period_rows(plan)}


def create_app(store: Optional[LoanStore] = None, config: Optional[dict] = None) -> Flask:
    app = Flask(__name__)
    app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    if config:
        app.config.update(config)
    if store is None:
        store = create_store_from_env(app.config.get("EMI_DATABASE_URL") or os.environ.get("EMI_DATABASE_URL"))
    app.extensions["loan_store"] = store

    app.jinja_env.filters["inr"] = format_amount

    def _user_loan_or_404(user_token: str, loan_id: str):
        try:
            return store.get_loan(user_token, loan_id)
        except LoanNotFoundError:
            abort(404)

    @app.route("/", methods=["GET", "POST"])
    def index():
        form = dict(DEFAULT_FORM)
        error = None
        message = None
        plan = None
        user_token = _ensure_user_token()

        if request.method == "POST":
            form.update({k: request.form.get(k, "") for k in DEFAULT_FORM})
        try:
            definition = _form_to_definition(form)
            plan = build_schedule(definition.principal, definition.annual_rate_percent, definition.tenure_months)
            if request.method == "POST" and request.form.get("action") == "save":
                loan = new_loan(definition, form["name"], LoanCategory.parse(form["category"]), date.today())
                store.add_loan(user_token, loan)
                message = f"Saved {loan.name}"
                form["name"] = ""
        except (EmiCalcError, ValueError) as exc:
            logger.info("Rejected calculator input: %s", exc)
            error = str(exc)

        active, closed = split_by_status(store.list_loans(user_token))
        reminders = store.list_reminders(user_token)
        today = date.today()
        return render_template(
            "index.html",
            form=form,
            categories=[c.value for c in LoanCategory],
            summary=summarize(plan) if plan else None,
            yearly=yearly_rows(plan) if plan else [],
            error=error,
            message=message,
            loans=[
                (loan, loan_progress(loan, reminders, today), remaining_time_label(loan.start_date, loan.tenure_months, today))
                for loan in active
            ],
            totals=portfolio_totals(active),
            closed_count=len(closed),
            upcoming=upcoming_payments(reminders, today),
            asset_version=app.config["ASSET_VERSION"],
        )

    @app.get("/api/plan")
    def api_plan():
        try:
            principal = decimal_from_str(request.args.get("principal", ""))
            rate = decimal_from_str(request.args.get("rate", "0"))
            if "months" in request.args:
                months = int(request.args["months"])
            else:
                months = years_to_months(decimal_from_str(request.args.get("years", "0")))
            plan = build_schedule(principal, rate, months)
        except (EmiCalcError, ValueError) as exc:
            return jsonify({"error": str(exc)}), 400
        return jsonify(_plan_payload(plan))

    @app.get("/loans/<loan_id>")
    def loan_details(loan_id: str):
        user_token = _ensure_user_token()
        loan = _user_loan_or_404(user_token, loan_id)
        reminders = store.list_reminders(user_token, loan_id)
        today = date.today()
        return render_template(
            "loan.html",
            loan=loan,
            progress=loan_progress(loan, reminders, today),
            rows=[(r, is_locked(r, reminders), not r.is_paid and r.due_date < today) for r in reminders],
            error=request.args.get("error"),
        )

    @app.post("/loans/<loan_id>/close")
    def close_loan(loan_id: str):
        user_token = _ensure_user_token()
        _user_loan_or_404(user_token, loan_id)
        store.close_loan(user_token, loan_id)
        return redirect(url_for("index"))

    @app.post("/loans/<loan_id>/restore")
    def restore_loan(loan_id: str):
        user_token = _ensure_user_token()
        _user_loan_or_404(user_token, loan_id)
        store.restore_loan(user_token, loan_id)
        return redirect(url_for("history"))

    @app.post("/loans/<loan_id>/delete")
    def delete_loan(loan_id: str):
        user_token = _ensure_user_token()
        _user_loan_or_404(user_token, loan_id)
        store.delete_loan(user_token, loan_id)
        return redirect(_local_path(request.form.get("next")) or url_for("index"))

    @app.post("/reminders/<reminder_id>/pay")
    def pay_reminder(reminder_id: str):
        user_token = _ensure_user_token()
        try:
            reminder = store.get_reminder(user_token, reminder_id)
            store.mark_reminder_paid(user_token, reminder_id)
        except ReminderNotFoundError:
            abort(404)
        except PaymentLockedError as exc:
            return redirect(url_for("loan_details", loan_id=reminder.loan_id, error=str(exc)))
        return redirect(url_for("loan_details", loan_id=reminder.loan_id))

    @app.get("/history")
    def history():
        user_token = _ensure_user_token()
        return render_template("history.html", loans=store.list_loans(user_token, LoanStatus.CLOSED))

    @app.post("/demo")
    def load_demo():
        store.load_demo_data(_ensure_user_token())
        return redirect(url_for("index"))

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    print("Starting EMI planner web app...")
    create_app().run(debug=os.environ.get("FLASK_DEBUG") == "1")
