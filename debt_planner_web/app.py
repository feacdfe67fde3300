import logging
import os
from typing import Optional
from uuid import uuid4

import click
from flask import Flask, jsonify, redirect, render_template, request, session, url_for

from debt_planner.config import PlannerSettings
from debt_planner.errors import DebtPlanError
from debt_planner.logging_config import configure_logging
from debt_planner.main import build_plan_from_options, schedule_to_rows
from debt_planner.planner import compute_payoff_plan
from debt_planner.utils import parse_year_month, plan_from_dict
from debt_planner_web.plan_store import PlanStore, PlanStoreError, create_store_from_env

logger = logging.getLogger(__name__)

CURRENCY_PREFIX = "₹"
PREVIEW_ROWS = 120
CHART_WIDTH = 600
CHART_HEIGHT = 200


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def parse_form_list(value: str) -> list[str]:
    """Parse a newline or semicolon separated list of entries from a form field.

    Commas are left alone because amounts may use them as thousands
    separators. Returns a list of trimmed strings, skipping any empty entries.
    """
    if not value:
        return []
    parts = [p.strip() for p in value.replace(";", "\n").splitlines()]
    return [p for p in parts if p]


def _run_form_plan(form, settings: PlannerSettings):
    plan = build_plan_from_options(
        form.get("income", "").strip() or None,
        form.get("expenses", "").strip() or None,
        tuple(parse_form_list(form.get("loans", ""))),
    )
    start_text = form.get("start_date", "").strip()
    start_date = parse_year_month(start_text) if start_text else None
    strategy = form.get("strategy", "auto")
    result = compute_payoff_plan(plan, settings, strategy=strategy, start_date=start_date)
    return result, schedule_to_rows(result.schedule, start_date)


def balance_chart_points(
    rows: list[dict], starting_balance: float, width: int = CHART_WIDTH, height: int = CHART_HEIGHT
) -> str:
    """SVG ``points`` for total remaining balance over time, starting at month 0."""
    values = [starting_balance] + [row["total_remaining_balance"] for row in rows]
    peak = max(values) or 1.0
    step = width / max(len(values) - 1, 1)
    return " ".join(
        f"{i * step:.1f},{height - value / peak * height:.1f}" for i, value in enumerate(values)
    )


def _error_response(exc: DebtPlanError, status: int = 422):
    return jsonify({"error": exc.to_dict()}), status


def create_app(
    store: Optional[PlanStore] = None,
    settings: Optional[PlannerSettings] = None,
    test_config: Optional[dict] = None,
) -> Flask:
    """Build the web app; ``store`` and ``settings`` default to the environment."""
    app = Flask(__name__)
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    if test_config:
        app.config.update(test_config)
    settings = settings or PlannerSettings.from_env()
    if store is None:
        store = create_store_from_env(
            os.environ.get("PLAN_DATABASE_URL"),
            max_per_user=int(os.environ.get("PLAN_STORE_MAX_PER_USER", "10")),
        )
    if not app.config.get("TESTING"):
        configure_logging(settings.log_level, settings.log_file)

    @app.route("/", methods=["GET", "POST"])
    def index():
        summary = None
        schedule = None
        ordering = None
        error = None
        truncated = 0
        chart_points = None
        user_token = _ensure_user_token()

        if request.method == "POST":
            action = request.form.get("action", "run")
            try:
                result, rows = _run_form_plan(request.form, settings)
                summary = result.summary
                ordering = result.ordering.names
                schedule = rows[:PREVIEW_ROWS]
                truncated = max(len(rows) - PREVIEW_ROWS, 0)
                chart_points = balance_chart_points(rows, summary["total_principal"])
                if action == "save":
                    name = request.form.get("plan_name", "").strip() or result.strategy_name
                    store.add_plan(user_token, uuid4().hex, name, summary, rows)
            except (click.BadParameter, ValueError, DebtPlanError) as exc:
                logger.warning("Plan rejected: %s", exc)
                error = exc.format_message() if isinstance(exc, click.BadParameter) else str(exc)
            except PlanStoreError as exc:
                logger.error("Saving plan failed: %s", exc)
                error = "The plan was computed but could not be saved."

        try:
            saved_plans = store.list_plans(user_token)
        except PlanStoreError as exc:
            logger.error("Loading saved plans failed: %s", exc)
            saved_plans = []

        return render_template(
            "index.html",
            form=request.form,
            summary=summary,
            ordering=ordering,
            schedule=schedule,
            truncated=truncated,
            error=error,
            currency_prefix=CURRENCY_PREFIX,
            saved_plans=saved_plans,
            chart_points=chart_points,
            chart_width=CHART_WIDTH,
            chart_height=CHART_HEIGHT,
        )

    @app.post("/api/plan")
    def api_plan():
        data = request.get_json(silent=True)
        if data is None:
            return jsonify({"error": {"kind": "bad_request", "message": "Request body must be JSON."}}), 400
        try:
            plan = plan_from_dict(data)
            start_text = data.get("start_date")
            start_date = parse_year_month(start_text) if start_text else None
            result = compute_payoff_plan(
                plan, settings, strategy=str(data.get("strategy", "auto")), start_date=start_date
            )
        except DebtPlanError as exc:
            logger.warning("Plan rejected: %s", exc.message)
            return _error_response(exc)
        except ValueError as exc:
            return jsonify({"error": {"kind": "bad_request", "message": str(exc)}}), 400
        return jsonify(
            {
                "strategy": result.strategy_name,
                "ordering": result.ordering.names,
                "summary": result.summary,
                "schedule": schedule_to_rows(result.schedule, start_date),
            }
        )

    @app.get("/api/plans")
    def api_plans():
        user_token = _ensure_user_token()
        try:
            return jsonify({"plans": store.list_plans(user_token)})
        except PlanStoreError as exc:
            logger.error("Loading saved plans failed: %s", exc)
            return jsonify({"error": {"kind": "storage", "message": str(exc)}}), 503

    @app.post("/plans/remove")
    def remove_plan():
        plan_id = request.form.get("plan_id")
        user_token = session.get("user_token")
        try:
            store.remove_plan(user_token, plan_id)
        except PlanStoreError as exc:
            logger.error("Removing saved plan failed: %s", exc)
            return "Saved plans could not be updated.", 503
        return redirect(url_for("index"))

    @app.post("/plans/clear")
    def clear_plans():
        user_token = session.get("user_token")
        try:
            store.clear_plans(user_token)
        except PlanStoreError as exc:
            logger.error("Clearing saved plans failed: %s", exc)
            return "Saved plans could not be updated.", 503
        return redirect(url_for("index"))

    return app


if __name__ == "__main__":
    print("Starting Debt Payoff Planner web app...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
