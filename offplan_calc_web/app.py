import json
import logging
from http import HTTPStatus
from uuid import uuid4

import click
from flask import Flask, jsonify, redirect, render_template, request, session, url_for

from offplan_calc.catalog import PAYMENT_PLANS
from offplan_calc.engine import SAMPLED
from offplan_calc.main import build_result_from_options, serialize_summary, serialize_timeline
from offplan_calc_web.comparison_store import SORT_KEYS, create_store_from_env
from offplan_calc_web.config import Config

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config.from_object(Config)
app.secret_key = Config.SECRET_KEY
comparison_store = create_store_from_env(
    Config.COMPARISON_DATABASE_URL, max_per_user=Config.MAX_SCENARIOS_PER_USER
)
FEE_SCHEDULE = Config.fee_schedule()

FORM_DEFAULTS = {
    "price": "2000000",
    "plan": "20-80",
    "construction_months": "36",
    "booking_deposit": "10",
    "appreciation": "15",
    "during": "50",
    "on_handover": "30",
    "post_months": "12",
    "granularity": SAMPLED,
}


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _optional_int(value):
    if value is None or str(value).strip() == "":
        return None
    # JSON bodies can carry booleans and fractional numbers; int() would accept both.
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise click.BadParameter(f"Expected a whole number; got {value}")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise click.BadParameter(f"Expected a whole number; got {value}")


def _required_int(value, label: str) -> int:
    parsed = _optional_int(value)
    if parsed is None:
        raise click.BadParameter(f"{label} is required")
    return parsed


def _form_to_result(form):
    """Run the calculation for a form (or JSON body) mapping."""
    plan_id = str(form.get("plan", FORM_DEFAULTS["plan"]))
    return build_result_from_options(
        price=str(form.get("price", "")).strip(),
        plan_id=plan_id,
        construction_months=_required_int(
            form.get("construction_months", FORM_DEFAULTS["construction_months"]),
            "Construction months",
        ),
        booking_deposit=str(form.get("booking_deposit", FORM_DEFAULTS["booking_deposit"])),
        appreciation=str(form.get("appreciation", FORM_DEFAULTS["appreciation"])),
        during=_optional_int(form.get("during")) if plan_id == "custom" else None,
        on_handover=_optional_int(form.get("on_handover")) if plan_id == "custom" else None,
        post_months=_optional_int(form.get("post_months")) if plan_id == "custom" else None,
        granularity=str(form.get("granularity", SAMPLED)),
        fee_schedule=FEE_SCHEDULE,
    )


def _timeline_for_view(summary: dict, timeline: list, show_full_timeline: bool):
    if show_full_timeline:
        return summary, timeline
    limit = app.config["TIMELINE_PREVIEW_ROWS"]
    preview = timeline[:limit]
    if len(timeline) > limit:
        summary["truncated"] = len(timeline) - len(preview)
    return summary, preview


def _handle_save_action(user_token: str, form, summary: dict, timeline: list) -> None:
    scenario_name = form.get("scenario_name", "").strip() or summary["plan_name"]
    scenario_id = uuid4().hex
    summary_copy = {k: v for k, v in summary.items() if k != "truncated"}
    comparison_store.add_scenario(user_token, scenario_id, scenario_name, summary_copy, timeline)
    logger.info("Saved scenario %s (%s) for comparison", scenario_id, summary["plan_id"])


@app.route("/", methods=["GET", "POST"])
def index():
    summary = None
    timeline = None
    full_timeline = None
    error = None
    show_full_timeline = False
    action = "run"
    form_values = dict(FORM_DEFAULTS)

    user_token = _ensure_user_token()

    if request.method == "POST":
        action = request.form.get("action", "run")
        show_full_timeline = request.form.get("show_full_timeline") == "1"
        form_values.update({k: v for k, v in request.form.items() if k in FORM_DEFAULTS})
        try:
            result = _form_to_result(request.form)
            summary = serialize_summary(result)
            full_timeline = serialize_timeline(result)
            summary, timeline = _timeline_for_view(summary, full_timeline, show_full_timeline)
            if action == "add_to_comparison":
                _handle_save_action(user_token, request.form, summary, full_timeline)
        except click.BadParameter as exc:
            logger.info("Rejected calculation: %s", exc.message)
            error = exc.message

    sort = request.args.get("sort", "saved")
    if sort not in SORT_KEYS:
        sort = "saved"
    comparison_scenarios = comparison_store.list_scenarios(user_token, sort=sort)

    return render_template(
        "index.html",
        plans=PAYMENT_PLANS,
        form=form_values,
        summary=summary,
        timeline=timeline,
        show_full_timeline=show_full_timeline,
        error=error,
        comparison_scenarios=comparison_scenarios,
        current_timeline_payload=json.dumps(full_timeline) if full_timeline else "null",
        last_action=action,
    )


@app.get("/api/plans")
def list_plans():
    return jsonify(
        [
            {
                "id": plan.id,
                "name": plan.name,
                "description": plan.description,
                "during_construction": plan.during_construction_percent,
                "on_handover": plan.on_handover_percent,
                "post_handover": plan.post_handover_percent,
                "post_handover_months": plan.effective_post_handover_months,
                "popular": plan.popular,
            }
            for plan in PAYMENT_PLANS
        ]
    )


@app.post("/api/offplan")
def offplan_api():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"detail": "Request body must be a JSON object"}), HTTPStatus.BAD_REQUEST
    try:
        result = _form_to_result(payload)
    except click.BadParameter as exc:
        logger.info("Rejected API calculation: %s", exc.message)
        return jsonify({"detail": exc.message}), HTTPStatus.BAD_REQUEST
    return jsonify({"summary": serialize_summary(result), "timeline": serialize_timeline(result)})


@app.post("/comparison/remove")
def remove_comparison():
    scenario_id = request.form.get("scenario_id")
    user_token = session.get("user_token")
    comparison_store.remove_scenario(user_token, scenario_id)
    return redirect(url_for("index"))


@app.post("/comparison/clear")
def clear_comparisons():
    user_token = session.get("user_token")
    comparison_store.clear_scenarios(user_token)
    return redirect(url_for("index"))


if __name__ == "__main__":
    logger.info("Starting off-plan calculator web app...")
    app.run(host="0.0.0.0", port=8710, debug=True)
