"""JSON API for shared credits and the project calendar.

Credits are previewed, stored, listed and deleted; installments are marked
paid one at a time; the calendar endpoint lays out stored credits and any
posted projects for a year, month or week view.
"""

import logging
import os
from datetime import date

import click
from flask import Flask, jsonify, request

from credit_share.config import YEAR_MONTH_FORMAT
from credit_share.data_models import TimeRangedEntity, ViewState
from credit_share.engine import compute_schedule, default_due_month, month_progress, months_elapsed
from credit_share.exceptions import (
    AlreadyPaid,
    CreditNotFound,
    CreditShareError,
    InstallmentNotFound,
    InvalidLoanTerms,
)
from credit_share.formatter import installment_dict, summary_dict, timeline_dict
from credit_share.main import build_terms_from_options, parse_term
from credit_share.timeline import (
    build_timeline,
    jump_to_today,
    next_period,
    parse_granularity,
    previous_period,
)
from credit_share.utils import parse_date, parse_year_month
from credit_share_web.credit_store import credit_entity, create_store_from_env

logger = logging.getLogger(__name__)

app = Flask(__name__)
credit_store = create_store_from_env(os.environ.get("CREDIT_DATABASE_URL"))

ERROR_STATUS = {
    InvalidLoanTerms: 400,
    CreditNotFound: 404,
    InstallmentNotFound: 404,
    AlreadyPaid: 409,
}

NAVIGATION = {
    "prev": previous_period,
    "next": next_period,
    "today": jump_to_today,
}


@app.errorhandler(CreditShareError)
def handle_credit_error(exc: CreditShareError):
    status = ERROR_STATUS.get(type(exc), 400)
    logger.info("%s %s rejected (%d): %s", request.method, request.path, status, exc)
    return jsonify({"error": exc.message, "details": exc.details}), status


@app.errorhandler(click.BadParameter)
def handle_bad_parameter(exc: click.BadParameter):
    return jsonify({"error": exc.format_message()}), 400


@app.errorhandler(ValueError)
def handle_value_error(exc: ValueError):
    return jsonify({"error": str(exc)}), 400


def _payload_to_terms(payload):
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")
    participants = payload.get("participants") or []
    if not isinstance(participants, list):
        raise ValueError("participants must be a list")
    return build_terms_from_options(
        str(payload.get("principal", "")),
        str(payload.get("rate", "0")),
        parse_term(payload.get("term", 0)),
        str(payload["fees"]) if payload.get("fees") not in (None, "") else None,
        str(payload.get("start_date", "")),
        [str(p) for p in participants],
    )


def _credit_to_dict(record, include_installments: bool = False):
    data = {"id": record.id, "created_at": record.created_at.isoformat()}
    data.update(summary_dict(record.schedule))
    data["months_elapsed"] = months_elapsed(record.terms, date.today())
    if include_installments:
        data["schedule"] = [installment_dict(i) for i in record.schedule.installments]
    return data


def _progress_to_dict(progress):
    return {
        "due_month": progress.due_month.strftime(YEAR_MONTH_FORMAT),
        "participant_count": progress.participant_count,
        "paid_count": progress.paid_count,
        "installment_amount": float(progress.installment_amount),
        "paid_amount": float(progress.paid_amount),
        "paid_percent": progress.paid_percent,
    }


def _parse_entities(items):
    entities = []
    for item in items or []:
        if not isinstance(item, dict):
            raise ValueError("Each entity must be a JSON object")
        entities.append(
            TimeRangedEntity(
                id=item.get("id"),
                label=str(item.get("label", "")),
                start_date=parse_date(str(item.get("start_date", ""))),
                end_date=parse_date(str(item.get("end_date", ""))),
            )
        )
    return entities


@app.post("/api/credits/preview")
def preview_credit():
    schedule = compute_schedule(_payload_to_terms(request.get_json(silent=True)))
    return jsonify(
        {
            "summary": summary_dict(schedule),
            "schedule": [installment_dict(i) for i in schedule.installments],
        }
    )


@app.post("/api/credits")
def create_credit():
    record = credit_store.add_credit(_payload_to_terms(request.get_json(silent=True)))
    return jsonify(_credit_to_dict(record, include_installments=True)), 201


@app.get("/api/credits")
def list_credits():
    return jsonify([_credit_to_dict(record) for record in credit_store.list_credits()])


@app.get("/api/credits/<int:credit_id>")
def get_credit(credit_id: int):
    record = credit_store.get_credit(credit_id)
    data = _credit_to_dict(record, include_installments=True)
    month_param = request.args.get("month")
    due_month = parse_year_month(month_param) if month_param else default_due_month(record.terms, date.today())
    data["progress"] = _progress_to_dict(month_progress(record.schedule.installments, due_month))
    return jsonify(data)


@app.delete("/api/credits/<int:credit_id>")
def delete_credit(credit_id: int):
    credit_store.delete_credit(credit_id)
    return "", 204


@app.patch("/api/payments/<int:installment_id>")
def mark_payment_paid(installment_id: int):
    installment = credit_store.mark_installment_paid(installment_id)
    return jsonify({"message": "Payment status updated.", "payment": installment_dict(installment)})


@app.route("/api/timeline", methods=["GET", "POST"])
def timeline():
    reference = request.args.get("date")
    view = ViewState(
        reference_date=parse_date(reference) if reference else date.today(),
        granularity=parse_granularity(request.args.get("view", "year")),
    )
    nav = request.args.get("nav")
    if nav:
        if nav not in NAVIGATION:
            raise ValueError(f"nav must be one of {', '.join(NAVIGATION)}; got {nav}")
        view = NAVIGATION[nav](view)

    entities = [credit_entity(record) for record in credit_store.list_credits()]
    if request.method == "POST":
        payload = request.get_json(silent=True) or {}
        entities.extend(_parse_entities(payload.get("entities")))
    label_step = int(request.args.get("step", 1))
    return jsonify(timeline_dict(build_timeline(view, entities, label_step=label_step)))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Starting credit share API...")
    app.run(host="0.0.0.0", port=8710, debug=True)
