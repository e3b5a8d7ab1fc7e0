import io
import logging
import os
from datetime import date
from urllib.parse import quote
from uuid import uuid4

from flask import Flask, Response, abort, redirect, render_template, request, session, url_for

from refi_calc.data_models import BankOffer, ScheduleResult, default_other_costs
from refi_calc.engine import compute_schedule
from refi_calc.export import write_schedule_csv
from refi_calc.formatter import delta_text, fmt_money, fmt_rate
from refi_calc.storage import DEFAULT_STORE_KEY, KeyValueStore, OfferRepository, default_offers, new_offer
from refi_calc.summary import COMPARISON_WINDOW_MONTHS, compare_offers, total_principal
from refi_calc.utils import month_label, parse_money, parse_optional_money, parse_rate, parse_year_month
from refi_calc.validation import validate_offer
from refi_calc_web.comparison_store import create_store_from_env

logger = logging.getLogger(__name__)

COST_FIELD_PREFIX = "cost__"


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _form_to_offer(form, current: BankOffer) -> BankOffer:
    """Build an offer from the editor form, keeping cost labels of ``current``."""
    costs = default_other_costs() if not current.other_costs else dict(current.other_costs)
    for label in list(costs):
        raw = form.get(COST_FIELD_PREFIX + label, "").strip()
        costs[label] = parse_money(raw) if raw else costs[label]
    offer = BankOffer(
        name=form.get("name", current.name).strip(),
        principal=parse_money(form.get("principal", str(current.principal))),
        term_years=parse_rate(form.get("term_years", str(current.term_years))),
        rate1=parse_rate(form.get("rate1", str(current.rate1))),
        rate2=parse_rate(form.get("rate2", str(current.rate2))),
        rate3=parse_rate(form.get("rate3", str(current.rate3))),
        rate_after=parse_rate(form.get("rate_after", str(current.rate_after))),
        monthly_override=parse_optional_money(form.get("monthly_override", "")),
        prepayment_percent=parse_rate(form.get("prepayment_percent", "0") or "0"),
        other_costs=costs,
    )
    return validate_offer(offer)


def _start_from_args() -> date:
    raw = request.args.get("start", "").strip()
    if not raw:
        return date.today().replace(day=1)
    try:
        return parse_year_month(raw)
    except ValueError:
        abort(400, description=f"Invalid start month: {raw}")


def _schedule_or_400(offer: BankOffer) -> ScheduleResult:
    try:
        return compute_schedule(offer.to_parameters())
    except ValueError as exc:
        abort(400, description=str(exc))


def create_app(store: KeyValueStore | None = None) -> Flask:
    app = Flask(__name__)
    app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    if store is None:
        store = create_store_from_env(os.environ.get("REFI_DATABASE_URL"))
    store_key = os.environ.get("REFI_STORE_KEY", DEFAULT_STORE_KEY)

    app.jinja_env.filters["money"] = fmt_money
    app.jinja_env.filters["rate"] = fmt_rate
    app.jinja_env.filters["delta"] = delta_text

    def repository() -> OfferRepository:
        return OfferRepository(store, key=f"{store_key}:{_ensure_user_token()}")

    def offer_or_404(offers, index: int) -> BankOffer:
        if not 0 <= index < len(offers):
            abort(404)
        return offers[index]

    def render_index(offers, error=None, status=200):
        comparison = []
        try:
            comparison = compare_offers(offers, COMPARISON_WINDOW_MONTHS)
        except ValueError as exc:
            error = error or str(exc)
            status = 400
        return (
            render_template(
                "index.html",
                offers=offers,
                comparison=comparison,
                window=COMPARISON_WINDOW_MONTHS,
                cost_prefix=COST_FIELD_PREFIX,
                error=error,
                asset_version=app.config["ASSET_VERSION"],
            ),
            status,
        )

    @app.get("/")
    def index():
        return render_index(repository().load())

    @app.post("/offers")
    def add_offer():
        repo = repository()
        offers = repo.load()
        offers.append(new_offer(offers))
        repo.save(offers)
        return redirect(url_for("index"))

    @app.post("/offers/<int:index>")
    def update_offer(index: int):
        repo = repository()
        offers = repo.load()
        current = offer_or_404(offers, index)
        try:
            offers[index] = _form_to_offer(request.form, current)
        except ValueError as exc:
            logger.info("Rejected update of offer %d: %s", index, exc)
            return render_index(offers, error=str(exc), status=400)
        repo.save(offers)
        return redirect(url_for("index"))

    @app.post("/offers/<int:index>/remove")
    def remove_offer(index: int):
        repo = repository()
        offers = repo.load()
        offer_or_404(offers, index)
        offers.pop(index)
        repo.save(offers)
        return redirect(url_for("index"))

    @app.post("/offers/reset")
    def reset_offers():
        repository().save(default_offers())
        return redirect(url_for("index"))

    @app.get("/schedule/<int:index>")
    def schedule(index: int):
        offer = offer_or_404(repository().load(), index)
        start = _start_from_args()
        result = _schedule_or_400(offer)
        labels = [month_label(start, offset) for offset in range(len(result.rows))]
        return render_template(
            "schedule.html",
            index=index,
            offer=offer,
            result=result,
            rows=list(zip(labels, result.rows)),
            principal_paid=total_principal(result.rows),
            start_value=start.strftime("%Y-%m"),
            asset_version=app.config["ASSET_VERSION"],
        )

    @app.get("/schedule/<int:index>.csv")
    def schedule_csv(index: int):
        offer = offer_or_404(repository().load(), index)
        start = _start_from_args()
        buffer = io.StringIO()
        write_schedule_csv(buffer, _schedule_or_400(offer), start)
        filename = f"{offer.name}-schedule.csv"
        return Response(
            buffer.getvalue(),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
        )

    return app


if __name__ == "__main__":
    print("Starting refinance comparison web app...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
