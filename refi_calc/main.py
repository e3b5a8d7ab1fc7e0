"""Command-line interface for the refinance calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute the schedule of a single loan, view its totals,
manage a saved list of bank offers and compare those offers side by side.
Schedules can be printed to the terminal or exported to CSV/JSON files.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from decimal import ROUND_HALF_UP
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

import click

from .data_models import BankOffer, LoanParameters, RateSegment, ScheduleResult
from .engine import compute_schedule
from .export import export_to_csv, export_to_json
from .formatter import print_comparison, print_schedule, print_summary
from .storage import DEFAULT_STORE_KEY, JsonFileStore, OfferRepository, default_offers, offer_to_dict
from .summary import COMPARISON_WINDOW_MONTHS, compare_offers, summarize
from .utils import parse_money, parse_optional_money, parse_rate, parse_rate_segment, parse_year_month
from .validation import ValidationError, validate_offer

DEFAULT_STORE_PATH = Path.home() / ".refi_calc.json"


def _to_bad_parameter(func: Callable[..., Any], *args: Any) -> Any:
    try:
        return func(*args)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def build_parameters(
    principal: str,
    term: Optional[int],
    years: Optional[str],
    rate: Optional[str],
    segment: Tuple[str, ...],
    override: Optional[str],
    prepay: str,
) -> LoanParameters:
    """Turn raw option values into ``LoanParameters``.

    Segments given with ``--segment`` are used in order; ``--rate`` is a
    shorthand for a single segment covering the whole term. When both are
    given, the ``--rate`` segment is appended as the trailing rate.
    """
    if term is None and years is None:
        raise click.BadParameter("Either --term (months) or --years is required")
    if term is None:
        term = int((_to_bad_parameter(parse_rate, years) * 12).to_integral_value(rounding=ROUND_HALF_UP))
    segments: List[RateSegment] = [_to_bad_parameter(parse_rate_segment, s) for s in segment]
    if rate is not None:
        segments.append(RateSegment(term, _to_bad_parameter(parse_rate, rate)))
    if not segments:
        raise click.BadParameter("At least one --segment or --rate is required")
    params = LoanParameters(
        principal=_to_bad_parameter(parse_money, principal),
        term_months=term,
        rate_schedule=tuple(segments),
        monthly_payment_override=_to_bad_parameter(parse_optional_money, override),
        prepayment_percent=_to_bad_parameter(parse_rate, prepay),
    )
    return params


def _start_month(value: Optional[str]) -> date:
    if not value:
        return date.today().replace(day=1)
    return _to_bad_parameter(parse_year_month, value)


def _run(params: LoanParameters) -> ScheduleResult:
    try:
        return compute_schedule(params)
    except ValidationError as exc:
        raise click.BadParameter(str(exc))


def loan_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options shared by ``schedule`` and ``summary``."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Outstanding loan amount"),
        click.option("--term", "-t", "term", type=int, help="Remaining term in months"),
        click.option("--years", "-y", "years", help="Remaining term in years (alternative to --term)"),
        click.option("--rate", "-r", "rate", help="Annual rate (percent) for the whole term or the trailing stretch"),
        click.option(
            "--segment",
            "segment",
            multiple=True,
            help="Rate segment in MONTHS:RATE format, applied in order. Example: --segment 12:1.99",
        ),
        click.option("--override", "override", help="Fixed monthly payment instead of the derived one"),
        click.option("--prepay", "prepay", default="0", show_default=True, help="Extra principal as percent of each payment"),
        click.option("--start-month", "-s", "start_month", help="First payment month (YYYY-MM), default this month"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="REFI_STORE_PATH",
    default=DEFAULT_STORE_PATH,
    show_default=True,
    help="JSON file holding the saved offers",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, store_path: Path, verbose: bool) -> None:
    """Compare mortgage refinance offers and inspect their schedules."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    ctx.obj = OfferRepository(JsonFileStore(store_path), key=DEFAULT_STORE_KEY)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.option("--max-rows", "max_rows", type=int, default=120, show_default=True, help="Rows to print")
def schedule(
    principal: str,
    term: Optional[int],
    years: Optional[str],
    rate: Optional[str],
    segment: Tuple[str, ...],
    override: Optional[str],
    prepay: str,
    start_month: Optional[str],
    output: Optional[str],
    max_rows: int,
) -> None:
    """Compute and print the full amortization schedule."""
    params = build_parameters(principal, term, years, rate, segment, override, prepay)
    start = _start_month(start_month)
    result = _run(params)
    if output:
        _export(Path(output), result, start)
        return
    print_summary(result, params.term_months)
    rows = list(result.rows)
    if len(rows) > max_rows:
        click.echo(f"Schedule has {len(rows)} rows; showing first {max_rows} rows.")
        rows = rows[:max_rows]
    print_schedule(rows, start)


@cli.command()
@loan_options
@click.option("--window", "window", type=int, default=COMPARISON_WINDOW_MONTHS, show_default=True, help="Months in the short-horizon total")
def summary(
    principal: str,
    term: Optional[int],
    years: Optional[str],
    rate: Optional[str],
    segment: Tuple[str, ...],
    override: Optional[str],
    prepay: str,
    start_month: Optional[str],
    window: int,
) -> None:
    """Compute and print only the totals for a loan."""
    params = build_parameters(principal, term, years, rate, segment, override, prepay)
    result = _run(params)
    print_summary(result, params.term_months, summarize(result.rows, window))


@cli.command()
@click.option("--window", "window", type=int, default=COMPARISON_WINDOW_MONTHS, show_default=True, help="Months to compare over")
@click.pass_obj
def compare(repository: OfferRepository, window: int) -> None:
    """Compare the saved offers against the first (current) one."""
    loaded = repository.load()
    if not loaded:
        raise click.ClickException("No offers saved; add one with 'offers add'")
    try:
        lines = compare_offers(loaded, window)
    except ValidationError as exc:
        raise click.ClickException(str(exc))
    print_comparison(lines, window)


@cli.group()
def offers() -> None:
    """Manage the saved list of offers."""


@offers.command("list")
@click.option("--json", "as_json", is_flag=True, help="Print the offers as JSON")
@click.pass_obj
def list_offers(repository: OfferRepository, as_json: bool) -> None:
    """Show the saved offers."""
    loaded = repository.load()
    if as_json:
        click.echo(json.dumps([offer_to_dict(o) for o in loaded], indent=2, ensure_ascii=False))
        return
    for index, offer in enumerate(loaded):
        override = "auto" if offer.monthly_override is None else f"{offer.monthly_override:,.2f}"
        click.echo(
            f"{index:>2d}  {offer.name}: {offer.principal:,.2f} over {offer.term_years} years, "
            f"rates {offer.rate1}/{offer.rate2}/{offer.rate3} then {offer.rate_after}, "
            f"payment {override}, other costs {offer.other_costs_total:,.2f}"
        )


@offers.command("add")
@click.option("--name", "name", required=True, help="Offer name, e.g. the bank")
@click.option("--principal", "-p", "principal", required=True, help="Loan amount")
@click.option("--years", "-y", "years", required=True, help="Term in years")
@click.option("--rate1", "rate1", required=True, help="Rate in year 1 (percent)")
@click.option("--rate2", "rate2", help="Rate in year 2 (percent), default year 1")
@click.option("--rate3", "rate3", help="Rate in year 3 (percent), default year 2")
@click.option("--rate-after", "rate_after", help="Rate after year 3 (percent), default year 3")
@click.option("--override", "override", help="Monthly payment quoted by the bank")
@click.option("--prepay", "prepay", default="0", show_default=True, help="Extra principal as percent of each payment")
@click.option("--cost", "cost", multiple=True, help="Other cost in LABEL=AMOUNT format. Example: --cost MRTA=25000")
@click.pass_obj
def add_offer(
    repository: OfferRepository,
    name: str,
    principal: str,
    years: str,
    rate1: str,
    rate2: Optional[str],
    rate3: Optional[str],
    rate_after: Optional[str],
    override: Optional[str],
    prepay: str,
    cost: Tuple[str, ...],
) -> None:
    """Append an offer to the saved list."""
    first = _to_bad_parameter(parse_rate, rate1)
    second = _to_bad_parameter(parse_rate, rate2) if rate2 else first
    third = _to_bad_parameter(parse_rate, rate3) if rate3 else second
    offer = BankOffer(
        name=name,
        principal=_to_bad_parameter(parse_money, principal),
        term_years=_to_bad_parameter(parse_rate, years),
        rate1=first,
        rate2=second,
        rate3=third,
        rate_after=_to_bad_parameter(parse_rate, rate_after) if rate_after else third,
        monthly_override=_to_bad_parameter(parse_optional_money, override),
        prepayment_percent=_to_bad_parameter(parse_rate, prepay),
    )
    for item in cost:
        label, sep, amount = item.partition("=")
        if not sep or not label.strip():
            raise click.BadParameter(f"Cost must be in LABEL=AMOUNT format; got {item}")
        offer.other_costs[label.strip()] = _to_bad_parameter(parse_money, amount)
    _to_bad_parameter(validate_offer, offer)
    loaded = repository.load()
    loaded.append(offer)
    repository.save(loaded)
    click.echo(f"Added offer #{len(loaded) - 1}: {offer.name}")


@offers.command("remove")
@click.argument("index", type=int)
@click.pass_obj
def remove_offer(repository: OfferRepository, index: int) -> None:
    """Remove the offer at INDEX."""
    loaded = repository.load()
    if not 0 <= index < len(loaded):
        raise click.BadParameter(f"No offer at index {index}")
    removed = loaded.pop(index)
    repository.save(loaded)
    click.echo(f"Removed offer: {removed.name}")


@offers.command("reset")
@click.pass_obj
def reset_offers(repository: OfferRepository) -> None:
    """Replace the saved offers with the built-in examples."""
    repository.save(default_offers())
    click.echo("Offers reset to defaults")


@cli.command("export-offer")
@click.argument("index", type=int)
@click.option("--output", "output", required=True, type=str, help="Output file path (.csv or .json)")
@click.option("--start-month", "-s", "start_month", help="First payment month (YYYY-MM), default this month")
@click.pass_obj
def export_offer(repository: OfferRepository, index: int, output: str, start_month: Optional[str]) -> None:
    """Export the schedule of the saved offer at INDEX."""
    loaded = repository.load()
    if not 0 <= index < len(loaded):
        raise click.BadParameter(f"No offer at index {index}")
    result = _run(loaded[index].to_parameters())
    _export(Path(output), result, _start_month(start_month))


def _export(path: Path, result: ScheduleResult, start: date) -> None:
    suffix = path.suffix.lower()
    if suffix == ".json":
        export_to_json(path, result, start)
    elif suffix == ".csv":
        export_to_csv(path, result, start)
    else:
        raise click.BadParameter("Unsupported output format; use .json or .csv")
    click.echo(f"Schedule exported to {path}")


if __name__ == "__main__":
    cli()
