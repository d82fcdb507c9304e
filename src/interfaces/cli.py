"""Command-line interface for the medication safety engine."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from dotenv import load_dotenv

from composition_root import (
    SafetyEngine,
    bootstrap_safety_engine,
    create_dose_schedule_service,
    create_expiry_alert_service,
)
from config.engine_config import EngineConfig
from domain.drug_models import DrugRecord
from domain.inventory_models import OwnedMedicine
from infrastructure.catalog import CatalogLoaderError

# --- Environment Loading ---
load_dotenv()

# --- Typer App ---
app = typer.Typer(
    help="Medication safety checks: drug lookup, risk verdicts and medicine cabinet state.",
    add_completion=False,
)

_state = {"catalog_path": None}


@app.callback()
def main(
    catalog: Optional[Path] = typer.Option(None, "--catalog", help="Path to a drug catalog YAML file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (default from MEDSAFE_LOG_LEVEL)"),
):
    """Configure logging and the catalog location."""
    config = EngineConfig.from_env()
    logging.basicConfig(
        level=(log_level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _state["catalog_path"] = str(catalog) if catalog else None


def _engine() -> SafetyEngine:
    try:
        return bootstrap_safety_engine(EngineConfig.from_env(catalog_path=_state["catalog_path"]))
    except CatalogLoaderError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def _parse_now(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now()
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        typer.echo(f"Error: invalid --now value '{value}', expected ISO format", err=True)
        raise typer.Exit(code=2)


def _resolve_drug(engine: SafetyEngine, name: str) -> DrugRecord:
    for drug in engine.catalog:
        if drug.identifies(name):
            return drug
    matches = engine.matcher.search_by_query(name)
    if len(matches) == 1:
        return matches[0]
    if not matches:
        typer.echo(f"Error: no drug matches '{name}'", err=True)
    else:
        typer.echo(f"Error: '{name}' is ambiguous: {', '.join(d.display_name for d in matches)}", err=True)
    raise typer.Exit(code=1)


def _describe(drug: DrugRecord) -> str:
    brands = f" [{', '.join(drug.brand_names)}]" if drug.brand_names else ""
    return f"{drug.id}: {drug}{brands} - {drug.category}"


# --- CLI Commands ---


@app.command()
def search(query: str):
    """Search drugs by partial name or brand."""
    engine = _engine()
    results = engine.matcher.search_by_query(query)
    if not results:
        typer.echo(f"No drugs match '{query}'.")
        return
    for drug in results:
        typer.echo(_describe(drug))


@app.command()
def scan(
    text: Optional[str] = typer.Argument(None, help="Recognized text from a medicine strip"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Read the recognized text from a file"),
):
    """Find catalog drugs mentioned in OCR text."""
    if file is not None:
        text = file.read_text(encoding="utf-8")
    if not text:
        typer.echo("Error: provide TEXT or --file", err=True)
        raise typer.Exit(code=2)

    engine = _engine()
    results = engine.matcher.find_in_text(text)
    if not results:
        typer.echo("No drugs found in text.")
        return
    for drug in results:
        typer.echo(_describe(drug))


@app.command()
def check(
    drugs: List[str] = typer.Argument(..., help="Drug ids or names taken together"),
    allergy: Optional[List[str]] = typer.Option(None, "--allergy", "-a", help="Allergy group (repeatable)"),
    condition: Optional[List[str]] = typer.Option(None, "--condition", "-c", help="Chronic condition (repeatable)"),
    as_json: bool = typer.Option(False, "--json", help="Print verdicts as JSON"),
):
    """Evaluate drugs against allergies, conditions and each other."""
    engine = _engine()
    records = [_resolve_drug(engine, name) for name in drugs]
    verdicts = engine.aggregator.aggregate(records, allergy or [], condition or [])

    if as_json:
        typer.echo(json.dumps([v.to_dict() for v in verdicts], indent=2))
    else:
        for verdict in verdicts:
            typer.echo(f"{verdict.risk_level.value.upper():<6} {verdict.drug}")
            for name in sorted(verdict.matched_allergies):
                typer.echo(f"       allergy: {name}")
            for name in sorted(verdict.matched_conditions):
                note = verdict.drug.condition_notes.get(name)
                typer.echo(f"       condition: {name}" + (f" ({note})" if note else ""))
            for interaction in verdict.matched_drug_interactions:
                typer.echo(
                    f"       interaction: {interaction.target} [{interaction.severity.value}] "
                    f"{interaction.description}"
                )
            for food in verdict.drug.food_interactions:
                typer.echo(f"       food: {food.food} [{food.severity.value}]")

    if engine.aggregator.has_high_risk(verdicts):
        raise typer.Exit(code=3)


@app.command()
def cabinet(
    path: Path = typer.Argument(..., help="YAML file listing owned medicines"),
    now: Optional[str] = typer.Option(None, "--now", help="ISO date/time to evaluate at"),
):
    """Show expiry and stock status of a medicine cabinet."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or []
    except (OSError, yaml.YAMLError) as e:
        typer.echo(f"Error: cannot read {path}: {e}", err=True)
        raise typer.Exit(code=1)

    if isinstance(data, dict):
        data = data.get("medicines", [])
    try:
        medicines = [OwnedMedicine.from_dict(item) for item in data]
    except (KeyError, TypeError, ValueError) as e:
        typer.echo(f"Error: invalid medicine record in {path}: {e}", err=True)
        raise typer.Exit(code=1)

    service = create_expiry_alert_service(EngineConfig.from_env())
    at = _parse_now(now)

    typer.echo(str(service.compute_cabinet_status(medicines, at)))
    for alert in service.check_all_medicines(medicines, at):
        typer.echo(f"[{alert.severity}] {alert.medicine.medicine_name}: {alert.message}")
    for medicine in service.low_stock_medicines(medicines):
        typer.echo(f"[low stock] {medicine.medicine_name}: {medicine.tablet_count} left")


@app.command("dose-lock")
def dose_lock(
    scheduled_time: str = typer.Argument(..., help="Scheduled time, e.g. 08:00"),
    now: Optional[str] = typer.Option(None, "--now", help="ISO date/time to evaluate at"),
    logged: bool = typer.Option(False, "--logged", help="The dose was already logged today"),
):
    """Show whether a scheduled dose can be logged yet."""
    config = EngineConfig.from_env()
    schedule_service = create_dose_schedule_service(config, create_expiry_alert_service(config))
    window = schedule_service.dose_window(scheduled_time, _parse_now(now), logged)

    if window.parse_failed:
        typer.echo(f"{scheduled_time}: unparseable, unlocked")
        return
    state = "locked" if window.is_locked else "unlocked"
    if window.is_overdue:
        state += ", overdue"
    elif window.is_current:
        state += ", due now"
    typer.echo(f"{scheduled_time}: {state} ({window.minutes_until:+.0f} min)")


if __name__ == "__main__":
    app()
