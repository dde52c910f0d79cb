"""
Typer CLI for the UAPS prediction engine.

Commands:
    uaps train RECORDS -o models.json          - Train cluster models from terrestrial records
    uaps predict CANDIDATE -m models.json      - Predict undersea aging for one product
    uaps timeline CANDIDATE                    - Month-by-month quality curves
    uaps coefficients --depth 30               - Show TCI / FRI / BRI with intervals
    uaps import-notes NOTES -o records.json    - Convert tasting notes into records

Usage:
    uaps --help
    uaps predict candidate.json -m models.json --months 18
    uaps predict candidate.json -m models.json --offline --json
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from config import get_settings
from uaps import io
from uaps.core.config import EngineConfig
from uaps.core.models import AgingPrediction, CoefficientMeta
from uaps.ensemble.inference import build_inference_client
from uaps.physics.coefficients import compute_coefficients
from uaps.service import UAPSEngine
from uaps.training.extraction import records_from_notes, records_from_notes_with_inference
from uaps.training.trainer import train_models

app = typer.Typer(
    help="UAPS: undersea aging prediction for sparkling wine",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Configure logging sinks from settings."""
    settings = get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else settings.log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="10 MB", retention=5)


def _fail(message: str) -> None:
    rprint(f"[red]✗[/red] {message}")
    raise typer.Exit(code=1)


# ========================================
# Training
# ========================================


@app.command("train")
def train_command(
    records_path: Path = typer.Argument(..., help="Terrestrial records JSON"),
    output: Path = typer.Option(Path("models.json"), "--output", "-o", help="Where to write the models"),
) -> None:
    """Train one statistical model per (category, aging stage) group."""
    config = EngineConfig.from_settings()
    try:
        records = io.load_records(records_path)
    except (OSError, ValueError) as e:
        _fail(f"Could not read records: {e}")

    models = train_models(records, config)
    io.save_models(output, models)

    table = Table(title=f"Trained Models ({len(models)})", show_header=True)
    table.add_column("Category", style="cyan")
    table.add_column("Stage")
    table.add_column("Subtype", style="dim")
    table.add_column("Samples", justify="right")
    table.add_column("Confidence", justify="right", style="green")
    for model in models:
        table.add_row(
            model.category,
            model.aging_stage.value,
            model.subtype or "-",
            str(model.sample_count),
            f"{model.confidence:.2f}",
        )
    console.print(table)
    rprint(f"\n[bold green]✓[/bold green] {len(records)} records → {output}")


@app.command("import-notes")
def import_notes_command(
    notes_path: Path = typer.Argument(..., help="Tasting notes JSON (CellarTracker export)"),
    output: Path = typer.Option(Path("records.json"), "--output", "-o"),
    year: int = typer.Option(None, "--year", help="Reference year for vintage arithmetic (default: this year)"),
    offline: bool = typer.Option(False, "--offline", help="Keyword extraction only, no external model"),
) -> None:
    """Extract flavor scores and aging years from tasting notes."""
    settings = get_settings()
    config = EngineConfig.from_settings(settings)
    try:
        notes = io.load_notes(notes_path)
    except (OSError, ValueError) as e:
        _fail(f"Could not read notes: {e}")

    client = None if offline else build_inference_client(settings)
    if client is not None:
        records = asyncio.run(records_from_notes_with_inference(notes, client, config, year))
    else:
        records = records_from_notes(notes, config, year)
    io.save_records(output, records)

    with_age = sum(1 for r in records if r.aging_years is not None)
    rprint(f"[bold green]✓[/bold green] {len(records)} of {len(notes)} notes imported → {output}")
    rprint(f"  Aging years inferred: {with_age}")


# ========================================
# Prediction
# ========================================


def _coefficient_row(table: Table, name: str, meta: CoefficientMeta) -> None:
    table.add_row(
        name,
        f"{meta.value:g}",
        f"{meta.lower95:g} – {meta.upper95:g}",
        meta.source.value,
        meta.justification,
    )


@app.command("coefficients")
def coefficients_command(
    depth: float = typer.Option(None, "--depth", "-d", help="Aging depth in metres (default from settings)"),
) -> None:
    """Show the physical correction coefficients for an aging site."""
    config = EngineConfig.from_settings()
    coefficients = compute_coefficients(config, depth)

    table = Table(title="Correction Coefficients", show_header=True)
    table.add_column("Index", style="cyan")
    table.add_column("Value", justify="right", style="bold")
    table.add_column("95% CI", justify="right")
    table.add_column("Source", style="dim")
    table.add_column("Justification")
    _coefficient_row(table, "TCI", coefficients.tci)
    _coefficient_row(table, "FRI", coefficients.fri)
    _coefficient_row(table, "BRI", coefficients.bri)
    console.print(table)


def _print_prediction(prediction: AgingPrediction) -> None:
    flavor = Table(title=f"{prediction.product_name} after {prediction.undersea_duration_months} months")
    flavor.add_column("Flavor", style="cyan")
    flavor.add_column("Score", justify="right")
    for axis, value in prediction.flavor.items():
        flavor.add_row(axis.value, f"{value:.1f}")
    console.print(flavor)

    quality = prediction.quality
    scores = Table(title="Quality", show_header=True)
    scores.add_column("Metric", style="cyan")
    scores.add_column("Score", justify="right")
    scores.add_row("Texture maturity", f"{quality.texture_maturity:.1f}")
    scores.add_row("Aroma freshness", f"{quality.aroma_freshness:.1f}")
    scores.add_row("Bubble refinement", f"{prediction.bubble_refinement:.1f}")
    scores.add_row("Off-flavor risk", f"{quality.off_flavor_risk:.1f}")
    scores.add_section()
    scores.add_row("Overall", f"{quality.overall_quality:.1f}", style="bold")
    console.print(scores)

    window = prediction.harvest_window
    rprint(f"\n[bold]Harvest window:[/bold] {window.start_months}-{window.end_months} months")
    rprint(f"  {window.recommendation}")
    rprint(f"\n{prediction.insight}")
    if prediction.risk_warning:
        rprint(f"\n[yellow]⚠[/yellow] {prediction.risk_warning}")
    rprint(
        f"\n[dim]Strategy: {prediction.strategy} · confidence {prediction.prediction_confidence:.2f} · "
        f"TCI {prediction.tci_applied:g} FRI {prediction.fri_applied:g} BRI {prediction.bri_applied:g}[/dim]"
    )


@app.command("predict")
def predict_command(
    candidate_path: Path = typer.Argument(..., help="Candidate product JSON"),
    models_path: Path = typer.Option(Path("models.json"), "--models", "-m", help="Trained models JSON"),
    months: int = typer.Option(None, "--months", help="Undersea duration (default: planned duration)"),
    expert_path: Path = typer.Option(None, "--expert", help="Optional expert flavor profile JSON"),
    output: Path = typer.Option(None, "--output", "-o", help="Write the prediction JSON here"),
    offline: bool = typer.Option(False, "--offline", help="Skip external inference"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of tables"),
) -> None:
    """Predict flavor, quality and the harvest window for one product."""
    try:
        candidate = io.load_candidate(candidate_path)
        models = io.load_models(models_path) if models_path.exists() else []
        expert = io.load_expert_profile(expert_path) if expert_path else None
    except (OSError, ValueError, KeyError, TypeError) as e:
        _fail(f"Could not read input: {e}")

    if not models:
        logger.warning(f"No trained models at {models_path}; using the neutral profile")

    engine = UAPSEngine.from_settings()
    if offline:
        engine.client = None
    engine.registry.replace(models)

    prediction = asyncio.run(engine.predict(candidate, months, expert))

    if output:
        io.save_prediction(output, prediction)
    if as_json:
        typer.echo(json.dumps(prediction.to_dict(), indent=2, ensure_ascii=False))
    else:
        _print_prediction(prediction)


@app.command("timeline")
def timeline_command(
    candidate_path: Path = typer.Argument(..., help="Candidate product JSON"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
) -> None:
    """Monthly texture / aroma / risk / bubble curves."""
    try:
        candidate = io.load_candidate(candidate_path)
    except (OSError, ValueError, TypeError) as e:
        _fail(f"Could not read candidate: {e}")

    engine = UAPSEngine(config=EngineConfig.from_settings())
    points = engine.timeline(candidate)

    if as_json:
        typer.echo(json.dumps([p.to_dict() for p in points], indent=2))
        return

    table = Table(title=f"Timeline: {candidate.name}", show_header=True)
    table.add_column("Month", justify="right", style="cyan")
    table.add_column("Texture", justify="right")
    table.add_column("Aroma", justify="right")
    table.add_column("Bubble", justify="right")
    table.add_column("Risk", justify="right", style="red")
    table.add_column("Overall", justify="right", style="bold")
    table.add_column("Net", justify="right", style="dim")
    for p in points:
        table.add_row(
            str(p.month),
            f"{p.texture_maturity:.1f}",
            f"{p.aroma_freshness:.1f}",
            f"{p.bubble_refinement:.1f}",
            f"{p.off_flavor_risk:.1f}",
            f"{p.composite_quality:.1f}",
            f"{p.net_benefit:+.1f}",
        )
    console.print(table)


def run() -> None:
    """Console-script entry point."""
    app()


if __name__ == "__main__":
    run()
