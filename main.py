"""
SurgeCast Main Entry Point

Command line access to refresh, read, predict, ask and schedule operations
"""
import asyncio
import json
import signal
from datetime import date, datetime
from typing import Any, Awaitable, Callable, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from surgecast.core import get_config, get_logger, setup_logging
from surgecast.core.exceptions import SurgecastError
from surgecast.domain import Prediction, SignalType
from surgecast.service import SurgeService, build_service

app = typer.Typer(help="SurgeCast - Hospital surge prediction from environmental signals")
console = Console()
logger = get_logger(__name__)


def _run(action: Callable[[SurgeService], Awaitable[Any]]) -> Any:
    """Build the service, run one action, always release resources"""
    settings = get_config()
    setup_logging(settings)

    async def _main():
        service = build_service(settings)
        try:
            return await action(service)
        finally:
            await service.close()

    try:
        return asyncio.run(_main())
    except SurgecastError as e:
        console.print(f"[red]✗ {e.kind}: {e.message}[/red]")
        raise typer.Exit(1)


def _reading_table(title: str, readings: List[Any]) -> Table:
    table = Table(title=title)
    if not readings:
        return table

    columns = [c for c in readings[0].to_dict() if c not in ("id", "raw", "created_at", "updated_at")]
    for column in columns:
        table.add_column(column)
    for reading in readings:
        row = reading.to_dict()
        table.add_row(*(str(row[c]) for c in columns))
    return table


def _print_prediction(prediction: Prediction) -> None:
    console.print(f"[bold]{prediction.location}[/bold] on {prediction.target_date} "
                  f"(generated {prediction.generated_at:%Y-%m-%d %H:%M} UTC)")
    console.print(f"  Risk score: [bold]{prediction.risk_score:.0f}[/bold]/100")
    console.print(f"  Estimated patients: {prediction.estimated_affected}")
    console.print(f"  Confidence: {prediction.confidence}"
                  + (" [yellow](degraded advisory)[/yellow]" if prediction.advisory_degraded else ""))
    if prediction.summary:
        console.print(f"  Summary: {prediction.summary}")

    staff = prediction.staff_advice
    console.print(f"  Staffing: {staff['doctors']} doctors, {staff['nurses']} nurses, "
                  f"{staff['support_staff']} support")
    supply = prediction.supply_advice
    console.print(f"  Supplies: {supply['oxygen']} oxygen, {supply['ppe']} PPE")

    for factor in prediction.top_factors:
        console.print(f"  • {factor['name']} ({factor['impact']:.2f})")
    if prediction.suggested_diseases:
        console.print(f"  Diseases: {', '.join(prediction.suggested_diseases)}")
    if prediction.suggested_medicines:
        console.print(f"  Medicines: {', '.join(prediction.suggested_medicines)}")
    for outbreak in prediction.active_outbreaks:
        console.print(f"  [red]Outbreak[/red]: {outbreak['disease_name']} "
                      f"({outbreak['active_cases']} active, {outbreak['severity']})")


@app.command("init-db")
def init_db():
    """Create database tables"""
    async def action(service: SurgeService):
        await service.database.create_all()

    _run(action)
    console.print("[green]✓ Database initialized[/green]")


@app.command()
def refresh(
    location: str = typer.Argument(..., help="City name"),
    signal_type: SignalType = typer.Option(SignalType.WEATHER, "--signal", help="Signal type"),
    force: bool = typer.Option(False, help="Ignore the freshness window"),
):
    """Fetch a reading through the freshness cache"""
    reading = _run(lambda service: service.refresh(location, signal_type, force=force))
    console.print(_reading_table(f"{signal_type.value} - {reading.location}", [reading]))


@app.command()
def latest(
    location: str = typer.Argument(..., help="City name"),
    signal_type: SignalType = typer.Option(SignalType.WEATHER, "--signal", help="Signal type"),
):
    """Show the latest stored reading"""
    reading = _run(lambda service: service.latest(location, signal_type))
    if reading is None:
        console.print(f"[yellow]No {signal_type.value} reading stored for {location}[/yellow]")
        return
    console.print(_reading_table(f"{signal_type.value} - {reading.location}", [reading]))


@app.command()
def history(
    location: str = typer.Argument(..., help="City name"),
    signal_type: SignalType = typer.Option(SignalType.WEATHER, "--signal", help="Signal type"),
    days: int = typer.Option(7, help="Days of history"),
):
    """Show stored readings, oldest first"""
    readings = _run(lambda service: service.history(location, signal_type, since_days=days))
    console.print(_reading_table(f"{signal_type.value} - last {days} days", readings))


@app.command()
def predict(
    location: str = typer.Argument(..., help="City name"),
    target: Optional[datetime] = typer.Option(None, "--date", formats=["%Y-%m-%d"], help="Target date"),
    force: bool = typer.Option(True, help="Force-refresh readings first"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw record"),
):
    """Generate and store a prediction"""
    target_date: Optional[date] = target.date() if target else None
    prediction = _run(lambda service: service.predict(location, target_date, force=force))
    if as_json:
        console.print_json(json.dumps(prediction.to_dict(), default=str))
    else:
        _print_prediction(prediction)


@app.command("latest-prediction")
def latest_prediction(
    location: str = typer.Argument(..., help="City name"),
    regenerate: bool = typer.Option(True, help="Regenerate when missing or stale"),
):
    """Show the latest prediction"""
    if regenerate:
        prediction = _run(lambda service: service.latest_or_generate(location))
    else:
        prediction = _run(lambda service: service.latest_prediction(location))

    if prediction is None:
        console.print(f"[yellow]No prediction stored for {location}[/yellow]")
        return
    _print_prediction(prediction)


@app.command("prediction-history")
def prediction_history(
    location: str = typer.Argument(..., help="City name"),
    days: int = typer.Option(30, help="Days of history"),
):
    """List stored predictions, newest first"""
    predictions = _run(lambda service: service.prediction_history(location, since_days=days))

    table = Table(title=f"Predictions - {location}")
    for column in ("Generated (UTC)", "Target", "Risk", "Patients", "Confidence"):
        table.add_column(column)
    for p in predictions:
        table.add_row(
            f"{p.generated_at:%Y-%m-%d %H:%M}",
            str(p.target_date),
            f"{p.risk_score:.0f}",
            str(p.estimated_affected),
            p.confidence + (" (degraded)" if p.advisory_degraded else ""),
        )
    console.print(table)


@app.command()
def ask(
    location: str = typer.Argument(..., help="City name"),
    message: str = typer.Argument(..., help="Question for the operations copilot"),
):
    """Ask the operations copilot about a location"""
    result = _run(lambda service: service.ask(location, message))
    payload = result.as_payload()

    console.print(f"[bold]{payload.summary}[/bold]"
                  + (" [yellow](unstructured answer)[/yellow]" if result.degraded else ""))
    if not result.degraded:
        console.print(f"  Staffing: {payload.staffing_plan}")
        console.print(f"  Supplies: {payload.supply_plan}")
        console.print(f"  Weather impact: {payload.weather_impact}")
        console.print(f"  AQI impact: {payload.aqi_impact}")
    for action in payload.suggested_actions:
        console.print(f"  • {action}")
    if payload.suggested_medicines:
        console.print(f"  Medicines: {', '.join(payload.suggested_medicines)}")
    console.print(f"  Confidence: {payload.confidence}")


@app.command("ask-medical")
def ask_medical(
    question: str = typer.Argument(..., help="Question about a disease or medicine"),
    location: Optional[str] = typer.Option(None, help="Include this city's current conditions"),
):
    """Ask the disease and medicine assistant"""
    answer = _run(lambda service: service.ask_medical(question, location=location))
    console.print(answer)


@app.command()
def medicines(
    location: str = typer.Argument(..., help="City name"),
    diseases: List[str] = typer.Argument(..., help="Disease names"),
):
    """Suggest medicines for diseases under the city's current conditions"""
    names = _run(lambda service: service.medicines_for_diseases(location, diseases))
    for name in names:
        console.print(f"  • {name}")


@app.command("run-scheduler")
def run_scheduler(
    once: bool = typer.Option(False, help="Run one refresh now and exit"),
):
    """Refresh configured locations at every cadence boundary"""
    async def action(service: SurgeService):
        scheduler = service.scheduler()
        if once:
            summary = await scheduler.run_once()
            console.print(f"[green]{summary.succeeded}/{summary.attempted} refreshes succeeded[/green]")
            for failure in summary.failures:
                console.print(f"[red]  {failure.location}/{failure.signal_type.value}: "
                              f"{failure.kind}: {failure.message}[/red]")
            return

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)

        console.print(f"[bold blue]Scheduler started for {', '.join(service.settings.scheduler.locations)}[/bold blue]")
        await scheduler.run_forever(stop_event)

    _run(action)


@app.command("show-config")
def show_config():
    """Print the effective configuration with secrets masked"""
    settings = get_config()
    data = settings.model_dump(mode="json")
    for section in data.values():
        if isinstance(section, dict):
            for key in section:
                if key.endswith("api_key") and section[key]:
                    section[key] = "***"
    console.print_json(json.dumps(data))


if __name__ == "__main__":
    app()
