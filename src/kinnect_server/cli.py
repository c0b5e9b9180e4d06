"""CLI entry point for kinnect-server."""

import json
from dataclasses import asdict

import typer
import uvicorn

from kinnect_server import __version__
from kinnect_server.core.config import settings
from kinnect_server.services.quality_control import ActivityCandidate, validate_activity
from kinnect_server.services.scoring import score_activity

app = typer.Typer(
    name="kinnect-server",
    help="Activity tracking server for Kinnect",
    no_args_is_help=True,
)


@app.command()
def serve(
    host: str = typer.Option(None, help="Host to bind to (overrides config)"),
    port: int = typer.Option(None, help="Port to bind to (overrides config)"),
    reload: bool = typer.Option(False, help="Enable auto-reload for development"),
) -> None:
    """Start the API server.

    Example:
        kinnect-server serve
        kinnect-server serve --host 0.0.0.0 --port 8080 --reload
    """
    uvicorn.run(
        "kinnect_server.app:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command("check-activity")
def check_activity(
    activity_type: str = typer.Option(..., "--type", help="Activity type (run, walk, ...)"),
    distance: float = typer.Option(0.0, help="Distance in km"),
    duration: float = typer.Option(0.0, help="Duration in minutes"),
    date: str = typer.Option(None, help="Activity date (YYYY-MM-DD)"),
) -> None:
    """Run quality control and scoring on an activity and print the result.

    Exits with status 1 if the activity would be rejected.

    Example:
        kinnect-server check-activity --type run --distance 10 --duration 50
    """
    candidate = ActivityCandidate(
        activity_type=activity_type,
        distance_km=distance,
        duration_minutes=duration,
        activity_date=date,
    )
    result = validate_activity(candidate)

    output = result.to_dict()
    output["score"] = asdict(score_activity(candidate)) if result.valid else None
    typer.echo(json.dumps(output, indent=2))

    if not result.valid:
        raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"kinnect-server v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
