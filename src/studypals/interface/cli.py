"""StudyPals CLI — analytics commands, config inspection, and the HTTP server."""

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer

from studypals.application.config import AppConfig, resolve_config
from studypals.domain.errors import DeserializationError

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="studypals: Study analytics for flashcard learners.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Register subgroups
# ---------------------------------------------------------------------------

analytics_app = typer.Typer(help="Compute and inspect study analytics.", no_args_is_help=True)
app.add_typer(analytics_app, name="analytics")

config_app = typer.Typer(help="Manage studypals configuration.")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
):
    """Global settings for studypals."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose
    if verbose > 1:
        logging.getLogger().setLevel(logging.DEBUG)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _read_json(path: Path, record: str) -> Any:
    from studypals.infrastructure.serialization import loads

    if not path.exists():
        typer.secho(f"File not found: {path}", fg="red", err=True)
        raise typer.Exit(1)
    return loads(path.read_text(encoding="utf-8"), record)


def _emit(payload: Any, output: Path | None) -> None:
    text = json.dumps(payload, indent=2)
    if output is None:
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    typer.echo(f"Wrote {output}")


def _fail(e: Exception) -> NoReturn:
    typer.secho(f"Error: {e}", fg="red", err=True)
    raise typer.Exit(1) from e


def _attach_log_file(config: AppConfig) -> Path:
    """Mirror package logs into log_dir/studypals.log at the configured verbosity."""
    config.log_dir.mkdir(parents=True, exist_ok=True)
    path = config.log_dir / "studypals.log"
    level = logging.DEBUG if config.verbose > 1 else logging.INFO

    package_logger = logging.getLogger("studypals")
    package_logger.setLevel(level)
    for handler in package_logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == path:
            handler.setLevel(level)
            return path

    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))
    package_logger.addHandler(handler)
    return path


# ---------------------------------------------------------------------------
# Analytics subgroup
# ---------------------------------------------------------------------------


@analytics_app.command("compute")
def analytics_compute(
    history: Annotated[
        Path,
        typer.Argument(help="JSON file with sessions, quizSessions, reviews and deckSubjects."),
    ],
    user_id: Annotated[
        str | None, typer.Option("--user-id", help="Owner of the history. Defaults to userId.")
    ] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the snapshot here.")
    ] = None,
    now: Annotated[
        datetime | None, typer.Option(help="Reference time for streaks and trends.")
    ] = None,
):
    """Compute a fresh analytics snapshot from a history file."""
    from studypals.application.analytics import calculate_user_analytics
    from studypals.infrastructure.serialization import decode_history, encode

    try:
        bundle = decode_history(_read_json(history, "StudyHistory"))
    except DeserializationError as e:
        _fail(e)

    owner = user_id or bundle.user_id
    if not owner:
        typer.secho("A user id is required (--user-id or userId in the file).", fg="red", err=True)
        raise typer.Exit(2)

    analytics = calculate_user_analytics(
        owner,
        [s.to_domain() for s in bundle.sessions],
        [q.to_domain() for q in bundle.quiz_sessions],
        [r.to_domain() for r in bundle.reviews],
        now=now,
        deck_subjects=bundle.deck_subjects,
    )
    _emit(encode(analytics), output)


@analytics_app.command("update")
def analytics_update(
    snapshot: Annotated[Path, typer.Argument(help="Existing analytics snapshot (JSON).")],
    session: Annotated[Path, typer.Argument(help="Finished study session (JSON).")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the snapshot here.")
    ] = None,
    now: Annotated[
        datetime | None, typer.Option(help="Reference time for streaks.")
    ] = None,
):
    """Fold one study session into an existing snapshot."""
    from studypals.application.analytics import update_analytics_with_session
    from studypals.infrastructure.serialization import decode_analytics, decode_session, encode

    try:
        previous = decode_analytics(_read_json(snapshot, "StudyAnalytics"))
        new_session = decode_session(_read_json(session, "StudySession"))
    except DeserializationError as e:
        _fail(e)

    analytics = update_analytics_with_session(previous, new_session, now=now)
    _emit(encode(analytics), output)


@analytics_app.command("summary")
def analytics_summary(
    snapshot: Annotated[Path, typer.Argument(help="Analytics snapshot (JSON).")],
):
    """Show the headline performance summary of a snapshot."""
    from studypals.application.analytics import performance_summary
    from studypals.infrastructure.serialization import decode_analytics

    try:
        analytics = decode_analytics(_read_json(snapshot, "StudyAnalytics"))
    except DeserializationError as e:
        _fail(e)

    typer.echo(json.dumps(performance_summary(analytics), indent=2))


@analytics_app.command("recalc")
def analytics_recalc(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="User whose stored history to recompute.")],
    data_dir: Annotated[
        Path | None, typer.Option(help="Override the configured data directory.")
    ] = None,
):
    """Recompute and store analytics from the configured data directory."""
    import asyncio

    from studypals.application.factory import get_analytics_service

    config = resolve_config({"data_dir": data_dir, "verbose": ctx.obj.get("verbose_bonus", 1)})
    _attach_log_file(config)
    logger.info(f"Recalculating analytics for {user_id} from {config.data_dir}")
    service = get_analytics_service(config)

    try:
        analytics = asyncio.run(service.calculate_and_update_analytics(user_id))
    except DeserializationError as e:
        logger.error(f"Recalculation for {user_id} failed: {e}")
        _fail(e)

    typer.echo(
        f"Recalculated {user_id}: {analytics.total_study_time} min studied, "
        f"accuracy {analytics.overall_accuracy:.0%}, streak {analytics.current_streak}"
    )


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


@app.command()
def logs():
    """Open the log directory."""
    import subprocess

    config = resolve_config()
    if not config.log_dir.exists():
        config.log_dir.mkdir(parents=True, exist_ok=True)

    if sys.platform == "darwin":
        subprocess.run(["open", str(config.log_dir)])
    elif sys.platform == "win32":
        os.startfile(str(config.log_dir))
    else:
        subprocess.run(["xdg-open", str(config.log_dir)])


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def serve(
    ctx: typer.Context,
    host: Annotated[str | None, typer.Option(help="Host to bind the server to.")] = None,
    port: Annotated[int | None, typer.Option(help="Port to bind the server to.")] = None,
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the analytics HTTP server."""
    import uvicorn

    config = resolve_config(
        {"server_host": host, "server_port": port, "verbose": ctx.obj.get("verbose_bonus", 1)}
    )
    log_file = _attach_log_file(config)
    logger.info(f"Logging to {log_file}")
    logger.info(f"Serving on {config.server_host}:{config.server_port}")
    uvicorn.run(
        "studypals.server:app",
        host=config.server_host,
        port=config.server_port,
        reload=reload,
    )


def main():
    app()


if __name__ == "__main__":
    main()
