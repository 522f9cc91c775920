#!/usr/bin/env python3
"""
LeadScore CLI - Command-line interface for the tool.
"""

import asyncio
import logging
import sys
from pathlib import Path

import click

from . import __version__
from .analyzer import AnalysisOrchestrator
from .config import Settings, load_settings
from .errors import LeadScoreError
from .formatters import format_call_page, format_call_view, format_scoring
from .queries import AnalysisQueryService
from .scoring import ScoringEngine
from .sqlite_repository import SQLiteCallRepository
from .stats import count_words
from .transcription import WhisperTranscriptionGateway


def _load(ctx: click.Context) -> Settings:
    """Load settings once per invocation and configure logging."""
    if ctx.obj is None:
        try:
            settings = load_settings()
        except Exception as e:
            click.echo(f"\n❌ Error loading settings: {e}", err=True)
            click.echo("\nMake sure .env file is configured correctly.")
            sys.exit(1)
        logging.basicConfig(
            level=settings.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        ctx.obj = settings
    return ctx.obj


def _run(coro):
    """Run a coroutine, turning pipeline errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except LeadScoreError as e:
        click.echo(f"\n❌ {e.message}", err=True)
        for key, value in e.context.items():
            click.echo(f"   • {key}: {value}", err=True)
        sys.exit(1)


def _orchestrator(settings: Settings, repository: SQLiteCallRepository, gateway=None):
    """Orchestrator over SQLite. Only `analyze` needs a transcription gateway."""
    return AnalysisOrchestrator(
        repository,
        gateway,
        ScoringEngine(settings.scoring_config()),
        transcription_timeout=settings.transcription_timeout_seconds,
    )


@click.group()
@click.version_option(version=__version__, prog_name="leadscore")
@click.pass_context
def cli(ctx):
    """
    LeadScore - Hebrew Sales Call Lead Scoring

    Transcribe recorded sales calls and score how likely each lead is to close.
    """
    pass


@cli.command()
@click.option("--host", default=None, help="Host to bind to (default: API_HOST)")
@click.option("--port", type=int, default=None, help="Port to listen on (default: API_PORT)")
@click.pass_context
def serve(ctx, host, port):
    """
    Run the HTTP API.

    Examples:
        leadscore serve
        leadscore serve --host 0.0.0.0 --port 8080
    """
    import uvicorn

    from .api import build_app

    settings = _load(ctx)
    host = host or settings.api_host
    port = port or settings.api_port

    click.echo("\n" + "=" * 70)
    click.echo("LeadScore - Analysis API")
    click.echo("=" * 70)
    click.echo(f"\n🚀 http://{host}:{port}")
    click.echo(f"💾 Database: {settings.sqlite_db_path}")

    uvicorn.run(build_app(settings), host=host, port=port, log_level=settings.log_level.lower())


@cli.command()
@click.argument("audio_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--name", required=True, help="Customer name")
@click.option("--phone", required=True, help="Customer phone number")
@click.option("--email", default=None, help="Customer email")
@click.option("--customer-id", type=int, default=None, help="Attach to an existing customer instead")
@click.pass_context
def intake(ctx, audio_file, name, phone, email, customer_id):
    """
    Register a recorded call (and its customer) for analysis.

    Examples:
        leadscore intake call.mp3 --name "דני כהן" --phone 050-1234567
    """
    settings = _load(ctx)

    async def run():
        repository = SQLiteCallRepository(settings.sqlite_db_path)
        try:
            cid = customer_id
            if cid is None:
                customer = await repository.create_customer(name, phone, email)
                cid = customer.id
                click.echo(f"👤 Created customer #{cid}: {customer.name}")
            call = await repository.create_call(cid, str(Path(audio_file).resolve()))
            click.echo(f"📁 Created sales call #{call.id} ({call.analysis_status})")
        finally:
            await repository.close()

    _run(run())


@cli.command()
@click.argument("call_id", type=int)
@click.pass_context
def analyze(ctx, call_id):
    """
    Transcribe and score a sales call.

    Examples:
        leadscore analyze 12
    """
    settings = _load(ctx)

    async def run():
        repository = SQLiteCallRepository(settings.sqlite_db_path)
        gateway = WhisperTranscriptionGateway(settings)
        try:
            outcome = await _orchestrator(settings, repository, gateway).run_full_analysis(call_id)
        finally:
            await gateway.aclose()
            await repository.close()

        click.echo(f"\n✅ Sales call #{call_id} analyzed")
        click.echo(
            f"📝 {outcome.stats.word_count} words, {outcome.transcription.duration:.0f}s "
            f"({outcome.stats.speaking_rate})"
        )
        click.echo(format_scoring(outcome.scoring))

    _run(run())


@cli.command()
@click.argument("call_id", type=int)
@click.pass_context
def score(ctx, call_id):
    """
    Score the stored transcript of a transcribed call.

    Examples:
        leadscore score 12
    """
    settings = _load(ctx)

    async def run():
        repository = SQLiteCallRepository(settings.sqlite_db_path)
        try:
            outcome = await _orchestrator(settings, repository).score_existing(call_id)
        finally:
            await repository.close()

        click.echo(f"\n✅ Sales call #{call_id} scored")
        click.echo(format_scoring(outcome.scoring))

    _run(run())


@cli.command()
@click.argument("call_id", type=int)
@click.pass_context
def show(ctx, call_id):
    """Show a sales call with its analysis status and scores."""
    settings = _load(ctx)

    async def run():
        repository = SQLiteCallRepository(settings.sqlite_db_path)
        try:
            view = await _orchestrator(settings, repository).get_analysis(call_id)
        finally:
            await repository.close()
        click.echo(format_call_view(view))

    _run(run())


@cli.command(name="list")
@click.option(
    "-s",
    "--status",
    type=click.Choice(["pending", "transcribed", "scored"]),
    default=None,
    help="Only calls in this state",
)
@click.option("-c", "--customer-id", type=int, default=None, help="Only calls for this customer")
@click.option("-p", "--page", type=int, default=1, show_default=True)
@click.option("-l", "--limit", type=int, default=None, help="Page size (default: DEFAULT_PAGE_SIZE)")
@click.pass_context
def list_calls(ctx, status, customer_id, page, limit):
    """
    List sales calls with their pipeline state.

    Examples:
        leadscore list
        leadscore list -s scored -p 2
    """
    settings = _load(ctx)

    async def run():
        repository = SQLiteCallRepository(settings.sqlite_db_path)
        try:
            service = AnalysisQueryService(repository, max_limit=settings.max_page_size)
            result = await service.list(
                status=status,
                customer_id=customer_id,
                page=page,
                limit=limit or settings.default_page_size,
            )
        finally:
            await repository.close()
        click.echo(format_call_page(result))

    _run(run())


@cli.command(name="score-text")
@click.argument("transcript_file", type=click.File("r", encoding="utf-8"))
@click.option("-d", "--duration", type=float, default=0.0, help="Call duration in seconds")
@click.pass_context
def score_text(ctx, transcript_file, duration):
    """
    Score a transcript file without touching the database.

    Examples:
        leadscore score-text transcript.txt -d 180
        echo "אני מעוניין, זה דחוף" | leadscore score-text -
    """
    settings = _load(ctx)
    text = transcript_file.read()
    engine = ScoringEngine(settings.scoring_config())
    try:
        result = engine.score(text, duration, count_words(text))
    except LeadScoreError as e:
        click.echo(f"\n❌ {e.message}", err=True)
        sys.exit(1)
    click.echo(format_scoring(result))


if __name__ == "__main__":
    cli()
