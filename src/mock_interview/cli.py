"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from mock_interview.config import load_config
from mock_interview.errors import MockInterviewError
from mock_interview.services import build_services

app = typer.Typer(
    name="mock-interview",
    help="AI mock interview service: evaluation, usage metering and cost tracking",
    no_args_is_help=True,
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: int = typer.Option(None, "--port", help="Bind port (default from config)"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    from mock_interview.api.app import create_app

    _setup_logging(verbose)
    config = load_config(config_path)
    api = create_app(build_services(config))
    uvicorn.run(
        api,
        host=host or config.server.host,
        port=port or config.server.port,
        log_config=None,
    )


@app.command()
def evaluate(
    interview_id: str = typer.Argument(help="Interview id"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Evaluate a saved interview and print the result."""
    _setup_logging(verbose)
    services = build_services(load_config(config_path))

    try:
        with console.status("Evaluating interview..."):
            outcome = asyncio.run(services.evaluator.evaluate(interview_id))
    except MockInterviewError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)

    evaluation = outcome.evaluation
    table = Table(title=f"Interview {interview_id}")
    table.add_column("Dimension")
    table.add_column("Score", justify="right")
    table.add_column("Feedback")
    for dim in evaluation.evaluations:
        table.add_row(dim.category, f"{dim.score:.0f}", dim.feedback)
    console.print(table)

    console.print(
        Panel(
            f"[bold]{evaluation.overall_grade}[/bold] ({evaluation.overall_score:.1f}) | "
            f"{evaluation.total_questions} questions | {evaluation.completion_time}\n\n"
            f"{evaluation.summary}"
            + ("\n\n[dim]cached result[/dim]" if outcome.cached else ""),
            title="Overall",
        )
    )
    if outcome.usage_log is not None:
        log = outcome.usage_log
        console.print(
            f"[dim]Usage: {log.total_tokens} tokens, {len(log.details)} calls, "
            f"${log.total_cost:.6f}[/dim]"
        )


@app.command()
def usage(
    user_id: str = typer.Argument(help="User id"),
    page: int = typer.Option(1, "--page", min=1, help="Page number"),
    limit: int = typer.Option(10, "--limit", min=1, max=100, help="Logs per page"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
) -> None:
    """Show a user's usage logs and lifetime stats."""
    config = load_config(config_path)
    services = build_services(config)
    logs = services.usage.get_logs(user_id, page=page, limit=limit)
    stats = services.usage.get_user_stats(user_id)

    if not logs:
        console.print("[yellow]No usage logs found.[/yellow]")
    else:
        table = Table(title=f"Usage for {user_id} (page {page})")
        table.add_column("Created")
        table.add_column("Interview")
        table.add_column("Category")
        table.add_column("Tokens", justify="right")
        table.add_column("Cost (USD)", justify="right")
        for log in logs:
            table.add_row(
                log.created_at.strftime("%Y-%m-%d %H:%M"),
                log.interview_id or "-",
                f"{log.category or '-'} / {log.level or '-'}",
                str(log.total_tokens),
                f"{log.total_cost:.6f}",
            )
        console.print(table)

    console.print(
        Panel(
            f"Total tokens: {stats.total_tokens_all_time}\n"
            f"Interviews: {stats.total_interviews}\n"
            f"Avg tokens/interview: {stats.avg_tokens_per_interview}\n"
            f"Total cost: ${stats.total_cost_all_time:.6f}",
            title="Lifetime",
        )
    )


@app.command("seed-questions")
def seed_questions(
    file: Path = typer.Argument(help="YAML question bank"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
) -> None:
    """Load questions from a YAML file into the question bank."""
    if not file.exists():
        console.print(f"[red]File not found: {file}[/red]")
        raise typer.Exit(1)

    services = build_services(load_config(config_path))
    count = services.questions.load_yaml(file)
    console.print(f"[green]Loaded {count} questions from {file}[/green]")


if __name__ == "__main__":
    app()
