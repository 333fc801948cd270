"""
LLM Relay - Main Entry Point

CLI for sending prompts through the multi-provider router and for running
the report / question / insight helpers against a JSON data file.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from relay.config.loader import build_registry, load_relay_config
from relay.exceptions import RelayError
from relay.llm.router import LLMRequest
from relay.llm.service import LLMService
from relay.observability.logging_config import configure_logging

# Load environment (override=True to ensure .env values take precedence)
load_dotenv(override=True)

app = typer.Typer(
    name="relay",
    help="LLM Relay - multi-provider request routing",
)
console = Console()
logger = logging.getLogger("relay")

DEFAULT_REPORT_TEMPLATE = (
    "Write a summary of the exchange offices in the data: best buy/sell "
    "rates per currency, notable spreads and anything unusual."
)


def _build_service(config_path: Optional[Path]) -> LLMService:
    """Construct the service, turning config problems into a friendly exit."""
    try:
        return LLMService.from_env(config_path)
    except RelayError as e:
        _fail(e)


def _fail(error: Exception) -> None:
    console.print(Panel(
        f"[red]{error}[/]",
        title="⚠ LLM Relay Error",
        border_style="red",
    ))
    raise typer.Exit(code=1)


def _load_data(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Could not read data file {path}:[/] {e}")
        raise typer.Exit(code=1)


def _run(coro_factory) -> Any:
    try:
        return asyncio.run(coro_factory())
    except RelayError as e:
        _fail(e)


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", envvar="RELAY_LOG_LEVEL", help="Log level"),
):
    """LLM Relay command line."""
    configure_logging(level=log_level)


# =========================================================================
# Commands
# =========================================================================


@app.command()
def providers(
    config: Optional[Path] = typer.Option(None, help="Path to relay.yaml"),
):
    """Show configured providers and whether they are available."""
    try:
        registry = build_registry(load_relay_config(config))
    except RelayError as e:
        _fail(e)

    available = {p.name for p in registry.list_available()}

    table = Table(title="LLM Relay - Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Models", style="white")
    table.add_column("Priority", style="yellow")
    table.add_column("Streaming", style="green")
    table.add_column("Available", style="magenta")

    for name in registry.names():
        p = registry.get(name)
        table.add_row(
            p.label,
            ", ".join(p.supported_models),
            str(p.priority),
            "yes" if p.supports_streaming else "no",
            "[green]yes[/]" if name in available else "[red]no key[/]",
        )

    console.print(table)


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Prompt to send"),
    provider: Optional[str] = typer.Option(None, help="Preferred provider id"),
    model: Optional[str] = typer.Option(None, help="Model name"),
    max_tokens: Optional[int] = typer.Option(None, help="Completion token limit"),
    temperature: float = typer.Option(0.7, help="Sampling temperature"),
    stream: bool = typer.Option(False, help="Stream the answer as it arrives"),
    config: Optional[Path] = typer.Option(None, help="Path to relay.yaml"),
):
    """Send one prompt through the router."""
    printed = 0

    def _on_update(text: str) -> None:
        nonlocal printed
        console.print(text[printed:], end="", markup=False, highlight=False)
        printed = len(text)

    async def _go():
        async with _build_service(config) as service:
            return await service.send_request(LLMRequest(
                prompt=prompt,
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                provider_name=provider,
                streaming=stream,
                on_stream_update=_on_update if stream else None,
            ))

    response = _run(_go)

    if printed:
        console.print()
    else:
        console.print(response.text, markup=False, highlight=False)

    usage = response.token_usage
    usage_str = f" · {usage.total_tokens} tokens" if usage else ""
    console.print(f"[dim]{response.provider_name}/{response.model_name}{usage_str}[/]")


@app.command()
def report(
    data_file: Path = typer.Argument(..., help="JSON file with the data context"),
    template: str = typer.Option(DEFAULT_REPORT_TEMPLATE, help="Report instructions"),
    provider: Optional[str] = typer.Option(None, help="Preferred provider id"),
    config: Optional[Path] = typer.Option(None, help="Path to relay.yaml"),
):
    """Generate a narrative report from a data file."""
    data = _load_data(data_file)

    async def _go():
        async with _build_service(config) as service:
            return await service.generate_report(data, template, provider_name=provider)

    console.print(Panel(_run(_go), title="Report"))


@app.command()
def question(
    text: str = typer.Argument(..., help="Question about the data"),
    data_file: Path = typer.Argument(..., help="JSON file with the data context"),
    provider: Optional[str] = typer.Option(None, help="Preferred provider id"),
    config: Optional[Path] = typer.Option(None, help="Path to relay.yaml"),
):
    """Answer a natural-language question about a data file."""
    data = _load_data(data_file)

    async def _go():
        async with _build_service(config) as service:
            return await service.interpret_question(text, data, provider_name=provider)

    console.print(_run(_go), markup=False, highlight=False)


@app.command()
def insights(
    data_file: Path = typer.Argument(..., help="JSON file with the data context"),
    provider: Optional[str] = typer.Option(None, help="Preferred provider id"),
    config: Optional[Path] = typer.Option(None, help="Path to relay.yaml"),
):
    """List insights the model finds in a data file."""
    data = _load_data(data_file)

    async def _go():
        async with _build_service(config) as service:
            return await service.suggest_insights(data, provider_name=provider)

    found = _run(_go)
    if not found:
        console.print("[yellow]No insights returned.[/]")
        return
    for item in found:
        console.print(f"• {item}", markup=False, highlight=False)


if __name__ == "__main__":
    app()
