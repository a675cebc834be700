"""
CLI Main - Typer-based command-line interface.

Usage:
    chatledger providers
    chatledger tools --provider claude
    chatledger validate claude -c session_cookie=abc
    chatledger extract claude -p session_cookie=abc --output claude.json
    chatledger monitor claude -p session_cookie=abc --webhook https://hooks.example/x
    chatledger conversations --provider claude
    chatledger serve
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from chatledger.config import ChatLedgerError, get_settings

app = typer.Typer(
    name="chatledger",
    help="ChatLedger - AI chat transcript extraction and monitoring",
    add_completion=False,
)
console = Console()


def _configure_logging() -> None:
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_pairs(
    pairs: list[str] | None,
    raw_keys: frozenset[str] = frozenset(),
) -> dict[str, Any]:
    """
    Parse ``key=value`` options.

    Values that look like JSON are decoded, except for ``raw_keys``, which
    always stay strings.
    """
    parsed: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got {pair!r}")
        if key in raw_keys:
            parsed[key] = value
            continue
        try:
            parsed[key] = json.loads(value)
        except json.JSONDecodeError:
            parsed[key] = value
    return parsed


def _credential_keys(provider_id: str) -> frozenset[str]:
    """Credential and scope field names of a built-in provider."""
    from chatledger.domains.providers import default_descriptors

    for descriptor in default_descriptors():
        if descriptor.id == provider_id:
            return frozenset(descriptor.credential_fields + descriptor.scope_fields)
    return frozenset()


def _fail(error: ChatLedgerError) -> None:
    console.print(f"[red]Error:[/red] {escape(f'[{error.code.value}] {error.message}')}")
    violations = error.details.get("violations")
    if violations:
        for violation in violations:
            console.print(f"  [yellow]{violation['field']}[/yellow]: {escape(violation['message'])}")
    raise typer.Exit(1)


def _default_tool(orchestrator, provider_id: str, operation: str) -> str:
    for tool in orchestrator.list_tools(provider_id):
        if tool.operation.value == operation:
            return tool.name
    raise typer.BadParameter(f"{provider_id} has no {operation} tool; pass --tool")


@app.command()
def providers() -> None:
    """List supported providers."""
    from chatledger.domains.providers import default_descriptors

    table = Table(title="Providers")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Capabilities")
    table.add_column("Tools", justify="right")
    table.add_column("Credential fields", style="dim")

    for descriptor in default_descriptors():
        table.add_row(
            descriptor.id,
            descriptor.display_name,
            ", ".join(descriptor.capabilities),
            str(descriptor.tools_count),
            ", ".join(descriptor.credential_fields + descriptor.scope_fields),
        )

    console.print(table)


@app.command()
def tools(
    provider: str | None = typer.Option(None, "--provider", "-P", help="Only this provider"),
) -> None:
    """List tools and their parameters."""
    from chatledger.adapters.fixtures import build_fixture_registry

    registry = build_fixture_registry()
    try:
        tool_list = registry.list_tools(provider)
    except ChatLedgerError as e:
        _fail(e)

    table = Table(title="Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Provider")
    table.add_column("Category")
    table.add_column("Required", style="yellow")
    table.add_column("Description", style="dim")

    for tool in tool_list:
        table.add_row(
            tool.name,
            tool.provider_id,
            tool.category.value,
            ", ".join(tool.required_parameters),
            tool.description,
        )

    console.print(table)


@app.command()
def validate(
    provider: str = typer.Argument(..., help="Provider id"),
    credential: list[str] = typer.Option(None, "--credential", "-c", help="key=value"),
) -> None:
    """Validate provider credentials."""
    _configure_logging()
    asyncio.run(_validate_async(provider, _parse_pairs(credential, _credential_keys(provider))))


async def _validate_async(provider: str, credentials: dict[str, Any]) -> None:
    """Async validation implementation."""
    from chatledger.domains.orchestration import build_orchestrator

    orchestrator = build_orchestrator(get_settings())
    try:
        record = await orchestrator.validate_credentials(provider, credentials)
    except ChatLedgerError as e:
        _fail(e)
    finally:
        await orchestrator.shutdown()

    console.print(
        Panel(
            f"[bold]Provider:[/bold] {record.provider_id}\n"
            f"[bold]Permissions:[/bold] {', '.join(record.permissions)}\n"
            f"[bold]Expires:[/bold] {record.expires_at}\n"
            f"[dim]Fingerprint: {record.fingerprint[:16]}...[/dim]",
            title=f"[green]{record.message}[/green]",
        )
    )


@app.command()
def extract(
    provider: str = typer.Argument(..., help="Provider id"),
    tool: str | None = typer.Option(None, "--tool", "-t", help="Extraction tool name"),
    param: list[str] = typer.Option(None, "--param", "-p", help="key=value tool parameter"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output JSON path"),
) -> None:
    """Validate credentials and run one extraction job."""
    _configure_logging()
    parameters = _parse_pairs(param, _credential_keys(provider))
    asyncio.run(_extract_async(provider, tool, parameters, output))


async def _extract_async(
    provider: str,
    tool: str | None,
    parameters: dict[str, Any],
    output: Path | None,
) -> None:
    """Async extraction implementation."""
    from chatledger.domains.extraction import JobState
    from chatledger.domains.orchestration import build_orchestrator

    orchestrator = build_orchestrator(get_settings())
    try:
        tool_name = tool or _default_tool(orchestrator, provider, "extract")

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Validating credentials...", total=100)
            await orchestrator.validate_credentials(provider, parameters)

            progress.update(task, description=f"Running {tool_name}...")
            job_id = await orchestrator.submit_extraction_job(provider, tool_name, parameters)

            job = orchestrator.get_job_status(job_id)
            while not job.is_terminal:
                progress.update(task, completed=job.progress)
                await asyncio.sleep(0.1)
                job = orchestrator.get_job_status(job_id)
            progress.update(task, completed=job.progress)

        if job.state != JobState.SUCCEEDED or job.result is None:
            message = job.error.message if job.error else job.state.value
            console.print(f"[red]Job {job.state.value}:[/red] {message}")
            raise typer.Exit(1)

        result = job.result
        table = Table(title="Extraction Summary")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Job", job.id)
        table.add_row("Conversations", str(result.metadata.total_conversations))
        table.add_row("Messages", str(result.message_count))
        table.add_row("Malformed", str(len(result.errors)))
        table.add_row("Method", result.metadata.extraction_method)
        table.add_row("Attempts", str(job.attempts))
        console.print(table)

        if output:
            output.write_text(result.model_dump_json(indent=2))
            console.print(f"\n[green]Saved to:[/green] {output}")
    except ChatLedgerError as e:
        _fail(e)
    finally:
        await orchestrator.shutdown()


@app.command()
def monitor(
    provider: str = typer.Argument(..., help="Provider id"),
    tool: str | None = typer.Option(None, "--tool", "-t", help="Polling tool name"),
    param: list[str] = typer.Option(None, "--param", "-p", help="key=value tool parameter"),
    webhook: str | None = typer.Option(None, "--webhook", "-w", help="Webhook URL"),
    duration: float = typer.Option(60.0, "--duration", "-d", help="Seconds to keep polling"),
) -> None:
    """Run a monitoring session for a fixed duration."""
    _configure_logging()
    parameters = _parse_pairs(param, _credential_keys(provider))
    asyncio.run(_monitor_async(provider, tool, parameters, webhook, duration))


async def _monitor_async(
    provider: str,
    tool: str | None,
    parameters: dict[str, Any],
    webhook: str | None,
    duration: float,
) -> None:
    """Async monitoring implementation."""
    from chatledger.domains.orchestration import build_orchestrator

    orchestrator = build_orchestrator(get_settings())
    try:
        tool_name = tool or _default_tool(orchestrator, provider, "poll")
        await orchestrator.validate_credentials(provider, parameters)
        session_id = await orchestrator.start_monitoring(provider, tool_name, parameters, webhook)
        console.print(f"[green]Monitoring[/green] {session_id} for {duration:g}s (Ctrl+C to stop)")

        try:
            await asyncio.sleep(duration)
        finally:
            session = await orchestrator.stop_monitoring(session_id)

        table = Table(title="Monitoring Summary")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Polls", str(session.polls_completed))
        table.add_row("Conversations", str(session.conversations_captured))
        table.add_row("Messages", str(session.messages_captured))
        table.add_row("Webhooks delivered", str(session.webhooks_delivered))
        table.add_row("Webhooks failed", str(session.deliveries_failed))
        console.print(table)
    except ChatLedgerError as e:
        _fail(e)
    finally:
        await orchestrator.shutdown()


@app.command()
def conversations(
    subject: str | None = typer.Option(None, "--subject", "-s", help="Subject substring"),
    provider: str | None = typer.Option(None, "--provider", "-P", help="Provider id"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of results"),
) -> None:
    """List stored conversations (requires the sqlite store backend)."""
    asyncio.run(_conversations_async(subject, provider, limit))


async def _conversations_async(subject: str | None, provider: str | None, limit: int) -> None:
    """Async listing implementation."""
    from chatledger.domains.conversations import ConversationFilters
    from chatledger.domains.orchestration import build_store

    settings = get_settings()
    store = build_store(settings)
    try:
        page = await store.list_conversations(
            ConversationFilters(subject=subject, provider=provider, limit=limit)
        )
    finally:
        await store.close()

    table = Table(title=f"Conversations ({page.total})")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Subject", style="yellow")
    table.add_column("Messages", justify="right")
    table.add_column("Updated", style="dim")

    for conversation in page.conversations:
        table.add_row(
            conversation.id,
            conversation.title,
            conversation.subject or "",
            str(conversation.message_count),
            conversation.updated_at.isoformat(timespec="seconds"),
        )

    console.print(table)
    if settings.store_backend == "memory":
        console.print("[dim]Memory store is empty per process; set CHATLEDGER_STORE_BACKEND=sqlite.[/dim]")


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Host to bind"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
) -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    _configure_logging()

    console.print("\n[green]Starting ChatLedger API server[/green]")
    console.print(f"[dim]http://{host}:{port}[/dim]\n")

    uvicorn.run(
        "chatledger.interfaces.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def version() -> None:
    """Show version information."""
    from chatledger import __version__

    console.print(f"ChatLedger v{__version__}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
