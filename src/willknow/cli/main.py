"""
Main CLI entry point for willknow.

Provides the command-line interface using Click:

    willknow chat "what's the weather in Oslo?"
    willknow serve --port 3000
    willknow subagents
    willknow config
"""

import asyncio as _asyncio
import json as _json
import logging as _logging
import os as _os
import sys as _sys
import typing as _typing

import click as _click
import rich.console as _rich_console
import rich.logging as _rich_logging
import rich.syntax as _rich_syntax
import rich.table as _rich_table
import yaml as _yaml

import willknow
import willknow.config as config
import willknow.core as core
import willknow.subagents as subagents
import willknow.tools as tools

# Custom Click context settings for better help formatting
CONTEXT_SETTINGS: dict[str, _typing.Any] = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 100,
}

_SECRET_KEYS = frozenset({"api_key", "apiKey", "token"})


def _run_async(coro: _typing.Coroutine[_typing.Any, _typing.Any, _typing.Any]) -> _typing.Any:
    """Run an async coroutine synchronously."""
    return _asyncio.run(coro)


def _setup_logging(verbose: bool) -> None:
    """Route library logging to stderr through rich."""
    handler = _rich_logging.RichHandler(
        console=_rich_console.Console(stderr=True),
        show_path=False,
        rich_tracebacks=verbose,
    )
    _logging.basicConfig(
        level=_logging.DEBUG if verbose else _logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # httpx logs every request at INFO
    _logging.getLogger("httpx").setLevel(_logging.DEBUG if verbose else _logging.WARNING)


def _mask_secrets(data: _typing.Any) -> _typing.Any:
    """Replace secret values in a config dump with a marker."""
    if isinstance(data, dict):
        return {
            key: ("***" if key in _SECRET_KEYS and value else _mask_secrets(value))
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [_mask_secrets(item) for item in data]
    return data


@_click.group(context_settings=CONTEXT_SETTINGS)
@_click.version_option(willknow.__version__, "-V", "--version", prog_name="willknow")
@_click.option(
    "-c",
    "--config",
    "config_file",
    type=_click.Path(dir_okay=False),
    default=None,
    help="YAML config file (default: $WILLKNOW_CONFIG_FILE or ./willknow.yaml)",
)
@_click.option("-v", "--verbose", is_flag=True, help="Enable debug logging on stderr")
@_click.pass_context
def cli(ctx: _click.Context, config_file: str | None, verbose: bool) -> None:
    """
    willknow - chat with an LLM that can delegate to subagents and read skills.

    \b
    Examples:
        willknow chat "summarize today's meetings"
        willknow chat --json "hello"          # one JSON event per line
        willknow serve --port 3000            # HTTP SSE server
        willknow subagents                    # probe configured subagents
        willknow config                       # show effective configuration
    """
    _setup_logging(verbose)

    if config_file:
        _os.environ["WILLKNOW_CONFIG_FILE"] = config_file

    # Store settings in context for subcommands (tests may pre-populate obj)
    ctx.ensure_object(dict)
    if "settings" not in ctx.obj:
        ctx.obj["settings"] = config.Settings()
    ctx.obj["verbose"] = verbose


# =============================================================================
# chat
# =============================================================================


async def _run_chat(
    service: core.ChatService,
    request: core.ChatRequest,
    json_output: bool,
) -> bool:
    """Stream one exchange to stdout. Returns False if it ended in error."""
    err = _rich_console.Console(stderr=True)
    ok = True
    try:
        async for event in service.stream_chat(request):
            if json_output:
                _click.echo(event.to_json())
                if event.type == "error":
                    ok = False
                continue

            if event.type == "text":
                _click.echo(event.content, nl=False)
            elif event.type == "tool_call":
                err.print(f"\n[cyan]→ {event.agent_name}[/cyan] [dim]{event.input}[/dim]")
            elif event.type == "tool_result":
                preview = (event.content or "").replace("\n", " ")
                if len(preview) > 200:
                    preview = preview[:200] + "…"
                err.print(f"[green]← {event.tool}[/green] [dim]{preview}[/dim]")
            elif event.type == "error":
                err.print(f"\n[red]Error:[/red] {event.message}")
                ok = False
            elif event.type == "done":
                _click.echo()
    finally:
        await service.aclose()
    return ok


@cli.command()
@_click.argument("message")
@_click.option(
    "--conversation-id",
    default=None,
    help="Conversation key for subagent continuation tokens",
)
@_click.option("--json", "json_output", is_flag=True, help="Print events as JSON lines")
@_click.pass_context
def chat(
    ctx: _click.Context,
    message: str,
    conversation_id: str | None,
    json_output: bool,
) -> None:
    """Send MESSAGE and stream the response.

    Text goes to stdout; subagent calls and results go to stderr.
    """
    settings: config.Settings = ctx.obj["settings"]
    if settings.get_default_model() is None:
        raise _click.ClickException(
            "No model configured. Add a `models:` entry to willknow.yaml "
            "or set WILLKNOW_MODELS."
        )

    service: core.ChatService = ctx.obj.get("service") or core.ChatService(settings)

    request = core.ChatRequest(message=message, conversation_id=conversation_id)
    if not _run_async(_run_chat(service, request, json_output)):
        _sys.exit(1)


# =============================================================================
# serve
# =============================================================================


@cli.command()
@_click.option("--host", default=None, help="Bind address (default: server.host)")
@_click.option("--port", type=int, default=None, help="Port (default: server.port)")
@_click.pass_context
def serve(ctx: _click.Context, host: str | None, port: int | None) -> None:
    """Run the HTTP server (POST /api/chat streams Server-Sent Events)."""
    import uvicorn as _uvicorn

    import willknow.server as server

    settings: config.Settings = ctx.obj["settings"]
    app = server.create_app(settings)
    _uvicorn.run(
        app,
        host=host or settings.server.host,
        port=port or settings.server.port,
        log_level="debug" if ctx.obj.get("verbose") else "info",
    )


# =============================================================================
# subagents
# =============================================================================


async def _probe_subagents(
    client: subagents.SubAgentClient,
    configs: list[config.SubAgentConfig],
) -> list[tuple[config.SubAgentConfig, subagents.SubAgentInfo | None, str]]:
    results: list[tuple[config.SubAgentConfig, subagents.SubAgentInfo | None, str]] = []
    try:
        for sa in configs:
            if not sa.enabled:
                results.append((sa, None, "disabled"))
                continue
            try:
                info = await client.discover(sa.url, sa.auth)
            except subagents.SubAgentError as e:
                results.append((sa, None, str(e)))
                continue
            results.append((sa, info, "ok"))
    finally:
        await client.close()
    return results


@cli.command(name="subagents")
@_click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@_click.pass_context
def subagents_cmd(ctx: _click.Context, as_json: bool) -> None:
    """Probe each configured subagent's discovery endpoint."""
    settings: config.Settings = ctx.obj["settings"]
    if not settings.subagents:
        _click.echo("No subagents configured.")
        return

    client: subagents.SubAgentClient = ctx.obj.get("subagent_client") or subagents.SubAgentClient(
        discovery_timeout=settings.timeouts.discovery,
        delegation_timeout=settings.timeouts.delegation,
    )

    results = _run_async(_probe_subagents(client, settings.subagents))

    if as_json:
        payload = [
            {
                "id": sa.id,
                "url": sa.url,
                "tool": tools.tool_name_for(sa.id),
                "status": status,
                "name": info.name if info else None,
                "description": info.description if info else None,
                "capabilities": [c.name for c in info.capabilities] if info else [],
            }
            for sa, info, status in results
        ]
        _click.echo(_json.dumps(payload, indent=2, ensure_ascii=False))
        return

    table = _rich_table.Table(title="Subagents")
    table.add_column("ID")
    table.add_column("Tool")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Capabilities")
    for sa, info, status in results:
        style = "green" if status == "ok" else ("dim" if status == "disabled" else "red")
        table.add_row(
            sa.id,
            tools.tool_name_for(sa.id),
            (info.name if info else None) or sa.name,
            f"[{style}]{status}[/{style}]",
            ", ".join(c.name for c in info.capabilities) if info else "",
        )
    _rich_console.Console().print(table)


# =============================================================================
# config
# =============================================================================


@cli.command(name="config")
@_click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@_click.option("--show-secrets", is_flag=True, help="Do not mask API keys and tokens")
@_click.pass_context
def config_cmd(ctx: _click.Context, as_json: bool, show_secrets: bool) -> None:
    """Show the effective configuration from all sources.

    Secrets are masked unless --show-secrets is given. Unknown keys
    (likely typos) are reported on stderr.
    """
    settings: config.Settings = ctx.obj["settings"]

    full_config = settings.model_dump(mode="json")
    if not show_secrets:
        full_config = _mask_secrets(full_config)

    if as_json:
        _click.echo(_json.dumps(full_config, indent=2, ensure_ascii=False))
    else:
        yaml_text = _yaml.safe_dump(
            full_config, default_flow_style=False, sort_keys=False, allow_unicode=True
        )
        if _sys.stdout.isatty():
            _rich_console.Console().print(
                _rich_syntax.Syntax(yaml_text, "yaml", theme="monokai", background_color="default")
            )
        else:
            _click.echo(yaml_text)

    extras = settings.collect_all_extra_fields()
    for path in sorted(extras):
        _click.echo(f"warning: unknown config key: {path}", err=True)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
