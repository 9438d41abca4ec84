"""
policygate CLI

Command-line interface for the gateway.

Commands:
    policygate serve                    Start the gateway API server
    policygate check                    Validate the config file
    policygate policies [--json]        List configured policies
    policygate tools                    Connect to the servers and list advertised tools
    policygate apply TOOL RESULT_FILE   Run a tool's policy over a saved result

Every command takes --config (default: $POLICYGATE_CONFIG or ./config.json).
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any

import click

from policygate import __version__
from policygate.exceptions import ConfigError, DownstreamError, ExtractionTypeError, PolicyError
from policygate.gateway.config import GatewayConfig, load_config
from policygate.policy.models import thaw

_config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Config file (default: $POLICYGATE_CONFIG or ./config.json)",
)


@click.group()
@click.version_option(version=__version__, prog_name="policygate")
def cli() -> None:
    """policygate: Policy-Mediating Gateway for MCP Tools"""


@cli.command()
@_config_option
@click.option("--host", default=None, help="Bind address (overrides config)")
@click.option("--port", default=None, type=int, help="Port number (overrides config)")
def serve(config_path: str | None, host: str | None, port: int | None) -> None:
    """Start the gateway API server."""
    import uvicorn

    from policygate.api.server import create_app
    from policygate.gateway.service import PolicyGateway
    from policygate.logging import configure_logging

    config = _load(config_path)
    configure_logging(level=config.log_level, json_output=config.log_json)
    bind_host = host or config.server.host
    bind_port = port or config.server.port

    _print_header("policygate API Server")
    click.echo(f"  Config: {config.source}")
    click.echo(f"  Servers: {', '.join(config.servers) or 'none'}")
    click.echo(f"  Binding: {bind_host}:{bind_port}")
    click.echo()

    app = create_app(gateway=PolicyGateway.from_config(config))
    uvicorn.run(app, host=bind_host, port=bind_port, log_level=config.log_level.lower())


@cli.command()
@_config_option
def check(config_path: str | None) -> None:
    """Validate the config file and summarize it."""
    config = _load(config_path)
    store = config.build_store()

    _print_header("Configuration OK")
    click.echo(f"  File: {config.source}")
    click.echo(f"  Servers: {len(config.servers)}")
    for name, server in config.servers.items():
        click.echo(f"    {name:20s} {' '.join([server.command, *server.args])}")
    if config.allowed_tools is None:
        click.echo("  Allowed tools: all")
    else:
        click.echo(f"  Allowed tools: {', '.join(config.allowed_tools) or 'none'}")
    click.echo(f"  Policies: {len(store)}")
    click.echo(f"  Listen: {config.server.host}:{config.server.port}")


@cli.command()
@_config_option
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def policies(config_path: str | None, json_output: bool) -> None:
    """List the configured policies."""
    store = _load(config_path).build_store()

    if json_output:
        click.echo(json.dumps([p.model_dump(mode="json", by_alias=True) for p in store], indent=2))
        return

    _print_header("Policies")
    if not len(store):
        click.echo("  No policies configured.")
        return
    for p in store:
        rf = p.response_filter
        overrides = ", ".join(f"{k}={v!r}" for k, v in thaw(p.params_filter).items()) or "-"
        contains = ", ".join(rf.contains) or "(all)"
        click.echo(f"  {p.tool_name}")
        click.echo(f"    overrides: {overrides}")
        click.echo(f"    path:      {rf.path}")
        click.echo(f"    contains:  {contains}")
        click.echo(f"    convert:   {rf.convert_results.value}")


@cli.command()
@_config_option
def tools(config_path: str | None) -> None:
    """Connect to the downstream servers and list the advertised tools."""
    from policygate.gateway.service import PolicyGateway

    config = _load(config_path)
    gateway = PolicyGateway.from_config(config)

    async def _list() -> list[Any]:
        await gateway.start()
        try:
            return gateway.list_tools()
        finally:
            await gateway.stop()

    try:
        advertised = asyncio.run(_list())
    except DownstreamError as e:
        raise click.ClickException(str(e)) from e

    _print_header("Advertised Tools")
    if not advertised:
        click.echo("  No tools advertised.")
        return
    for tool in advertised:
        marker = "*" if gateway.engine.has_policy(tool.name) else " "
        click.echo(f"  {marker} {tool.name:28s} [{tool.server}] {tool.description[:60]}")
    click.echo("\n  * = policy applied")


@cli.command()
@_config_option
@click.argument("tool_name")
@click.argument("result_file", type=click.File("r"))
@click.option("--arguments", "arguments_json", default=None, help="Call arguments as a JSON object")
def apply(config_path: str | None, tool_name: str, result_file: Any, arguments_json: str | None) -> None:
    """Run TOOL_NAME's policy over a saved result (JSON file, or - for stdin)."""
    from policygate.policy.engine import PolicyEngine

    config = _load(config_path)
    engine = PolicyEngine(config.build_store(), remove_tags=config.remove_tags)

    try:
        result = json.load(result_file)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"result file is not valid JSON: {e}") from e

    output: dict[str, Any] = {"tool": tool_name, "policy": engine.has_policy(tool_name)}
    if arguments_json is not None:
        try:
            arguments = json.loads(arguments_json)
        except json.JSONDecodeError as e:
            raise click.ClickException(f"--arguments is not valid JSON: {e}") from e
        if not isinstance(arguments, dict):
            raise click.ClickException("--arguments must be a JSON object")
        output["arguments"] = dict(engine.apply_input_policy(tool_name, arguments))

    try:
        rendered = engine.apply_response_policy(tool_name, result)
    except (PolicyError, ExtractionTypeError) as e:
        raise click.ClickException(str(e)) from e

    if output["policy"]:
        output["result"] = {"content": [item.to_wire() for item in rendered]}
    else:
        output["result"] = rendered
    click.echo(json.dumps(output, indent=2, ensure_ascii=False))


def _load(config_path: str | None) -> GatewayConfig:
    try:
        return load_config(config_path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _print_header(title: str) -> None:
    """Print a formatted header."""
    click.echo(f"\n  {'=' * 60}")
    click.echo(f"  {title}")
    click.echo(f"  {'=' * 60}\n")


if __name__ == "__main__":
    cli()
