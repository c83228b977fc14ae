"""
Command-line interface for the interview monitor.

This module provides commands to serve the monitor API and to run a one-off
analysis of a conversation exchange.
"""
import asyncio
import logging
import uuid
from typing import Dict, List, Optional, Tuple

import click
import uvicorn

from interview_monitor.server import build_monitor_service
from interview_monitor.utils.errors import MonitorCycleError

# Configure logging
logger = logging.getLogger(__name__)


def parse_message(raw: str) -> Dict[str, str]:
    """Parse a "role: content" argument into a message dict."""
    role, sep, content = raw.partition(":")
    if not sep or not role.strip() or not content.strip():
        raise click.BadParameter(f"expected 'role: content', got '{raw}'")
    return {"role": role.strip(), "content": content.strip()}


@click.group()
def cli():
    """Interview Monitor - conversation monitoring for AI interviews"""
    pass


@cli.command()
@click.option('--host', default="0.0.0.0", help='Host to bind')
@click.option('--port', default=8000, type=int, help='Port to listen on')
@click.option('--reload', is_flag=True, help='Reload on code changes')
def serve(host: str, port: int, reload: bool) -> None:
    """
    Serve the monitor API with uvicorn.
    """
    uvicorn.run("interview_monitor.server:create_app", factory=True, host=host, port=port, reload=reload)


@cli.command()
@click.argument('messages', nargs=-1, required=True)
@click.option('--session-id', help='Session to analyze in (a new one by default)')
@click.option('--tool', 'tools', multiple=True, help='Enable this tool (repeatable); defaults to the configured set')
def analyze(messages: Tuple[str, ...], session_id: Optional[str] = None, tools: Tuple[str, ...] = ()) -> None:
    """
    Analyze a conversation exchange and print the interviewer instruction.

    Each MESSAGE is given as "role: content", e.g. "user: I have a cat".
    """
    batch: List[Dict[str, str]] = [parse_message(m) for m in messages]
    service = build_monitor_service()
    if tools:
        service.configure_tools(list(tools))

    session_id = session_id or f"cli-{uuid.uuid4().hex[:8]}"
    try:
        result = asyncio.run(service.submit_batch(session_id, batch))
    except MonitorCycleError as e:
        raise click.ClickException(e.instruction)

    for call in result["toolCalls"]:
        status = "ok" if call["success"] else f"failed: {call['error']}"
        click.echo(f"[tool] {call['name']} {call['arguments']} -> {status}")
    click.echo(result["instruction"])


if __name__ == "__main__":
    cli()
