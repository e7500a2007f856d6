"""CLI: claw-chat chat, claw-chat send"""

import asyncio
import json
from typing import Optional

import click
from rich.console import Console

console = Console()

REPL_HELP = "/abort  /history  /rerun ID  /delete ID  /session KEY  /quit"


def _get_client(session: Optional[str] = None):
    from claw_chat.cli.main import _get_client
    return _get_client(session)


def _run(coro):
    from claw_chat.cli.main import _run
    return _run(coro)


def _render(message):
    from claw_chat.cli.main import render_message
    render_message(message)


def _load_attachments(paths):
    from claw_chat.models.message import Attachment
    return [Attachment.from_path(p) for p in paths]


async def _wait_for_reply(client, seen: int, timeout: float) -> None:
    """Wait for the active run to end, then print whatever it added."""
    with console.status("Thinking..."):
        finished = await client.chat.wait_idle(timeout)
    if not finished:
        console.print("[yellow]Still running; use /abort to stop it.[/yellow]")
        return
    for message in client.state.messages[seen:]:
        if message.role != "user":
            _render(message)
    if client.state.last_error:
        console.print(f"[red]{client.state.last_error}[/red]")


@click.command("chat")
@click.option("-s", "--session", "session_key", default=None)
@click.option("--timeout", default=300.0, type=float, help="Seconds to wait for each reply")
def chat_cmd(session_key: Optional[str], timeout: float):
    """Interactive chat with the gateway agent."""

    async def _chat():
        client = _get_client(session_key)
        with console.status("Connecting..."):
            await client.connect()
        state = client.state
        console.print(f"[dim]Session: {state.session_key} ({len(state.messages)} messages)[/dim]")
        console.print(f"[cyan]Type your message. Commands: {REPL_HELP}[/cyan]\n")
        try:
            while True:
                msg = await asyncio.to_thread(click.prompt, "You", prompt_suffix=": ")
                command, _, arg = msg.strip().partition(" ")
                if command in ("/quit", "/exit"):
                    break
                if command == "/abort":
                    if not await client.abort():
                        console.print(f"[red]{client.state.last_error}[/red]")
                    continue
                if command == "/history":
                    await client.load_history()
                    for message in client.state.messages:
                        _render(message)
                    continue
                if command == "/session" and arg:
                    await client.switch_session(arg)
                    console.print(f"[dim]Session: {arg} ({len(client.state.messages)} messages)[/dim]")
                    continue
                if command == "/delete" and arg:
                    if not await client.delete_message(arg):
                        console.print(f"[red]{client.state.last_error}[/red]")
                    continue
                seen = len(client.state.messages)
                if command == "/rerun" and arg:
                    run_id = await client.rerun_from_message(arg)
                    seen = max(len(client.state.messages) - 1, 0)
                else:
                    run_id = await client.submit(msg)
                if run_id is None:
                    if client.state.queue:
                        console.print(f"[dim]Queued ({len(client.state.queue)} waiting).[/dim]")
                    elif client.state.last_error:
                        console.print(f"[red]{client.state.last_error}[/red]")
                    continue
                await _wait_for_reply(client, seen, timeout)
        except (KeyboardInterrupt, EOFError, click.Abort):
            pass
        finally:
            await client.disconnect()

    _run(_chat())


@click.command("send")
@click.argument("message")
@click.option("-s", "--session", "session_key", default=None)
@click.option("-a", "--attach", "attach", multiple=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--timeout", default=300.0, type=float)
@click.option("--json-output", "--json", is_flag=True)
def send_cmd(message: str, session_key: Optional[str], attach: tuple[str, ...], timeout: float, json_output: bool):
    """Send a one-shot message and print the reply."""

    async def _send():
        client = _get_client(session_key)
        await client.connect()
        try:
            reply = await client.send_and_wait(message, _load_attachments(attach), timeout=timeout)
            return reply, client.state.last_error
        finally:
            await client.disconnect()

    reply, error = _run(_send())
    if json_output:
        click.echo(json.dumps({"reply": reply.to_wire() if reply else None, "error": error}))
        return
    if reply is not None:
        _render(reply)
    if error:
        console.print(f"[red]{error}[/red]")
        raise SystemExit(1)
