"""CLI: claw-chat history|abort|delete|delete-from|edit|rerun"""

import json
from typing import Optional

import click
from rich.console import Console

console = Console()


def _get_controller(session: Optional[str] = None):
    from claw_chat.cli.main import _get_controller
    return _get_controller(session)


def _run(coro):
    from claw_chat.cli.main import _run
    return _run(coro)


def _render(message):
    from claw_chat.cli.main import render_message
    render_message(message)


def _report(ok: bool, done: str, chat) -> None:
    if ok:
        console.print(f"[green]{done}[/green]")
    else:
        console.print(f"[red]Failed: {chat.state.last_error or 'not connected'}[/red]")
        raise SystemExit(1)


@click.command("history")
@click.option("-s", "--session", "session_key", default=None)
@click.option("--json-output", "--json", is_flag=True)
def history_cmd(session_key: Optional[str], json_output: bool):
    """Print the session transcript."""

    async def _history():
        chat, transport = _get_controller(session_key)
        try:
            await chat.load_history()
        finally:
            await chat.close()
            await transport.close()
        return chat

    chat = _run(_history())
    state = chat.state
    if state.last_error:
        console.print(f"[red]{state.last_error}[/red]")
        raise SystemExit(1)
    if json_output:
        click.echo(json.dumps([m.to_wire() for m in state.messages], indent=2))
        return
    thinking = f", thinking {state.thinking_level}" if state.thinking_level else ""
    console.print(f"[dim]Session {state.session_key}: {len(state.messages)} messages{thinking}[/dim]")
    for message in state.messages:
        _render(message)


@click.command("abort")
@click.option("-s", "--session", "session_key", default=None)
def abort_cmd(session_key: Optional[str]):
    """Abort every active run in the session."""

    async def _abort():
        chat, transport = _get_controller(session_key)
        try:
            return await chat.abort(), chat
        finally:
            await chat.close()
            await transport.close()

    ok, chat = _run(_abort())
    _report(ok, "Abort requested.", chat)


@click.command("delete")
@click.argument("message_id")
@click.option("-s", "--session", "session_key", default=None)
def delete_cmd(message_id: str, session_key: Optional[str]):
    """Delete one message."""

    async def _delete():
        chat, transport = _get_controller(session_key)
        try:
            return await chat.delete_message(message_id), chat
        finally:
            await chat.close()
            await transport.close()

    ok, chat = _run(_delete())
    _report(ok, f"Message {message_id} deleted.", chat)


@click.command("delete-from")
@click.argument("message_id")
@click.option("-s", "--session", "session_key", default=None)
def delete_from_cmd(message_id: str, session_key: Optional[str]):
    """Delete a message and everything after it."""

    async def _delete_from():
        chat, transport = _get_controller(session_key)
        try:
            return await chat.delete_from_message(message_id), chat
        finally:
            await chat.close()
            await transport.close()

    ok, chat = _run(_delete_from())
    _report(ok, f"Deleted from {message_id} onwards.", chat)


@click.command("edit")
@click.argument("message_id")
@click.argument("content")
@click.option("--rerun", is_flag=True, help="Regenerate the reply after editing")
@click.option("-s", "--session", "session_key", default=None)
def edit_cmd(message_id: str, content: str, rerun: bool, session_key: Optional[str]):
    """Edit a user message."""

    async def _edit():
        chat, transport = _get_controller(session_key)
        try:
            return await chat.edit_message(message_id, content, rerun=rerun), chat
        finally:
            await chat.close()
            await transport.close()

    run_id, chat = _run(_edit())
    _report(chat.state.last_error is None, f"Edited {message_id}" + (f", run {run_id}" if run_id else "") + ".", chat)


@click.command("rerun")
@click.argument("message_id")
@click.option("-s", "--session", "session_key", default=None)
def rerun_cmd(message_id: str, session_key: Optional[str]):
    """Regenerate the reply to a user message."""

    async def _rerun():
        chat, transport = _get_controller(session_key)
        try:
            return await chat.rerun_from_message(message_id), chat
        finally:
            await chat.close()
            await transport.close()

    run_id, chat = _run(_rerun())
    _report(run_id is not None, f"Run {run_id} started.", chat)
