"""
claw-chat CLI — `claw-chat` command.

Commands:
  claw-chat config show|set     Client configuration
  claw-chat chat                Interactive REPL chat
  claw-chat send <message>      One-shot message, waits for the reply
  claw-chat history             Print the session transcript
  claw-chat abort|delete|...    Run and transcript maintenance
"""

import asyncio
import logging
from typing import Any, Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install claw-chat[cli]")

from claw_chat.client import AsyncClawChat
from claw_chat.config import ClawChatConfig, load_config
from claw_chat.controller import ChatController
from claw_chat.errors import ConfigError
from claw_chat.models.message import Message, extract_text
from claw_chat.transport.http import HttpTransport

console = Console()

ROLE_STYLES = {"user": "cyan", "assistant": "green", "tool": "magenta", "system": "yellow"}


def _load_config() -> ClawChatConfig:
    try:
        return load_config()
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)


def _get_client(session: Optional[str] = None) -> AsyncClawChat:
    cfg = _load_config()
    if session:
        cfg = cfg.model_copy(update={"session_key": session})
    return AsyncClawChat(cfg)


def _get_controller(session: Optional[str] = None) -> tuple[ChatController, HttpTransport]:
    """Request-only controller over HTTP, for commands that need no event stream."""
    cfg = _load_config()
    transport = HttpTransport(base_url=cfg.gateway_url, token=cfg.token, timeout=cfg.request_timeout)
    return ChatController.from_config(transport, cfg, session_key=session), transport


def _run(coro: Any) -> Any:
    return asyncio.run(coro)


def render_message(message: Message) -> None:
    style = ROLE_STYLES.get(message.role, "white")
    text = extract_text(message)
    if text is None:
        kinds = ", ".join(sorted({block.name or block.type for block in message.content})) or "empty"
        text = f"[{kinds}]"
    prefix = f"[dim]{message.id}[/dim] " if message.id else ""
    console.print(f"{prefix}[{style}]{message.role}:[/{style}] ", end="")
    console.print(text, markup=False, highlight=False)


@click.group()
@click.version_option("0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Log engine activity")
def main(verbose: bool):
    """claw-chat — talk to an agent gateway from the terminal."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(message)s", handlers=[RichHandler(console=console)])


@main.group("config")
def config_group():
    """Client configuration."""


@config_group.command("show")
def config_show():
    """Print the effective configuration."""
    cfg = _load_config()
    for key, value in cfg.model_dump().items():
        if key == "token" and value:
            value = value[:4] + "…"
        console.print(f"[bold]{key}[/bold] = {value}")


@config_group.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str):
    """Set a configuration value."""
    from claw_chat.config import update_config
    try:
        update_config(key, value)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    console.print(f"[green]{key} updated.[/green]")


# Register subcommands from separate modules
from claw_chat.cli.chat import chat_cmd, send_cmd
from claw_chat.cli.history import history_cmd, abort_cmd, delete_cmd, delete_from_cmd, edit_cmd, rerun_cmd

main.add_command(chat_cmd)
main.add_command(send_cmd)
main.add_command(history_cmd)
main.add_command(abort_cmd)
main.add_command(delete_cmd)
main.add_command(delete_from_cmd)
main.add_command(edit_cmd)
main.add_command(rerun_cmd)


if __name__ == "__main__":
    main()
