"""UI rendering and terminal utilities for the admin CLI."""

import logging
import sys
from typing import TYPE_CHECKING

from convstore.models import (
    AssistantFileDataPart,
    AssistantMessage,
    AssistantPart,
    AssistantTextPart,
    ConversationHistory,
    UserFileDataPart,
    UserMessage,
    UserPart,
    UserTextPart,
)

if TYPE_CHECKING:
    from rich.console import RenderableType


def is_terminal() -> bool:
    """Checks if stdout is a TTY."""
    return sys.stdout.isatty()


def configure_logging(verbose: bool) -> None:
    """Routes library logging to stderr through rich."""
    from rich.console import Console
    from rich.logging import RichHandler

    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=verbose)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


def describe_part(part: UserPart | AssistantPart) -> str:
    match part:
        case UserTextPart(text=text):
            return text
        case AssistantTextPart(thought=True, text=text):
            return f"(thought) {text}"
        case AssistantTextPart(text=text):
            return text
        case UserFileDataPart(video_metadata=vm) if vm is not None:
            clip = f"{vm.start_offset}-{vm.end_offset}"
            if vm.fps is not None:
                clip += f" @ {vm.fps:g} fps"
            return f"[file] {part.display_name} ({part.mime_type}, {part.storage_key}, {clip})"
        case UserFileDataPart() | AssistantFileDataPart():
            return f"[file] {part.display_name} ({part.mime_type}, {part.storage_key})"


def render_history(history: ConversationHistory) -> "RenderableType":
    """Builds a rich table with one row per message in storage order."""
    from rich.markup import escape
    from rich.table import Table
    from rich.text import Text

    table = Table(title=f"{escape(history.source_id)} (generation {history.generation})", show_lines=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Role")
    table.add_column("Author")
    table.add_column("Timestamp", style="dim")
    table.add_column("Content")

    for i, message in enumerate(history.messages):
        match message:
            case UserMessage():
                author = Text(message.user_id)
                if message.message_id:
                    _ = author.append(f"\n{message.message_id}", style="dim")
                role = "[cyan]user[/cyan]"
            case AssistantMessage():
                author = Text(message.model_name)
                role = "[green]assistant[/green]"
        content = "\n".join(describe_part(p) for p in message.parts)
        table.add_row(str(i), role, author, message.timestamp.isoformat(), Text(content))
    return table
