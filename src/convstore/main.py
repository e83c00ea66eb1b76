from collections.abc import Sequence
from pathlib import Path
from sys import exit
from typing import Annotated, Any, final, override

import typer
from typer.core import TyperGroup

from convstore.config import StoreConfig, load_config
from convstore.exceptions import ConvstoreError


@final
class ConvstoreGroup(TyperGroup):
    @override
    def main(  # pyright: ignore[reportAny]
        self,
        args: Sequence[str] | None = None,
        prog_name: str | None = None,
        complete_var: str | None = None,
        standalone_mode: bool = True,
        windows_expand_args: bool = True,
        **extra: Any,  # pyright: ignore[reportAny, reportExplicitAny]
    ) -> Any:  # pyright: ignore[reportExplicitAny]
        try:
            return super().main(args, prog_name, complete_var, standalone_mode, windows_expand_args, **extra)  #  pyright: ignore[reportAny]
        except ConvstoreError as e:
            typer.secho(f"Error: {e.message}", err=True, fg=typer.colors.RED)
            exit(e.exit_code)
        except Exception as e:
            typer.secho("Unexpected Internal Error", err=True, fg=typer.colors.RED)
            typer.echo(str(e), err=True)
            exit(1)


app = typer.Typer(cls=ConvstoreGroup, no_args_is_help=True)


@app.callback()
def root(
    ctx: typer.Context,
    backend: Annotated[
        str | None,
        typer.Option(help="Storage backend: gcs, local or memory. Defaults to $CONVSTORE_BACKEND or local."),
    ] = None,
    bucket: Annotated[str | None, typer.Option(help="GCS bucket holding the histories.")] = None,
    project: Annotated[str | None, typer.Option(help="GCP project for the storage client.")] = None,
    local_root: Annotated[
        Path | None, typer.Option(help="Root directory of the local backend.", file_okay=False)
    ] = None,
    timeout_ms: Annotated[int | None, typer.Option(help="Per-operation storage timeout in milliseconds.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    """
    Inspect and maintain stored conversation histories.
    """
    from convstore.console import configure_logging

    configure_logging(verbose)
    ctx.obj = load_config(
        backend=backend,
        bucket=bucket,
        project=project,
        local_root=str(local_root) if local_root is not None else None,
        storage_timeout_ms=timeout_ms,
    )


def _config(ctx: typer.Context) -> StoreConfig:
    match ctx.obj:
        case StoreConfig() as config:
            return config
        case _:
            return load_config()


@app.command("show")
def show(
    ctx: typer.Context,
    source_id: Annotated[str, typer.Argument(help="Conversation source identifier.")],
    json_output: Annotated[bool, typer.Option("--json", help="Output the history as JSON.")] = False,
) -> None:
    """
    Display the stored history of a source.
    """
    from convstore.commands import show

    show.show(_config(ctx), source_id, json_output)


@app.command("dump")
def dump(
    ctx: typer.Context,
    source_id: Annotated[str, typer.Argument(help="Conversation source identifier.")],
) -> None:
    """
    Print the history of a source as JSON Lines.
    """
    from convstore.commands import dump

    dump.dump(_config(ctx), source_id)


@app.command("append")
def append(
    ctx: typer.Context,
    source_id: Annotated[str, typer.Argument(help="Conversation source identifier.")],
    text: Annotated[str, typer.Argument(help="Text of the user message.")],
    user_id: Annotated[str, typer.Option("--user-id", help="Sender of the user message.")],
    message_id: Annotated[str, typer.Option("--message-id", help="Platform message identifier.")] = "",
    reply: Annotated[str | None, typer.Option("--reply", help="Assistant reply to append after it.")] = None,
    model: Annotated[str, typer.Option("--model", help="Model name recorded on the reply.")] = "manual",
) -> None:
    """
    Append a user message, and optionally an assistant reply, to a history.
    """
    from convstore.commands import append

    append.append(_config(ctx), source_id, text, user_id=user_id, message_id=message_id, reply=reply, model=model)


@app.command("migrate-legacy")
def migrate_legacy(
    ctx: typer.Context,
    source_id: Annotated[str, typer.Argument(help="Conversation source identifier.")],
    user_id: Annotated[str, typer.Option("--user-id", help="User id recorded on migrated user messages.")] = "",
    model: Annotated[str, typer.Option("--model", help="Model name recorded on migrated replies.")] = "unknown",
) -> None:
    """
    Convert a legacy <source>.jsonl history into the current format.
    """
    from convstore.commands import migrate_legacy

    migrate_legacy.migrate_legacy(_config(ctx), source_id, user_id=user_id, model=model)


@app.command("sign-url")
def sign_url(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Object key to sign.")],
    method: Annotated[str, typer.Option(help="HTTP method the URL is valid for.")] = "GET",
    ttl: Annotated[int, typer.Option(help="Validity in seconds.", min=1)] = 900,
) -> None:
    """
    Issue a time-limited URL for an object.
    """
    from convstore.commands import sign_url

    sign_url.sign_url(_config(ctx), key, method=method, ttl_seconds=ttl)
