"""Commands operating on a persisted settings blob."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer

from inferconf.cli.display import console, params_table
from inferconf.cli.options import resolve_platform, resolve_probe
from inferconf.config.loader import (
    dump_context_init_params,
    load_context_init_params_blob,
    save_context_init_params,
)
from inferconf.config.migration import migrate_context_init_params
from inferconf.config.models import Platform, validate_context_init_params
from inferconf.config.user_config import load_user_config
from inferconf.constants import CURRENT_CONTEXT_INIT_PARAMS_VERSION
from inferconf.core.backend import infer_backend_type
from inferconf.core.compatibility import is_cache_type_k_safe, is_cache_type_v_safe
from inferconf.exceptions import InferConfError


def migrate_cmd(
    path: Annotated[Path, typer.Argument(help="Persisted settings file (.json/.yaml)")],
    platform: Annotated[
        Platform | None, typer.Option("--platform", "-p", help="Host platform")
    ] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the migrated settings here")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Print the result as JSON")] = False,
) -> None:
    """Upgrade a settings file of any schema version to the current one."""
    try:
        user_config = load_user_config()
        host = resolve_platform(platform, user_config)
        blob = load_context_init_params_blob(path)
        params = migrate_context_init_params(blob, host)

        if output is not None:
            written = save_context_init_params(params, output)
            console.print(f"[green]Wrote {params.version} settings to {written}[/green]")
            return
    except InferConfError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    if json_output:
        typer.echo(json.dumps(dump_context_init_params(params), indent=2))
        return

    from_version = blob.get("version") or "unversioned"
    console.print(params_table(params, title=f"{path.name}: {from_version} -> {params.version}"))


def check_cmd(
    path: Annotated[Path, typer.Argument(help="Persisted settings file (.json/.yaml)")],
    platform: Annotated[
        Platform | None, typer.Option("--platform", "-p", help="Host platform")
    ] = None,
    probe_file: Annotated[
        Path | None, typer.Option("--probe", help="Device snapshot used as the capability probe")
    ] = None,
) -> None:
    """Check a settings file for cache types that will fail on its backend.

    Exits with status 1 when a combination is unsafe.
    """
    try:
        user_config = load_user_config()
        host = resolve_platform(platform, user_config)
        probe = resolve_probe(probe_file, user_config)
        blob = load_context_init_params_blob(path)
    except InferConfError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    if not validate_context_init_params(blob):
        console.print("[yellow]Settings are incomplete, checking migrated values[/yellow]")
    elif str(blob.get("version")) != CURRENT_CONTEXT_INIT_PARAMS_VERSION:
        console.print(
            f"[yellow]Settings use schema {blob.get('version')}, "
            f"checking migrated values[/yellow]"
        )

    params = migrate_context_init_params(blob, host)
    backend = asyncio.run(
        infer_backend_type(params.devices, host, probe, timeout=user_config.probe_timeout_sec)
    )

    console.print(
        f"Backend: [cyan]{backend.value}[/cyan]  "
        f"flash_attn_type: [cyan]{params.flash_attn_type.value}[/cyan]"
    )

    verdicts = {
        "cache_type_k": is_cache_type_k_safe(params.cache_type_k, params.flash_attn_type, backend),
        "cache_type_v": is_cache_type_v_safe(params.cache_type_v, params.flash_attn_type, backend),
    }
    unsafe = False
    for field_name, verdict in verdicts.items():
        value = getattr(params, field_name).value
        if verdict.safe:
            console.print(f"  [green]✓[/green] {field_name}={value}")
        else:
            unsafe = True
            console.print(f"  [red]✗[/red] {field_name}={value}: {verdict.reason}")

    if unsafe:
        raise typer.Exit(1)
