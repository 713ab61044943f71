"""Commands describing backends and devices."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from inferconf.cli.display import cache_options_table, console, device_options_table
from inferconf.cli.options import resolve_platform, resolve_probe
from inferconf.config.models import BackendType, FlashAttnType, Platform
from inferconf.config.user_config import load_user_config
from inferconf.core.compatibility import (
    V_CACHE_RULES,
    get_allowed_cache_type_k_options,
    get_allowed_cache_type_v_options,
)
from inferconf.core.devices import get_device_options, get_recommended_device_id
from inferconf.exceptions import InferConfError


def matrix_cmd(
    backend: Annotated[
        BackendType | None, typer.Option("--backend", "-b", help="Show the menu for one backend")
    ] = None,
    flash_attn: Annotated[
        FlashAttnType | None,
        typer.Option("--flash-attn", "-f", help="Show the menu for one flash attention mode"),
    ] = None,
) -> None:
    """Show which KV cache types are safe per flash attention mode and backend.

    With both --backend and --flash-attn, prints the cache type menu for that
    combination. Otherwise prints the quantized V cache rule for every
    matching combination.
    """
    if backend is not None and flash_attn is not None:
        console.print(
            cache_options_table(
                get_allowed_cache_type_k_options(flash_attn, backend),
                get_allowed_cache_type_v_options(flash_attn, backend),
                title=f"Cache types: flash_attn={flash_attn.value}, backend={backend.value}",
            )
        )
        return

    table = Table(title="Quantized V cache compatibility")
    table.add_column("Flash attn", style="cyan", no_wrap=True)
    table.add_column("Backend", style="cyan", no_wrap=True)
    table.add_column("Quantized V", no_wrap=True)
    table.add_column("Reason", style="dim")

    for (fa_type, backend_type), reason in V_CACHE_RULES.items():
        if flash_attn is not None and fa_type != flash_attn:
            continue
        if backend is not None and backend_type != backend:
            continue
        verdict = "[green]safe[/green]" if reason is None else "[red]unsafe[/red]"
        table.add_row(fa_type.value, backend_type.value, verdict, reason or "")

    console.print(table)
    console.print("[dim]F16/F32 are safe everywhere; K cache types are always safe.[/dim]")


def devices_cmd(
    platform: Annotated[
        Platform | None, typer.Option("--platform", "-p", help="Host platform")
    ] = None,
    probe_file: Annotated[
        Path | None, typer.Option("--probe", help="Device snapshot used as the capability probe")
    ] = None,
) -> None:
    """List the device options offered on a platform."""
    try:
        user_config = load_user_config()
        host = resolve_platform(platform, user_config)
        probe = resolve_probe(probe_file, user_config)
    except InferConfError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    options = asyncio.run(get_device_options(host, probe, timeout=user_config.probe_timeout_sec))
    console.print(device_options_table(options, title=f"Device options ({host.value})"))
    console.print(f"[dim]Recommended: {get_recommended_device_id(host)}[/dim]")
