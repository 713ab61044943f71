"""Rich console output for the CLI."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.table import Table

from inferconf.config.models import ContextInitParams
from inferconf.domain.compatibility import CacheTypeOption
from inferconf.domain.devices import DeviceOption

console = Console()


def format_flag(value: bool) -> str:
    return "[green]yes[/green]" if value else "[dim]no[/dim]"


def params_table(params: ContextInitParams, title: str = "Context init params") -> Table:
    """Two-column field/value table. Deprecated fields are shown dimmed."""
    table = Table(title=title)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    for name, value in params.model_dump(mode="json").items():
        if name in ("no_gpu_devices", "flash_attn"):
            if value is not None:
                table.add_row(f"[dim]{name}[/dim]", f"[dim]{value} (deprecated)[/dim]")
            continue
        if name == "extras":
            if value:
                table.add_row("[dim]extras[/dim]", f"[dim]{', '.join(sorted(value))}[/dim]")
            continue
        table.add_row(name, "auto" if value is None else str(value))
    return table


def cache_options_table(
    k_options: Sequence[CacheTypeOption],
    v_options: Sequence[CacheTypeOption],
    title: str,
) -> Table:
    """Cache type menu for K and V side by side."""
    table = Table(title=title)
    table.add_column("Cache type", style="bold", no_wrap=True)
    table.add_column("K")
    table.add_column("V")
    table.add_column("Reason", style="dim")

    for k_opt, v_opt in zip(k_options, v_options, strict=True):
        reasons = [r for r in (k_opt.reason, v_opt.reason) if r]
        table.add_row(
            k_opt.label,
            format_flag(not k_opt.disabled),
            format_flag(not v_opt.disabled),
            "; ".join(reasons),
        )
    return table


def device_options_table(options: Sequence[DeviceOption], title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Label", style="bold", no_wrap=True)
    table.add_column("Devices")
    table.add_column("GPU layers", justify="right")
    table.add_column("Flash attn")
    table.add_column("Tag")
    table.add_column("Description", style="dim")

    for option in options:
        valid = "/".join(t.value for t in option.valid_flash_attn_types)
        tag = option.tag or ""
        if option.experimental:
            tag = f"[yellow]{tag}[/yellow]"
        table.add_row(
            option.id,
            option.label,
            ", ".join(option.devices) if option.devices else "auto",
            str(option.n_gpu_layers),
            f"{option.default_flash_attn_type.value} ({valid})",
            tag,
            option.description,
        )
    return table
