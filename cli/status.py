"""System status command"""

import asyncio
import json

import click
from rich.panel import Panel
from rich.table import Table
from rich import box

from tour_video.config import get_settings
from tour_video.encoder import check_ffmpeg_installed
from tour_video.secrets import KNOWN_KEYS, list_api_keys

from .console import console


def get_status_dict() -> dict:
    """Get status as dictionary for JSON output"""
    settings = get_settings()
    keys = list_api_keys()
    if settings.turai_api_key and keys.get("TURAI_API_KEY") == "not_set":
        keys["TURAI_API_KEY"] = "settings"

    return {
        "ffmpeg": asyncio.run(check_ffmpeg_installed()),
        "keys": keys,
        "turai_api_url": settings.turai_api_url,
        "output_dir": settings.output_dir,
        "temp_dir": settings.temp_dir,
    }


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def status_cmd(as_json: bool):
    """Show ffmpeg availability and which API keys are configured"""
    status = get_status_dict()

    if as_json:
        click.echo(json.dumps(status, indent=2))
        return

    console.print(Panel.fit(
        "[bold blue]Tour Video[/bold blue]\n"
        "Narrated stop video pipeline",
        border_style="blue"
    ))

    ffmpeg = status["ffmpeg"]
    tools = Table(title="Tools", box=box.ROUNDED)
    tools.add_column("Tool", style="cyan")
    tools.add_column("Status")
    if ffmpeg["installed"]:
        tools.add_row("ffmpeg", f"[green]✓[/green] {ffmpeg['version']}")
    else:
        tools.add_row("ffmpeg", f"[red]✗ {ffmpeg.get('error', 'not found')}[/red]")
    tools.add_row(
        "ffprobe",
        f"[green]✓[/green] {ffmpeg['ffprobe']}" if ffmpeg.get("ffprobe") else "[yellow]not found (mutagen only)[/yellow]",
    )
    console.print(tools)

    keys = Table(title="Configuration", box=box.ROUNDED)
    keys.add_column("Key", style="cyan")
    keys.add_column("Status")
    keys.add_column("Used for", style="dim")
    for key, source in status["keys"].items():
        label = "[red]✗ Missing[/red]" if source == "not_set" else f"[green]✓ Set[/green] ({source})"
        keys.add_row(key, label, KNOWN_KEYS.get(key, ""))
    console.print(keys)

    console.print(f"Turai API: {status['turai_api_url']}")
    console.print(f"Output dir: {status['output_dir']}")
