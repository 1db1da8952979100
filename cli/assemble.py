"""Assemble-stop command - build one stop video from its URLs"""

import asyncio
import json

import click
from rich.table import Table
from rich import box

from tour_video.config import get_settings
from tour_video.models.render import AssemblyOptions, AssemblyResult, EncodeStrategy, OutputFormat
from tour_video.models.stop import StopDescriptor
from tour_video.orchestrator import assemble_stop_video

from .console import console


def print_result(result: AssemblyResult) -> None:
    """Render an AssemblyResult as a small table"""
    table = Table(box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    status = "[green]OK[/green]" if result.success else "[red]FAILED[/red]"
    table.add_row("Stop", result.stop_name or "-")
    table.add_row("Status", status)
    if result.video_path:
        table.add_row("Video", result.video_path)
    if result.duration is not None:
        table.add_row("Duration", f"{result.duration:.1f}s")
    if result.strategy:
        table.add_row("Strategy", result.strategy)
    if result.error:
        table.add_row("Error", f"[red]{result.error}[/red]")
    for warning in result.warnings:
        table.add_row("Warning", f"[yellow]{warning}[/yellow]")

    console.print(table)


@click.command()
@click.argument("name")
@click.option("--destination", "-d", default="", help="Tour destination (used for fallback images)")
@click.option("--description", default="", help="Stop description")
@click.option("--narration", "-n", "narration_text", help="Narration text to synthesize if no audio URL")
@click.option("--image", "-i", "images", multiple=True, help="Image URL (repeatable, max 6)")
@click.option("--audio", "-a", "audio_url", help="Narration audio URL or data: URI")
@click.option("--seconds-per-image", type=float, help="Target seconds per image")
@click.option("--max-duration", type=float, help="Maximum video length in seconds")
@click.option("--format", "output_format", type=click.Choice(["portrait", "square"]), help="Frame shape")
@click.option("--strategy", type=click.Choice(["segments", "xfade"]), help="Encode strategy")
@click.option("--json", "as_json", is_flag=True, help="Output result as JSON")
def assemble_stop_cmd(
    name: str,
    destination: str,
    description: str,
    narration_text: str,
    images: tuple,
    audio_url: str,
    seconds_per_image: float,
    max_duration: float,
    output_format: str,
    strategy: str,
    as_json: bool,
):
    """
    Build a narrated video for a single stop.

    NAME is the stop name.

    Examples:

        tour-video assemble-stop "Louvre" -d Paris -i https://example.com/a.jpg

        # No images: falls back to generated/stock images
        tour-video assemble-stop "Old Town Square" -d Prague -n "Welcome to..."
    """
    settings = get_settings()
    defaults = settings.assembly_options()
    options = AssemblyOptions(
        max_duration_seconds=max_duration or defaults.max_duration_seconds,
        seconds_per_image=seconds_per_image or defaults.seconds_per_image,
        transition_duration=defaults.transition_duration,
        output_format=OutputFormat(output_format) if output_format else defaults.output_format,
        strategy=EncodeStrategy(strategy) if strategy else defaults.strategy,
    )
    stop = StopDescriptor(
        name=name,
        description=description,
        narration_text=narration_text,
        image_urls=list(images),
        audio_url=audio_url,
    )

    if not as_json:
        console.print(f"[cyan]Assembling:[/cyan] {name} ({len(images)} image URL(s))")

    result = asyncio.run(assemble_stop_video(stop, destination, options, settings=settings))

    if as_json:
        click.echo(json.dumps({
            "success": result.success,
            "video_path": result.video_path,
            "error": result.error,
            "duration": result.duration,
            "stop_name": result.stop_name,
            "strategy": result.strategy,
            "warnings": result.warnings,
        }, indent=2))
    else:
        print_result(result)

    if not result.success:
        raise SystemExit(1)
