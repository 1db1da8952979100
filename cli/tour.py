"""Tour command - generate a tour, wait for narrations, assemble every stop"""

import asyncio

import click
from rich.panel import Panel
from rich.table import Table
from rich import box

from tour_video.config import get_settings
from tour_video.orchestrator import TourVideoPipeline

from .console import console


@click.command()
@click.argument("destination")
@click.option("--theme", "-t", default=None, help="Tour theme (default: hidden_gems)")
@click.option("--topic", default=None, help="Optional focus topic")
@click.option("--max-stops", "-m", default=5, show_default=True, type=click.IntRange(1, 20),
              help="Stops to wait for and assemble")
@click.option("--share-code", "-s", default=None, help="Use an existing tour instead of creating one")
@click.option("--max-wait", type=float, default=None, help="Seconds to wait for narrations")
@click.option("--combine", is_flag=True, help="Join the stop videos into one tour video")
def tour_cmd(
    destination: str,
    theme: str,
    topic: str,
    max_stops: int,
    share_code: str,
    max_wait: float,
    combine: bool,
):
    """
    Generate a tour for DESTINATION and build one video per stop, or a
    single tour video with --combine.

    Examples:

        tour-video tour Lisbon --max-stops 3

        tour-video tour Kyoto --share-code abc123

        tour-video tour Porto --combine
    """
    settings = get_settings()
    if max_wait is not None:
        settings.poll_max_wait_seconds = max_wait

    console.print(Panel.fit(
        f"[bold blue]Tour Video[/bold blue]\n{destination}"
        + (f" - {topic}" if topic else ""),
        border_style="blue"
    ))

    pipeline = TourVideoPipeline.from_settings(settings)
    run = asyncio.run(pipeline.run(
        destination,
        theme=theme,
        topic=topic,
        max_stops=max_stops,
        share_code=share_code,
        combine=combine,
    ))

    if run.share_code:
        console.print(f"[cyan]Share code:[/cyan] {run.share_code}")
    if not run.ready:
        console.print("[yellow]Tour was not fully ready; used partial data[/yellow]")
    if run.error:
        console.print(f"[yellow]{run.error}[/yellow]")

    if run.results:
        table = Table(title="Stop videos", box=box.ROUNDED)
        table.add_column("#", style="dim")
        table.add_column("Stop", style="cyan")
        table.add_column("Result")
        table.add_column("Duration")
        for i, result in enumerate(run.results, 1):
            if result.success:
                outcome = f"[green]{result.video_path or 'in tour video'}[/green]"
            else:
                outcome = f"[red]{result.error}[/red]"
            duration = f"{result.duration:.1f}s" if result.duration else "-"
            table.add_row(str(i), result.stop_name or "-", outcome, duration)
        console.print(table)

    if run.combined_video:
        console.print(
            f"[green]Tour video:[/green] {run.combined_video} ({run.combined_duration:.1f}s)"
        )

    if not run.videos:
        raise SystemExit(1)
