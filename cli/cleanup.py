"""Cleanup command - remove old stop videos"""

import click

from tour_video.config import get_settings
from tour_video.orchestrator import cleanup_old_videos

from .console import console


@click.command()
@click.option("--output-dir", "-o", type=click.Path(file_okay=False), help="Directory to clean (default: configured output dir)")
@click.option("--max-age-hours", default=24.0, show_default=True, type=float, help="Delete videos older than this")
def cleanup_cmd(output_dir: str, max_age_hours: float):
    """Delete generated videos older than --max-age-hours"""
    directory = output_dir or get_settings().output_dir
    removed = cleanup_old_videos(directory, max_age_hours=max_age_hours)
    console.print(f"[green]Removed {removed} video(s)[/green] from {directory}")
