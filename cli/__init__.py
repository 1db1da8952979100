"""Tour Video CLI"""

import logging

import click
from dotenv import load_dotenv
from rich.logging import RichHandler

from .assemble import assemble_stop_cmd
from .cleanup import cleanup_cmd
from .console import console
from .status import status_cmd
from .tour import tour_cmd

# Load .env file at CLI startup
load_dotenv()


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def main(verbose: bool):
    """Tour Video - narrated stop videos from tour data

    \b
    Quick Start:
      tour-video assemble-stop "Eiffel Tower" -d Paris -i https://.../photo.jpg
      tour-video tour Paris --max-stops 3

    \b
    Commands:
      assemble-stop  Build one stop video from image/audio URLs
      tour           Generate a tour and assemble every stop
      status         Show ffmpeg and API key status
      cleanup        Delete old videos from the output directory
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
    )


main.add_command(assemble_stop_cmd, name="assemble-stop")
main.add_command(tour_cmd, name="tour")
main.add_command(status_cmd, name="status")
main.add_command(cleanup_cmd, name="cleanup")


if __name__ == "__main__":
    main()
