"""
Video Assembly Orchestrator

Runs one stop through the pipeline:

    resolve images -> resolve narration -> compose timeline -> encode -> clean up

Asset failures degrade the output (fewer images, silent video) until there
are no images left, which is fatal. Encoder errors that survive the
single-image fallback are reported verbatim. Nothing raised inside a run
crosses assemble(); the caller always gets an AssemblyResult, and on
success only the output MP4 remains on disk.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import aiohttp

from .config import Settings, get_settings
from .download import Downloader, remove_quietly, unique_temp_path
from .encoder import EncodeError, FFmpegEncoder
from .fetcher import AssetFetcher
from .models.render import AssemblyOptions, AssemblyResult, RenderConfig
from .models.stop import StopAsset, StopDescriptor
from .poller import ReadinessPolicy, ReadinessPoller
from .providers.audio import ElevenLabsProvider, TuraiTTSProvider
from .providers.base import AudioProviderConfig, ImageProviderConfig
from .providers.image import LoremFlickrProvider, PollinationsProvider, TuraiPostcardProvider
from .providers.tour import TourSourceError, TuraiTourSource
from .secrets import get_api_key
from .timeline import NoAssetsAvailable, compute_timeline

logger = logging.getLogger(__name__)


class StopVideoAssembler:
    """
    Assembles a single stop video.

    Args:
        fetcher: Asset fetcher for downloads and provider chains
        encoder: FFmpeg encoder
        output_dir: Where finished videos are written
    """

    def __init__(
        self,
        fetcher: AssetFetcher,
        encoder: FFmpegEncoder,
        output_dir: Union[str, Path] = "artifacts/videos",
    ):
        self.fetcher = fetcher
        self.encoder = encoder
        self.output_dir = Path(output_dir)

    async def _resolve_images(self, stop: StopDescriptor, destination: str, limit: int) -> List[Path]:
        images = await self.fetcher.download_stop_images(stop.image_urls, limit=limit)
        if images:
            logger.info(f"{stop.name}: {len(images)} stop image(s)")
            return images

        if stop.image_urls:
            logger.warning(f"{stop.name}: none of {len(stop.image_urls)} stop images usable, using providers")
        fallback = await self.fetcher.fetch_image(stop.name, destination)
        return [fallback] if fallback else []

    async def _resolve_narration(self, stop: StopDescriptor) -> Optional[Path]:
        audio = await self.fetcher.download_audio(stop.audio_url)
        if audio:
            return audio
        return await self.fetcher.fetch_narration(stop.spoken_text)

    async def assemble(
        self,
        stop: StopDescriptor,
        destination: str = "",
        options: Optional[AssemblyOptions] = None,
    ) -> AssemblyResult:
        """
        Build the video for one stop.

        Returns:
            AssemblyResult; error is "NoAssetsAvailable" when no image could
            be obtained, or the encoder's message when encoding failed
        """
        options = options or AssemblyOptions()
        asset = StopAsset(
            name=stop.name,
            description=stop.description,
            narration_text=stop.narration_text,
        )
        warnings: List[str] = []
        output_path: Optional[Path] = None
        succeeded = False

        logger.info(f"Assembling stop video: {stop.name}")
        try:
            asset.image_paths = await self._resolve_images(stop, destination, options.max_images)
            if not asset.image_paths:
                logger.warning(f"{stop.name}: no images available")
                return AssemblyResult(success=False, error="NoAssetsAvailable", stop_name=stop.name)

            asset.audio_path = await self._resolve_narration(stop)
            if asset.audio_path is not None:
                asset.audio_duration = await self.encoder.probe_duration(asset.audio_path)
                if not asset.audio_duration:
                    warnings.append("Narration duration unreadable; rendering without audio")
            else:
                warnings.append("No narration available; video is silent")

            timeline = compute_timeline(
                asset.image_paths,
                asset.audio_duration,
                seconds_per_image=options.seconds_per_image,
                max_duration=options.max_duration_seconds,
                transition_duration=options.transition_duration,
                max_images=options.max_images,
            )

            output_path = unique_temp_path(self.output_dir, f"stop_{stop.index}", "mp4")
            outcome = await self.encoder.encode(
                timeline,
                asset.audio_path if timeline.has_audio else None,
                output_path,
                strategy=options.strategy,
            )
            if outcome.fell_back:
                warnings.append(f"Fell back to single image: {outcome.fallback_reason}")

            succeeded = True
            logger.info(f"{stop.name}: video ready ({outcome.duration:.1f}s, {outcome.strategy.value})")
            return AssemblyResult(
                success=True,
                video_path=outcome.output_path,
                duration=outcome.duration,
                stop_name=stop.name,
                strategy=outcome.strategy.value,
                has_audio=timeline.has_audio,
                warnings=warnings,
            )

        except NoAssetsAvailable:
            return AssemblyResult(success=False, error="NoAssetsAvailable", stop_name=stop.name)
        except EncodeError as e:
            logger.error(f"{stop.name}: encode failed: {e}")
            return AssemblyResult(success=False, error=str(e), stop_name=stop.name, warnings=warnings)
        except Exception as e:
            logger.exception(f"{stop.name}: assembly failed")
            return AssemblyResult(success=False, error=f"{type(e).__name__}: {e}", stop_name=stop.name)
        finally:
            for path in asset.temp_files():
                remove_quietly(path)
            if not succeeded:
                remove_quietly(output_path)


def build_fetcher(
    settings: Settings,
    session: Optional[aiohttp.ClientSession] = None,
    render_config: Optional[RenderConfig] = None,
) -> AssetFetcher:
    """Wire the default provider chains from settings."""
    render_config = render_config or settings.render_config()
    turai_key = settings.turai_api_key or get_api_key("TURAI_API_KEY")

    image_providers = [
        TuraiPostcardProvider(
            ImageProviderConfig(
                api_key=turai_key,
                base_url=settings.turai_api_url,
                timeout=settings.http_timeout_seconds,
            ),
            session=session,
        ),
        PollinationsProvider(session=session),
        LoremFlickrProvider(session=session),
    ]
    audio_providers = [
        ElevenLabsProvider(
            voice_id=settings.elevenlabs_voice_id,
            session=session,
            timeout=settings.http_timeout_seconds * 2,
        ),
        TuraiTTSProvider(
            AudioProviderConfig(
                api_key=turai_key,
                base_url=settings.turai_api_url,
                timeout=settings.http_timeout_seconds * 2,
            ),
            session=session,
        ),
    ]
    downloader = Downloader(
        Path(settings.temp_dir),
        timeout=settings.http_timeout_seconds,
        session=session,
    )
    return AssetFetcher(
        downloader,
        image_providers=image_providers,
        audio_providers=audio_providers,
        base_url=settings.turai_api_url,
        min_image_bytes=settings.min_image_bytes,
        min_audio_bytes=settings.min_audio_bytes,
        width=render_config.output_width,
        height=render_config.output_height,
    )


def build_assembler(
    settings: Optional[Settings] = None,
    options: Optional[AssemblyOptions] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> StopVideoAssembler:
    settings = settings or get_settings()
    options = options or settings.assembly_options()
    render_config = settings.render_config(options.output_format)
    render_config.max_clip_seconds = options.seconds_per_image
    return StopVideoAssembler(
        fetcher=build_fetcher(settings, session=session, render_config=render_config),
        encoder=FFmpegEncoder(render_config, work_dir=Path(settings.temp_dir)),
        output_dir=settings.output_dir,
    )


async def assemble_stop_video(
    stop: StopDescriptor,
    destination: str = "",
    options: Optional[AssemblyOptions] = None,
    settings: Optional[Settings] = None,
) -> AssemblyResult:
    """Assemble one stop with the default provider chains."""
    settings = settings or get_settings()
    options = options or settings.assembly_options()
    assembler = build_assembler(settings, options)
    return await assembler.assemble(stop, destination, options)


@dataclass
class TourRunResult:
    """
    Outcome of a whole-tour run.

    After a combined run the joined stops no longer have their own files:
    their video_path is cleared and combined_video holds the tour video.
    """
    share_code: Optional[str] = None
    ready: bool = False
    results: List[AssemblyResult] = field(default_factory=list)
    error: Optional[str] = None
    combined_video: Optional[str] = None
    combined_duration: Optional[float] = None

    @property
    def videos(self) -> List[str]:
        if self.combined_video:
            return [self.combined_video]
        return [r.video_path for r in self.results if r.success and r.video_path]


class TourVideoPipeline:
    """
    Creates a tour, waits for its narrations and assembles every stop.

    Stops are assembled one after another. A failed stop is recorded and
    the run moves on. With combine=True the successful stop videos are
    joined into one tour video and the per-stop files are removed.
    """

    def __init__(
        self,
        tour_source: TuraiTourSource,
        poller: ReadinessPoller,
        assembler: StopVideoAssembler,
        options: Optional[AssemblyOptions] = None,
        max_wait: float = 180.0,
    ):
        self.tour_source = tour_source
        self.poller = poller
        self.assembler = assembler
        self.options = options or AssemblyOptions()
        self.max_wait = max_wait

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TourVideoPipeline":
        settings = settings or get_settings()
        options = settings.assembly_options()
        tour_source = TuraiTourSource(
            settings.turai_api_url,
            api_key=settings.turai_api_key or get_api_key("TURAI_API_KEY"),
            timeout=settings.http_timeout_seconds,
        )
        poller = ReadinessPoller(
            tour_source.fetch_snapshot,
            interval=settings.poll_interval_seconds,
            policy=ReadinessPolicy(settings.readiness_policy),
        )
        return cls(
            tour_source,
            poller,
            build_assembler(settings, options),
            options=options,
            max_wait=settings.poll_max_wait_seconds,
        )

    async def run(
        self,
        destination: str,
        theme: Optional[str] = None,
        topic: Optional[str] = None,
        max_stops: int = 5,
        share_code: Optional[str] = None,
        combine: bool = False,
    ) -> TourRunResult:
        """
        Generate (or reuse) a tour and assemble its stop videos.

        Args:
            destination: Tour destination
            theme: Tour theme passed to the wizard
            topic: Optional focus topic
            max_stops: Number of stops to wait for and assemble
            share_code: Existing tour to use instead of creating one
            combine: Join the stop videos into a single video
        """
        if not share_code:
            try:
                share_code = await self.tour_source.create_tour(destination, theme, topic)
            except TourSourceError as e:
                logger.error(f"Tour creation failed: {e}")
                return TourRunResult(error=str(e))

        readiness = await self.poller.wait_for_ready(share_code, max_stops, self.max_wait)
        run = TourRunResult(share_code=share_code, ready=readiness.ready)
        if readiness.error is not None:
            run.error = str(readiness.error)

        snapshot = readiness.snapshot
        if snapshot is None or not snapshot.stops:
            run.error = run.error or "Tour has no stops"
            return run

        destination = snapshot.destination or destination
        for stop in snapshot.stops[:max_stops]:
            result = await self.assembler.assemble(stop, destination, self.options)
            if not result.success:
                logger.warning(f"Stop {stop.index + 1} ({stop.name}) skipped: {result.error}")
            run.results.append(result)

        logger.info(f"Tour {share_code}: {len(run.videos)}/{len(run.results)} stop videos")
        if combine and run.videos:
            await self._combine(run, destination)
        return run

    async def _combine(self, run: TourRunResult, destination: str) -> None:
        """Join the successful stop videos; on failure the per-stop files stay."""
        joined = [r for r in run.results if r.success and r.video_path]
        slug = re.sub(r"[^A-Za-z0-9]", "_", destination)[:30] or "tour"
        output = unique_temp_path(self.assembler.output_dir, f"tour_{slug}", "mp4")
        encoder = self.assembler.encoder

        try:
            await encoder.concatenate(
                [Path(r.video_path) for r in joined],
                output,
                silent=[i for i, r in enumerate(joined) if not r.has_audio],
            )
        except EncodeError as e:
            logger.error(f"Joining {len(joined)} stop videos failed: {e}")
            message = f"Combine failed: {e}"
            run.error = f"{run.error}; {message}" if run.error else message
            return

        for result in joined:
            remove_quietly(Path(result.video_path))
            result.video_path = None
        run.combined_video = str(output)
        run.combined_duration = sum(r.duration or 0.0 for r in joined)
        logger.info(f"Tour video ready: {output} ({run.combined_duration:.1f}s, {len(joined)} stops)")


def cleanup_old_videos(output_dir: Union[str, Path], max_age_hours: float = 24.0) -> int:
    """
    Delete MP4s older than max_age_hours from output_dir.

    Returns:
        Number of files removed
    """
    directory = Path(output_dir)
    if not directory.is_dir():
        return 0

    cutoff = time.time() - max_age_hours * 3600
    removed = 0
    for path in directory.glob("*.mp4"):
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
        except FileNotFoundError:
            continue
    if removed:
        logger.info(f"Cleaned up {removed} old video(s) from {directory}")
    return removed
