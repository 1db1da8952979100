"""
FFmpeg-based encoder for stop videos.

Turns a Timeline plus an optional narration track into an H.264/AAC MP4.

Strategies:
- segments (default for 2+ images): one clip per image, encoded one at a
  time to keep memory flat, then a concat-list pass that muxes the audio.
  A span longer than max_clip_seconds is split into several clips of the
  same image.
- xfade: a single filter graph chaining xfade at the timeline offsets
- single image: one Ken Burns clip from one image, used for 1-image
  timelines and as the fallback when a per-image encode fails (the first
  image whose clips encoded is preferred)

`concatenate` joins finished stop videos into one tour video by stream copy.

Every subprocess is time-bounded, with a limit that grows with the length
of the output it renders. On timeout it is killed and reaped.
"""

import asyncio
import logging
import math
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from mutagen import File as MutagenFile
from mutagen import MutagenError

from .download import remove_quietly, unique_temp_path
from .models.render import EncodeOutcome, EncodeStrategy, RenderConfig
from .models.timeline import Timeline, ZoomDirection

logger = logging.getLogger(__name__)


class EncodeError(Exception):
    """Raised when an encoder invocation fails or times out."""
    pass


class FFmpegNotFoundError(EncodeError):
    """Raised when FFmpeg is not installed or not in PATH."""
    pass


class SegmentEncodeError(EncodeError):
    """
    A per-image encode failed; the caller may fall back to a single image.

    usable_segments lists the timeline indices whose clips did encode.
    """

    def __init__(self, message: str, usable_segments: Sequence[int] = ()):
        super().__init__(message)
        self.usable_segments = list(usable_segments)


@dataclass(frozen=True)
class Clip:
    """One encoder invocation in the segments strategy"""
    segment_index: int
    image_path: Path
    zoom_direction: ZoomDirection
    duration: float
    fade_in: bool = True
    fade_out: bool = True


def find_ffmpeg() -> str:
    """Find FFmpeg executable, or the bare name so the exec error surfaces later."""
    return shutil.which("ffmpeg") or "ffmpeg"


def find_ffprobe(ffmpeg_path: Optional[str] = None) -> Optional[str]:
    ffprobe = shutil.which("ffprobe")
    if ffprobe:
        return ffprobe
    if ffmpeg_path:
        candidate = os.path.join(os.path.dirname(ffmpeg_path), "ffprobe")
        if os.path.exists(candidate):
            return candidate
    return None


async def run_process(cmd: Sequence[str], timeout: float, label: str = "ffmpeg") -> bytes:
    """
    Run a subprocess with a hard timeout.

    Returns:
        The process stdout

    Raises:
        FFmpegNotFoundError: If the executable does not exist
        EncodeError: On non-zero exit or timeout

    The child is killed and reaped on timeout and on cancellation.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
    except FileNotFoundError:
        raise FFmpegNotFoundError(
            f"{cmd[0]} not found. Please install FFmpeg and add it to your PATH."
        )

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        raise EncodeError(f"{label} timed out after {timeout:.0f}s")
    finally:
        # Timed out or cancelled: never leave the child running
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()

    if process.returncode != 0:
        tail = stderr.decode(errors="replace").strip()[-500:]
        raise EncodeError(f"{label} failed (exit {process.returncode}): {tail}")
    return stdout


def _fmt(seconds: float) -> str:
    return f"{seconds:.3f}"


class FFmpegEncoder:
    """
    Encodes timelines with FFmpeg.

    Args:
        config: Render configuration (uses defaults if not provided)
        work_dir: Directory for intermediate clips (defaults to the output's directory)
        ffmpeg_path: Explicit ffmpeg binary
    """

    def __init__(
        self,
        config: Optional[RenderConfig] = None,
        work_dir: Optional[Path] = None,
        ffmpeg_path: Optional[str] = None,
    ):
        self.config = config or RenderConfig()
        self.work_dir = Path(work_dir) if work_dir else None
        self._ffmpeg_path = ffmpeg_path or find_ffmpeg()

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def ken_burns_filter(
        self,
        direction: ZoomDirection,
        duration: float,
        fade: float = 0.0,
        fade_in: bool = True,
        fade_out: bool = True,
    ) -> str:
        """
        Scale-to-fill, crop, slow zoom, optional edge fades.

        The input is a looped still, so zoompan emits one frame per input
        frame and the zoom accumulates frame over frame.
        """
        w, h = self.config.output_width, self.config.output_height
        step = self.config.zoom_step
        top = self.config.max_zoom

        if direction is ZoomDirection.IN:
            zoom = f"min(zoom+{step},{top})"
        else:
            zoom = f"if(lte(on,1),{top},max(zoom-{step},1.0))"

        filters = [
            f"scale={w}:{h}:force_original_aspect_ratio=increase",
            f"crop={w}:{h}",
            f"zoompan=z='{zoom}':x='iw/2-(iw/zoom/2)':y='ih/2-(ih/zoom/2)'"
            f":d=1:s={w}x{h}:fps={self.config.output_fps}",
        ]
        if fade > 0 and duration > 2 * fade:
            if fade_in:
                filters.append(f"fade=t=in:st=0:d={_fmt(fade)}")
            if fade_out:
                filters.append(f"fade=t=out:st={_fmt(duration - fade)}:d={_fmt(fade)}")
        filters.append(f"format={self.config.pixel_format}")
        return ",".join(filters)

    def _video_codec_args(self) -> List[str]:
        return [
            "-c:v", self.config.video_codec,
            "-preset", self.config.preset,
            "-crf", str(self.config.crf),
            "-pix_fmt", self.config.pixel_format,
        ]

    def _audio_codec_args(self) -> List[str]:
        return [
            "-c:a", self.config.audio_codec,
            "-b:a", self.config.audio_bitrate,
            "-ar", str(self.config.audio_sample_rate),
            "-ac", "2",
        ]

    def _still_input(self, image: Path, duration: float) -> List[str]:
        return [
            "-loop", "1",
            "-framerate", str(self.config.output_fps),
            "-t", _fmt(duration),
            "-i", str(image),
        ]

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def clip_plan(self, timeline: Timeline) -> List[Clip]:
        """
        Clips for the segments strategy, in output order.

        Each segment covers its exclusive span. Spans longer than
        max_clip_seconds are cut into equal chunks of the same image; only
        the outer edges of a segment fade, and the zoom alternates from
        chunk to chunk.
        """
        limit = self.config.max_clip_seconds
        clips: List[Clip] = []
        for index, segment in enumerate(timeline.segments):
            span = timeline.clip_duration(index)
            parts = max(1, math.ceil(span / limit - 1e-9)) if limit > 0 else 1
            for part in range(parts):
                direction = segment.zoom_direction
                if part % 2:
                    direction = ZoomDirection.OUT if direction is ZoomDirection.IN else ZoomDirection.IN
                clips.append(Clip(
                    segment_index=index,
                    image_path=segment.image_path,
                    zoom_direction=direction,
                    duration=span / parts,
                    fade_in=part == 0,
                    fade_out=part == parts - 1,
                ))
        return clips

    def clip_command(self, clip: Clip, fade: float, output: Path) -> List[str]:
        return [
            self._ffmpeg_path, "-y",
            *self._still_input(clip.image_path, clip.duration),
            "-vf", self.ken_burns_filter(
                clip.zoom_direction, clip.duration, fade, clip.fade_in, clip.fade_out
            ),
            "-t", _fmt(clip.duration),
            "-r", str(self.config.output_fps),
            *self._video_codec_args(),
            "-an",
            str(output),
        ]

    def concat_mux_command(self, manifest: str, audio_path: Optional[Path], output: Path) -> List[str]:
        cmd = [
            self._ffmpeg_path, "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", manifest,
        ]
        if audio_path:
            cmd.extend(["-i", str(audio_path), "-map", "0:v", "-map", "1:a"])
        cmd.extend(["-c:v", "copy"])
        if audio_path:
            cmd.extend([*self._audio_codec_args(), "-shortest"])
        cmd.extend(["-movflags", "+faststart", str(output)])
        return cmd

    def single_image_command(
        self,
        image: Path,
        duration: float,
        audio_path: Optional[Path],
        output: Path,
    ) -> List[str]:
        cmd = [self._ffmpeg_path, "-y", *self._still_input(image, duration)]
        if audio_path:
            cmd.extend(["-i", str(audio_path)])
        cmd.extend([
            "-vf", self.ken_burns_filter(ZoomDirection.IN, duration),
            "-t", _fmt(duration),
            "-r", str(self.config.output_fps),
            "-map", "0:v",
        ])
        if audio_path:
            cmd.extend(["-map", "1:a", *self._audio_codec_args(), "-shortest"])
        cmd.extend([*self._video_codec_args(), "-movflags", "+faststart", str(output)])
        return cmd

    def xfade_command(self, timeline: Timeline, audio_path: Optional[Path], output: Path) -> List[str]:
        """Single filter graph: per-input Ken Burns, then chained xfade."""
        inputs: List[str] = []
        filter_parts: List[str] = []
        for i, segment in enumerate(timeline.segments):
            inputs.extend(self._still_input(segment.image_path, segment.duration))
            filter_parts.append(
                f"[{i}:v]{self.ken_burns_filter(segment.zoom_direction, segment.duration)},"
                f"settb=AVTB[v{i}]"
            )

        # xfade offset is when the transition starts on the output timeline
        current_label = "[v0]"
        for i in range(1, timeline.image_count):
            next_label = f"[x{i}]" if i < timeline.image_count - 1 else "[vout]"
            filter_parts.append(
                f"{current_label}[v{i}]xfade=transition=fade"
                f":duration={_fmt(timeline.transition_duration)}"
                f":offset={_fmt(timeline.segments[i].start_offset)}{next_label}"
            )
            current_label = next_label

        cmd = [self._ffmpeg_path, "-y", *inputs]
        if audio_path:
            cmd.extend(["-i", str(audio_path)])
        cmd.extend(["-filter_complex", ";".join(filter_parts), "-map", "[vout]"])
        if audio_path:
            cmd.extend(["-map", f"{timeline.image_count}:a", *self._audio_codec_args(), "-shortest"])
        cmd.extend([
            "-t", _fmt(timeline.total_duration),
            *self._video_codec_args(),
            "-movflags", "+faststart",
            str(output),
        ])
        return cmd

    def silent_track_command(self, video: Path, output: Path) -> List[str]:
        """Copy the video stream and add a silent audio track matching ours."""
        return [
            self._ffmpeg_path, "-y",
            "-i", str(video),
            "-f", "lavfi",
            "-i", f"anullsrc=channel_layout=stereo:sample_rate={self.config.audio_sample_rate}",
            "-map", "0:v", "-map", "1:a",
            "-c:v", "copy",
            *self._audio_codec_args(),
            "-shortest",
            "-movflags", "+faststart",
            str(output),
        ]

    def join_command(self, manifest: str, output: Path) -> List[str]:
        return [
            self._ffmpeg_path, "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", manifest,
            "-c", "copy",
            "-movflags", "+faststart",
            str(output),
        ]

    def _generate_concat_file(self, video_paths: List[Path], directory: Path) -> str:
        """
        Generate FFmpeg concat demuxer file.

        Returns:
            Path to the temporary concat file
        """
        fd, concat_path = tempfile.mkstemp(suffix=".txt", prefix="ffmpeg_concat_", dir=str(directory))

        with os.fdopen(fd, "w") as f:
            for path in video_paths:
                # concat resolves relative entries against the manifest directory
                abs_path = os.path.abspath(path)
                escaped_path = abs_path.replace("'", "'\\''")
                f.write(f"file '{escaped_path}'\n")

        return concat_path

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def encode(
        self,
        timeline: Timeline,
        audio_path: Optional[Path],
        output_path: Path,
        strategy: EncodeStrategy = EncodeStrategy.SEGMENTS,
    ) -> EncodeOutcome:
        """
        Encode a timeline to output_path.

        Per-image failures fall back to a single-image clip. Failures of the
        final concat/mux pass, of the fallback itself, or a missing ffmpeg
        are raised.

        Raises:
            EncodeError: If no video could be produced
        """
        if timeline.image_count == 0:
            raise EncodeError("Timeline has no segments")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        if timeline.image_count == 1 or strategy is EncodeStrategy.SINGLE_IMAGE:
            await self.encode_single_image(timeline, audio_path, output_path)
            return EncodeOutcome(
                output_path=str(output_path),
                strategy=EncodeStrategy.SINGLE_IMAGE,
                duration=timeline.total_duration,
            )

        try:
            if strategy is EncodeStrategy.XFADE:
                await self.encode_xfade(timeline, audio_path, output_path)
            else:
                await self.encode_segments(timeline, audio_path, output_path)
        except SegmentEncodeError as e:
            image = None
            if e.usable_segments:
                image = timeline.segments[e.usable_segments[0]].image_path
            logger.warning(f"{strategy.value} encode failed, falling back to single image: {e}")
            remove_quietly(output_path)
            await self.encode_single_image(timeline, audio_path, output_path, image=image)
            return EncodeOutcome(
                output_path=str(output_path),
                strategy=EncodeStrategy.SINGLE_IMAGE,
                duration=timeline.total_duration,
                fell_back=True,
                fallback_reason=str(e),
            )

        return EncodeOutcome(
            output_path=str(output_path),
            strategy=strategy,
            duration=timeline.total_duration,
        )

    async def encode_segments(
        self,
        timeline: Timeline,
        audio_path: Optional[Path],
        output_path: Path,
    ) -> None:
        """
        Per-image clips, sequentially, then concat + audio mux.

        A failed clip does not stop the remaining segments from being tried,
        so the fallback knows which images are usable.

        Raises:
            SegmentEncodeError: If any clip failed
        """
        work_dir = self.work_dir or output_path.parent
        work_dir.mkdir(parents=True, exist_ok=True)
        fade = timeline.transition_duration / 2
        plan = self.clip_plan(timeline)
        clips: List[Path] = []
        failed: Dict[int, str] = {}
        manifest: Optional[str] = None

        try:
            for position, clip in enumerate(plan):
                if clip.segment_index in failed:
                    continue
                clip_path = unique_temp_path(work_dir, f"clip_{position}", "mp4")
                clips.append(clip_path)
                logger.debug(
                    f"Encoding clip {position + 1}/{len(plan)} "
                    f"(image {clip.segment_index + 1}, {clip.duration:.2f}s)"
                )
                try:
                    await run_process(
                        self.clip_command(clip, fade, clip_path),
                        timeout=self.config.timeout_for(clip.duration),
                        label=f"clip {clip.segment_index + 1}",
                    )
                except FFmpegNotFoundError:
                    raise
                except EncodeError as e:
                    logger.warning(f"Image {clip.segment_index + 1} did not encode: {e}")
                    failed[clip.segment_index] = str(e)

            if failed:
                usable = [i for i in range(timeline.image_count) if i not in failed]
                raise SegmentEncodeError(next(iter(failed.values())), usable_segments=usable)

            manifest = self._generate_concat_file(clips, work_dir)
            await run_process(
                self.concat_mux_command(manifest, audio_path, output_path),
                timeout=self.config.timeout_for(timeline.total_duration),
                label="concat/mux",
            )
        finally:
            for clip_path in clips:
                remove_quietly(clip_path)
            if manifest:
                remove_quietly(Path(manifest))

    async def encode_xfade(
        self,
        timeline: Timeline,
        audio_path: Optional[Path],
        output_path: Path,
    ) -> None:
        try:
            await run_process(
                self.xfade_command(timeline, audio_path, output_path),
                timeout=self.config.timeout_for(timeline.total_duration),
                label="xfade graph",
            )
        except FFmpegNotFoundError:
            raise
        except EncodeError as e:
            raise SegmentEncodeError(str(e)) from e

    async def encode_single_image(
        self,
        timeline: Timeline,
        audio_path: Optional[Path],
        output_path: Path,
        image: Optional[Path] = None,
    ) -> None:
        """One clip covering the whole timeline from `image` (default: the first)."""
        image = image or timeline.primary_image()
        if image is None:
            raise EncodeError("No image available for single-image encode")
        await run_process(
            self.single_image_command(image, timeline.total_duration, audio_path, output_path),
            timeout=self.config.timeout_for(timeline.total_duration),
            label="single image",
        )

    async def concatenate(
        self,
        videos: Sequence[Path],
        output_path: Path,
        silent: Sequence[int] = (),
    ) -> None:
        """
        Join finished videos end to end by stream copy.

        Args:
            videos: MP4s in playback order, all rendered with this config
            output_path: Where the joined video is written
            silent: Indices of inputs without an audio track. When any other
                input has audio these get a silent track first, so every
                part carries the same streams.

        Raises:
            EncodeError: If a pass fails; no partial output is left behind
        """
        if not videos:
            raise EncodeError("No videos to join")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        work_dir = self.work_dir or output_path.parent
        work_dir.mkdir(parents=True, exist_ok=True)

        parts = [Path(v) for v in videos]
        silent = sorted(set(silent))
        padded: List[Path] = []
        manifest: Optional[str] = None

        try:
            if silent and len(silent) < len(parts):
                for index in silent:
                    padded_path = unique_temp_path(work_dir, f"padded_{index}", "mp4")
                    padded.append(padded_path)
                    await run_process(
                        self.silent_track_command(parts[index], padded_path),
                        timeout=self.config.timeout,
                        label=f"silent track {index + 1}",
                    )
                    parts[index] = padded_path

            manifest = self._generate_concat_file(parts, work_dir)
            logger.info(f"Joining {len(parts)} videos into {output_path.name}")
            await run_process(
                self.join_command(manifest, output_path),
                timeout=self.config.timeout,
                label="join",
            )
        except EncodeError:
            remove_quietly(output_path)
            raise
        finally:
            for padded_path in padded:
                remove_quietly(padded_path)
            if manifest:
                remove_quietly(Path(manifest))

    # ------------------------------------------------------------------
    # Probing
    # ------------------------------------------------------------------

    async def probe_duration(self, path: Path) -> Optional[float]:
        return await probe_duration(path, ffmpeg_path=self._ffmpeg_path, timeout=self.config.timeout)

    async def check_ffmpeg_installed(self) -> Dict[str, Any]:
        return await check_ffmpeg_installed(self._ffmpeg_path)


async def probe_duration(
    path: Path,
    ffmpeg_path: Optional[str] = None,
    timeout: float = 30.0,
) -> Optional[float]:
    """
    Duration of a media file in seconds.

    Tries mutagen first (no subprocess), falls back to ffprobe.
    Returns None if neither works.
    """
    if not os.path.exists(path):
        return None

    try:
        media = MutagenFile(str(path))
        if media is not None and media.info is not None and media.info.length > 0:
            return float(media.info.length)
    except (MutagenError, OSError) as e:
        logger.debug(f"mutagen could not read {path}: {e}")

    ffprobe = find_ffprobe(ffmpeg_path or shutil.which("ffmpeg"))
    if not ffprobe:
        return None

    cmd = [
        ffprobe,
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(path),
    ]
    try:
        stdout = await run_process(cmd, timeout=timeout, label="ffprobe")
        return float(stdout.decode().strip())
    except (EncodeError, ValueError) as e:
        logger.debug(f"ffprobe could not read {path}: {e}")
        return None


async def check_ffmpeg_installed(ffmpeg_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Check if FFmpeg is properly installed.

    Returns:
        Dict with installation status and version info
    """
    ffmpeg_path = ffmpeg_path or find_ffmpeg()
    try:
        stdout = await run_process([ffmpeg_path, "-version"], timeout=10, label="ffmpeg -version")
        version_line = stdout.decode(errors="replace").split("\n")[0]
        return {
            "installed": True,
            "path": ffmpeg_path,
            "version": version_line,
            "ffprobe": find_ffprobe(ffmpeg_path),
        }
    except EncodeError as e:
        return {
            "installed": False,
            "path": None,
            "version": None,
            "ffprobe": None,
            "error": str(e),
        }
