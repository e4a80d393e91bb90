"""Thumbnail extraction for uploaded videos.

Uses FFmpeg to grab a single frame from the uploaded bytes and FFprobe to
read the duration. Extraction reports failures as a result instead of
raising; deciding what to show when it fails is the caller's job.
``render_placeholder`` produces the fallback image.
"""

import asyncio
import io
import json
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import aiofiles.os
from PIL import Image, ImageDraw, ImageFont

from app.core.exceptions import ProcessingError

logger = logging.getLogger(__name__)

THUMBNAIL_WIDTH = 320
THUMBNAIL_HEIGHT = 180
PLACEHOLDER_BACKGROUND = (26, 26, 26)  # #1a1a1a
PLACEHOLDER_FOREGROUND = (255, 255, 255)


@dataclass
class FrameResult:
    """Outcome of a frame extraction: JPEG bytes or the reason it failed."""

    image: bytes | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.image is not None


def format_duration(seconds: float | None) -> str:
    """Format seconds as MM:SS, or H:MM:SS for an hour or more."""
    if not seconds or seconds < 0:
        return "00:00"
    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def render_placeholder(text: str = "", quality: int = 85) -> bytes:
    """Render a solid-color 320x180 JPEG with up to 20 characters of text."""
    image = Image.new("RGB", (THUMBNAIL_WIDTH, THUMBNAIL_HEIGHT), PLACEHOLDER_BACKGROUND)

    label = text.strip()[:20]
    if label:
        draw = ImageDraw.Draw(image)
        font = ImageFont.load_default()
        left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
        x = (THUMBNAIL_WIDTH - (right - left)) / 2
        y = (THUMBNAIL_HEIGHT - (bottom - top)) / 2
        draw.text((x, y), label, fill=PLACEHOLDER_FOREGROUND, font=font)

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


class ThumbnailExtractor:
    """Service for deriving thumbnails and basic metadata from video bytes.

    Uses FFmpeg for frame extraction with support for:
    - Seeking to a timestamp before grabbing the frame
    - Scaling to the thumbnail width
    - Bounding every FFmpeg/FFprobe run with a timeout
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        timeout: float = 30.0,
    ):
        """Initialize thumbnail extractor.

        Args:
            ffmpeg_path: Path to ffmpeg executable
            ffprobe_path: Path to ffprobe executable
            timeout: Seconds allowed for each FFmpeg/FFprobe run
        """
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout

    async def inspect(
        self, video_bytes: bytes, suffix: str = ".mp4", timestamp_ms: int = 1000
    ) -> tuple[FrameResult, float | None]:
        """Extract a thumbnail and probe the duration from one temporary copy.

        Returns:
            (FrameResult, duration in seconds or None)
        """
        try:
            with tempfile.TemporaryDirectory() as tmp_dir:
                video_path = await self._write_source(Path(tmp_dir), video_bytes, suffix)
                frame, duration = await asyncio.gather(
                    self._extract_from_path(video_path, timestamp_ms),
                    self._probe_path(video_path),
                )
        except OSError as e:
            logger.warning(f"Could not stage video for inspection: {e}")
            return FrameResult(error=str(e)), None
        return frame, duration

    async def extract_frame(
        self, video_bytes: bytes, suffix: str = ".mp4", timestamp_ms: int = 1000
    ) -> FrameResult:
        """Extract one frame as a JPEG thumbnail.

        Args:
            video_bytes: Raw uploaded video
            suffix: File extension hinting the container format to FFmpeg
            timestamp_ms: Position of the frame; falls back to the first frame

        Returns:
            FrameResult with the image, or with the failure reason
        """
        try:
            with tempfile.TemporaryDirectory() as tmp_dir:
                video_path = await self._write_source(Path(tmp_dir), video_bytes, suffix)
                return await self._extract_from_path(video_path, timestamp_ms)
        except OSError as e:
            logger.warning(f"Thumbnail extraction failed: {e}")
            return FrameResult(error=str(e))

    async def probe_duration(self, video_bytes: bytes, suffix: str = ".mp4") -> float | None:
        """Read the container duration in seconds, or None if FFprobe cannot."""
        try:
            with tempfile.TemporaryDirectory() as tmp_dir:
                video_path = await self._write_source(Path(tmp_dir), video_bytes, suffix)
                return await self._probe_path(video_path)
        except OSError as e:
            logger.info(f"Could not probe video duration: {e}")
            return None

    @staticmethod
    async def _write_source(tmp_dir: Path, video_bytes: bytes, suffix: str) -> Path:
        video_path = tmp_dir / f"source{suffix}"
        async with aiofiles.open(video_path, "wb") as f:
            await f.write(video_bytes)
        return video_path

    async def _extract_from_path(self, video_path: Path, timestamp_ms: int) -> FrameResult:
        # Output lives beside the source so concurrent runs never share it
        output_path = video_path.with_name("thumbnail.jpg")
        try:
            for seek_ms in dict.fromkeys((timestamp_ms, 0)):
                await self._grab_frame(video_path, output_path, seek_ms)
                # Seeking past the end of a short clip yields no frame
                if await aiofiles.os.path.exists(output_path):
                    async with aiofiles.open(output_path, "rb") as f:
                        image = await f.read()
                    if image:
                        return FrameResult(image=image)

            raise ProcessingError("FFmpeg produced no frame")
        except ProcessingError as e:
            logger.warning(f"Thumbnail extraction failed: {e.message}")
            return FrameResult(error=e.message)
        except Exception as e:
            logger.warning(f"Thumbnail extraction failed: {e}")
            return FrameResult(error=str(e))

    async def _grab_frame(self, video_path: Path, output_path: Path, seek_ms: int) -> None:
        # -ss before -i enables fast seeking
        # -frames:v 1 extracts only one frame
        cmd = [
            self.ffmpeg_path,
            "-ss",
            str(seek_ms / 1000.0),
            "-i",
            str(video_path),
            "-frames:v",
            "1",
            "-vf",
            f"scale={THUMBNAIL_WIDTH}:-2",
            "-q:v",
            "4",
            "-y",  # Overwrite output
            str(output_path),
        ]
        await self._run(cmd)

    async def _probe_path(self, video_path: Path) -> float | None:
        cmd = [
            self.ffprobe_path,
            "-v",
            "quiet",
            "-show_format",
            "-of",
            "json",
            str(video_path),
        ]
        try:
            stdout = await self._run(cmd)
            probe_data = json.loads(stdout.decode())
            return float(probe_data.get("format", {}).get("duration", 0)) or None
        except Exception as e:
            logger.info(f"Could not probe video duration: {e}")
            return None

    async def _run(self, cmd: list[str]) -> bytes:
        """Run a tool, raising ProcessingError on failure or timeout."""
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            raise ProcessingError(f"Could not start {cmd[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise ProcessingError(f"{cmd[0]} timed out after {self.timeout}s") from e

        if process.returncode != 0:
            raise ProcessingError(f"{cmd[0]} error: {stderr.decode(errors='ignore').strip()}")
        return stdout
