"""
FFmpeg video encoder.

Streams rendered trace frames to ffmpeg over stdin as raw rgb24 and muxes
the source audio back in.
"""

import logging
import subprocess
from pathlib import Path
from typing import Iterable, Optional

import numpy as np

logger = logging.getLogger(__name__)

# (preset, crf). Frames are pure black/white, so chroma subsampling is safe.
QUALITY_PRESETS = {
    "high": ("slow", "18"),
    "medium": ("medium", "23"),
    "fast": ("ultrafast", "28"),
}


def build_command(
    output_path: Path,
    width: int,
    height: int,
    fps: int,
    quality: str = "medium",
    audio_path: Optional[Path] = None,
    duration: Optional[float] = None,
) -> list:
    """Assemble the ffmpeg argument list."""
    preset, crf = QUALITY_PRESETS.get(quality, QUALITY_PRESETS["medium"])

    cmd = [
        "ffmpeg", "-y", "-loglevel", "error",
        "-f", "rawvideo",
        "-pix_fmt", "rgb24",
        "-s", f"{width}x{height}",
        "-r", str(fps),
        "-i", "pipe:0",
    ]
    if audio_path is not None:
        cmd += ["-i", str(audio_path)]
    cmd += [
        "-c:v", "libx264",
        "-preset", preset,
        "-crf", crf,
        "-pix_fmt", "yuv420p",
    ]
    if audio_path is not None:
        cmd += ["-c:a", "aac", "-b:a", "192k", "-shortest"]
    if duration is not None:
        cmd += ["-t", f"{duration:.3f}"]
    cmd.append(str(output_path))
    return cmd


def _close_quietly(pipe):
    try:
        pipe.close()
    except BrokenPipeError:
        # ffmpeg already exited; its return code says why.
        pass


def encode_video(
    frame_iterator: Iterable[np.ndarray],
    output_path: Path,
    width: int,
    height: int,
    fps: int = 60,
    audio_path: Optional[Path] = None,
    quality: str = "medium",
    duration: Optional[float] = None,
) -> Path:
    """
    Encode frames to MP4.

    Args:
        frame_iterator: Yields (height, width, 3) uint8 frames.
        output_path: Destination MP4.
        width: Frame width.
        height: Frame height.
        fps: Frame rate.
        audio_path: Audio to mux in, or None for a silent video.
        quality: "high", "medium" or "fast".
        duration: Optional hard limit in seconds.

    Returns:
        ``output_path``.

    Raises:
        RuntimeError: ffmpeg exited with a non-zero status.

    Errors raised by ``frame_iterator`` propagate after ffmpeg is killed.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    cmd = build_command(output_path, width, height, fps, quality, audio_path, duration)
    logger.debug("Running %s", " ".join(cmd))

    proc = subprocess.Popen(
        cmd,
        stdin=subprocess.PIPE,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
    )

    written = 0
    try:
        for frame in frame_iterator:
            proc.stdin.write(np.ascontiguousarray(frame, dtype=np.uint8).tobytes())
            written += 1
    except BrokenPipeError:
        # ffmpeg died early; its stderr explains why.
        logger.warning("ffmpeg closed its input after %d frames", written)
    except BaseException:
        # Frame source failed: the partial video is useless.
        logger.warning("Aborting ffmpeg after %d frames", written)
        proc.kill()
        _close_quietly(proc.stdin)
        proc.wait()
        proc.stderr.close()
        raise

    _close_quietly(proc.stdin)
    with proc.stderr:
        stderr = proc.stderr.read().decode("utf-8", errors="replace")
    proc.wait()

    if proc.returncode != 0:
        raise RuntimeError(
            f"ffmpeg exited with code {proc.returncode}: {stderr.strip()[-500:]}"
        )

    logger.info("Encoded %d frames to %s", written, output_path)
    return output_path
