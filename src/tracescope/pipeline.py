"""
Offline playback pipeline.

Drives a TraceSession from an audio file: decode, play frame by frame at a
fixed FPS, and hand back composite frames or the finished trace.
"""

import logging
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

import numpy as np

from tracescope.config import TraceConfig
from tracescope.core.stream import FrameSource
from tracescope.io.exporter import TraceFrame, TraceRecord
from tracescope.render.postprocess import BlurStage
from tracescope.session import SessionState, TraceSession

logger = logging.getLogger(__name__)


class TracePipeline:
    """
    Audio file → trace.

    After each run ``record`` holds the per-frame raw features and cursor
    positions of that run.

    Args:
        config: Trace tunables.
        fps: Analyser frames per second of audio.
        blur_stage: Optional replacement for the default blur.
        sample_rate: Resample to this rate on load; None keeps the file's rate.
    """

    def __init__(
        self,
        config: Optional[TraceConfig] = None,
        fps: int = 60,
        blur_stage: Optional[BlurStage] = None,
        sample_rate: Optional[int] = None,
    ):
        self.cfg = config or TraceConfig()
        self.fps = fps
        self.sample_rate = sample_rate
        self.session = TraceSession(self.cfg, blur_stage=blur_stage)
        self.source: Optional[FrameSource] = None
        self.record: Optional[TraceRecord] = None
        self._loaded_path: Optional[Path] = None

    def load(self, audio_path: Union[str, Path]) -> FrameSource:
        """
        Decode ``audio_path`` through the session's loading state.

        Raises:
            AudioLoadError: The file could not be decoded.
        """
        audio_path = Path(audio_path)
        self.source = self.session.load(
            lambda: FrameSource.from_file(
                audio_path,
                fps=self.fps,
                fft_size=self.cfg.fft_size,
                smoothing=self.cfg.analyser_smoothing,
                sr=self.sample_rate,
            )
        )
        self._loaded_path = audio_path
        return self.source

    def _play(
        self,
        audio_path: Union[str, Path],
        max_frames: Optional[int],
        render: bool,
        progress_callback: Optional[Callable[[int, int], None]],
    ) -> Iterator[Optional[np.ndarray]]:
        # A file already loaded and not yet played is reused as is.
        if self.session.state is SessionState.READY and self._loaded_path == Path(audio_path):
            source = self.source
        else:
            source = self.load(audio_path)
        total = len(source) if max_frames is None else min(len(source), max_frames)
        self.record = TraceRecord(
            fps=self.fps,
            sample_rate=source.sample_rate,
            duration=source.duration,
            x_feature=self.cfg.x_feature,
            y_feature=self.cfg.y_feature,
        )

        session = self.session
        session.play()
        logger.info("Playing %d frames at %d fps", total, self.fps)

        try:
            for index, frame in enumerate(source):
                if index >= total:
                    break
                cursor = session.update(frame)
                self.record.frames.append(
                    TraceFrame(
                        features=session.features.as_dict(),
                        cursor=(cursor.x, cursor.y),
                    )
                )
                yield session.render() if render else None
                if progress_callback:
                    progress_callback(index + 1, total)
        finally:
            if session.is_playing:
                session.finish()

    def render_frames(
        self,
        audio_path: Union[str, Path],
        max_frames: Optional[int] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Iterator[np.ndarray]:
        """
        Play the file and yield one composite frame per analyser frame.

        Args:
            audio_path: Input audio.
            max_frames: Stop after this many frames.
            progress_callback: Called with (current, total) after each frame.
        """
        yield from self._play(audio_path, max_frames, True, progress_callback)

    def trace(
        self,
        audio_path: Union[str, Path],
        max_frames: Optional[int] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> TraceRecord:
        """Play the file without compositing and return the per-frame record."""
        for _ in self._play(audio_path, max_frames, False, progress_callback):
            pass
        return self.record

    def render_final(
        self,
        audio_path: Union[str, Path],
        max_frames: Optional[int] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> np.ndarray:
        """Play the file and return only the final composite."""
        self.trace(audio_path, max_frames, progress_callback)
        return self.session.render()
