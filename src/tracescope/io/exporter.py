"""
Trace serialization.

Writes the per-frame raw features and cursor positions of a rendered
session to JSON or a compressed NumPy archive, and the final composite to
PNG.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
from PIL import Image

from tracescope.config import FEATURE_NAMES


@dataclass
class TraceFrame:
    """Raw features and cursor for one processed frame."""

    features: Dict[str, float]
    cursor: Optional[tuple]


@dataclass
class TraceRecord:
    """Everything needed to replay or inspect a session's trace."""

    fps: int
    sample_rate: int
    duration: float
    x_feature: str
    y_feature: str
    frames: List[TraceFrame] = field(default_factory=list)

    @property
    def n_frames(self) -> int:
        return len(self.frames)


class TraceExporter:
    """
    Exports a TraceRecord.

    Args:
        precision: Decimal places kept for float values.
    """

    SCHEMA_VERSION = "1.0"

    def __init__(self, precision: int = 6):
        self.precision = precision

    def _round(self, value: float) -> float:
        return round(float(value), self.precision)

    def _build_frame(self, index: int, frame: TraceFrame, fps: int) -> Dict[str, Any]:
        cursor = None
        if frame.cursor is not None:
            cursor = [self._round(frame.cursor[0]), self._round(frame.cursor[1])]
        return {
            "frame_index": index,
            "time": self._round(index / fps),
            "features": {name: self._round(frame.features[name]) for name in FEATURE_NAMES},
            "cursor": cursor,
        }

    def build_trace(self, record: TraceRecord) -> Dict[str, Any]:
        return {
            "metadata": {
                "fps": record.fps,
                "sample_rate": record.sample_rate,
                "duration": self._round(record.duration),
                "n_frames": record.n_frames,
                "x_feature": record.x_feature,
                "y_feature": record.y_feature,
                "schema_version": self.SCHEMA_VERSION,
            },
            "frames": [
                self._build_frame(i, frame, record.fps)
                for i, frame in enumerate(record.frames)
            ],
        }

    def export_json(
        self,
        record: TraceRecord,
        output_path: Union[str, Path],
        indent: int = 2,
    ) -> Path:
        output_path = Path(output_path)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.build_trace(record), f, indent=indent)
        return output_path

    def export_numpy(self, record: TraceRecord, output_path: Union[str, Path]) -> Path:
        """
        Export as a .npz archive: one array per feature, plus ``cursor``
        of shape (n_frames, 2) with NaN rows where no cursor existed.
        """
        output_path = Path(output_path)
        arrays = {
            name: np.array([f.features[name] for f in record.frames], dtype=np.float64)
            for name in FEATURE_NAMES
        }
        cursor = np.full((record.n_frames, 2), np.nan)
        for i, f in enumerate(record.frames):
            if f.cursor is not None:
                cursor[i] = f.cursor
        np.savez_compressed(
            output_path,
            cursor=cursor,
            fps=record.fps,
            sample_rate=record.sample_rate,
            n_frames=record.n_frames,
            **arrays,
        )
        return output_path


def save_frame_png(frame: np.ndarray, output_path: Union[str, Path]) -> Path:
    """Write an (H, W, 3) uint8 frame as PNG."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(frame).save(output_path, format="PNG")
    return output_path
