"""Tests for trace export."""

import json

import numpy as np
import pytest
from PIL import Image

from tracescope.config import FEATURE_NAMES
from tracescope.io.exporter import TraceExporter, TraceFrame, TraceRecord, save_frame_png


@pytest.fixture
def record():
    frames = [
        TraceFrame(
            features={name: i * 0.1 + k for k, name in enumerate(FEATURE_NAMES)},
            cursor=(50.0 + i, 750.0 - i) if i else None,
        )
        for i in range(4)
    ]
    return TraceRecord(
        fps=30,
        sample_rate=22050,
        duration=0.1333333333,
        x_feature="flux",
        y_feature="density",
        frames=frames,
    )


class TestTraceExporter:
    def test_build_trace_structure(self, record):
        trace = TraceExporter().build_trace(record)

        assert trace["metadata"]["n_frames"] == 4
        assert trace["metadata"]["fps"] == 30
        assert trace["metadata"]["schema_version"] == TraceExporter.SCHEMA_VERSION
        assert trace["metadata"]["x_feature"] == "flux"
        assert len(trace["frames"]) == 4

        frame = trace["frames"][2]
        assert frame["frame_index"] == 2
        assert frame["time"] == pytest.approx(2 / 30, abs=1e-6)
        assert list(frame["features"]) == list(FEATURE_NAMES)
        assert frame["cursor"] == [52.0, 748.0]

    def test_missing_cursor_is_null(self, record):
        trace = TraceExporter().build_trace(record)
        assert trace["frames"][0]["cursor"] is None

    def test_precision(self, record):
        trace = TraceExporter(precision=2).build_trace(record)
        assert trace["metadata"]["duration"] == 0.13

    def test_export_json(self, record, tmp_path):
        path = TraceExporter().export_json(record, tmp_path / "trace.json")

        with open(path) as f:
            data = json.load(f)
        assert data["metadata"]["n_frames"] == 4
        assert data["frames"][3]["features"]["centroid"] == pytest.approx(0.3)

    def test_export_numpy(self, record, tmp_path):
        path = TraceExporter().export_numpy(record, tmp_path / "trace.npz")
        data = np.load(path)

        for name in FEATURE_NAMES:
            assert data[name].shape == (4,)
        assert data["cursor"].shape == (4, 2)
        assert np.isnan(data["cursor"][0]).all()
        np.testing.assert_allclose(data["cursor"][1], [51.0, 749.0])
        assert int(data["n_frames"]) == 4

    def test_empty_record(self, tmp_path):
        record = TraceRecord(fps=60, sample_rate=44100, duration=0.0,
                             x_feature="flux", y_feature="density")
        path = TraceExporter().export_numpy(record, tmp_path / "empty.npz")
        assert np.load(path)["cursor"].shape == (0, 2)


class TestSaveFramePng:
    def test_writes_png(self, tmp_path):
        frame = np.full((20, 30, 3), 255, dtype=np.uint8)
        frame[5:10, 5:10] = 0
        path = save_frame_png(frame, tmp_path / "out" / "frame.png")

        image = np.asarray(Image.open(path))
        assert image.shape == (20, 30, 3)
        np.testing.assert_array_equal(image, frame)
