"""Tests for the SpectralFeatureExtractor module."""

import math

import numpy as np
import pytest

from tracescope.config import FEATURE_NAMES
from tracescope.core.analyzer import (
    FeatureVector,
    FrequencyFrame,
    SpectralFeatureExtractor,
    decibels_to_magnitude,
)


class TestSpectralFeatureExtractor:
    """Tests for per-frame spectral features."""

    @pytest.fixture
    def extractor(self):
        return SpectralFeatureExtractor()

    def test_returns_feature_vector_and_magnitude(self, extractor, single_bin_frame):
        """extract() should return FeatureVector and the linear magnitude."""
        features, mags = extractor.extract(single_bin_frame)

        assert isinstance(features, FeatureVector)
        assert mags.shape == (single_bin_frame.n_bins,)
        assert mags[single_bin_frame.n_bins // 2] == pytest.approx(1.0)

    def test_silence_is_finite(self, extractor, silent_frame):
        """An all-zero spectrum must not produce NaN or infinity."""
        features, _ = extractor.extract(silent_frame)

        for name in FEATURE_NAMES:
            assert math.isfinite(features[name]), name

    def test_silence_defaults(self, extractor, silent_frame):
        """Centroid is 0 and rolloff 1 for silence; crest and flatness stay defined."""
        features, _ = extractor.extract(silent_frame)

        assert features.centroid == 0.0
        assert features.rolloff == 1.0
        assert features.energy == 0.0
        assert features.flux == 0.0
        assert features.entropy == 0.0
        assert features.crest == 0.0
        assert 0.0 <= features.flatness <= 1.0

    def test_single_bin_at_half_nyquist(self, extractor, single_bin_frame):
        """One bin at N/2: centroid 0.5, rolloff at that index, no spread."""
        features, _ = extractor.extract(single_bin_frame)
        n = single_bin_frame.n_bins

        assert features.centroid == pytest.approx(0.5, abs=1e-9)
        assert features.rolloff == pytest.approx((n // 2) / n)
        assert features.spread == pytest.approx(0.0, abs=1e-9)
        assert features.entropy == pytest.approx(0.0, abs=1e-9)

    def test_flux_first_frame_uses_zero_previous(self, extractor, noisy_frames):
        """Without a previous frame, flux is log10(1 + 10 * sum(m^2))."""
        frame = noisy_frames[0]
        features, mags = extractor.extract(frame, None)

        expected = math.log10(1 + 10 * float(np.sum(mags ** 2)))
        assert features.flux == pytest.approx(expected)

    def test_flux_identical_frames_is_zero(self, extractor, noisy_frames):
        """Two identical frames in a row give zero flux on the second."""
        frame = noisy_frames[3]
        _, previous = extractor.extract(frame)
        features, _ = extractor.extract(frame, previous)

        assert features.flux == 0.0

    def test_flux_ignores_falling_bins(self, extractor, make_frame):
        """Only rising magnitude contributes to flux."""
        loud = make_frame(np.zeros(64))
        quiet = make_frame(np.full(64, -40.0))
        _, previous = extractor.extract(loud)
        features, _ = extractor.extract(quiet, previous)

        assert features.flux == 0.0

    def test_flux_mismatched_previous_treated_as_absent(self, extractor, noisy_frames):
        """A previous magnitude of another length counts as no previous frame."""
        frame = noisy_frames[0]
        fresh, _ = extractor.extract(frame, None)
        mismatched, _ = extractor.extract(frame, np.ones(10))

        assert mismatched.flux == pytest.approx(fresh.flux)

    def test_density_duplicates_energy(self, extractor, noisy_frames):
        """density and energy share a formula."""
        for frame in noisy_frames[:5]:
            features, _ = extractor.extract(frame)
            assert features.density == features.energy

    def test_flat_spectrum(self, extractor, make_frame):
        """A flat spectrum is maximally flat and maximally entropic."""
        features, _ = extractor.extract(make_frame(np.zeros(256)))

        assert features.flatness == pytest.approx(1.0)
        assert features.entropy == pytest.approx(1.0)
        assert features.crest == pytest.approx(1.0)
        assert features.slope == pytest.approx(0.0, abs=1e-12)

    def test_slope_sign(self, extractor, make_frame):
        """Rising magnitude gives a positive slope, falling a negative one."""
        ramp_db = 20 * np.log10(np.linspace(0.01, 1.0, 128))
        rising, _ = extractor.extract(make_frame(ramp_db))
        falling, _ = extractor.extract(make_frame(ramp_db[::-1]))

        assert rising.slope > 0
        assert falling.slope < 0
        assert rising.slope == pytest.approx(-falling.slope)

    def test_low_heavy_spectrum_has_low_centroid(self, extractor, make_frame):
        db = np.full(512, -120.0)
        db[:20] = 0.0
        features, _ = extractor.extract(make_frame(db))

        assert features.centroid < 0.05
        assert features.rolloff < 0.05

    def test_normalized_features_in_unit_range(self, extractor, noisy_frames):
        previous = None
        for frame in noisy_frames:
            features, previous = extractor.extract(frame, previous)
            for name in ("centroid", "flatness", "rolloff", "spread", "entropy"):
                assert 0.0 <= features[name] <= 1.0, name
            for name in ("energy", "flux", "density", "crest"):
                assert features[name] >= 0.0, name

    def test_nan_bins_treated_as_silence(self, extractor, make_frame):
        db = np.full(64, np.nan)
        features, mags = extractor.extract(make_frame(db))

        assert np.all(mags == 0.0)
        assert features.rolloff == 1.0

    def test_empty_frame(self, extractor, make_frame):
        features, mags = extractor.extract(make_frame(np.array([])))

        assert mags.size == 0
        assert features.rolloff == 1.0
        assert all(math.isfinite(features[name]) for name in FEATURE_NAMES)


class TestFeatureVector:
    def test_lookup_by_name(self):
        values = {name: float(i) for i, name in enumerate(FEATURE_NAMES)}
        vector = FeatureVector(**values)

        assert vector["flux"] == values["flux"]
        assert list(vector) == list(FEATURE_NAMES)
        assert vector.as_dict() == values

    def test_unknown_name(self):
        vector = FeatureVector(**{name: 0.0 for name in FEATURE_NAMES})
        with pytest.raises(KeyError):
            vector["loudness"]

    def test_immutable(self):
        vector = FeatureVector(**{name: 0.0 for name in FEATURE_NAMES})
        with pytest.raises(AttributeError):
            vector.energy = 1.0


class TestFrequencyFrame:
    def test_rejects_bad_sample_rate(self):
        with pytest.raises(ValueError):
            FrequencyFrame(decibels=np.zeros(8), sample_rate=0)

    def test_nyquist(self):
        frame = FrequencyFrame(decibels=np.zeros(8), sample_rate=48000)
        assert frame.nyquist == 24000
        assert frame.n_bins == 8


def test_decibels_to_magnitude():
    mags = decibels_to_magnitude(np.array([0.0, -20.0, -np.inf]))
    np.testing.assert_allclose(mags, [1.0, 0.1, 0.0])
