"""Tests for AOI percentile statistics and the pixel cap."""

import numpy as np
import pytest

from src.landslide.statistics import MaxPixelsExceeded, percentile_statistics


class TestPercentileStatistics:

    def test_uniform_raster(self):
        """Every percentile of a constant raster is the constant."""
        stats = percentile_statistics(np.full((20, 20), 0.37))
        assert stats == {10: 0.37, 25: 0.37, 50: 0.37, 75: 0.37, 90: 0.37}

    def test_linear_ramp(self):
        values = np.linspace(0.0, 1.0, 101).reshape(1, 101)
        stats = percentile_statistics(values, percentiles=(0, 50, 100))
        assert stats[0] == pytest.approx(0.0)
        assert stats[50] == pytest.approx(0.5)
        assert stats[100] == pytest.approx(1.0)

    def test_nan_cells_excluded(self):
        values = np.array([[0.2, 0.4, np.nan, np.nan]])
        stats = percentile_statistics(values, percentiles=(50,))
        assert stats[50] == pytest.approx(0.3)

    def test_all_nan_gives_nan(self):
        stats = percentile_statistics(np.full((3, 3), np.nan))
        assert set(stats) == {10, 25, 50, 75, 90}
        assert all(np.isnan(v) for v in stats.values())

    def test_region_mask_limits_samples(self):
        values = np.zeros((4, 4))
        values[:, 2:] = 1.0
        region = np.zeros((4, 4), dtype=bool)
        region[:, 2:] = True

        stats = percentile_statistics(values, region_mask=region, percentiles=(10, 90))
        assert stats == {10: 1.0, 90: 1.0}

    def test_fractional_rank_key(self):
        stats = percentile_statistics(np.ones((2, 2)), percentiles=(2.5, 50))
        assert set(stats) == {2.5, 50}

    def test_cap_exceeded_raises(self):
        """Over the cap is an error, never a silent subsample."""
        with pytest.raises(MaxPixelsExceeded, match="max_pixels=10"):
            percentile_statistics(np.ones((4, 4)), max_pixels=10)

    def test_cap_counts_region_not_raster(self):
        region = np.zeros((4, 4), dtype=bool)
        region[0, :] = True
        stats = percentile_statistics(np.ones((4, 4)), region_mask=region, max_pixels=4)
        assert stats[50] == 1.0

    def test_cap_at_exact_count_allowed(self):
        assert percentile_statistics(np.ones((4, 4)), max_pixels=16)[50] == 1.0

    def test_max_pixels_exceeded_is_runtime_error(self):
        assert issubclass(MaxPixelsExceeded, RuntimeError)

    @pytest.mark.parametrize("percentiles", [(), (-1, 50), (50, 101)])
    def test_invalid_percentiles(self, percentiles):
        with pytest.raises(ValueError, match="ercentile"):
            percentile_statistics(np.ones((2, 2)), percentiles=percentiles)

    @pytest.mark.parametrize("max_pixels", [0, -5, 2.5, True])
    def test_invalid_max_pixels(self, max_pixels):
        with pytest.raises(ValueError, match="max_pixels"):
            percentile_statistics(np.ones((2, 2)), max_pixels=max_pixels)

    def test_mask_shape_mismatch(self):
        with pytest.raises(ValueError, match="does not match"):
            percentile_statistics(np.ones((2, 2)), region_mask=np.ones((3, 3), dtype=bool))
