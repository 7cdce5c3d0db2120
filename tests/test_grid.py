"""Tests for RasterGrid, RasterLayer, AreaOfInterest and alignment checks."""

import numpy as np
import pytest
from rasterio import Affine
from shapely.geometry import Point, Polygon, box, mapping

from src.landslide.grid import (
    AreaOfInterest,
    GridMismatchError,
    RasterGrid,
    RasterLayer,
    check_aligned,
)

UTM_18N = "EPSG:32618"


class TestRasterGrid:
    """Grid construction and alignment."""

    def test_from_bounds_snaps_outward(self):
        """Bounds are snapped to multiples of the resolution."""
        grid = RasterGrid.from_bounds((10.0, 20.0, 95.0, 80.0), 30.0, UTM_18N)

        assert grid.shape == (3, 4)
        assert grid.transform.c == 0.0
        assert grid.transform.f == 90.0
        assert grid.cell_size == 30.0
        assert grid.bounds == pytest.approx((0.0, 0.0, 120.0, 90.0))

    def test_from_bounds_is_deterministic(self):
        a = RasterGrid.from_bounds((1.0, 2.0, 1000.0, 2000.0), 30.0, UTM_18N)
        b = RasterGrid.from_bounds((1.0, 2.0, 1000.0, 2000.0), 30.0, UTM_18N)
        assert a.is_aligned(b)

    def test_geographic_crs_rejected(self):
        """Cell size must be in meters."""
        with pytest.raises(ValueError, match="projected"):
            RasterGrid(Affine(0.001, 0, -74.0, 0, -0.001, 44.0), (10, 10), "EPSG:4326")

    def test_non_square_cells_rejected(self):
        with pytest.raises(ValueError, match="square"):
            RasterGrid(Affine(30, 0, 0, 0, -20, 300), (10, 10), UTM_18N)

    def test_rotated_grid_rejected(self):
        with pytest.raises(ValueError, match="north-up"):
            RasterGrid(Affine(30, 5, 0, 0, -30, 300), (10, 10), UTM_18N)

    @pytest.mark.parametrize("resolution", [0, -30, float("nan"), True, "30"])
    def test_invalid_resolution_rejected(self, resolution):
        with pytest.raises(ValueError, match="Resolution"):
            RasterGrid.from_bounds((0, 0, 300, 300), resolution, UTM_18N)

    @pytest.mark.parametrize("resolution", [np.int64(30), np.float32(30.0)])
    def test_numpy_resolution_accepted(self, resolution):
        """Resolutions read from arrays or rasters are numpy scalars."""
        grid = RasterGrid.from_bounds((0, 0, 300, 300), resolution, UTM_18N)
        assert grid.shape == (10, 10)
        assert grid.cell_size == 30.0

    def test_alignment_detects_offset_and_crs(self, utm_grid):
        shifted = RasterGrid(utm_grid.transform * Affine.translation(1, 0), utm_grid.shape, UTM_18N)
        other_crs = RasterGrid(utm_grid.transform, utm_grid.shape, "EPSG:32617")

        assert utm_grid.is_aligned(RasterGrid(utm_grid.transform, utm_grid.shape, UTM_18N))
        assert not utm_grid.is_aligned(shifted)
        assert not utm_grid.is_aligned(other_crs)

    def test_describe_is_json_friendly(self, utm_grid):
        import json

        summary = json.loads(json.dumps(utm_grid.describe()))
        assert summary["shape"] == [10, 10]
        assert summary["cell_size"] == 30.0


class TestRasterLayer:
    """Layer validation and coverage."""

    def test_shape_must_match_grid(self, utm_grid):
        with pytest.raises(GridMismatchError):
            RasterLayer("dem", np.zeros((5, 5)), utm_grid)

    def test_must_be_2d(self, utm_grid):
        with pytest.raises(ValueError, match="2D"):
            RasterLayer("dem", np.zeros(100), utm_grid)

    def test_invalid_kind_rejected(self, utm_grid):
        with pytest.raises(ValueError, match="kind"):
            RasterLayer("dem", np.zeros((10, 10)), utm_grid, kind="ordinal")

    def test_coverage_counts_nan_as_gap(self, utm_grid):
        data = np.ones((10, 10))
        data[:, :5] = np.nan
        layer = RasterLayer("dem", data, utm_grid)
        assert layer.coverage == pytest.approx(0.5)
        assert layer.valid_mask[:, 5:].all()


class TestCheckAligned:
    """Co-registration is enforced before combining layers."""

    def test_aligned_layers_pass(self, utm_grid):
        layers = [RasterLayer(n, np.zeros((10, 10)), utm_grid) for n in ("a", "b")]
        assert check_aligned(layers) is utm_grid

    def test_misaligned_layer_named_in_error(self, utm_grid):
        other = RasterGrid.from_bounds((30.0, 0.0, 330.0, 300.0), 30.0, UTM_18N)
        layers = [
            RasterLayer("elevation", np.zeros((10, 10)), utm_grid),
            RasterLayer("landcover", np.zeros((10, 10)), other),
        ]
        with pytest.raises(GridMismatchError, match="landcover"):
            check_aligned(layers)

    def test_grid_mismatch_is_value_error(self):
        assert issubclass(GridMismatchError, ValueError)


class TestAreaOfInterest:
    """AOI construction, projection and buffering."""

    def test_buffered_grid(self):
        """1km square with a 1km buffer covers 3km plus snapping."""
        aoi = AreaOfInterest.from_bounds((0.0, 0.0, 1000.0, 1000.0), UTM_18N, buffer=1000.0)

        assert aoi.buffered.bounds == pytest.approx((-1000.0, -1000.0, 2000.0, 2000.0))
        grid = aoi.to_grid(30.0)
        assert grid.shape == (101, 101)

    def test_default_buffer_is_1000m(self):
        aoi = AreaOfInterest.from_bounds((0.0, 0.0, 100.0, 100.0), UTM_18N)
        assert aoi.buffer == 1000.0

    def test_geographic_aoi_projected_to_utm(self):
        """Lon/lat AOIs are projected to their UTM zone."""
        aoi = AreaOfInterest.from_bounds((-74.5, 44.0, -74.4, 44.1), "EPSG:4326")

        assert aoi.crs.is_projected
        assert aoi.crs.to_epsg() == 32618
        assert aoi.source_crs.to_epsg() == 4326
        # ~8km x ~11km in meters
        minx, miny, maxx, maxy = aoi.geometry.bounds
        assert 7000 < maxx - minx < 9000
        assert 10000 < maxy - miny < 12000

    def test_from_geojson_feature_collection(self):
        """Drawn features are dissolved into one AOI."""
        collection = {
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "properties": {}, "geometry": mapping(box(0, 0, 100, 100))},
                {"type": "Feature", "properties": {}, "geometry": mapping(box(100, 0, 200, 100))},
            ],
        }
        aoi = AreaOfInterest.from_geojson(collection, crs=UTM_18N, buffer=0)
        assert aoi.geometry.area == pytest.approx(20000.0)

    def test_from_geojson_bare_geometry(self):
        aoi = AreaOfInterest.from_geojson(mapping(box(0, 0, 100, 100)), crs=UTM_18N, buffer=0)
        assert aoi.geometry.bounds == (0.0, 0.0, 100.0, 100.0)

    def test_from_file(self, tmp_path):
        import geopandas as gpd

        path = tmp_path / "aoi.gpkg"
        gpd.GeoDataFrame(geometry=[box(0, 0, 600, 600), box(600, 0, 900, 600)], crs=UTM_18N).to_file(
            path, driver="GPKG"
        )
        aoi = AreaOfInterest.from_file(path, buffer=0)
        assert aoi.geometry.bounds == pytest.approx((0.0, 0.0, 900.0, 600.0))

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AreaOfInterest.from_file(tmp_path / "missing.geojson")

    def test_point_rejected(self):
        with pytest.raises(ValueError, match="polygon"):
            AreaOfInterest(geometry=Point(0, 0), crs=UTM_18N)

    def test_empty_rejected(self):
        with pytest.raises(ValueError, match="empty"):
            AreaOfInterest(geometry=Polygon(), crs=UTM_18N)

    def test_negative_buffer_rejected(self):
        with pytest.raises(ValueError, match="buffer"):
            AreaOfInterest.from_bounds((0, 0, 100, 100), UTM_18N, buffer=-1.0)

    def test_boolean_buffer_rejected(self):
        with pytest.raises(ValueError, match="buffer"):
            AreaOfInterest.from_bounds((0, 0, 100, 100), UTM_18N, buffer=True)

    def test_numpy_buffer_accepted(self):
        aoi = AreaOfInterest.from_bounds((0.0, 0.0, 1000.0, 1000.0), UTM_18N, buffer=np.float64(500.0))
        assert aoi.buffered.bounds == pytest.approx((-500.0, -500.0, 1500.0, 1500.0))

    def test_self_intersecting_polygon_repaired(self):
        bowtie = Polygon([(0, 0), (100, 100), (100, 0), (0, 100)])
        aoi = AreaOfInterest(geometry=bowtie, crs=UTM_18N, buffer=0)
        assert aoi.geometry.is_valid
        assert aoi.geometry.area > 0
