"""Tests for loading rasters and road vectors onto the AOI grid."""

import geopandas as gpd
import numpy as np
import pytest
from shapely.geometry import LineString, Polygon

from src.landslide.data_loading import (
    SourcePaths,
    create_mock_layers,
    load_raster_to_grid,
    load_roads_to_grid,
    load_sources,
)
from src.landslide.grid import AreaOfInterest, RasterGrid
from src.landslide.outputs import write_geotiff

UTM_18N = "EPSG:32618"


@pytest.fixture
def aoi():
    """300m square AOI on the UTM 18N central meridian, no buffer (10x10 at 30m)."""
    return AreaOfInterest.from_bounds((499860.0, 4800000.0, 500160.0, 4800300.0), UTM_18N, buffer=0)


@pytest.fixture
def grid(aoi):
    return aoi.to_grid(30.0)


@pytest.fixture
def source_files(tmp_path, grid):
    """Elevation, land cover, water occurrence and roads covering the grid."""
    rows, cols = np.mgrid[0:10, 0:10].astype(np.float64)
    elevation = 400.0 + 10.0 * cols + 5.0 * rows
    landcover = np.where(cols < 5, 10, 60).astype(np.uint8)
    water = np.zeros((10, 10))
    water[:, 9] = 75.0

    paths = SourcePaths(
        elevation=write_geotiff(tmp_path / "dem.tif", elevation, grid, nodata=-9999.0),
        landcover=write_geotiff(tmp_path / "lc.tif", landcover, grid, nodata=0, dtype="uint8"),
        water_occurrence=write_geotiff(tmp_path / "gsw.tif", water, grid, nodata=255, dtype="uint8"),
        roads=tmp_path / "roads.gpkg",
    )
    gpd.GeoDataFrame(
        {"name": ["Route 3"]},
        geometry=[LineString([(499860.0, 4800165.0), (500160.0, 4800165.0)])],
        crs=UTM_18N,
    ).to_file(paths.roads, driver="GPKG")
    return paths


class TestSourcePaths:

    def test_missing_files_listed(self, tmp_path):
        sources = SourcePaths(
            elevation=tmp_path / "dem.tif",
            landcover=tmp_path / "lc.tif",
            water_occurrence=tmp_path / "gsw.tif",
            roads=tmp_path / "roads.gpkg",
        )
        with pytest.raises(FileNotFoundError, match="elevation"):
            sources.validate()

    def test_in_memory_roads_not_checked(self, source_files):
        source_files.roads = {"type": "FeatureCollection", "features": []}
        source_files.validate()


class TestLoadRasterToGrid:

    def test_same_grid_round_trip(self, source_files, grid):
        layer = load_raster_to_grid(source_files.landcover, grid, "landcover", categorical=True)

        assert layer.kind == "categorical"
        assert layer.coverage == 1.0
        assert set(np.unique(layer.data)) == {10.0, 60.0}
        assert np.all(layer.data[:, :5] == 10.0)

    def test_continuous_values_preserved(self, source_files, grid):
        layer = load_raster_to_grid(source_files.elevation, grid, "elevation")
        rows, cols = np.mgrid[0:10, 0:10]
        np.testing.assert_allclose(layer.data[1:-1, 1:-1], (400.0 + 10.0 * cols + 5.0 * rows)[1:-1, 1:-1])

    def test_source_nodata_becomes_nan(self, tmp_path, grid):
        data = np.full((10, 10), 120.0)
        data[0, :] = -9999.0
        path = write_geotiff(tmp_path / "gaps.tif", data, grid, nodata=-9999.0)

        layer = load_raster_to_grid(path, grid, "elevation", categorical=True)
        assert np.all(np.isnan(layer.data[0]))
        assert np.all(layer.data[1:] == 120.0)

    def test_no_coverage_is_all_nan(self, tmp_path, grid):
        """A source far from the AOI yields an all-nodata layer, not an error."""
        elsewhere = RasterGrid.from_bounds((600000.0, 4899990.0, 600300.0, 4900290.0), 30.0, UTM_18N)
        assert elsewhere.shape == (10, 10)
        path = write_geotiff(tmp_path / "far.tif", np.ones(elsewhere.shape), elsewhere, nodata=-9999.0)

        layer = load_raster_to_grid(path, grid, "elevation")
        assert layer.coverage == 0.0
        assert np.all(np.isnan(layer.data))

    def test_missing_file(self, tmp_path, grid):
        with pytest.raises(FileNotFoundError, match="Raster not found"):
            load_raster_to_grid(tmp_path / "nope.tif", grid, "elevation")


class TestLoadRoadsToGrid:

    def test_from_geodataframe(self, aoi, grid):
        roads = gpd.GeoDataFrame(
            geometry=[LineString([(499860.0, 4800165.0), (500160.0, 4800165.0)])], crs=UTM_18N
        )
        layer = load_roads_to_grid(roads, aoi, grid)

        assert layer.name == "roads"
        np.testing.assert_array_equal(layer.data[4], 1.0)
        assert layer.data.sum() == 10

    def test_from_file(self, source_files, aoi, grid):
        layer = load_roads_to_grid(source_files.roads, aoi, grid)
        np.testing.assert_array_equal(layer.data[4], 1.0)

    def test_from_geojson_lonlat(self, aoi, grid):
        """A road along the central meridian lands in the middle columns."""
        collection = {
            "type": "FeatureCollection",
            "features": [{
                "type": "Feature",
                "properties": {},
                "geometry": {"type": "LineString", "coordinates": [[-75.0, 43.0], [-75.0, 44.0]]},
            }],
        }
        layer = load_roads_to_grid(collection, aoi, grid)

        assert layer.data.sum() > 0
        assert layer.data[:, :4].sum() == 0
        assert layer.data[:, 6:].sum() == 0

    def test_roads_outside_aoi_ignored(self, aoi, grid):
        roads = gpd.GeoDataFrame(
            geometry=[LineString([(600000.0, 4900000.0), (601000.0, 4900000.0)])], crs=UTM_18N
        )
        layer = load_roads_to_grid(roads, aoi, grid)
        assert layer.data.sum() == 0

    def test_missing_crs_rejected(self, aoi, grid):
        roads = gpd.GeoDataFrame(geometry=[LineString([(499860.0, 4800165.0), (500160.0, 4800165.0)])])
        with pytest.raises(ValueError, match="CRS"):
            load_roads_to_grid(roads, aoi, grid)


class TestLoadSources:

    def test_all_layers_on_grid(self, source_files, aoi, grid):
        layers = load_sources(aoi, grid, source_files)

        assert set(layers) == {"elevation", "landcover", "water_occurrence", "roads"}
        for layer in layers.values():
            assert layer.grid.is_aligned(grid)

    def test_rasters_clipped_to_aoi_polygon(self, source_files, grid):
        """Cells whose centers fall outside a triangular AOI become nodata."""
        triangle = AreaOfInterest(
            geometry=Polygon([(499860.0, 4800000.0), (500160.0, 4800000.0), (499860.0, 4800300.0)]),
            crs=UTM_18N,
            buffer=0,
        )
        layers = load_sources(triangle, grid, source_files)
        landcover = layers["landcover"].data

        # Lower-left corner inside, upper-right corner outside
        assert landcover[9, 0] == 10.0
        assert np.isnan(landcover[0, 9])
        assert np.isnan(layers["elevation"].data[0, 9])
        assert 0.3 < layers["landcover"].coverage < 0.7

    def test_missing_source_fails_before_loading(self, source_files, aoi, grid, tmp_path):
        source_files.landcover = tmp_path / "missing.tif"
        with pytest.raises(FileNotFoundError, match="landcover"):
            load_sources(aoi, grid, source_files)


class TestMockLayers:

    def test_deterministic(self, utm_grid):
        a = create_mock_layers(utm_grid, seed=1)
        b = create_mock_layers(utm_grid, seed=1)
        for name in a:
            np.testing.assert_array_equal(a[name].data, b[name].data)

    def test_contents(self, grid):
        layers = create_mock_layers(grid)

        assert np.count_nonzero(layers["water_occurrence"].data > 10) == grid.shape[0]
        assert layers["roads"].data.sum() == grid.shape[1]
        assert not np.any(np.isnan(layers["elevation"].data))
