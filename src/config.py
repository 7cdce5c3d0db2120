"""Configuration module for landslide-susceptibility project.

Centralizes data paths and default settings. Runtime choices (AOI, weights,
resolution) are passed to SusceptibilityPipeline; these are only defaults.
"""
from pathlib import Path

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Data directories
DATA_DIR = PROJECT_ROOT / "data"
SOURCES_DIR = DATA_DIR / "sources"
AOI_DIR = DATA_DIR / "aoi"
OUTPUT_DIR = PROJECT_ROOT / "outputs"

# Default source files (SRTM, ESA WorldCover v200, JRC GSW occurrence, TIGER roads)
DEFAULT_ELEVATION_PATH = SOURCES_DIR / "srtm_elevation.tif"
DEFAULT_LANDCOVER_PATH = SOURCES_DIR / "worldcover_v200.tif"
DEFAULT_WATER_OCCURRENCE_PATH = SOURCES_DIR / "gsw_occurrence.tif"
DEFAULT_ROADS_PATH = SOURCES_DIR / "tiger_roads.gpkg"
DEFAULT_AOI_PATH = AOI_DIR / "adirondack_polygon.geojson"

# Grid settings
DEFAULT_RESOLUTION = 30.0  # meters
DEFAULT_AOI_BUFFER = 1000.0  # meters, margin for neighborhood/distance ops

# Predictor settings
WATER_OCCURRENCE_THRESHOLD = 10.0  # percent; occurrence > threshold is water
DEFAULT_ROUGHNESS_BOUNDARY = "ignore"

# Statistics settings
DEFAULT_PERCENTILES = (10, 25, 50, 75, 90)
DEFAULT_MAX_PIXELS = int(1e13)

DEFAULT_LOG_LEVEL = "INFO"
