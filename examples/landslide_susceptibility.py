#!/usr/bin/env python3
"""
Landslide Susceptibility Mapping Example.

Computes a weighted-overlay landslide susceptibility surface for an area of
interest and writes the rasters and percentile statistics to disk.

Pipeline:
1. Load AOI (default Adirondack polygon, or any vector file / drawn GeoJSON)
2. Load elevation, land cover, surface water and roads onto a 30m grid
3. Derive slope, roughness and distances to water and roads
4. Score each predictor 1..5 and combine with the weight vector
5. Classify into 5 tiers, compute percentiles, save outputs

Usage:
    # Run with mock data (fast, no downloads)
    python examples/landslide_susceptibility.py --mock-data

    # Run on the default AOI and source files under data/
    python examples/landslide_susceptibility.py

    # Custom AOI and weights
    python examples/landslide_susceptibility.py --aoi drawn_aoi.geojson --weights weights.json
"""

import sys
import argparse
import json
import logging
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src import config
from src.landslide import (
    AreaOfInterest,
    MaxPixelsExceeded,
    SourcePaths,
    SusceptibilityPipeline,
    create_mock_layers,
    save_result,
)
from src.scoring.configs import DEFAULT_LANDSLIDE_WEIGHTS

# Configure logging
LOG_FILE = Path(__file__).parent / "landslide_susceptibility.log"
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
logger.handlers = []

console_handler = logging.StreamHandler()
console_handler.setLevel(logging.INFO)
console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
logger.addHandler(console_handler)

file_handler = logging.FileHandler(LOG_FILE, mode='w')
file_handler.setLevel(logging.DEBUG)
file_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s: %(message)s"))
logger.addHandler(file_handler)

logging.basicConfig(
    level=getattr(logging, config.DEFAULT_LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s: %(message)s",
    handlers=[file_handler]
)

# Mock AOI: 6km x 6km in UTM zone 18N (Adirondacks)
MOCK_AOI_BOUNDS = (560000.0, 4880000.0, 566000.0, 4886000.0)
MOCK_AOI_CRS = "EPSG:32618"


def load_weights(path: Path) -> dict:
    """Read a weight vector from JSON ({"slope": 0.45, ...})."""
    with open(path) as f:
        weights = json.load(f)
    if not isinstance(weights, dict):
        raise ValueError(f"Weights file must hold a JSON object, got {type(weights).__name__}")
    return weights


def load_aoi(path: Path, buffer: float) -> AreaOfInterest:
    """Load an AOI from a vector file or a raw GeoJSON geometry file."""
    if path.suffix.lower() in (".json", ".geojson"):
        with open(path) as f:
            geojson = json.load(f)
        # Plain geometries (e.g. exported drawings) carry no CRS; assume WGS84
        if geojson.get("type") not in ("FeatureCollection", "Feature"):
            return AreaOfInterest.from_geojson(geojson, buffer=buffer)
    return AreaOfInterest.from_file(path, buffer=buffer)


# =============================================================================
# MAIN
# =============================================================================

def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Landslide Susceptibility Mapping",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with mock data (fast)
  python examples/landslide_susceptibility.py --mock-data

  # Use a drawn AOI and custom weights
  python examples/landslide_susceptibility.py --aoi drawn.geojson --weights weights.json

  # Specify output directory
  python examples/landslide_susceptibility.py --output-dir ./outputs/adirondacks
        """,
    )

    parser.add_argument(
        "--output-dir",
        type=Path,
        default=config.OUTPUT_DIR / "susceptibility",
        help="Output directory (default: outputs/susceptibility/)",
    )
    parser.add_argument(
        "--mock-data",
        action="store_true",
        help="Use synthetic inputs instead of source files",
    )
    parser.add_argument(
        "--aoi",
        type=Path,
        default=None,
        help=f"AOI vector file or GeoJSON (default: {config.DEFAULT_AOI_PATH})",
    )
    parser.add_argument(
        "--weights",
        type=Path,
        default=None,
        help="JSON file with predictor weights (default: built-in weights)",
    )
    parser.add_argument(
        "--resolution",
        type=float,
        default=config.DEFAULT_RESOLUTION,
        help=f"Cell size in meters (default: {config.DEFAULT_RESOLUTION})",
    )
    parser.add_argument(
        "--buffer",
        type=float,
        default=config.DEFAULT_AOI_BUFFER,
        help=f"AOI buffer in meters (default: {config.DEFAULT_AOI_BUFFER})",
    )
    parser.add_argument(
        "--roughness-boundary",
        choices=["ignore", "reflect"],
        default=config.DEFAULT_ROUGHNESS_BOUNDARY,
        help="Edge policy for the 3x3 roughness window",
    )
    parser.add_argument("--elevation", type=Path, default=config.DEFAULT_ELEVATION_PATH)
    parser.add_argument("--landcover", type=Path, default=config.DEFAULT_LANDCOVER_PATH)
    parser.add_argument("--water", type=Path, default=config.DEFAULT_WATER_OCCURRENCE_PATH)
    parser.add_argument("--roads", type=Path, default=config.DEFAULT_ROADS_PATH)

    args = parser.parse_args()

    logger.info("\n" + "=" * 70)
    logger.info("Landslide Susceptibility Mapping")
    logger.info("=" * 70)
    logger.info(f"Output directory: {args.output_dir}")
    logger.info(f"Using mock data: {args.mock_data}")

    weights = load_weights(args.weights) if args.weights else dict(DEFAULT_LANDSLIDE_WEIGHTS)
    logger.info(f"Weights: {weights}")

    if args.mock_data:
        aoi = AreaOfInterest.from_bounds(MOCK_AOI_BOUNDS, MOCK_AOI_CRS, buffer=args.buffer)
    else:
        aoi = load_aoi(args.aoi or config.DEFAULT_AOI_PATH, args.buffer)

    pipeline = SusceptibilityPipeline(
        aoi,
        weights=weights,
        sources=SourcePaths(
            elevation=args.elevation,
            landcover=args.landcover,
            water_occurrence=args.water,
            roads=args.roads,
        ),
        resolution=args.resolution,
        roughness_boundary=args.roughness_boundary,
    )

    try:
        if args.mock_data:
            result = pipeline.compute(create_mock_layers(pipeline.grid))
        else:
            result = pipeline.run()
    except MaxPixelsExceeded as e:
        logger.error(f"AOI too large for statistics: {e}")
        return 2

    paths = save_result(result, args.output_dir)

    logger.info("Susceptibility percentiles:")
    for rank, value in result.statistics.items():
        logger.info(f"  p{rank}: {value:.4f}")
    logger.info("Class counts (0 = nodata):")
    for tier, count in result.class_counts().items():
        logger.info(f"  class {tier}: {count}")

    logger.info("\n" + "=" * 70)
    logger.info("✓ Analysis complete!")
    for name, path in paths.items():
        logger.info(f"  {name}: {path}")
    logger.info("=" * 70 + "\n")

    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.info("\n[✗] Interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"\n[✗] Error: {e}")
        sys.exit(1)
