"""Pytest configuration and fixtures for landslide-susceptibility tests."""
import sys
from pathlib import Path

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import pytest
import numpy as np

UTM_18N = "EPSG:32618"


@pytest.fixture
def sample_dem():
    """Create a small synthetic DEM for testing."""
    # Create a simple 100x100 elevation grid
    x = np.linspace(-10, 10, 100)
    y = np.linspace(-10, 10, 100)
    X, Y = np.meshgrid(x, y)
    # Create a simple terrain with a peak in the center
    Z = 1000 + 100 * np.exp(-(X**2 + Y**2) / 50)
    return Z.astype(np.float32)


@pytest.fixture
def utm_grid():
    """10x10 grid of 30m cells in UTM 18N with origin (0, 300)."""
    from src.landslide.grid import RasterGrid

    return RasterGrid.from_bounds((0.0, 0.0, 300.0, 300.0), 30.0, UTM_18N)


@pytest.fixture
def default_weights():
    """Weight vector used for the Adirondack analysis."""
    return {
        "slope": 0.45,
        "roughness": 0.15,
        "landcover": 0.20,
        "dist_water": 0.10,
        "dist_road": 0.10,
    }
