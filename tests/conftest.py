"""
Pytest configuration and fixtures for envelope3d tests.

Provides reusable test fixtures for:
- Rings and GeoJSON-like features
- Geometry service responses in their different envelope shapes
- Fake auth providers and scene surfaces
"""

import pytest
from pathlib import Path
import tempfile
import shutil

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from envelope3d.core.config import Settings
from envelope3d.visualization.scene import InMemorySurface, SceneSession


# =============================================================================
# PATH FIXTURES
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory for test outputs, cleaned up after test."""
    tmp = tempfile.mkdtemp(prefix="envelope3d_test_")
    yield Path(tmp)
    shutil.rmtree(tmp, ignore_errors=True)


# =============================================================================
# GEOMETRY FIXTURES
# =============================================================================

# Roughly 35 m x 35 m around Marienplatz, Munich
X0, Y0 = 11.5755, 48.1374
D = 0.0005


@pytest.fixture
def ccw_square():
    """Counter-clockwise closed unit square."""
    return [[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]


@pytest.fixture
def cw_square():
    """Clockwise closed unit square."""
    return [[0, 0], [0, 1], [1, 1], [1, 0], [0, 0]]


def make_polygon_feature(x=X0, y=Y0, size=D, clockwise=False, **properties):
    """Square polygon feature with [x, y, z] points."""
    ring = [[x, y, 10.0], [x + size, y, 10.0], [x + size, y + size, 10.0], [x, y + size, 10.0], [x, y, 10.0]]
    if clockwise:
        ring = ring[::-1]
    return {
        "type": "Feature",
        "geometry": {"type": "Polygon", "coordinates": [ring]},
        "properties": properties,
    }


@pytest.fixture
def polygon_feature():
    """Single wall surface, CCW exterior."""
    return make_polygon_feature(surface_type="WallSurface", area=42.5)


@pytest.fixture
def category_features():
    """Five features with surface_type values A, B, A, C, A."""
    return [
        make_polygon_feature(x=X0 + i * D, surface_type=value, orientation=i * 90)
        for i, value in enumerate(["A", "B", "A", "C", "A"])
    ]


@pytest.fixture
def shading_features():
    """Two context features."""
    return [
        make_polygon_feature(x=X0 - D, y=Y0 - D, kind="tree"),
        make_polygon_feature(x=X0 + 5 * D, y=Y0 + D, kind="neighbor"),
    ]


# =============================================================================
# RESPONSE FIXTURES
# =============================================================================

@pytest.fixture
def geometry_response(category_features, shading_features):
    """Response nested under a GMLID, as the geometry service returns it."""
    return {
        "DEBY_LOD2_4909255": {
            "surfaces_adiabatic": {"type": "FeatureCollection", "features": category_features},
            "shading_surfaces": {"type": "FeatureCollection", "features": shading_features},
        },
        "summed_surface_areas": {"WallSurface": 812.4, "RoofSurface": 301.0},
    }


@pytest.fixture
def flat_response(category_features):
    """Response with the collection at the top level."""
    return {"surfaces_adiabatic": {"type": "FeatureCollection", "features": category_features}}


# =============================================================================
# SERVICE FIXTURES
# =============================================================================

class FakeAuth:
    """Auth provider whose login outcome is fixed up front."""

    def __init__(self, authenticated=False, login_succeeds=True):
        self.is_authenticated = authenticated
        self.login_succeeds = login_succeeds
        self.login_calls = 0
        self.invalidated = 0

    def auth_header(self):
        return {"Authorization": "Bearer test"} if self.is_authenticated else {}

    async def login(self):
        self.login_calls += 1
        if self.login_succeeds:
            self.is_authenticated = True

    def invalidate(self):
        self.invalidated += 1
        self.is_authenticated = False


@pytest.fixture
def fake_auth():
    return FakeAuth()


@pytest.fixture
def test_settings():
    """Settings without init backoff so retries do not sleep."""
    return Settings(init_backoff_s=0.0, api_token=None, username=None, password=None)


@pytest.fixture
def surface():
    return InMemorySurface()


@pytest.fixture
def session(surface):
    return SceneSession(surface)
