"""
envelope3d - building envelope geometry to 3D scene descriptions.

Fetches CityGML-derived envelope geometry, normalizes ring winding, colors
surfaces by attribute and frames the camera on the building.
"""

__version__ = "0.1.0"

from .controller import GeometryVisualizationController  # noqa: E402

__all__ = ["GeometryVisualizationController", "__version__"]
