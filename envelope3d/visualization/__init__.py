"""3D scene visualization modules."""

from .detail import DetailState, ViewportDetailSwitcher
from .framing import CameraFraming, CameraMove, Extent, ExtentFramer, compute_extent
from .layers import RenderLayer, category_layers, context_layer, single_layers
from .palette import PALETTE, CategoricalColorAssigner
from .partition import CategoryGroup, LayerPartitioner, available_attributes
from .scene import InMemorySurface, JSONSurface, RenderSurface, ScenePass, SceneSession

__all__ = [
    "DetailState",
    "ViewportDetailSwitcher",
    "CameraFraming",
    "CameraMove",
    "Extent",
    "ExtentFramer",
    "compute_extent",
    "RenderLayer",
    "category_layers",
    "context_layer",
    "single_layers",
    "PALETTE",
    "CategoricalColorAssigner",
    "CategoryGroup",
    "LayerPartitioner",
    "available_attributes",
    "InMemorySurface",
    "JSONSurface",
    "RenderSurface",
    "ScenePass",
    "SceneSession",
]
