"""Core models, configuration and error taxonomy."""

from .config import Settings, settings
from .envelope import CollectionLocator, LocatedCollection
from .errors import (
    EmptyGeometry,
    EmptyResponse,
    InvalidGeometry,
    LayerAuthorizationFailure,
    LayerLoadFailure,
    MissingCollection,
    SceneError,
)
from .models import FeatureGeometry, RawFeature, SurfaceArea

__all__ = [
    "Settings",
    "settings",
    "CollectionLocator",
    "LocatedCollection",
    "EmptyGeometry",
    "EmptyResponse",
    "InvalidGeometry",
    "LayerAuthorizationFailure",
    "LayerLoadFailure",
    "MissingCollection",
    "SceneError",
    "FeatureGeometry",
    "RawFeature",
    "SurfaceArea",
]
