"""
Error taxonomy for the geometry visualization pipeline.

Every failure in this package degrades to a partial or empty scene plus a
user-visible message. Nothing here is fatal to the process.

Usage:
    from envelope3d.core.errors import InvalidGeometry, EmptyGeometry

    try:
        record = builder.build(feature, 0)
    except InvalidGeometry as exc:
        logger.warning(f"Skipping feature: {exc}")
"""

from typing import List, Optional


class SceneError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.suggestions = suggestions or []


class InvalidGeometry(SceneError):
    """Malformed or unsupported feature. Skip the feature, continue the batch."""

    def __init__(
        self,
        message: str,
        feature_index: Optional[int] = None,
        geometry_type: Optional[str] = None,
    ):
        super().__init__(message)
        self.feature_index = feature_index
        self.geometry_type = geometry_type


class EmptyGeometry(SceneError):
    """No framable points. Show the default camera instead."""


class MissingCollection(SceneError):
    """An expected sub-collection is absent from the response envelope."""

    def __init__(self, names: List[str]):
        super().__init__(
            f"No collection named {', '.join(names)} in response",
            suggestions=["Check that the GMLID has processed geometry"],
        )
        self.names = names


class EmptyResponse(SceneError):
    """The whole response is empty or unparseable. Nothing can be rendered."""


class LayerLoadFailure(SceneError):
    """Non-auth network or server error while loading a layer."""

    def __init__(
        self,
        message: str,
        layer_ref: Optional[str] = None,
        status_code: Optional[int] = None,
        suggestions: Optional[List[str]] = None,
    ):
        super().__init__(message, suggestions=suggestions)
        self.layer_ref = layer_ref
        self.status_code = status_code


class LayerAuthorizationFailure(LayerLoadFailure):
    """HTTP 401 from a secured endpoint."""

    def __init__(self, message: str = "Authentication required", layer_ref: Optional[str] = None):
        super().__init__(
            message,
            layer_ref=layer_ref,
            status_code=401,
            suggestions=["Log in again and retry"],
        )
