"""
Extent and camera framing.

Pools the exterior-ring points of every record, takes the bounding extent
and derives a camera target, zoom, tilt and heading from its size:

- close regime (span below ~100 m): fixed high zoom, steep tilt
- far regime: zoom drops by one level for every doubling of the span

Zoom never increases as the span grows, and the camera always targets the
extent center.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Iterable, Optional, Sequence

import numpy as np

from ..core.config import Settings, settings as default_settings
from ..core.errors import EmptyGeometry
from ..geometry.records import RenderRecord

WGS84_WKID = 4326


@dataclass
class Extent:
    """Axis-aligned bounding box in geographic degrees."""

    xmin: float
    ymin: float
    xmax: float
    ymax: float

    @property
    def center(self) -> tuple[float, float]:
        return ((self.xmin + self.xmax) / 2, (self.ymin + self.ymax) / 2)

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    @property
    def max_span(self) -> float:
        return max(self.width, self.height)

    def contains(self, x: float, y: float) -> bool:
        return self.xmin <= x <= self.xmax and self.ymin <= y <= self.ymax

    def to_dict(self) -> dict:
        return {**asdict(self), "spatialReference": {"wkid": WGS84_WKID}}


@dataclass
class CameraFraming:
    """Where the camera should look."""

    target_x: float
    target_y: float
    zoom: float
    tilt: float
    heading: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CameraMove:
    """An animated, time-bounded transition to a framing."""

    framing: CameraFraming
    duration_s: float = 3.0
    easing: str = "ease-in-out"

    def to_dict(self) -> dict:
        return {
            "target": {
                "x": self.framing.target_x,
                "y": self.framing.target_y,
                "spatialReference": {"wkid": WGS84_WKID},
            },
            "zoom": self.framing.zoom,
            "tilt": self.framing.tilt,
            "heading": self.framing.heading,
            "duration_ms": int(self.duration_s * 1000),
            "easing": self.easing,
        }


def exterior_points(collections: Iterable[Sequence[RenderRecord]]) -> list[tuple[float, float]]:
    """Every exterior-ring point of every record in every collection."""
    points = []
    for records in collections:
        for record in records:
            for ring in record.exterior_rings:
                points.extend((p[0], p[1]) for p in ring)
    return points


def compute_extent(points: Sequence[tuple[float, float]]) -> Extent:
    if not points:
        raise EmptyGeometry("No exterior-ring points to frame")
    pts = np.asarray(points, dtype=float)
    xmin, ymin = pts.min(axis=0)
    xmax, ymax = pts.max(axis=0)
    return Extent(float(xmin), float(ymin), float(xmax), float(ymax))


class ExtentFramer:
    """
    Derive a CameraFraming from render records.

    Usage:
        framer = ExtentFramer()
        try:
            move = framer.move_to(framer.frame([primary, context]))
        except EmptyGeometry:
            move = framer.move_to(framer.default_framing())
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        if self.config.close_zoom < self.config.far_max_zoom:
            raise ValueError("close_zoom must not be below far_max_zoom")
        if self.config.close_span_threshold_deg <= 0:
            raise ValueError("close_span_threshold_deg must be positive")

    def zoom_for_span(self, max_span: float) -> float:
        """Camera zoom level for an extent span (degrees)."""
        cfg = self.config
        if max_span < cfg.close_span_threshold_deg:
            return cfg.close_zoom
        zoom = cfg.far_max_zoom - math.log2(max_span / cfg.close_span_threshold_deg)
        return max(cfg.min_zoom, min(cfg.far_max_zoom, zoom))

    def tilt_for_span(self, max_span: float) -> float:
        if max_span < self.config.close_span_threshold_deg:
            return self.config.close_tilt
        return self.config.far_tilt

    def frame_extent(self, extent: Extent) -> CameraFraming:
        target_x, target_y = extent.center
        span = extent.max_span
        return CameraFraming(
            target_x=target_x,
            target_y=target_y,
            zoom=self.zoom_for_span(span),
            tilt=self.tilt_for_span(span),
            heading=self.config.heading,
        )

    def frame(self, collections: Iterable[Sequence[RenderRecord]]) -> CameraFraming:
        """
        Frame all collections together.

        Raises:
            EmptyGeometry: no exterior-ring points in any collection.
        """
        return self.frame_extent(compute_extent(exterior_points(collections)))

    def default_framing(self) -> CameraFraming:
        """Neutral view used when there is nothing to frame."""
        cfg = self.config
        return CameraFraming(
            target_x=cfg.default_camera_x,
            target_y=cfg.default_camera_y,
            zoom=cfg.default_camera_zoom,
            tilt=cfg.far_tilt,
            heading=cfg.heading,
        )

    def move_to(self, framing: CameraFraming) -> CameraMove:
        return CameraMove(framing=framing, duration_s=self.config.camera_duration_s)
