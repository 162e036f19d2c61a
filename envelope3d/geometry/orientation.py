"""
Ring winding normalization.

The target renderer expects the exterior ring of a polygon to be wound
clockwise and every hole counter-clockwise, the opposite of RFC 7946 GeoJSON.
Geometry coming from the service uses either convention, sometimes both in
one collection.

Usage:
    from envelope3d.geometry.orientation import fix_orientation

    rings = fix_orientation(feature["geometry"]["coordinates"])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

logger = logging.getLogger(__name__)

Point = Sequence[float]
Ring = list[Point]


@dataclass
class OrientationReport:
    """What normalization did to a ring list."""

    rings: list[Ring]
    reversed_indices: list[int] = field(default_factory=list)
    degenerate_indices: list[int] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.degenerate_indices)


def winding_sum(ring: Sequence[Point]) -> float:
    """
    Shoelace-style sum Σ (x[i+1] - x[i]) * (y[i+1] + y[i]).

    Positive means clockwise in an x-east / y-north frame. Only the first two
    components of each point are used, so [x, y, z] rings work unchanged.
    """
    if len(ring) < 2:
        return 0.0
    pts = np.asarray([(p[0], p[1]) for p in ring], dtype=float)
    x, y = pts[:, 0], pts[:, 1]
    return float(np.sum((x[1:] - x[:-1]) * (y[1:] + y[:-1])))


def is_clockwise(ring: Sequence[Point]) -> bool:
    return winding_sum(ring) > 0


def distinct_point_count(ring: Sequence[Point]) -> int:
    return len({(p[0], p[1]) for p in ring})


def is_degenerate(ring: Sequence[Point]) -> bool:
    """Fewer than 3 distinct points: winding cannot be classified."""
    return distinct_point_count(ring) < 3


def normalize_rings(rings: Sequence[Sequence[Point]]) -> OrientationReport:
    """
    Orient ring 0 clockwise and rings 1.. counter-clockwise.

    Ring count and point count are preserved; only point order within a
    ring may be reversed. Degenerate rings pass through and are reported.
    """
    report = OrientationReport(rings=[])

    for index, ring in enumerate(rings):
        ring = list(ring)

        if is_degenerate(ring):
            report.degenerate_indices.append(index)
            report.rings.append(ring)
            continue

        clockwise = is_clockwise(ring)
        wants_clockwise = index == 0
        if clockwise != wants_clockwise:
            ring = ring[::-1]
            report.reversed_indices.append(index)
        report.rings.append(ring)

    if report.degenerate_indices:
        logger.warning(
            f"Degenerate ring(s) {report.degenerate_indices} left unoriented "
            f"(fewer than 3 distinct points)"
        )

    return report


def fix_orientation(rings: Sequence[Sequence[Point]]) -> list[Ring]:
    """Return the rings with renderer winding (exterior CW, holes CCW)."""
    return normalize_rings(rings).rings
