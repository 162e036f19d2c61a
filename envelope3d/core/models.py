"""
Pydantic models for geometry service payloads.

Covers the GeoJSON-like features returned by the geometry service and the
surface-area summary that accompanies them. Derived render structures
(records, groups, framings) live next to the code that builds them.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


# =============================================================================
# GEOMETRY SERVICE SCHEMA
# =============================================================================


class FeatureGeometry(BaseModel):
    """GeoJSON geometry in WGS84 (EPSG:4326)."""

    model_config = ConfigDict(frozen=True)

    # Not restricted to Polygon/MultiPolygon here so unsupported types can be
    # skipped per feature instead of failing the whole collection.
    type: str
    coordinates: list[Any] = Field(default_factory=list)


class RawFeature(BaseModel):
    """One feature as delivered by the geometry service."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: str = "Feature"
    geometry: FeatureGeometry | None = None
    properties: dict[str, Any] | None = None


class SurfaceArea(BaseModel):
    """One row of the summed surface areas shown next to the scene."""

    label: str
    value: float
    unit: str = "m²"


def surface_areas_from_response(response: dict[str, Any]) -> list[SurfaceArea]:
    """Extract `summed_surface_areas` rows from a geometry response."""
    summed = response.get("summed_surface_areas") or {}
    if not isinstance(summed, dict):
        return []

    rows = []
    for label, value in summed.items():
        try:
            rows.append(SurfaceArea(label=str(label), value=float(value)))
        except (TypeError, ValueError):
            logger.debug(f"Ignoring non-numeric surface area {label!r}: {value!r}")
    return rows
