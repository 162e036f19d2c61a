"""
Render record builder.

Turns one GeoJSON-like feature into a renderer-ready record: oriented rings
plus a shallow copy of its attributes. Unsupported or malformed features are
rejected with InvalidGeometry so a batch can skip them and carry on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal

from pydantic import ValidationError

from ..core.config import settings
from ..core.errors import InvalidGeometry
from ..core.models import RawFeature
from .orientation import Ring, normalize_rings

logger = logging.getLogger(__name__)

SUPPORTED_TYPES = ("Polygon", "MultiPolygon")

MultiPolygonMode = Literal["flatten", "per_part"]


@dataclass
class RenderRecord:
    """A feature ready for the renderer."""

    id: int
    rings: list[Ring]
    attributes: dict[str, Any]
    # Ring groups per sub-polygon. A Polygon, or a flattened MultiPolygon,
    # has exactly one part.
    parts: list[list[Ring]] = field(default_factory=list)
    source_type: str = "Polygon"
    degenerate_rings: list[int] = field(default_factory=list)

    @property
    def exterior_rings(self) -> list[Ring]:
        return [part[0] for part in self.parts if part]

    def get(self, attribute: str, default: Any = None) -> Any:
        return self.attributes.get(attribute, default)


@dataclass
class SkippedFeature:
    index: int
    reason: str


@dataclass
class RecordBatch:
    """Records built from one collection plus the features that were skipped."""

    records: list[RenderRecord] = field(default_factory=list)
    skipped: list[SkippedFeature] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)


def _check_rings(rings: Any, index: int | None) -> list[list[Any]]:
    if not isinstance(rings, list) or not rings:
        raise InvalidGeometry("Polygon has no rings", feature_index=index)
    for ring in rings:
        if not isinstance(ring, list) or not ring:
            raise InvalidGeometry("Ring is not a list of points", feature_index=index)
        for point in ring:
            if not isinstance(point, (list, tuple)) or len(point) < 2:
                raise InvalidGeometry(f"Malformed point {point!r}", feature_index=index)
    return rings


class GeometryRecordBuilder:
    """
    Build RenderRecords from raw features.

    Usage:
        builder = GeometryRecordBuilder()
        batch = builder.build_records(collection["features"])
        for record in batch.records:
            ...
    """

    def __init__(self, multipolygon_mode: MultiPolygonMode | None = None):
        self.multipolygon_mode = multipolygon_mode or settings.multipolygon_mode

    def build(self, feature: RawFeature | dict[str, Any], sequential_id: int) -> RenderRecord:
        """
        Build one record.

        Raises:
            InvalidGeometry: geometry absent, coordinates empty, malformed
                rings, or a type other than Polygon/MultiPolygon.
        """
        if not isinstance(feature, RawFeature):
            try:
                feature = RawFeature.model_validate(feature)
            except ValidationError as exc:
                raise InvalidGeometry(
                    f"Feature does not match the GeoJSON schema: {exc.error_count()} error(s)",
                    feature_index=sequential_id,
                ) from exc

        geometry = feature.geometry
        if geometry is None:
            raise InvalidGeometry("Feature has no geometry", feature_index=sequential_id)
        if geometry.type not in SUPPORTED_TYPES:
            raise InvalidGeometry(
                f"Unsupported geometry type {geometry.type!r}",
                feature_index=sequential_id,
                geometry_type=geometry.type,
            )
        if not geometry.coordinates:
            raise InvalidGeometry(
                "Geometry has empty coordinates",
                feature_index=sequential_id,
                geometry_type=geometry.type,
            )

        if geometry.type == "Polygon":
            raw_parts = [_check_rings(geometry.coordinates, sequential_id)]
        else:
            raw_parts = [_check_rings(polygon, sequential_id) for polygon in geometry.coordinates]

        try:
            parts, degenerate = self._orient(raw_parts)
        except (TypeError, ValueError) as exc:
            raise InvalidGeometry(
                f"Non-numeric coordinates: {exc}",
                feature_index=sequential_id,
                geometry_type=geometry.type,
            ) from exc

        return RenderRecord(
            id=sequential_id,
            rings=[ring for part in parts for ring in part],
            attributes=dict(feature.properties or {}),
            parts=parts,
            source_type=geometry.type,
            degenerate_rings=degenerate,
        )

    def _orient(self, raw_parts: list[list[Any]]) -> tuple[list[list[Ring]], list[int]]:
        if self.multipolygon_mode == "flatten" or len(raw_parts) == 1:
            # All rings of all sub-polygons in one list: only the very first
            # ring is treated as exterior.
            flat = [ring for part in raw_parts for ring in part]
            report = normalize_rings(flat)
            return [report.rings], report.degenerate_indices

        parts: list[list[Ring]] = []
        degenerate: list[int] = []
        offset = 0
        for part in raw_parts:
            report = normalize_rings(part)
            parts.append(report.rings)
            degenerate.extend(offset + i for i in report.degenerate_indices)
            offset += len(part)
        return parts, degenerate

    def build_records(self, features: Iterable[Any]) -> RecordBatch:
        """
        Build records for a whole collection.

        Record ids are the features' source indices, so they are unique within
        the layer. Invalid features are logged and skipped.
        """
        batch = RecordBatch()
        for index, feature in enumerate(features):
            try:
                batch.records.append(self.build(feature, index))
            except InvalidGeometry as exc:
                logger.warning(
                    f"Skipping feature: {exc.message}",
                    extra={"feature_index": index},
                )
                batch.skipped.append(SkippedFeature(index=index, reason=exc.message))
        return batch
