"""
Renderer-ready layer descriptions.

Each layer is a plain description the rendering surface can consume: a
title, a symbol (3D polygon fill or point marker), a color, field
definitions for popups and the features themselves in WGS84.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numpy as np
from shapely.geometry import Polygon

from ..geometry.orientation import is_degenerate
from ..geometry.records import RenderRecord
from .detail import DetailState
from .framing import WGS84_WKID
from .palette import CONTEXT_COLOR, DEFAULT_FILL_COLOR, OUTLINE_COLOR, RGBA
from .partition import CategoryGroup

OBJECT_ID_FIELD = "ObjectID"
POINT_SIZE = 8


def _field_type(value: Any) -> str:
    if isinstance(value, bool):
        return "string"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "double"
    return "string"


def field_definitions(records: Sequence[RenderRecord]) -> list[dict[str, str]]:
    """ObjectID plus one field per attribute, typed from the first non-null value."""
    fields = [{"name": OBJECT_ID_FIELD, "alias": OBJECT_ID_FIELD, "type": "oid"}]
    types: dict[str, Optional[str]] = {}
    for record in records:
        for name, value in record.attributes.items():
            if name == OBJECT_ID_FIELD:
                continue
            if types.get(name) is None and value is not None:
                types[name] = _field_type(value)
            else:
                types.setdefault(name, None)
    fields.extend(
        {"name": name, "alias": name, "type": kind or "string"} for name, kind in types.items()
    )
    return fields


def representative_point(record: RenderRecord) -> tuple[float, float]:
    """Point used for the overview symbol: centroid of the first exterior ring."""
    exterior = record.rings[0]
    coords = [(p[0], p[1]) for p in exterior]
    if not is_degenerate(exterior):
        centroid = Polygon(coords).centroid
        if not centroid.is_empty:
            return (centroid.x, centroid.y)
    pts = np.asarray(coords, dtype=float)
    return (float(pts[:, 0].mean()), float(pts[:, 1].mean()))


@dataclass
class RenderLayer:
    """One layer handed to the rendering surface."""

    title: str
    kind: str  # "fill" or "point"
    role: str  # "categorical", "single" or "context"
    color: RGBA
    records: list[RenderRecord]
    fields: list[dict[str, str]]
    value: Any = None
    detail: Optional[DetailState] = None
    visible: bool = True
    # Assigned by the ScenePass that carries the layer
    layer_id: str = ""

    def apply_detail(self, state: Optional[DetailState]) -> bool:
        """Set visibility for a detail state. Returns True if it changed."""
        if self.detail is None or state is None:
            return False
        visible = self.detail is state
        changed = visible != self.visible
        self.visible = visible
        return changed

    def _symbol(self) -> dict[str, Any]:
        color = list(self.color)
        if self.kind == "point":
            return {
                "type": "simple-marker",
                "color": color,
                "size": POINT_SIZE,
                "outline": {"color": [255, 255, 255, 0.9], "width": 1},
            }
        return {
            "type": "polygon-3d",
            "symbolLayers": [{
                "type": "fill",
                "material": {"color": color, "colorMixMode": "replace"},
                "outline": {"color": list(OUTLINE_COLOR), "size": "2px"},
            }],
        }

    def _feature(self, record: RenderRecord) -> dict[str, Any]:
        if self.kind == "point":
            x, y = representative_point(record)
            geometry = {"type": "point", "x": x, "y": y}
        else:
            geometry = {"type": "polygon", "rings": [[list(p) for p in ring] for ring in record.rings]}
        geometry["spatialReference"] = {"wkid": WGS84_WKID}
        return {
            "geometry": geometry,
            "attributes": {OBJECT_ID_FIELD: record.id, **record.attributes},
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.layer_id,
            "title": self.title,
            "kind": self.kind,
            "role": self.role,
            "value": self.value,
            "visible": self.visible,
            "objectIdField": OBJECT_ID_FIELD,
            "fields": self.fields,
            "renderer": {"type": "simple", "symbol": self._symbol()},
            "popupTemplate": {
                "title": self.title,
                "fieldInfos": [
                    {"fieldName": f["name"], "label": f["alias"]}
                    for f in self.fields
                    if f["type"] != "oid"
                ],
            },
            "source": [self._feature(record) for record in self.records],
        }


def context_layer(records: Sequence[RenderRecord], title: str = "Shading Surfaces") -> RenderLayer:
    """Always-visible neutral layer for context geometry."""
    return RenderLayer(
        title=title,
        kind="fill",
        role="context",
        color=CONTEXT_COLOR,
        records=list(records),
        fields=field_definitions(records),
    )


def detail_pair(
    records: Sequence[RenderRecord],
    title: str,
    color: RGBA,
    role: str,
    value: Any = None,
) -> list[RenderLayer]:
    """Fill layer for the detailed view and point layer for the overview."""
    fields = field_definitions(records)
    return [
        RenderLayer(
            title=title, kind="fill", role=role, color=color,
            records=list(records), fields=fields, value=value,
            detail=DetailState.DETAILED,
        ),
        RenderLayer(
            title=f"{title} (overview)", kind="point", role=role, color=color,
            records=list(records), fields=fields, value=value,
            detail=DetailState.OVERVIEW,
        ),
    ]


def single_layers(records: Sequence[RenderRecord], title: str = "Adiabatic Surfaces") -> list[RenderLayer]:
    """Uncategorized rendering of the primary collection."""
    return detail_pair(records, title, DEFAULT_FILL_COLOR, role="single")


def category_layers(groups: Sequence[CategoryGroup]) -> list[RenderLayer]:
    """One detail pair per category group, in group order."""
    layers = []
    for group in groups:
        layers.extend(detail_pair(group.records, group.label, group.color, "categorical", group.value))
    return layers
