"""
Geometry Module - Normalize service polygons into render records.

- Ring winding normalization (exterior clockwise, holes counter-clockwise)
- Polygon / MultiPolygon flattening into render records
"""

from .orientation import (
    OrientationReport,
    fix_orientation,
    is_clockwise,
    normalize_rings,
    winding_sum,
)
from .records import (
    GeometryRecordBuilder,
    RecordBatch,
    RenderRecord,
    SkippedFeature,
)

__all__ = [
    'OrientationReport',
    'fix_orientation',
    'is_clockwise',
    'normalize_rings',
    'winding_sum',
    'GeometryRecordBuilder',
    'RecordBatch',
    'RenderRecord',
    'SkippedFeature',
]
