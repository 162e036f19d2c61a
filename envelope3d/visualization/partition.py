"""
Categorical partitioning of render records.

Groups records by the value of one attribute, one render group per distinct
value, each with its own palette color. Records whose value is missing or
None are left out of the categorical view.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

from ..geometry.records import RenderRecord
from .palette import RGBA, CategoricalColorAssigner

logger = logging.getLogger(__name__)


@dataclass
class CategoryGroup:
    """Records sharing one attribute value."""

    value: Any
    color: RGBA
    records: list[RenderRecord] = field(default_factory=list)

    @property
    def label(self) -> str:
        return str(self.value)

    def __len__(self) -> int:
        return len(self.records)


def available_attributes(records: Iterable[RenderRecord]) -> list[str]:
    """Attribute names across records, in first-seen order."""
    names: dict[str, None] = {}
    for record in records:
        for name in record.attributes:
            names.setdefault(name, None)
    return list(names)


class LayerPartitioner:
    """
    Partition records into CategoryGroups.

    Usage:
        partitioner = LayerPartitioner()
        groups = partitioner.partition(records, "surface_type")
    """

    def __init__(self, color_assigner: Optional[CategoricalColorAssigner] = None):
        self.color_assigner = color_assigner or CategoricalColorAssigner()

    @staticmethod
    def distinct_values(records: Sequence[RenderRecord], attribute: str) -> list[Any]:
        """Distinct non-null values of `attribute`, first-seen order."""
        seen: dict[Any, None] = {}
        for record in records:
            value = record.attributes.get(attribute)
            if value is not None:
                seen.setdefault(value, None)
        return list(seen)

    def partition(self, records: Sequence[RenderRecord], attribute: str) -> list[CategoryGroup]:
        groups: dict[Any, CategoryGroup] = {}
        dropped = 0

        for record in records:
            value = record.attributes.get(attribute)
            if value is None:
                dropped += 1
                continue
            group = groups.get(value)
            if group is None:
                color = self.color_assigner.color_for(value, len(groups))
                group = groups[value] = CategoryGroup(value=value, color=color)
            group.records.append(record)

        if dropped:
            logger.info(
                f"{dropped} of {len(records)} record(s) have no value and are not shown",
                extra={"attribute": attribute},
            )
        logger.debug(
            f"Partitioned {len(records)} record(s) into {len(groups)} group(s)",
            extra={"attribute": attribute},
        )
        return list(groups.values())
