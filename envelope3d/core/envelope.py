"""
Collection lookup inside geometry service responses.

The service nests the collections we need at different depths depending on
the request: at the top level, under `results`, or one level under a key
named after the GMLID. Lookup is an ordered list of probe paths; the first
path that yields a structurally valid collection wins.

Path syntax: dot-separated keys, where `*` matches any key of a mapping
(tried in the mapping's own order).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Sequence

from .errors import EmptyResponse, MissingCollection

logger = logging.getLogger(__name__)

PROBE_TEMPLATES = (
    "{name}",
    "results.{name}",
    "*.{name}",
    "results.*.{name}",
)


@dataclass
class LocatedCollection:
    """A collection found in a response, with where it was found."""

    name: str
    path: str
    data: dict[str, Any]

    @property
    def features(self) -> list[Any]:
        return self.data["features"]


def is_feature_collection(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("features"), list)


def _walk(node: Any, keys: Sequence[str]) -> Iterator[tuple[list[str], Any]]:
    if not keys:
        yield [], node
        return
    if not isinstance(node, dict):
        return
    head, rest = keys[0], keys[1:]
    if head == "*":
        for key, child in node.items():
            for path, value in _walk(child, rest):
                yield [key, *path], value
    elif head in node:
        for path, value in _walk(node[head], rest):
            yield [head, *path], value


class CollectionLocator:
    """
    Find named sub-collections in a response envelope.

    Usage:
        locator = CollectionLocator()
        adiabatic = locator.locate(response, ["surfaces_adiabatic"])
    """

    def __init__(self, templates: Sequence[str] = PROBE_TEMPLATES):
        self.templates = tuple(templates)

    def probe_paths(self, names: Sequence[str]) -> list[tuple[str, str]]:
        """(name, path) pairs in priority order: names first, then depth."""
        return [(name, template.format(name=name)) for name in names for template in self.templates]

    def locate(self, response: Any, names: Sequence[str]) -> LocatedCollection:
        """
        Return the first structurally valid collection among `names`.

        Raises:
            MissingCollection: no probe path yields a collection.
        """
        for name, path in self.probe_paths(names):
            for found_path, value in _walk(response, path.split(".")):
                if is_feature_collection(value):
                    logger.debug(
                        f"Found collection at {'.'.join(found_path)}",
                        extra={"collection": name},
                    )
                    return LocatedCollection(name=name, path=".".join(found_path), data=value)
        raise MissingCollection(list(names))

    def locate_optional(self, response: Any, names: Sequence[str]) -> Optional[LocatedCollection]:
        try:
            return self.locate(response, names)
        except MissingCollection as exc:
            logger.info(exc.message)
            return None


def check_response(response: Any) -> dict[str, Any]:
    """
    Reject responses that cannot possibly be rendered.

    Raises:
        EmptyResponse: not a mapping, or an empty one.
    """
    if not isinstance(response, dict) or not response:
        raise EmptyResponse(
            "Geometry response is empty or unreadable",
            suggestions=["Check the GMLID and try again"],
        )
    return response
