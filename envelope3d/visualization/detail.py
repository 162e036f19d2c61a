"""
Zoom-driven detail switching.

Two pre-built representations of the same feature set: filled polygons
(detailed) and point symbols (overview). Crossing the zoom threshold only
flips which one is visible; geometry is never rebuilt.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from ..core.config import settings

logger = logging.getLogger(__name__)


class DetailState(str, Enum):
    DETAILED = "detailed"
    OVERVIEW = "overview"


class ViewportDetailSwitcher:
    """
    Track viewport zoom and report representation changes.

    `DETAILED` when zoom >= threshold, else `OVERVIEW`. A non-zero
    hysteresis keeps the current state inside [threshold - h, threshold + h).
    """

    def __init__(
        self,
        threshold: Optional[float] = None,
        hysteresis: Optional[float] = None,
    ):
        self.threshold = settings.zoom_threshold if threshold is None else threshold
        self.hysteresis = settings.zoom_hysteresis if hysteresis is None else hysteresis
        if self.hysteresis < 0:
            raise ValueError("hysteresis must be >= 0")

        self.state: Optional[DetailState] = None
        self.history: list[DetailState] = []
        self._listeners: list[Callable[[DetailState], None]] = []

    def on_change(self, listener: Callable[[DetailState], None]) -> None:
        self._listeners.append(listener)

    def classify(self, zoom: float) -> DetailState:
        if self.state is DetailState.DETAILED:
            boundary = self.threshold - self.hysteresis
            return DetailState.DETAILED if zoom >= boundary else DetailState.OVERVIEW
        if self.state is DetailState.OVERVIEW:
            boundary = self.threshold + self.hysteresis
            return DetailState.DETAILED if zoom >= boundary else DetailState.OVERVIEW
        return DetailState.DETAILED if zoom >= self.threshold else DetailState.OVERVIEW

    def update(self, zoom: float) -> Optional[DetailState]:
        """Feed a zoom level. Returns the new state on a transition, else None."""
        new_state = self.classify(zoom)
        if new_state is self.state:
            return None

        previous = self.state
        self.state = new_state
        self.history.append(new_state)
        logger.debug(f"Detail switch {previous} -> {new_state.value} at zoom {zoom:.2f}")

        for listener in self._listeners:
            listener(new_state)
        return new_state

    @property
    def detailed_visible(self) -> bool:
        return self.state is DetailState.DETAILED

    @property
    def overview_visible(self) -> bool:
        return self.state is DetailState.OVERVIEW
