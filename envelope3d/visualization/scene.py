"""
Scene session and rendering surfaces.

A SceneSession is the explicit scene state owned by the controller: the
current layers, the camera, the zoom-driven detail switcher and the
user-visible messages. It is created on mount, closed on teardown and handed
by reference to the components that need it.

Rendering surfaces receive what the session decides: render passes,
visibility toggles, layer evictions, camera moves and messages. The session
never draws anything itself.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol

from .detail import DetailState, ViewportDetailSwitcher
from .framing import CameraMove
from .layers import RenderLayer

logger = logging.getLogger(__name__)

# Extra time granted to a surface beyond the nominal animation duration
CAMERA_GRACE_S = 1.0


@dataclass
class ScenePass:
    """Everything one render pass produces."""

    layers: list[RenderLayer]
    camera: Optional[CameraMove] = None
    attribute: Optional[str] = None
    generation: int = 0

    def __post_init__(self):
        for index, layer in enumerate(self.layers):
            if not layer.layer_id:
                layer.layer_id = f"pass-{self.generation}-layer-{index}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "generation": self.generation,
            "attribute": self.attribute,
            "camera": self.camera.to_dict() if self.camera else None,
            "layers": [layer.to_dict() for layer in self.layers],
        }


class RenderSurface(Protocol):
    """What a session needs from whatever actually draws the scene."""

    def show_pass(self, scene_pass: ScenePass) -> None: ...

    def set_visibility(self, layer_id: str, visible: bool) -> None: ...

    def remove_layer(self, layer_id: str) -> None: ...

    async def move_camera(self, move: CameraMove) -> None: ...

    def show_message(self, message: str) -> None: ...


class InMemorySurface:
    """
    Surface that records everything it is told.

    `time_scale` scales camera animations (0 completes them immediately).
    """

    def __init__(self, time_scale: float = 0.0):
        self.time_scale = time_scale
        self.passes: list[ScenePass] = []
        self.visibility_changes: list[tuple[str, bool]] = []
        self.removed: list[str] = []
        self.camera_moves: list[CameraMove] = []
        self.messages: list[str] = []

    @property
    def latest(self) -> Optional[ScenePass]:
        return self.passes[-1] if self.passes else None

    def show_pass(self, scene_pass: ScenePass) -> None:
        self.passes.append(scene_pass)

    def set_visibility(self, layer_id: str, visible: bool) -> None:
        self.visibility_changes.append((layer_id, visible))

    def remove_layer(self, layer_id: str) -> None:
        self.removed.append(layer_id)

    async def move_camera(self, move: CameraMove) -> None:
        self.camera_moves.append(move)
        if self.time_scale > 0:
            await asyncio.sleep(move.duration_s * self.time_scale)

    def show_message(self, message: str) -> None:
        self.messages.append(message)


class JSONSurface(InMemorySurface):
    """Surface that writes the latest render pass to a JSON file."""

    def __init__(self, path: str | Path, indent: int = 2):
        super().__init__()
        self.path = Path(path)
        self.indent = indent

    def _write(self) -> None:
        if self.latest is None:
            return
        payload = self.latest.to_dict()
        payload["messages"] = self.messages
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=self.indent, default=str))

    def show_pass(self, scene_pass: ScenePass) -> None:
        super().show_pass(scene_pass)
        self._write()

    def set_visibility(self, layer_id: str, visible: bool) -> None:
        super().set_visibility(layer_id, visible)
        self._write()

    def show_message(self, message: str) -> None:
        super().show_message(message)
        self._write()


@dataclass
class ExternalLayer:
    """A layer hosted by a secured feature service."""

    layer_ref: str
    title: str
    status: str = "loading"  # loading, loaded, evicted
    data: Any = None


class SceneSession:
    """
    Explicit scene state for one mounted viewer.

    Usage:
        session = SceneSession(InMemorySurface())
        session.apply_pass(scene_pass)
        session.set_zoom(15)
        await session.close()
    """

    def __init__(
        self,
        surface: RenderSurface,
        switcher: Optional[ViewportDetailSwitcher] = None,
    ):
        self.surface = surface
        self.switcher = switcher or ViewportDetailSwitcher()
        self.switcher.on_change(self._on_detail_change)

        self.layers: list[RenderLayer] = []
        self.external_layers: dict[str, ExternalLayer] = {}
        self.camera: Optional[CameraMove] = None
        self.zoom: Optional[float] = None
        self.messages: list[str] = []
        self.closed = False
        self._camera_task: Optional[asyncio.Task] = None

    # =========================================================================
    # RENDER PASSES
    # =========================================================================

    def apply_pass(self, scene_pass: ScenePass) -> None:
        """Replace the scene's layers with a new pass."""
        self._check_open()
        self.layers = list(scene_pass.layers)

        if self.switcher.state is None and self.zoom is not None:
            self.switcher.update(self.zoom)
        for layer in self.layers:
            layer.apply_detail(self.switcher.state)

        self.surface.show_pass(scene_pass)
        logger.debug(f"Applied render pass {scene_pass.generation} with {len(self.layers)} layer(s)")

    def clear(self) -> None:
        self.layers = []

    # =========================================================================
    # VIEWPORT
    # =========================================================================

    def set_zoom(self, zoom: float) -> Optional[DetailState]:
        """Feed a viewport zoom change. Returns the new detail state on a switch."""
        self.zoom = zoom
        return self.switcher.update(zoom)

    def _on_detail_change(self, state: DetailState) -> None:
        for layer in self.layers:
            if layer.apply_detail(state):
                self.surface.set_visibility(layer.layer_id, layer.visible)

    def fly_to(self, move: CameraMove) -> asyncio.Task:
        """
        Start an animated camera move.

        A newer move cancels the one in flight. The move runs as its own task
        so re-partitioning is never blocked by it.
        """
        self._check_open()
        if self._camera_task is not None and not self._camera_task.done():
            self._camera_task.cancel()
        self.camera = move
        self._camera_task = asyncio.create_task(self._animate(move))
        return self._camera_task

    async def _animate(self, move: CameraMove) -> None:
        try:
            await asyncio.wait_for(
                self.surface.move_camera(move),
                timeout=move.duration_s + CAMERA_GRACE_S,
            )
        except asyncio.TimeoutError:
            logger.warning("Camera move did not finish in time, snapping to target")
        if not self.closed:
            self.set_zoom(move.framing.zoom)

    async def wait_camera(self) -> None:
        if self._camera_task is not None:
            try:
                await self._camera_task
            except asyncio.CancelledError:
                pass

    # =========================================================================
    # EXTERNAL LAYERS
    # =========================================================================

    def add_external_layer(self, layer_ref: str, title: Optional[str] = None) -> ExternalLayer:
        self._check_open()
        layer = ExternalLayer(layer_ref=layer_ref, title=title or layer_ref)
        self.external_layers[layer_ref] = layer
        return layer

    def mark_loaded(self, layer_ref: str, data: Any = None) -> None:
        layer = self.external_layers.get(layer_ref)
        if layer is not None:
            layer.status = "loaded"
            layer.data = data

    def evict_layer(self, layer_ref: str, message: str) -> None:
        """Remove a layer from the scene and tell the user why."""
        layer = self.external_layers.pop(layer_ref, None)
        if layer is not None:
            layer.status = "evicted"
        self.surface.remove_layer(layer_ref)
        self.notify(message)

    # =========================================================================
    # MESSAGES / LIFECYCLE
    # =========================================================================

    def notify(self, message: str) -> None:
        logger.info(message)
        self.messages.append(message)
        self.surface.show_message(message)

    async def close(self) -> None:
        """Tear down: stop animations and drop all state."""
        if self.closed:
            return
        self.closed = True
        if self._camera_task is not None and not self._camera_task.done():
            self._camera_task.cancel()
            try:
                await self._camera_task
            except asyncio.CancelledError:
                pass
        self.layers = []
        self.external_layers = {}

    def _check_open(self) -> None:
        if self.closed:
            raise RuntimeError("Scene session is closed")
