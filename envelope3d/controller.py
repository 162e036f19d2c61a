"""
Geometry visualization controller.

Top-level orchestration for one viewer:

    mount() -> lookup_building() / show_response() -> select_attribute()
            -> set_zoom() ... -> teardown()

A response is searched for its primary (colored by attribute) and context
(neutral) collections, turned into render records, partitioned, framed and
handed to the SceneSession. Attribute changes rebuild the layers without
refetching; a rebuild that has been superseded by a newer selection by the
time it finishes is discarded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence

from .core.config import Settings, settings as default_settings
from .core.envelope import CollectionLocator, LocatedCollection, check_response
from .core.errors import (
    EmptyGeometry,
    EmptyResponse,
    LayerAuthorizationFailure,
    LayerLoadFailure,
    SceneError,
)
from .core.models import SurfaceArea, surface_areas_from_response
from .geometry.records import GeometryRecordBuilder, RecordBatch, RenderRecord
from .services.auth import AuthProvider, TokenAuthSession
from .services.geometry_client import GeometryServiceClient
from .services.layer_loader import LayerLoadResult, SecuredLayerLoader
from .utils.retry import RetryState, retry_async
from .visualization.detail import DetailState, ViewportDetailSwitcher
from .visualization.framing import ExtentFramer
from .visualization.layers import RenderLayer, category_layers, context_layer, single_layers
from .visualization.partition import LayerPartitioner, available_attributes
from .visualization.scene import InMemorySurface, RenderSurface, ScenePass, SceneSession

logger = logging.getLogger(__name__)

SurfaceOpener = Callable[[], Awaitable[RenderSurface]]


class GeometryVisualizationController:
    """
    Drive the geometry pipeline for one mounted scene.

    Usage:
        controller = GeometryVisualizationController(surface=JSONSurface("scene.json"))
        await controller.mount()
        await controller.show_response(response)
        await controller.select_attribute("surface_type")
        await controller.teardown()
    """

    def __init__(
        self,
        surface: Optional[RenderSurface] = None,
        auth: Optional[AuthProvider] = None,
        client: Optional[GeometryServiceClient] = None,
        config: Optional[Settings] = None,
    ):
        self.config = config or default_settings
        self.surface = surface or InMemorySurface()
        self.auth = auth or TokenAuthSession()
        self.client = client or GeometryServiceClient(self.auth)

        self.locator = CollectionLocator()
        self.builder = GeometryRecordBuilder(self.config.multipolygon_mode)
        self.partitioner = LayerPartitioner()
        self.framer = ExtentFramer(self.config)

        self.session: Optional[SceneSession] = None
        self.response: Optional[dict[str, Any]] = None
        self.primary: Optional[LocatedCollection] = None
        self.context: Optional[LocatedCollection] = None
        self.primary_records: list[RenderRecord] = []
        self.context_records: list[RenderRecord] = []
        self.attributes: list[str] = []
        self.attribute: Optional[str] = None
        self.surface_areas: list[SurfaceArea] = []

        self._render_generation = 0
        self._lookup_generation = 0
        # Set by a new response, cleared by the first pass that gets applied
        self._reframe_pending = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def mount(self, open_surface: Optional[SurfaceOpener] = None) -> SceneSession:
        """
        Create the scene session.

        `open_surface` prepares the rendering surface (e.g. waits for a
        viewer to become ready); it is retried with linear backoff.
        """
        async def _open() -> SceneSession:
            surface = await open_surface() if open_surface else self.surface
            self.surface = surface
            switcher = ViewportDetailSwitcher(
                threshold=self.config.zoom_threshold,
                hysteresis=self.config.zoom_hysteresis,
            )
            return SceneSession(surface, switcher)

        state = RetryState.for_scene_init(self.config.init_max_attempts, self.config.init_backoff_s)
        self.session = await retry_async(
            _open, state, retry_on=(SceneError, OSError, RuntimeError), label="Scene initialization"
        )
        logger.info(f"Scene mounted after {state.attempts} attempt(s)")
        return self.session

    async def teardown(self) -> None:
        if self.session is not None:
            await self.session.close()
        self.session = None

    def _require_session(self) -> SceneSession:
        if self.session is None:
            raise RuntimeError("Controller is not mounted")
        return self.session

    # =========================================================================
    # DATA IN
    # =========================================================================

    async def lookup_building(
        self, gmlids: Sequence[str] | str, attribute: Optional[str] = None
    ) -> Optional[ScenePass]:
        """Fetch geometry for GMLIDs and render it. Superseded lookups are ignored."""
        session = self._require_session()
        self._lookup_generation += 1
        generation = self._lookup_generation

        try:
            response = await self.client.fetch_geometry(gmlids)
        except LayerAuthorizationFailure as exc:
            invalidate = getattr(self.auth, "invalidate", None)
            if invalidate is not None:
                invalidate()
            session.notify(exc.message)
            return None
        except (LayerLoadFailure, EmptyResponse) as exc:
            session.notify(f"Could not load building geometry: {exc.message}")
            return None

        if generation != self._lookup_generation:
            logger.info("Ignoring superseded building lookup")
            return None
        return await self.show_response(response, attribute)

    async def show_response(self, response: Any, attribute: Optional[str] = None) -> Optional[ScenePass]:
        """
        Extract collections from a geometry response and render them.

        `attribute` colors the first pass; without it the current selection
        is kept if the new data has it, else the first attribute is chosen.
        """
        session = self._require_session()
        self._render_generation += 1
        generation = self._render_generation

        try:
            response = check_response(response)
        except EmptyResponse as exc:
            session.notify(exc.message)
            return None

        primary = self.locator.locate_optional(response, self.config.primary_collections)
        context = self.locator.locate_optional(response, self.config.context_collections)
        if context is not None and primary is not None and context.data is primary.data:
            context = None

        if primary is None and context is None:
            names = self.config.primary_collections + self.config.context_collections
            session.notify(f"No geometry found in response (looked for {', '.join(names)})")
            return None

        self.response = response
        self.primary, self.context = primary, context
        self.surface_areas = surface_areas_from_response(response)
        self.primary_records = self._build(primary)
        self.context_records = self._build(context)

        self.attributes = available_attributes(self.primary_records)
        if attribute is not None and attribute not in self.attributes:
            session.notify(f"Attribute '{attribute}' is not available for this building")
        requested = attribute if attribute in self.attributes else self.attribute
        if requested in self.attributes:
            self.attribute = requested
        else:
            auto = self.config.auto_select_attribute and self.attributes
            self.attribute = self.attributes[0] if auto else None

        self._reframe_pending = True
        return await self._render(generation)

    def _build(self, located: Optional[LocatedCollection]) -> list[RenderRecord]:
        if located is None:
            return []
        batch: RecordBatch = self.builder.build_records(located.features)
        if batch.skipped:
            self._require_session().notify(
                f"Skipped {len(batch.skipped)} invalid feature(s) in {located.name}"
            )
        return batch.records

    # =========================================================================
    # USER SELECTION
    # =========================================================================

    async def select_attribute(self, attribute: Optional[str]) -> Optional[ScenePass]:
        """
        Re-color the primary collection by `attribute` (None: single color).

        Returns the applied pass, or None if a newer selection superseded it.
        """
        self._require_session()
        self._render_generation += 1
        generation = self._render_generation
        self.attribute = attribute
        return await self._render(generation)

    def set_zoom(self, zoom: float) -> Optional[DetailState]:
        return self._require_session().set_zoom(zoom)

    # =========================================================================
    # RENDERING
    # =========================================================================

    def _build_layers(
        self,
        primary: list[RenderRecord],
        context: list[RenderRecord],
        attribute: Optional[str],
    ) -> list[RenderLayer]:
        layers = []
        if context:
            layers.append(context_layer(context))
        if primary:
            if attribute:
                groups = self.partitioner.partition(primary, attribute)
                layers.extend(category_layers(groups))
            else:
                layers.extend(single_layers(primary))
        return layers

    async def _render(self, generation: int) -> Optional[ScenePass]:
        """
        Build layers off the loop and apply them unless superseded.

        A pending reframe survives a discarded pass and is carried by the
        next pass that is applied.
        """
        session = self._require_session()
        attribute = self.attribute

        layers = await asyncio.to_thread(
            self._build_layers, self.primary_records, self.context_records, attribute
        )
        if generation != self._render_generation or session.closed:
            logger.info(
                f"Discarding stale render pass {generation}",
                extra={"attribute": attribute},
            )
            return None

        camera = None
        if self._reframe_pending:
            self._reframe_pending = False
            try:
                framing = self.framer.frame([self.primary_records, self.context_records])
            except EmptyGeometry as exc:
                session.notify(f"{exc.message}; showing default view")
                framing = self.framer.default_framing()
            camera = self.framer.move_to(framing)

        scene_pass = ScenePass(layers=layers, camera=camera, attribute=attribute, generation=generation)
        session.apply_pass(scene_pass)
        if camera is not None:
            session.fly_to(camera)
        return scene_pass

    # =========================================================================
    # EXTERNAL LAYERS
    # =========================================================================

    async def load_external_layer(self, layer_ref: str, title: Optional[str] = None) -> LayerLoadResult:
        loader = SecuredLayerLoader(self._require_session(), self.auth, self.client.fetch_layer)
        return await loader.load(layer_ref, title)
