"""
envelope3d REST API - FastAPI Application.

Serves scene descriptions built from geometry service responses.

Endpoints:
    GET  /                  - API info and health check
    POST /scene             - Build a scene from a geometry response
    GET  /scene/{gmlid}     - Fetch a building from the geometry service and build its scene

Usage:
    uvicorn envelope3d.api.main:app --reload --port 8000
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .. import __version__
from ..controller import GeometryVisualizationController
from ..core.models import SurfaceArea
from ..visualization.scene import InMemorySurface

logger = logging.getLogger(__name__)


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class SceneRequest(BaseModel):
    """A geometry service response to turn into a scene."""
    response: Dict[str, Any] = Field(..., description="Geometry service response body")
    attribute: Optional[str] = Field(None, description="Attribute to color by", example="surface_type")


class SceneResponse(BaseModel):
    """One render pass plus what the viewer shows next to it."""
    success: bool
    generation: int = 0
    attribute: Optional[str] = None
    attributes: List[str] = []
    camera: Optional[Dict[str, Any]] = None
    layers: List[Dict[str, Any]] = []
    surface_areas: List[SurfaceArea] = []
    messages: List[str] = []


# =============================================================================
# DEPENDENCIES
# =============================================================================

ControllerFactory = Callable[[], GeometryVisualizationController]


def get_controller_factory() -> ControllerFactory:
    """One controller per request; each request renders into its own surface."""
    return lambda: GeometryVisualizationController(surface=InMemorySurface())


async def _build_scene(
    controller: GeometryVisualizationController,
    attribute: Optional[str],
    response: Optional[Dict[str, Any]] = None,
    gmlid: Optional[str] = None,
) -> SceneResponse:
    await controller.mount()
    try:
        if gmlid is not None:
            scene_pass = await controller.lookup_building([gmlid], attribute)
        else:
            scene_pass = await controller.show_response(response, attribute)
        if scene_pass is not None and attribute and attribute not in controller.attributes:
            raise HTTPException(status_code=422, detail=f"Unknown attribute: {attribute}")

        messages = list(controller.session.messages)
        if scene_pass is None:
            return SceneResponse(success=False, messages=messages)

        body = scene_pass.to_dict()
        return SceneResponse(
            success=True,
            generation=body["generation"],
            attribute=body["attribute"],
            attributes=controller.attributes,
            camera=body["camera"],
            layers=body["layers"],
            surface_areas=controller.surface_areas,
            messages=messages,
        )
    finally:
        await controller.teardown()


# =============================================================================
# FASTAPI APPLICATION
# =============================================================================

app = FastAPI(
    title="envelope3d API",
    description="Building envelope geometry to 3D scene descriptions",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["General"])
async def root():
    """API info and health check."""
    return {
        "name": "envelope3d API",
        "version": __version__,
        "status": "healthy",
        "endpoints": {
            "build_scene": "POST /scene",
            "building_scene": "GET /scene/{gmlid}",
        },
        "documentation": "/docs",
    }


@app.post("/scene", response_model=SceneResponse, tags=["Scene"])
async def build_scene(
    request: SceneRequest,
    factory: ControllerFactory = Depends(get_controller_factory),
):
    """
    Build a scene from a geometry response.

    The response is searched for its primary and context collections; the
    primary features are colored by `attribute` (or the first available
    attribute when omitted).
    """
    return await _build_scene(factory(), request.attribute, response=request.response)


@app.get("/scene/{gmlid}", response_model=SceneResponse, tags=["Scene"])
async def building_scene(
    gmlid: str,
    attribute: Optional[str] = None,
    factory: ControllerFactory = Depends(get_controller_factory),
):
    """Fetch a building's geometry from the geometry service and build its scene."""
    logger.info("Building scene requested", extra={"gmlid": gmlid})
    return await _build_scene(factory(), attribute, gmlid=gmlid)
