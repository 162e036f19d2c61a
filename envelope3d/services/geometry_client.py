"""
Geometry service client.

Fetches building envelope geometry by GMLID and translates HTTP failures into
the pipeline's error taxonomy:

- 401 -> LayerAuthorizationFailure
- other non-2xx, connection errors -> LayerLoadFailure
- a body that is not JSON -> EmptyResponse

Transient failures (connection errors, 429, 5xx) are retried with backoff
before being reported.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Sequence

import requests

from ..core.config import settings
from ..core.errors import EmptyResponse, LayerAuthorizationFailure, LayerLoadFailure
from ..utils.retry import RetryConfig, RetryableRequest
from .auth import AuthProvider

logger = logging.getLogger(__name__)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP error! status: {response.status_code}"


class GeometryServiceClient:
    """
    Client for the CityGML geometry endpoint and secured layer endpoints.

    Usage:
        client = GeometryServiceClient(auth)
        response = await client.fetch_geometry(["DEBY_LOD2_4909255"])
    """

    GEOMETRY_PATH = "/api/citygml/get_geometry"

    def __init__(
        self,
        auth: AuthProvider,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.auth = auth
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout or settings.request_timeout_s
        self.retry_config = retry_config or RetryConfig(max_retries=2, base_delay=0.5)

    def get_json(self, url: str, params: Optional[dict[str, Any]] = None, layer_ref: Optional[str] = None) -> Any:
        """Authenticated GET returning the decoded JSON body."""
        headers = {"accept": "application/json", **self.auth.auth_header()}
        ref = layer_ref or url
        try:
            with RetryableRequest(self.retry_config, timeout=self.timeout) as http:
                response = http.get(url, params=params, headers=headers)
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise LayerLoadFailure(
                f"Service error after retries: {exc}", layer_ref=ref, status_code=status
            ) from exc
        except requests.RequestException as exc:
            raise LayerLoadFailure(f"Network error: {exc}", layer_ref=ref) from exc

        if response.status_code == 401:
            raise LayerAuthorizationFailure("Authentication expired. Please login again.", layer_ref=ref)
        if not response.ok:
            message = _error_message(response)
            logger.error(f"Request failed: {message}", extra={"layer": ref})
            raise LayerLoadFailure(message, layer_ref=ref, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise EmptyResponse(f"Response from {ref} is not valid JSON") from exc

    def get_geometry(
        self,
        gmlids: Sequence[str] | str,
        calculate_window_areas: bool = False,
    ) -> dict[str, Any]:
        if isinstance(gmlids, str):
            gmlids = [gmlids]
        if not gmlids:
            raise ValueError("At least one GMLID is required")

        joined = ",".join(gmlids)
        logger.info("Fetching geometry", extra={"gmlid": joined})
        data = self.get_json(
            f"{self.base_url}{self.GEOMETRY_PATH}",
            params={
                "gmlids": joined,
                "calculate_window_areas": str(calculate_window_areas).lower(),
            },
            layer_ref=joined,
        )
        if not isinstance(data, dict):
            raise EmptyResponse("Geometry response is not a JSON object")
        return data

    async def fetch_geometry(self, gmlids: Sequence[str] | str, calculate_window_areas: bool = False) -> dict[str, Any]:
        return await asyncio.to_thread(self.get_geometry, gmlids, calculate_window_areas)

    async def fetch_layer(self, layer_ref: str) -> Any:
        """Default fetcher for SecuredLayerLoader: GET the layer URL as JSON."""
        return await asyncio.to_thread(self.get_json, layer_ref, {"f": "json"}, layer_ref)
