"""
Loader for layers hosted behind a secured feature service.

Protocol, bounded to one retry:
    1. Try to load the layer.
    2. On 401: log in if not authenticated, then retry once if authenticated.
    3. Still unauthenticated, retry failed, or any other failure:
       evict the layer and tell the user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from ..core.errors import LayerAuthorizationFailure, LayerLoadFailure, SceneError
from ..utils.retry import RetryState
from ..visualization.scene import SceneSession
from .auth import AuthProvider

logger = logging.getLogger(__name__)

LayerFetcher = Callable[[str], Awaitable[Any]]


@dataclass
class LayerLoadResult:
    layer_ref: str
    loaded: bool = False
    data: Any = None
    error: Optional[LayerLoadFailure] = None
    attempts: int = 0
    login_attempted: bool = False


class SecuredLayerLoader:
    """
    Load external layers into a scene session.

    Usage:
        loader = SecuredLayerLoader(session, auth, client.fetch_layer)
        result = await loader.load("https://services.example.com/FeatureServer/0")
        if not result.loaded:
            print(result.error)
    """

    def __init__(self, session: SceneSession, auth: AuthProvider, fetch: LayerFetcher):
        self.session = session
        self.auth = auth
        self.fetch = fetch

    async def _ensure_login(self, result: LayerLoadResult) -> bool:
        if self.auth.is_authenticated:
            return True
        result.login_attempted = True
        logger.info("Layer requires authentication, starting login", extra={"layer": result.layer_ref})
        try:
            await self.auth.login()
        except Exception as exc:
            logger.error(f"Login failed: {exc}", extra={"layer": result.layer_ref})
            return False
        return self.auth.is_authenticated

    async def load(self, layer_ref: str, title: Optional[str] = None) -> LayerLoadResult:
        self.session.add_external_layer(layer_ref, title)
        result = LayerLoadResult(layer_ref=layer_ref)
        state = RetryState.for_auth()

        while True:
            result.attempts = state.begin_attempt()
            try:
                data = await self.fetch(layer_ref)
            except LayerAuthorizationFailure as exc:
                failure: LayerLoadFailure = exc
                if state.exhausted:
                    break
                if not await self._ensure_login(result):
                    failure = LayerLoadFailure(
                        "Authentication required and login did not succeed",
                        layer_ref=layer_ref,
                        status_code=401,
                    )
                    break
                logger.info("Retrying layer after authentication", extra={"layer": layer_ref})
                continue
            except LayerLoadFailure as exc:
                failure = exc
                break
            except SceneError as exc:
                failure = LayerLoadFailure(exc.message, layer_ref=layer_ref, suggestions=exc.suggestions)
                failure.__cause__ = exc
                break

            result.loaded = True
            result.data = data
            self.session.mark_loaded(layer_ref, data)
            logger.info(f"Layer loaded after {result.attempts} attempt(s)", extra={"layer": layer_ref})
            return result

        if isinstance(failure, LayerAuthorizationFailure):
            error = LayerLoadFailure(
                f"Still unauthorized after retry: {failure.message}",
                layer_ref=layer_ref,
                status_code=401,
                suggestions=failure.suggestions,
            )
            error.__cause__ = failure
        else:
            error = failure

        result.error = error
        self.session.evict_layer(layer_ref, f"Layer '{title or layer_ref}' could not be loaded: {error.message}")
        logger.warning(f"Evicted layer: {error.message}", extra={"layer": layer_ref})
        return result
