"""External service clients: auth, geometry, secured layers."""

from .auth import AuthProvider, TokenAuthSession, UserInfo, decode_token_user
from .geometry_client import GeometryServiceClient
from .layer_loader import LayerLoadResult, SecuredLayerLoader

__all__ = [
    "AuthProvider",
    "TokenAuthSession",
    "UserInfo",
    "decode_token_user",
    "GeometryServiceClient",
    "LayerLoadResult",
    "SecuredLayerLoader",
]
