"""
Configuration management for envelope3d.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.

    Can be configured via environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="ENVELOPE3D_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Geometry service
    api_base_url: str = Field(default="https://api.decotwo.com", description="Geometry service base URL")
    api_token: str | None = Field(default=None, description="Pre-issued bearer token")
    username: str | None = Field(default=None, description="Login user for the auth endpoint")
    password: str | None = Field(default=None, description="Login password for the auth endpoint")
    request_timeout_s: float = Field(default=30.0, description="HTTP timeout per request")

    # Response envelope
    primary_collections: list[str] = Field(
        default=["surfaces_adiabatic", "visualization_zone"],
        description="Collection names colored by attribute, in priority order",
    )
    context_collections: list[str] = Field(
        default=["shading_surfaces"],
        description="Collection names rendered in the neutral context color",
    )
    auto_select_attribute: bool = Field(
        default=True,
        description="Color by the first attribute when none is selected",
    )
    multipolygon_mode: Literal["flatten", "per_part"] = Field(
        default="flatten",
        description="How MultiPolygon ring groups are normalized",
    )

    # Viewport detail switching
    zoom_threshold: float = Field(default=14.0, description="Zoom at which polygons replace points")
    zoom_hysteresis: float = Field(default=0.0, description="Dead band around the threshold")

    # Camera framing
    close_span_threshold_deg: float = Field(default=0.001, description="Span below which the close camera is used")
    close_zoom: float = Field(default=19.0)
    close_tilt: float = Field(default=60.0)
    far_max_zoom: float = Field(default=18.0)
    far_tilt: float = Field(default=45.0)
    min_zoom: float = Field(default=3.0)
    heading: float = Field(default=45.0)
    camera_duration_s: float = Field(default=3.0, description="Duration of the animated camera move")
    default_camera_x: float = Field(default=11.5820, description="Default camera longitude")
    default_camera_y: float = Field(default=48.1351, description="Default camera latitude")
    default_camera_zoom: float = Field(default=12.0)

    # Scene initialization retry
    init_max_attempts: int = Field(default=3)
    init_backoff_s: float = Field(default=0.1, description="Linear backoff step between init attempts")

    # REST API
    api_port: int = Field(default=8000, description="Port for the scene API server")


# Global settings instance
settings = Settings()
