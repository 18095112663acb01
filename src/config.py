"""Engine settings via pydantic-settings."""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.grid.value_objects import DEFAULT_CELL_SIZE_DEG, DEFAULT_RESOLUTION, GridSpec


class Settings(BaseSettings):
    """Configuration loaded from environment variables with TERRITORY_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="TERRITORY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Grid ---
    cell_size_degrees: float = Field(default=DEFAULT_CELL_SIZE_DEG, gt=0, le=1)
    grid_resolution: int = Field(default=DEFAULT_RESOLUTION, ge=0)

    # --- Presentation ---
    contested_window_seconds: float = Field(default=30.0, gt=0)

    # --- Logging ---
    log_level: str = "INFO"

    def grid(self) -> GridSpec:
        return GridSpec(cell_size_deg=self.cell_size_degrees, resolution=self.grid_resolution)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings."""
    return Settings()


def configure_logging(settings: Settings) -> None:
    """Set the root log level from settings.

    Handlers are only installed when the root logger has none.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(level)
