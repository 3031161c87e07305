"""Library settings loaded from the environment."""

import os
from functools import lru_cache

from rootline.core.rbac.types import ResolutionPolicy

LOG_FORMATS = ("console", "json")


class Settings:
    """Settings loaded from environment variables."""

    def __init__(self) -> None:
        """Load settings from environment variables."""
        self.database_url = os.getenv("ROOTLINE_DATABASE_URL", "postgresql://localhost:5432/rootline")
        self.pool_min_size = int(os.getenv("ROOTLINE_DB_POOL_MIN", "2"))
        self.pool_max_size = int(os.getenv("ROOTLINE_DB_POOL_MAX", "10"))

        # Access resolution
        self.access_resolution = ResolutionPolicy(
            os.getenv("ROOTLINE_ACCESS_RESOLUTION", ResolutionPolicy.HIGHEST_RANK.value).strip().lower()
        )

        # Logging
        self.log_level = os.getenv("ROOTLINE_LOG_LEVEL", "INFO").strip().upper()
        self.log_format = os.getenv("ROOTLINE_LOG_FORMAT", "console").strip().lower()
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"ROOTLINE_LOG_FORMAT must be one of {LOG_FORMATS}, got {self.log_format!r}")


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()
