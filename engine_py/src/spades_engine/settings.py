"""Server settings read from the environment."""

import logging
import os
from typing import List, Optional

from pydantic import BaseModel, Field

from .constants import MIN_PLAYERS


class ServerSettings(BaseModel):
    """Process-level settings for the room server."""

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    reload: bool = False
    log_level: str = "info"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    min_players: int = Field(default=MIN_PLAYERS, ge=MIN_PLAYERS)
    shuffle_seed: Optional[int] = None

    @classmethod
    def from_env(cls) -> "ServerSettings":
        seed = os.getenv("SHUFFLE_SEED")
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", 8000)),
            reload=os.getenv("RELOAD", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "info").lower(),
            cors_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
            min_players=int(os.getenv("MIN_PLAYERS", MIN_PLAYERS)),
            shuffle_seed=int(seed) if seed else None,
        )


def configure_logging(level: str = "info"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
