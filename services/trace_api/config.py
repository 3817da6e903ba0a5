"""Environment configuration for Trace-API."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 10


@dataclass(frozen=True)
class Settings:
    neo4j_uri: str = ""
    neo4j_username: str = "neo4j"
    neo4j_password: str = ""
    neo4j_database: str = "neo4j"
    log_level: str = "INFO"
    sample_size: int = DEFAULT_SAMPLE_SIZE

    @property
    def is_complete(self) -> bool:
        return bool(self.neo4j_uri and self.neo4j_password)


def load_settings(env: dict | None = None, dotenv: bool = True) -> Settings:
    """Read settings from the environment (or ``env`` when given).

    A missing URI or password is only warned about: the service still starts
    and store-backed endpoints fail per request until it is configured.
    """
    if env is None:
        if dotenv:
            load_dotenv()
        env = dict(os.environ)

    try:
        sample_size = int(env.get("SAMPLE_SIZE", DEFAULT_SAMPLE_SIZE))
    except ValueError:
        logger.warning("SAMPLE_SIZE is not an integer, using %d", DEFAULT_SAMPLE_SIZE)
        sample_size = DEFAULT_SAMPLE_SIZE

    settings = Settings(
        neo4j_uri=env.get("NEO4J_URI", ""),
        neo4j_username=env.get("NEO4J_USERNAME", "neo4j"),
        neo4j_password=env.get("NEO4J_PASSWORD", ""),
        neo4j_database=env.get("NEO4J_DATABASE", "neo4j"),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        sample_size=min(max(sample_size, 0), DEFAULT_SAMPLE_SIZE),
    )
    if not settings.is_complete:
        logger.warning("NEO4J_URI or NEO4J_PASSWORD not set. Check your env vars.")
    return settings


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def init_settings(env: dict | None = None, dotenv: bool = True) -> Settings:
    """Configure logging from ``LOG_LEVEL`` first, then load settings."""
    if env is None:
        if dotenv:
            load_dotenv()
        env = dict(os.environ)
    configure_logging(env.get("LOG_LEVEL", "INFO").upper())
    return load_settings(env)
