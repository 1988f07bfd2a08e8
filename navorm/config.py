"""Settings for the relationship conventions and logging.

Values come from ``NAVORM_*`` environment variables (or a ``.env`` file);
``get_settings()`` is cached so one instance is shared per process.
"""

import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from navorm.orm_types import Cardinality

LOGGER_NAME = "NavORM"


class NavormSettings(BaseSettings):
    """Convention defaults applied while the relationship model is built."""

    model_config = SettingsConfigDict(
        env_prefix="NAVORM_", env_file=".env", case_sensitive=False, extra="ignore"
    )

    # Single navigation on one type, nothing on the other
    unidirectional_reference: Cardinality = Cardinality.ONE_TO_ONE
    # Foreign-key override with no navigation slot on either type
    no_navigation_cardinality: Cardinality = Cardinality.ONE_TO_ONE

    log_level: str = "INFO"

    @field_validator("unidirectional_reference", "no_navigation_cardinality")
    @classmethod
    def reject_many_to_many(cls, v: Cardinality) -> Cardinality:
        if v is Cardinality.MANY_TO_MANY:
            raise ValueError("a foreign-key relationship cannot default to many-to-many")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {v}")
        return level


@lru_cache
def get_settings() -> NavormSettings:
    return NavormSettings()


def get_logger(name=None):
    logger = logging.getLogger(LOGGER_NAME)
    return logger.getChild(name) if name else logger


def configure_logging(settings=None):
    settings = settings or get_settings()
    logger = get_logger()
    if not logger.handlers and not logging.getLogger().handlers:
        logging.basicConfig(level=settings.log_level)
    logger.setLevel(settings.log_level)
    return logger
