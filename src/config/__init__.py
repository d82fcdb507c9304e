"""Configuration package for the medication safety engine."""

from .engine_config import DEFAULT_CATALOG_PATH, EngineConfig, default_config

__all__ = ["DEFAULT_CATALOG_PATH", "EngineConfig", "default_config"]
