"""Configuration package for the character enrichment service."""

from .service_config import ServiceConfig
from .settings import Environment, Settings, get_settings

__all__ = ["Environment", "ServiceConfig", "Settings", "get_settings"]
