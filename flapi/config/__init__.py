"""Configuration module for the Flapi backend."""
from .settings import AppConfig, get_config, load_settings

__all__ = ["AppConfig", "get_config", "load_settings"]
