"""Configuration management."""

from .settings import CloudConfig, get_config, reload_config
