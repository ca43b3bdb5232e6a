# Configuration module for the healthz server
from .settings import (
    Settings,
    Environment,
    get_settings,
    load_settings,
    clear_settings_cache,
    parse_listen_addr,
)

__all__ = [
    "Settings",
    "Environment",
    "get_settings",
    "load_settings",
    "clear_settings_cache",
    "parse_listen_addr",
]
