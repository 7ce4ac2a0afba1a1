"""
Configuration handling for parts: the document data model and the loader
that finds it inside TOML files.
"""
from .loader import (
    DISCOVERY_CANDIDATES,
    ConfigResolver,
    discover_config,
    load_config_source,
    split_path_and_keys,
    validate_config_source,
)
from .settings import ConfigDocument, Part

__all__ = [
    "DISCOVERY_CANDIDATES",
    "ConfigDocument",
    "ConfigResolver",
    "Part",
    "discover_config",
    "load_config_source",
    "split_path_and_keys",
    "validate_config_source",
]
