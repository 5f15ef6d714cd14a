"""Animal Atlas configuration package.

This package provides configuration management with:
- Typed pydantic models for every configurable concern
- YAML parsing and serialization
- Environment variable overrides for API keys
"""

from .manager import ConfigManager
from .models import AtlasConfig

__all__ = [
    "AtlasConfig",
    "ConfigManager",
]
