"""Configuration management for vaultpool."""

from .manager import ConfigManager
from .schemas import ROTATION_CONFIG_SCHEMA

__all__ = ['ConfigManager', 'ROTATION_CONFIG_SCHEMA']
