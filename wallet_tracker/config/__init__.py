"""
Configuration management for the wallet tracker.

Loads and validates settings from environment variables and an optional
.env file. Exposes a single source of truth for all service configuration.
"""

from wallet_tracker.config.env import Settings, get_settings, load_settings  # noqa: F401

__all__ = ["Settings", "get_settings", "load_settings"]
