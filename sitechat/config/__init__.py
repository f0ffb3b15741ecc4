"""Configuration: pydantic-settings ``Settings`` and the YAML loader."""

from sitechat.config.loader import get_section, get_source_urls, load_config
from sitechat.config.settings import DEFAULT_NAV_LABELS, DEFAULT_PERSONA, Settings

__all__ = [
    "DEFAULT_NAV_LABELS",
    "DEFAULT_PERSONA",
    "Settings",
    "get_section",
    "get_source_urls",
    "load_config",
]
