"""
Configuration management: file loading, placeholder resolution, typed settings.
"""

from interchange.config.loader import Config, load_config, substitute_placeholders
from interchange.config.settings import (
    DatabaseSettings,
    ExchangeSettings,
    InboundSettings,
    OutboundSettings,
    RemoteSettings,
)

__all__ = [
    "load_config",
    "Config",
    "substitute_placeholders",
    "ExchangeSettings",
    "RemoteSettings",
    "OutboundSettings",
    "InboundSettings",
    "DatabaseSettings",
]
