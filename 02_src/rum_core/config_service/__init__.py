"""Configuration service module."""

from .service import ConfigService, IConfigService, config_from_env, default_config
from .subscription import Subscription

__all__ = [
    "ConfigService",
    "IConfigService",
    "Subscription",
    "config_from_env",
    "default_config",
]
