"""Config settings – 12-factor env-based configuration."""
from mp_eventstore.config.settings.base import Settings
from mp_eventstore.config.settings.eventstore import EventStoreSettings
from mp_eventstore.config.settings.loaders import DotenvSettingsLoader, EnvSettingsLoader, SettingsLoader

__all__ = [
    "DotenvSettingsLoader",
    "EnvSettingsLoader",
    "EventStoreSettings",
    "Settings",
    "SettingsLoader",
]
