"""Config – 12-factor settings for the event store."""
from mp_eventstore.config.settings import (
    DotenvSettingsLoader,
    EnvSettingsLoader,
    EventStoreSettings,
    Settings,
    SettingsLoader,
)
from mp_eventstore.config.validation import (
    ConfigError,
    InvalidSettingValueError,
    MissingRequiredSettingError,
)

__all__ = [
    "ConfigError",
    "DotenvSettingsLoader",
    "EnvSettingsLoader",
    "EventStoreSettings",
    "InvalidSettingValueError",
    "MissingRequiredSettingError",
    "Settings",
    "SettingsLoader",
]
