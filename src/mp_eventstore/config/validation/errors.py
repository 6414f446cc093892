"""Config validation errors.

Raised while settings are loaded or constructed, before any store exists;
the store never retries them.
"""
from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit, urlunsplit

from mp_eventstore.kernel.errors import ApplicationError


def _masked(value: object) -> object:
    """Hide the password of database URLs so errors can be logged."""
    if not isinstance(value, str) or "://" not in value:
        return value
    parts = urlsplit(value)
    if parts.password is None:
        return value
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
    return urlunsplit(parts._replace(netloc=netloc))


class ConfigError(ApplicationError):
    """Configuration is invalid or could not be loaded."""
    default_code = "config_error"


class MissingRequiredSettingError(ConfigError):
    """A setting without default has no value in the source."""
    default_code = "missing_required_setting"

    def __init__(self, setting_name: str, **kwargs: Any) -> None:
        kwargs.setdefault("detail", {"setting": setting_name})
        super().__init__(f"Required setting '{setting_name}' is missing", **kwargs)
        self.setting_name = setting_name


class InvalidSettingValueError(ConfigError):
    """A setting is present but out of range or of the wrong type."""
    default_code = "invalid_setting_value"

    def __init__(self, setting_name: str, value: object, reason: str, **kwargs: Any) -> None:
        shown = _masked(value)
        kwargs.setdefault("detail", {"setting": setting_name, "value": repr(shown), "reason": reason})
        super().__init__(f"Setting '{setting_name}' has invalid value {shown!r}: {reason}", **kwargs)
        self.setting_name = setting_name
        self.value = value
        self.reason = reason


__all__ = ["ConfigError", "InvalidSettingValueError", "MissingRequiredSettingError"]
