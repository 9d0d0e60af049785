"""Exceptions raised by the automation layer."""


class AutomationError(Exception):
    """Base class for automation errors."""


class ConfigInvalid(AutomationError):
    """A configuration or recording file is malformed or missing."""
