# scalable_exporter/exceptions.py

"""Exception types raised by the exporter."""

from typing import List


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigurationError(ExporterError):
    """Raised when the configuration cannot be loaded or fails validation."""


class MissingIdentifierError(ExporterError):
    """Raised when the person id or portfolio id cannot be resolved."""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"Could not find {' or '.join(missing)}")


class UnsupportedLocaleError(ExporterError):
    """Raised when a CSV is requested for a locale without a configuration."""
