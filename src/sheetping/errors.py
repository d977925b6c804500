from __future__ import annotations


class SheetpingError(Exception):
    """Base class for every error raised by sheetping."""


class ConfigParseError(SheetpingError):
    """A config row is missing a required field or holds a bad value."""


class AuthError(SheetpingError):
    """No configured host matches the hostname and secret."""


class StoreError(SheetpingError):
    """A call to the tabular store failed."""


class SheetNotFoundError(StoreError):
    """The requested worksheet does not exist."""

    def __init__(self, name: str):
        super().__init__(f"worksheet {name!r} not found")
        self.name = name


class ProbeError(SheetpingError):
    """A target could not be resolved or probed."""


class FatalError(SheetpingError):
    """Startup failure that ends the process."""
