"""Exceptions raised by zapgen."""


class ZapGenError(Exception):
    """Base class for generator errors."""


class PackageNotFoundError(ZapGenError):
    """Raised when a required package is not loaded or not assigned to a session."""


class ImportDataError(ZapGenError):
    """Raised when a project file references metadata that doesn't exist."""


class TemplateHelperError(ZapGenError):
    """Raised when a helper is used outside the scope it requires."""


class TemplateFailure(ZapGenError):
    """Raised on purpose by the `fail` template helper."""
