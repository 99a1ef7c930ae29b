"""
Exception types for Partial Dump.
"""


class PartialDumpError(Exception):
    """Base class for all errors raised by partial_dump."""

    pass


class ConfigurationError(PartialDumpError, ValueError):
    """Raised when dump options or manifest configuration are invalid."""

    pass


class TypeCoercionError(PartialDumpError, ValueError):
    """Raised when a row's id cannot be read as an integer."""

    pass
