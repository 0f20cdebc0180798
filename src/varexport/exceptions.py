"""Exceptions for varexport."""


class VarExportError(Exception):
    """Base exception for variable export errors."""
    pass


class AttributeAccessError(VarExportError, AttributeError):
    """Exception raised when an explicitly referenced member cannot be exported."""
    pass


class CollectionEnumerationError(VarExportError):
    """Exception raised when an expanded mapping fails during iteration."""
    pass
