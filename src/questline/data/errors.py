"""Custom exceptions for catalog loading and record storage."""


class DataError(Exception):
    """Base exception for the data layer."""


class DataLoadError(DataError):
    """Raised when a catalog file is missing or is not valid JSON."""


class DataValidationError(DataError):
    """Raised when catalog content fails structural validation."""


class DataReferenceError(DataError):
    """Raised when a definition points at another definition that does not exist."""


class RecordConflictError(DataError):
    """Raised when a store insert would break the (player, id) uniqueness constraint."""
