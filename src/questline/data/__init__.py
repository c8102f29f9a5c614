"""Data layer: definition catalogs and player record stores."""

from .errors import DataLoadError, DataReferenceError, DataValidationError, RecordConflictError
from .paths import get_definitions_path, get_repo_root

__all__ = [
    "DataLoadError",
    "DataReferenceError",
    "DataValidationError",
    "RecordConflictError",
    "get_definitions_path",
    "get_repo_root",
]
