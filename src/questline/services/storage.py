"""Translate store failures into the retryable service error."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from questline.data.errors import RecordConflictError
from questline.services.errors import StorageError

logger = logging.getLogger(__name__)


@contextmanager
def storage_guard(action: str) -> Iterator[None]:
    try:
        yield
    except (RecordConflictError, OSError) as exc:
        logger.warning("Storage failure during %s: %s", action, exc)
        raise StorageError(f"{action} failed: {exc}") from exc
