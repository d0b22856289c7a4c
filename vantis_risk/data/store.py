"""Versioned in-memory key-value store."""

from __future__ import annotations

import logging
import threading
from typing import Any, Hashable

from vantis_risk.data.interfaces import PositionStore
from vantis_risk.protocol.errors import VersionConflict

logger = logging.getLogger(__name__)


class InMemoryStore(PositionStore):
    """Dict-backed store with compare-and-set writes."""

    def __init__(self) -> None:
        self._data: dict[Hashable, tuple[Any, int]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> tuple[Any, int]:
        with self._lock:
            return self._data.get(key, (None, 0))

    def put(self, key: Hashable, value: Any, expected_version: int | None = None) -> int:
        with self._lock:
            _, version = self._data.get(key, (None, 0))
            if expected_version is not None and expected_version != version:
                logger.info(
                    "Version conflict on %r: expected %d, found %d",
                    key,
                    expected_version,
                    version,
                )
                raise VersionConflict(
                    f"{key!r} is at version {version}, expected {expected_version}"
                )
            self._data[key] = (value, version + 1)
            return version + 1

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self, prefix: str | None = None) -> list[Hashable]:
        """All keys, or those whose first element is *prefix*."""
        with self._lock:
            if prefix is None:
                return list(self._data)
            return [k for k in self._data if isinstance(k, tuple) and k and k[0] == prefix]
