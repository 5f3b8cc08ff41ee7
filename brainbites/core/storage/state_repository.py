"""
Repository for reading and writing engine state blobs
"""

import json
import logging
from typing import Any

from .kv_store import KeyValueStore
from .models import SCHEMA_VERSION

logger = logging.getLogger(__name__)


class StateRepository:
    """JSON blob access on top of a key-value store.

    Reads and writes never raise: a failed write leaves the caller's
    in-memory state authoritative, and an unreadable blob is reported as
    missing so the caller falls back to defaults.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def load(self, key: str) -> dict[str, Any] | None:
        """Load a blob, or None if it is absent or unreadable"""
        try:
            raw = self.store.get(key)
        except Exception as e:
            logger.error(f"Error reading {key}: {e}")
            return None

        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Corrupted state in {key}, using defaults: {e}")
            return None

        if not isinstance(data, dict):
            logger.error(f"Unexpected state shape in {key}: {type(data).__name__}")
            return None

        version = data.get("schema_version", SCHEMA_VERSION)
        if version != SCHEMA_VERSION:
            logger.warning(
                f"State in {key} has schema version {version}, "
                f"expected {SCHEMA_VERSION}"
            )

        return data

    def save(self, key: str, data: dict[str, Any]) -> bool:
        """Write a blob; returns False when the write failed"""
        try:
            self.store.set(key, json.dumps(data))
            return True
        except Exception as e:
            logger.error(f"Error saving {key}: {e}")
            return False

    def remove(self, key: str) -> bool:
        try:
            self.store.remove(key)
            return True
        except Exception as e:
            logger.error(f"Error removing {key}: {e}")
            return False
