"""
Persistent map from mirrored issue identifiers to social media post ids.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .exceptions import CrossReferenceError

logger: logging.Logger = logging.getLogger(__name__)


class CrossReferenceMap:
    """JSON file mapping a mirrored issue's node id to the id of its announcement post."""

    def __init__(self, path: str | Path, entries: dict[str, str] | None = None) -> None:
        self.path: Path = Path(path)
        self.entries: dict[str, str] = entries if entries is not None else {}

    @classmethod
    def load(cls, path: str | Path) -> CrossReferenceMap:
        """Read the map from disk; a missing or unreadable file yields an empty map."""
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.info(f"Cross-reference map {path} doesn't exist yet")
            return cls(path)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read cross-reference map {path}: {e}")
            return cls(path)

        if not isinstance(data, dict):
            logger.error(f"Ignoring cross-reference map {path}: expected a JSON object")
            return cls(path)
        return cls(path, {str(key): str(value) for key, value in data.items()})

    def get(self, identifier: str) -> str | None:
        return self.entries.get(identifier)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self.entries

    def record(self, identifier: str, post_id: str) -> None:
        """Store a post id and rewrite the file.

        The in-memory entry is kept even if the write fails.

        Raises:
            CrossReferenceError: If the file cannot be written
        """
        self.entries[identifier] = post_id
        try:
            self.path.write_text(json.dumps(self.entries), encoding="utf-8")
        except OSError as e:
            msg = f"Failed to write cross-reference map {self.path}: {e}"
            raise CrossReferenceError(msg) from e
