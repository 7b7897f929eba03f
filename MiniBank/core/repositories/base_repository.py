"""
Base Repository Class
Provides the load / save lifecycle shared by every flat-file store
"""

from abc import ABC, abstractmethod
from typing import List, Optional
import logging
import threading

from db.database import FileManager
from utils.exceptions import PersistenceException

logger = logging.getLogger(__name__)

class BaseRepository(ABC):
    """Base repository holding its records in memory and mirroring them to one file.

    Every mutation rewrites the whole file. If the write fails the in-memory
    records stay authoritative, the store is flagged dirty and the next
    successful save (or ``flush``) catches the file up.
    """

    def __init__(self, storage: FileManager, filename: str):
        self.storage = storage
        self.filename = filename
        self._lock = threading.RLock()
        self._dirty = False

    @abstractmethod
    def _serialize(self) -> List[str]:
        """Render the in-memory records as file lines"""

    @abstractmethod
    def _deserialize(self, lines: List[str]) -> None:
        """Replace the in-memory records with the parsed file lines"""

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def load(self):
        """Populate the store from its file"""
        with self._lock:
            lines = self.storage.read_lines(self.filename)
            self._deserialize(lines)
            self._dirty = False
            logger.info(f"Loaded {len(lines)} line(s) from {self.filename}")

    def save(self):
        """Rewrite the whole file from memory"""
        with self._lock:
            try:
                self.storage.write_lines(self.filename, self._serialize())
                self._dirty = False
            except PersistenceException as e:
                self._dirty = True
                logger.error(f"Error saving {self.filename}, keeping changes in memory: {e}")
                raise

    def flush(self) -> bool:
        """Save only if an earlier save failed; returns True when a write happened"""
        with self._lock:
            if not self._dirty:
                return False
            self.save()
            return True

    @staticmethod
    def _split(line: str, separator: str, expected: int) -> Optional[List[str]]:
        """Split a record line, returning None for blank or short lines"""
        if not line.strip():
            return None
        parts = line.split(separator)
        if len(parts) < expected:
            logger.warning(f"Skipping malformed record: {line!r}")
            return None
        return parts
