"""
Retention policy enforcement for backup stores.

Keeps only the newest ``max_backups`` entries of a store directory, ordered
by modification time (ties broken by name).
"""

import logging
import os
import shutil
from typing import List, Tuple

logger = logging.getLogger(__name__)


class RetentionError(Exception):
    """Raised when a store directory cannot be listed."""
    pass


class RetentionManager:
    """
    Enforces the count-based retention policy of one store directory.
    """

    def enforce(self, store_path: str, max_backups: int) -> List[str]:
        """
        Delete the oldest entries until at most max_backups remain.

        A missing store directory is treated as empty. Failure to delete an
        individual entry is logged and skipped.

        Args:
            store_path: Store directory
            max_backups: Number of entries to keep

        Returns:
            Paths that were deleted

        Raises:
            RetentionError: If the directory cannot be listed
            ValueError: If max_backups is negative
        """
        if max_backups < 0:
            raise ValueError(f"max_backups must not be negative: {max_backups}")

        entries = self._list_entries(store_path)
        excess = len(entries) - max_backups

        if excess <= 0:
            logger.debug("%s: %d entries, limit %d, nothing to delete", store_path, len(entries), max_backups)
            return []

        entries.sort()

        deleted = []
        for _, _, path in entries[:excess]:
            try:
                self._delete(path)
                deleted.append(path)
                logger.info("Deleted old backup: %s", path)
            except OSError as e:
                logger.warning("Failed to delete old backup %s: %s", path, e)

        return deleted

    def _list_entries(self, store_path: str) -> List[Tuple[float, str, str]]:
        """Return (mtime, name, path) for every entry of store_path."""
        entries = []
        try:
            with os.scandir(store_path) as it:
                for entry in it:
                    try:
                        mtime = entry.stat(follow_symlinks=False).st_mtime
                    except FileNotFoundError:
                        # Removed between listing and stat
                        continue
                    entries.append((mtime, entry.name, entry.path))
        except FileNotFoundError:
            return []
        except OSError as e:
            raise RetentionError(f"Failed to list {store_path}: {e}")

        return entries

    def _delete(self, path: str):
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)
