"""
Snapshot store for deduplication.

Keeps the last-seen state of homeworks, marks and absences in a JSON
file so that already notified items are not sent again after a restart.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from pronote_bot.config import get_settings
from pronote_bot.models import Snapshot

logger = logging.getLogger(__name__)


class SnapshotStoreError(Exception):
    """Raised when the snapshot cannot be written."""
    pass


class SnapshotStore:
    """
    Reads and writes the snapshot file.

    The file is always rewritten as a whole. A missing or unreadable file
    is replaced by the empty snapshot the next time it is loaded.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        """
        Initialize the snapshot store.

        Args:
            path: Snapshot file, defaults to the configured cache file
        """
        self.path = Path(path or get_settings().cache_file)

    def load(self) -> Snapshot:
        """
        Load the persisted snapshot.

        Never raises: on a missing or corrupt file the empty snapshot is
        written back and returned.

        Returns:
            Snapshot: Persisted snapshot, or the empty one
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info(f"No snapshot at {self.path}, starting from an empty one")
            return self._reset()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Could not read snapshot {self.path}: {e}")
            return self._reset()

        try:
            return Snapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Snapshot {self.path} is corrupt, resetting it: {e}")
            return self._reset()

    def save(self, snapshot: Snapshot) -> None:
        """
        Atomically replace the snapshot file.

        The content is written to a temporary file in the same directory
        and moved over the previous file.

        Args:
            snapshot: Snapshot to persist

        Raises:
            SnapshotStoreError: If the file could not be written
        """
        directory = self.path.parent
        tmp_path = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(snapshot.to_json())
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise SnapshotStoreError(f"Could not write snapshot {self.path}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

        logger.debug(
            f"Snapshot saved: {len(snapshot.homeworks)} homeworks, "
            f"{len(snapshot.marks.subjects)} subjects, "
            f"{len(snapshot.lessons_away)} absences"
        )

    def _reset(self) -> Snapshot:
        """Write and return the empty snapshot."""
        snapshot = Snapshot.empty()
        try:
            self.save(snapshot)
        except SnapshotStoreError as e:
            logger.error(f"Could not reset snapshot: {e}")
        return snapshot
