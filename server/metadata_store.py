"""
Durable id -> FileRecord mapping persisted as a single JSON snapshot.

Every operation re-reads the whole snapshot; mutations are serialized by one
process-wide lock and written back with a temp-file-plus-rename so readers
never observe a half-written snapshot. Whole-snapshot rewrites are only
adequate for low write volume.
"""

import json
import os
import shutil
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Tuple

from common.logging_config import get_logger
from server.exceptions import DuplicateIdentifierError
from server.types import FileRecord

logger = get_logger(__name__)


class MetadataStore:
    """
    Snapshot-backed metadata store.

    Readers (load, get) take no lock. register() holds the write lock across
    its load-mutate-save sequence so concurrent uploads cannot drop each
    other's records.
    """

    def __init__(self, path: str):
        """
        Initialize metadata store.

        Args:
            path: Path to JSON snapshot file (e.g. database.json)
        """
        self._path = Path(path)
        self._write_lock = threading.Lock()
        self._quarantined: Optional[Tuple[int, int]] = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Dict[str, FileRecord]:
        """
        Read the persisted snapshot.

        Returns:
            Mapping of id to FileRecord. Empty if the snapshot is missing,
            unreadable or corrupt; a corrupt snapshot is copied aside first.
        """
        if not self._path.exists():
            return {}

        try:
            with open(self._path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Metadata snapshot {self._path} is corrupt: {e}")
            self._quarantine()
            return {}
        except OSError as e:
            logger.error(f"Metadata snapshot {self._path} is unreadable: {e}")
            return {}

        if not isinstance(data, dict):
            logger.error(
                f"Metadata snapshot {self._path} has unexpected top-level type {type(data).__name__}"
            )
            self._quarantine()
            return {}

        records: Dict[str, FileRecord] = {}
        for file_id, entry in data.items():
            try:
                record = FileRecord.from_dict(entry)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed metadata entry {file_id!r}: {e}")
                continue
            if record.id != file_id:
                logger.warning(f"Skipping metadata entry {file_id!r}: id mismatch ({record.id!r})")
                continue
            records[file_id] = record

        return records

    def save(self, records: Dict[str, FileRecord]) -> None:
        """
        Replace the persisted snapshot with the given mapping.

        Raises:
            OSError: If the snapshot cannot be written
            TypeError, ValueError: If serialization fails
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)

        payload = {file_id: record.to_dict() for file_id, record in records.items()}

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            dir=str(self._path.parent)
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

        logger.debug(f"Metadata snapshot saved to {self._path} ({len(payload)} record(s))")

    def get(self, file_id: str) -> Optional[FileRecord]:
        return self.load().get(file_id)

    def contains(self, file_id: str) -> bool:
        return file_id in self.load()

    def count(self) -> int:
        return len(self.load())

    def register(self, record: FileRecord) -> None:
        """
        Add a new record and persist the snapshot.

        Args:
            record: Record to add

        Raises:
            DuplicateIdentifierError: If record.id is already registered
            OSError: If the snapshot cannot be written
        """
        with self._write_lock:
            records = self.load()

            if record.id in records:
                raise DuplicateIdentifierError(f"Identifier {record.id} is already registered")

            records[record.id] = record
            self.save(records)

        logger.info(f"Registered file {record.id} ({record.size_bytes} bytes, {record.mime_type})")

    def _quarantine(self) -> None:
        """
        Copy a corrupt snapshot aside so the next save cannot destroy it.
        """
        try:
            stat = self._path.stat()
            signature = (stat.st_mtime_ns, stat.st_size)
            if signature == self._quarantined:
                return

            stamp = datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S%fZ')
            backup_path = self._path.with_name(f"{self._path.name}.corrupt-{stamp}")
            shutil.copy2(self._path, backup_path)
            self._quarantined = signature
            logger.error(f"Corrupt metadata snapshot preserved at {backup_path}")
        except OSError as e:
            logger.error(f"Failed to preserve corrupt metadata snapshot {self._path}: {e}")
