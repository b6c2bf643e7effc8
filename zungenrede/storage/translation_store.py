"""
Durable translation store.

The whole mapping lives in memory and is mirrored to one JSON file. Every
mutation builds a new mapping, writes it to a temporary file in the target
directory, fsyncs it and renames it over the target with os.replace(). The new
mapping is published to readers only after the rename succeeds, so:

- the file is always either the previous complete state or the new one
- a failed write leaves both memory and disk at their previous state
- readers never observe a half-applied mutation

Published mappings are never mutated, so a reader only needs the shared lock
long enough to grab the current reference.

All methods are blocking; async callers go through TranslationService.
"""
import logging
import os
import stat
import tempfile
import time
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

from zungenrede.core.exceptions import CorruptStoreError, PersistenceError
from zungenrede.core.structured_logger import log_event
from zungenrede.storage.codec import encode_document, read_document
from zungenrede.storage.models import EntryId, LanguagePair, TranslationEntry, normalize_key
from zungenrede.storage.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"


def _read_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


# os.umask() can only be read by setting it; do that once, at import, before
# any worker thread creates files
_PROCESS_UMASK = _read_umask()


def _default_file_mode() -> int:
    return 0o666 & ~_PROCESS_UMASK


def _as_pair(language_pair) -> LanguagePair:
    """Lowercased pair for lookups; never raises."""
    return LanguagePair(*(code.strip().lower() for code in language_pair))


class TranslationView:
    """
    Lazy, restartable view over one store snapshot.

    Each iteration walks the snapshot from the start in insertion order; the
    view never sees mutations made after it was created.
    """

    def __init__(self, snapshot: Dict[EntryId, TranslationEntry], language_pair: Optional[LanguagePair] = None):
        self._snapshot = snapshot
        self._language_pair = language_pair

    def __iter__(self) -> Iterator[TranslationEntry]:
        for entry in self._snapshot.values():
            if self._language_pair is None or entry.language_pair == self._language_pair:
                yield entry

    def __len__(self) -> int:
        if self._language_pair is None:
            return len(self._snapshot)
        return sum(1 for _ in self)

    def __bool__(self) -> bool:
        return any(True for _ in self)


class TranslationStore:
    """
    Concurrency-safe, crash-consistent translation memory backed by one file.

    Use TranslationStore.load(path) to create an instance from disk.
    """

    def __init__(
        self,
        path: Union[str, Path],
        entries: Optional[Dict[EntryId, TranslationEntry]] = None,
        file_mode: Optional[int] = None,
    ):
        self._path = Path(path)
        self._entries: Dict[EntryId, TranslationEntry] = dict(entries or {})
        self._file_mode = file_mode if file_mode is not None else _default_file_mode()
        self._lock = ReadWriteLock()
        self.last_persist_ms: Optional[float] = None
        self.last_persist_ok: Optional[bool] = None

    # ====================================================================================
    # Startup
    # ====================================================================================

    @classmethod
    def load(
        cls,
        path: Union[str, Path],
        legacy_pair: Optional[LanguagePair] = None,
    ) -> "TranslationStore":
        """
        Load the store from its durable file.

        A missing file yields an empty store (first run); its parent directory
        is created. Temporary files left behind by an interrupted write are
        removed.

        A legacy document is copied to "<name>.legacy.bak" before the store is
        returned, so the first rewrite in the current format loses nothing
        that the backup does not keep.

        Raises:
            CorruptStoreError: If the file exists but cannot be read or parsed
            PersistenceError: If a legacy document could not be backed up
        """
        path = Path(path)
        start_time = time.monotonic()
        path.parent.mkdir(parents=True, exist_ok=True)
        _remove_stale_temp_files(path)

        if not path.exists():
            log_event(
                logger,
                component="store",
                operation="load",
                outcome="success",
                reason="file absent, starting empty",
            )
            return cls(path)

        try:
            raw = path.read_bytes()
            text = raw.decode("utf-8")
            file_mode = stat.S_IMODE(path.stat().st_mode)
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptStoreError(f"cannot read {path}: {e}") from e

        try:
            entries, legacy_import = read_document(text, legacy_pair=legacy_pair)
        except CorruptStoreError as e:
            raise CorruptStoreError(f"{path}: {e}") from e

        if legacy_import is not None:
            backup = _backup_legacy_file(path, raw, file_mode)
            logger.warning(
                "LEGACY_IMPORT %s: entries=%s skipped_blank=%s folded_case_variants=%s "
                "dropped_fields=%s backup=%s",
                path, legacy_import.entries, legacy_import.skipped, legacy_import.folded,
                legacy_import.dropped_fields or "none", backup,
            )

        store = cls(path, {entry.entry_id: entry for entry in entries}, file_mode=file_mode)
        log_event(
            logger,
            component="store",
            operation="load",
            outcome="success",
            duration_ms=(time.monotonic() - start_time) * 1000,
            reason=f"entries={len(entries)}",
        )
        return store

    @property
    def path(self) -> Path:
        return self._path

    def __len__(self) -> int:
        return len(self._snapshot())

    # ====================================================================================
    # Reads
    # ====================================================================================

    def _snapshot(self) -> Dict[EntryId, TranslationEntry]:
        with self._lock.read_locked():
            return self._entries

    def get(self, key: str, language_pair: LanguagePair) -> Optional[TranslationEntry]:
        """Look up an entry; the key is normalized first."""
        return self._snapshot().get((normalize_key(key), _as_pair(language_pair)))

    def list(self, language_pair: Optional[LanguagePair] = None) -> TranslationView:
        """All entries (optionally for one pair) in insertion order."""
        if language_pair is not None:
            language_pair = _as_pair(language_pair)
        return TranslationView(self._snapshot(), language_pair)

    def export(self) -> Tuple[bytes, int]:
        """Serialized document and entry count of one snapshot."""
        snapshot = self._snapshot()
        return encode_document(snapshot.values()).encode("utf-8"), len(snapshot)

    # ====================================================================================
    # Mutations
    # ====================================================================================

    def put(self, entry: TranslationEntry) -> None:
        """
        Insert or overwrite an entry and make it durable.

        Raises:
            PersistenceError: If the file could not be written; nothing changes
        """
        with self._lock.write_locked():
            updated = dict(self._entries)
            updated[entry.entry_id] = entry
            self._persist(updated, operation="put")
            self._entries = updated

    def remove(self, key: str, language_pair: LanguagePair) -> bool:
        """
        Remove an entry durably.

        Returns:
            True if the entry existed

        Raises:
            PersistenceError: If the file could not be written; nothing changes
        """
        entry_id = (normalize_key(key), _as_pair(language_pair))
        with self._lock.write_locked():
            if entry_id not in self._entries:
                return False
            updated = dict(self._entries)
            del updated[entry_id]
            self._persist(updated, operation="remove")
            self._entries = updated
            return True

    def clear(self) -> int:
        """Remove every entry durably and return how many were removed."""
        with self._lock.write_locked():
            removed = len(self._entries)
            self._persist({}, operation="clear")
            self._entries = {}
            return removed

    def flush(self) -> None:
        """Write the current mapping (used at shutdown)."""
        with self._lock.write_locked():
            self._persist(self._entries, operation="flush")

    # ====================================================================================
    # Persistence
    # ====================================================================================

    def _persist(self, entries: Dict[EntryId, TranslationEntry], operation: str) -> None:
        """Write entries to a temp file and atomically rename it over the target.

        Caller must hold the write lock.
        """
        start_time = time.monotonic()
        payload = encode_document(entries.values()).encode("utf-8")
        try:
            _write_atomically(self._path, payload, self._file_mode)
        except OSError as e:
            self.last_persist_ms = (time.monotonic() - start_time) * 1000
            self.last_persist_ok = False
            log_event(
                logger,
                component="store",
                operation=operation,
                outcome="failed",
                duration_ms=self.last_persist_ms,
                reason=f"{type(e).__name__}: {e}",
                level="error",
            )
            raise PersistenceError(f"cannot write {self._path}: {e}") from e

        self.last_persist_ms = (time.monotonic() - start_time) * 1000
        self.last_persist_ok = True
        log_event(
            logger,
            component="store",
            operation=operation,
            outcome="success",
            duration_ms=self.last_persist_ms,
            reason=f"entries={len(entries)}",
            level="debug",
        )


def _write_atomically(target: Path, payload: bytes, file_mode: int) -> None:
    """
    Temp file in target's directory → fsync → chmod → os.replace → fsync dir.

    On OSError the temp file is removed and target is untouched.
    """
    temp_path = None
    try:
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{target.name}.",
            suffix=TEMP_SUFFIX,
            dir=target.parent,
        )
        temp_path = Path(temp_name)
        with os.fdopen(fd, "wb") as temp_file:
            temp_file.write(payload)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.chmod(temp_path, file_mode)
        os.replace(temp_path, target)
    except OSError:
        if temp_path is not None:
            _discard(temp_path)
        raise
    _fsync_directory(target.parent)


def _backup_legacy_file(path: Path, raw: bytes, file_mode: int) -> Path:
    """
    Keep the exact bytes of a legacy document next to it.

    An existing backup with the same bytes is reused; a different one is never
    overwritten.

    Raises:
        PersistenceError: If the backup could not be written
    """
    backup = path.with_name(f"{path.name}.legacy.bak")
    if backup.exists():
        try:
            if backup.read_bytes() == raw:
                return backup
        except OSError as e:
            raise PersistenceError(f"cannot read legacy backup {backup}: {e}") from e
        backup = path.with_name(f"{path.name}.legacy.{time.strftime('%Y%m%d%H%M%S')}.bak")
    try:
        _write_atomically(backup, raw, file_mode)
    except OSError as e:
        raise PersistenceError(f"cannot back up legacy document to {backup}: {e}") from e
    return backup


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove temp file %s: %s", path, e)


def _fsync_directory(directory: Path) -> None:
    # Makes the rename itself durable; not supported everywhere
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError as e:
        logger.debug("Directory fsync skipped for %s: %s", directory, e)
        return
    try:
        os.fsync(fd)
    except OSError as e:
        logger.debug("Directory fsync failed for %s: %s", directory, e)
    finally:
        os.close(fd)


def _remove_stale_temp_files(path: Path) -> None:
    for candidate in path.parent.glob(f".{path.name}.*{TEMP_SUFFIX}"):
        logger.warning("Removing temp file left by an interrupted write: %s", candidate)
        _discard(candidate)
