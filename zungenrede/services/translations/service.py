"""
Translation Service Layer

Async facade over TranslationStore. Store methods block (lock waits, file
writes), so every call runs in a worker thread and the event loop keeps
serving other updates.

Mutations are shielded: once a write has been handed to a worker thread it
runs to the rename even if the awaiting request is cancelled. The caller sees
CancelledError; the store sees a complete mutation.

No aiogram imports, no Telegram formatting.
"""
import asyncio
from typing import List, Optional, Tuple

from zungenrede.storage.models import LanguagePair, TranslationEntry
from zungenrede.storage.translation_store import TranslationStore


class TranslationService:
    """Async wrapper owning one TranslationStore."""

    def __init__(self, store: TranslationStore):
        self._store = store

    @property
    def store(self) -> TranslationStore:
        return self._store

    # ====================================================================================
    # Reads
    # ====================================================================================

    async def lookup(self, key: str, language_pair: LanguagePair) -> Optional[TranslationEntry]:
        return await asyncio.to_thread(self._store.get, key, language_pair)

    async def list_entries(self, language_pair: Optional[LanguagePair] = None) -> List[TranslationEntry]:
        """Materialized snapshot (thread-side iteration keeps the loop free)."""
        return await asyncio.to_thread(lambda: list(self._store.list(language_pair)))

    async def export(self) -> Tuple[bytes, int]:
        """Document bytes and entry count of one snapshot."""
        return await asyncio.to_thread(self._store.export)

    # ====================================================================================
    # Mutations
    # ====================================================================================

    async def add(self, entry: TranslationEntry) -> None:
        """
        Raises:
            PersistenceError: If the entry could not be made durable
        """
        await asyncio.shield(asyncio.to_thread(self._store.put, entry))

    async def remove(self, key: str, language_pair: LanguagePair) -> bool:
        """
        Returns:
            True if the entry existed

        Raises:
            PersistenceError: If the removal could not be made durable
        """
        return await asyncio.shield(asyncio.to_thread(self._store.remove, key, language_pair))

    async def clear(self) -> int:
        return await asyncio.shield(asyncio.to_thread(self._store.clear))

    async def flush(self) -> None:
        await asyncio.shield(asyncio.to_thread(self._store.flush))
