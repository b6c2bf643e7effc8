"""
Translation memory storage: entry types, durable format, file-backed store.
"""

from zungenrede.storage.models import (
    LanguagePair,
    TranslationEntry,
    normalize_key,
)
from zungenrede.storage.translation_store import (
    TranslationStore,
    TranslationView,
)

__all__ = [
    "LanguagePair",
    "TranslationEntry",
    "normalize_key",
    "TranslationStore",
    "TranslationView",
]
