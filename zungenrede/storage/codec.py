"""
Durable document format for the translation memory.

Version 1 document:

    {"format": "zungenrede.translations", "version": 1,
     "entries": [{"key": ..., "value": ..., "source_lang": ..., "target_lang": ...}]}

Entries are written in insertion order, so decode(encode(entries)) returns the
same entries in the same order.

Earlier versions of the bot stored a bare JSON array of
{"original", "translation", "grammar_forms", "examples", ...} objects with no
language information. Such a legacy document is accepted and mapped onto a
caller-supplied language pair.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from zungenrede.core.exceptions import CorruptStoreError
from zungenrede.storage.models import LanguagePair, TranslationEntry

DOCUMENT_FORMAT = "zungenrede.translations"
DOCUMENT_VERSION = 1

# Everything else in a legacy entry (grammar_forms, examples, answer counters)
# has no place in the current format
LEGACY_KEPT_FIELDS = frozenset({"original", "translation"})


def encode_document(entries: Iterable[TranslationEntry]) -> str:
    """Serialize entries (in iteration order) to a version 1 document."""
    document = {
        "format": DOCUMENT_FORMAT,
        "version": DOCUMENT_VERSION,
        "entries": [
            {
                "key": entry.key,
                "value": entry.value,
                "source_lang": entry.language_pair.source,
                "target_lang": entry.language_pair.target,
            }
            for entry in entries
        ],
    }
    return json.dumps(document, ensure_ascii=False, indent=1)


@dataclass
class LegacyImport:
    """What a legacy array document lost on its way into the current format."""
    entries: int = 0
    skipped: int = 0
    folded: int = 0
    # field name → number of entries that carried a non-empty value for it
    dropped_fields: Dict[str, int] = field(default_factory=dict)

    @property
    def lossy(self) -> bool:
        return bool(self.skipped or self.folded or self.dropped_fields)


def read_document(
    text: str,
    legacy_pair: Optional[LanguagePair] = None,
) -> Tuple[List[TranslationEntry], Optional[LegacyImport]]:
    """
    Parse a stored document and report whether it was a legacy one.

    Returns:
        (entries in file order, LegacyImport or None for a version 1 document)

    Raises:
        CorruptStoreError: If the text is not a valid document
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise CorruptStoreError(f"not valid JSON: {e}") from e

    if isinstance(document, list):
        if legacy_pair is None:
            raise CorruptStoreError("legacy array document but no legacy language pair configured")
        return _decode_legacy(document, legacy_pair)

    return _decode_current(document), None


def decode_document(
    text: str,
    legacy_pair: Optional[LanguagePair] = None,
) -> List[TranslationEntry]:
    """
    Parse a stored document.

    Args:
        text: File content
        legacy_pair: Language pair assigned to entries of a legacy array document;
            when None, a legacy document is rejected

    Returns:
        Entries in file order

    Raises:
        CorruptStoreError: If the text is not a valid document
    """
    entries, _ = read_document(text, legacy_pair=legacy_pair)
    return entries


def _decode_current(document: Any) -> List[TranslationEntry]:
    if not isinstance(document, dict):
        raise CorruptStoreError(f"unexpected top-level JSON type: {type(document).__name__}")
    if document.get("format") != DOCUMENT_FORMAT:
        raise CorruptStoreError(f"unknown document format: {document.get('format')!r}")
    if document.get("version") != DOCUMENT_VERSION:
        raise CorruptStoreError(f"unsupported document version: {document.get('version')!r}")

    raw_entries = document.get("entries")
    if not isinstance(raw_entries, list):
        raise CorruptStoreError("'entries' must be a list")

    entries: List[TranslationEntry] = []
    seen = set()
    for index, raw in enumerate(raw_entries):
        entry = _decode_entry(raw, index)
        if entry.entry_id in seen:
            raise CorruptStoreError(
                f"entry {index}: duplicate key {entry.key!r} for {entry.language_pair}"
            )
        seen.add(entry.entry_id)
        entries.append(entry)
    return entries


def _decode_entry(raw: Any, index: int) -> TranslationEntry:
    if not isinstance(raw, dict):
        raise CorruptStoreError(f"entry {index}: expected object, got {type(raw).__name__}")
    try:
        fields = {name: raw[name] for name in ("key", "value", "source_lang", "target_lang")}
    except KeyError as e:
        raise CorruptStoreError(f"entry {index}: missing field {e.args[0]!r}") from e
    if not all(isinstance(value, str) for value in fields.values()):
        raise CorruptStoreError(f"entry {index}: all fields must be strings")
    try:
        return TranslationEntry(
            key=fields["key"],
            value=fields["value"],
            language_pair=LanguagePair.parse(fields["source_lang"], fields["target_lang"]),
        )
    except ValueError as e:
        raise CorruptStoreError(f"entry {index}: {e}") from e


def _decode_legacy(
    document: List[Any],
    legacy_pair: LanguagePair,
) -> Tuple[List[TranslationEntry], LegacyImport]:
    # Later duplicates win, matching how the old bot replaced entries on add
    report = LegacyImport()
    by_id: Dict[Any, TranslationEntry] = {}
    for index, raw in enumerate(document):
        if not isinstance(raw, dict):
            raise CorruptStoreError(f"legacy entry {index}: expected object")
        original = raw.get("original")
        translation = raw.get("translation")
        if not isinstance(original, str) or not isinstance(translation, str):
            raise CorruptStoreError(f"legacy entry {index}: 'original' and 'translation' must be strings")
        for name, value in raw.items():
            if name not in LEGACY_KEPT_FIELDS and value not in (None, "", 0, [], {}):
                report.dropped_fields[name] = report.dropped_fields.get(name, 0) + 1
        if not original.strip() or not translation.strip():
            report.skipped += 1
            continue
        entry = TranslationEntry(key=original, value=translation, language_pair=legacy_pair)
        if by_id.pop(entry.entry_id, None) is not None:
            report.folded += 1
        by_id[entry.entry_id] = entry
    report.entries = len(by_id)
    return list(by_id.values()), report
