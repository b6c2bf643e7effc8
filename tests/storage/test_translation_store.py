"""
Unit tests for the file-backed translation store.

Tests focus on:
- Read-your-write and overwrite semantics
- Durability: every successful mutation is on disk
- Rollback when the write or the rename fails
- Crash between temp write and rename
- Concurrent writers
- Legacy documents are backed up before the first rewrite
"""
import json
import os
import stat
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from zungenrede.core.exceptions import CorruptStoreError, PersistenceError
from zungenrede.storage import LanguagePair, TranslationEntry, TranslationStore
from zungenrede.storage import translation_store
from zungenrede.storage.codec import encode_document


def _entries_on_disk(path):
    return TranslationStore.load(path).list()


class TestLoad:
    """Tests for TranslationStore.load"""

    def test_missing_file_is_empty_store(self, storage_file):
        """First run: no file → empty store, parent directory created"""
        store = TranslationStore.load(storage_file)

        assert len(store) == 0
        assert list(store.list()) == []
        assert storage_file.parent.is_dir()
        assert not storage_file.exists()

    def test_unparsable_file_is_fatal(self, storage_file):
        storage_file.parent.mkdir(parents=True)
        storage_file.write_text("{not json", encoding="utf-8")

        with pytest.raises(CorruptStoreError):
            TranslationStore.load(storage_file)

    def test_empty_file_is_fatal(self, storage_file):
        """A zero-byte file is not a valid document; never start silently empty"""
        storage_file.parent.mkdir(parents=True)
        storage_file.write_text("", encoding="utf-8")

        with pytest.raises(CorruptStoreError):
            TranslationStore.load(storage_file)

    def test_partially_valid_file_is_fatal(self, storage_file):
        storage_file.parent.mkdir(parents=True)
        document = {
            "format": "zungenrede.translations",
            "version": 1,
            "entries": [
                {"key": "hello", "value": "hallo", "source_lang": "en", "target_lang": "de"},
                {"key": "bye", "value": "", "source_lang": "en", "target_lang": "de"},
            ],
        }
        storage_file.write_text(json.dumps(document), encoding="utf-8")

        with pytest.raises(CorruptStoreError):
            TranslationStore.load(storage_file)

    def test_legacy_array_loaded_onto_legacy_pair(self, storage_file):
        """Files written by the previous bot version are a bare array"""
        storage_file.parent.mkdir(parents=True)
        legacy = [
            {"original": "Hund", "translation": "собака", "grammar_forms": ["der"], "examples": [],
             "correct_answers": 3, "wrong_answers": 1},
            {"original": "gehen", "translation": "идти", "grammar_forms": [], "examples": []},
        ]
        storage_file.write_text(json.dumps(legacy, ensure_ascii=False), encoding="utf-8")

        store = TranslationStore.load(storage_file, legacy_pair=LanguagePair("de", "ru"))

        entry = store.get("hund", LanguagePair("de", "ru"))
        assert entry is not None
        assert entry.value == "собака"
        assert [e.key for e in store.list()] == ["hund", "gehen"]

    def test_legacy_array_without_pair_is_fatal(self, storage_file):
        storage_file.parent.mkdir(parents=True)
        storage_file.write_text("[]", encoding="utf-8")

        with pytest.raises(CorruptStoreError):
            TranslationStore.load(storage_file)

    def test_legacy_file_backed_up_before_rewrite(self, storage_file, caplog):
        """The original array stays on disk byte for byte after the first rewrite"""
        storage_file.parent.mkdir(parents=True)
        legacy = [
            {"original": "Weg", "translation": "путь", "examples": ["Der Weg ist lang"]},
            {"original": "weg", "translation": "прочь"},
            {"original": " ", "translation": "пусто"},
        ]
        original = json.dumps(legacy, ensure_ascii=False).encode("utf-8")
        storage_file.write_bytes(original)

        with caplog.at_level("WARNING", logger="zungenrede.storage.translation_store"):
            store = TranslationStore.load(storage_file, legacy_pair=LanguagePair("de", "ru"))
        store.flush()

        backup = storage_file.with_name(f"{storage_file.name}.legacy.bak")
        assert backup.read_bytes() == original
        assert json.loads(storage_file.read_text(encoding="utf-8"))["version"] == 1
        assert [e.value for e in _entries_on_disk(storage_file)] == ["прочь"]
        warning = next(r.getMessage() for r in caplog.records if "LEGACY_IMPORT" in r.getMessage())
        assert "skipped_blank=1" in warning
        assert "folded_case_variants=1" in warning
        assert "examples" in warning

    def test_legacy_backup_never_overwritten(self, storage_file):
        storage_file.parent.mkdir(parents=True)
        backup = storage_file.with_name(f"{storage_file.name}.legacy.bak")
        backup.write_bytes(b"older backup")
        original = json.dumps([{"original": "Hund", "translation": "собака"}], ensure_ascii=False).encode("utf-8")
        storage_file.write_bytes(original)

        TranslationStore.load(storage_file, legacy_pair=LanguagePair("de", "ru"))

        assert backup.read_bytes() == b"older backup"
        extra = [p for p in storage_file.parent.iterdir() if p.name.endswith(".bak") and p != backup]
        assert len(extra) == 1
        assert extra[0].read_bytes() == original

    def test_identical_legacy_backup_reused(self, storage_file):
        storage_file.parent.mkdir(parents=True)
        original = json.dumps([{"original": "Hund", "translation": "собака"}], ensure_ascii=False).encode("utf-8")
        storage_file.write_bytes(original)
        backup = storage_file.with_name(f"{storage_file.name}.legacy.bak")
        backup.write_bytes(original)

        TranslationStore.load(storage_file, legacy_pair=LanguagePair("de", "ru"))

        assert [p.name for p in storage_file.parent.iterdir() if p.name.endswith(".bak")] == [backup.name]

    def test_legacy_backup_failure_is_fatal(self, storage_file):
        storage_file.parent.mkdir(parents=True)
        storage_file.write_text('[{"original": "Hund", "translation": "собака"}]', encoding="utf-8")

        with patch("zungenrede.storage.translation_store.os.replace", side_effect=OSError("read-only")):
            with pytest.raises(PersistenceError):
                TranslationStore.load(storage_file, legacy_pair=LanguagePair("de", "ru"))

        assert not storage_file.with_name(f"{storage_file.name}.legacy.bak").exists()

    def test_stale_temp_files_removed(self, storage_file, hello_entry):
        """Temp file of an interrupted write is cleaned up and ignored"""
        store = TranslationStore.load(storage_file)
        store.put(hello_entry)
        stale = storage_file.parent / f".{storage_file.name}.abc123.tmp"
        stale.write_text("half a docu", encoding="utf-8")

        reloaded = TranslationStore.load(storage_file)

        assert not stale.exists()
        assert list(reloaded.list()) == [hello_entry]


class TestReadsAndWrites:
    """Tests for get / put / remove / list"""

    def test_read_your_write(self, store, hello_entry, en_de):
        store.put(hello_entry)

        assert store.get("hello", en_de) == hello_entry

    def test_get_normalizes_key(self, store, hello_entry, en_de):
        store.put(hello_entry)

        assert store.get("  HeLLo ", en_de) == hello_entry

    def test_get_missing_returns_none(self, store, en_de):
        assert store.get("hello", en_de) is None

    def test_language_pair_scopes_entries(self, store, hello_entry):
        store.put(hello_entry)

        assert store.get("hello", LanguagePair("de", "en")) is None
        assert store.get("hello", LanguagePair("en", "fr")) is None

    def test_overwrite_keeps_single_entry(self, store, hello_entry, en_de):
        store.put(hello_entry)
        store.put(TranslationEntry(key="Hello", value="servus", language_pair=en_de))

        assert len(store) == 1
        assert store.get("hello", en_de).value == "servus"

    def test_put_is_durable_before_return(self, store, storage_file, hello_entry):
        store.put(hello_entry)

        assert list(_entries_on_disk(storage_file)) == [hello_entry]

    def test_remove_existing(self, store, storage_file, hello_entry, en_de):
        store.put(hello_entry)

        assert store.remove("hello", en_de) is True
        assert store.get("hello", en_de) is None
        assert list(_entries_on_disk(storage_file)) == []

    def test_remove_missing_does_not_write(self, store, storage_file, en_de):
        assert store.remove("hello", en_de) is False
        assert not storage_file.exists()

    def test_list_insertion_order_survives_reload(self, store, storage_file, en_de):
        keys = ["zebra", "apple", "mango"]
        for key in keys:
            store.put(TranslationEntry(key=key, value=key.upper(), language_pair=en_de))
        # overwrite keeps original position
        store.put(TranslationEntry(key="zebra", value="Zebra", language_pair=en_de))

        assert [e.key for e in store.list()] == keys
        assert [e.key for e in _entries_on_disk(storage_file)] == keys

    def test_uppercase_pair_survives_reload(self, store, storage_file):
        """A pair written in capitals reads back the same before and after restart"""
        store.put(TranslationEntry(key="hello", value="hallo", language_pair=LanguagePair("EN", "de")))

        before = store.get("hello", LanguagePair("EN", "de"))
        after = TranslationStore.load(storage_file).get("hello", LanguagePair("EN", "de"))

        assert before is not None
        assert before == after
        assert before.language_pair == LanguagePair("en", "de")
        assert [e.key for e in store.list(LanguagePair("EN", "DE"))] == ["hello"]

    def test_identical_pair_never_reaches_disk(self, store, storage_file):
        with pytest.raises(ValueError):
            store.put(TranslationEntry(key="hello", value="hello", language_pair=("en", "en")))

        assert not storage_file.exists()

    def test_list_filters_by_pair(self, store, hello_entry):
        de_ru = LanguagePair("de", "ru")
        store.put(hello_entry)
        store.put(TranslationEntry(key="hund", value="собака", language_pair=de_ru))

        assert [e.key for e in store.list(de_ru)] == ["hund"]
        assert len(store.list(de_ru)) == 1
        assert len(store.list()) == 2

    def test_list_is_restartable_snapshot(self, store, hello_entry, en_de):
        store.put(hello_entry)
        view = store.list()

        store.put(TranslationEntry(key="bye", value="tschüss", language_pair=en_de))

        assert list(view) == [hello_entry]
        assert list(view) == [hello_entry]
        assert len(store.list()) == 2

    def test_clear(self, store, storage_file, hello_entry):
        store.put(hello_entry)

        assert store.clear() == 1
        assert len(store) == 0
        assert list(_entries_on_disk(storage_file)) == []

    def test_export_matches_file_format(self, store, hello_entry):
        store.put(hello_entry)

        document, count = store.export()

        assert count == 1
        assert document.decode("utf-8") == encode_document([hello_entry])

    def test_persist_duration_recorded(self, store, hello_entry):
        assert store.last_persist_ms is None

        store.put(hello_entry)

        assert store.last_persist_ok is True
        assert store.last_persist_ms >= 0


class TestFailures:
    """Rollback and crash consistency"""

    def test_rename_failure_rolls_back(self, store, storage_file, hello_entry, en_de):
        store.put(hello_entry)
        before = storage_file.read_bytes()
        bye = TranslationEntry(key="bye", value="tschüss", language_pair=en_de)

        with patch("zungenrede.storage.translation_store.os.replace", side_effect=OSError(28, "No space left")):
            with pytest.raises(PersistenceError):
                store.put(bye)

        assert store.get("bye", en_de) is None
        assert list(store.list()) == [hello_entry]
        assert storage_file.read_bytes() == before
        assert store.last_persist_ok is False
        leftovers = [p for p in storage_file.parent.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_remove_failure_keeps_entry(self, store, storage_file, hello_entry, en_de):
        store.put(hello_entry)

        with patch("zungenrede.storage.translation_store.os.replace", side_effect=PermissionError(13, "denied")):
            with pytest.raises(PersistenceError):
                store.remove("hello", en_de)

        assert store.get("hello", en_de) == hello_entry
        assert list(_entries_on_disk(storage_file)) == [hello_entry]

    def test_unwritable_directory(self, store, hello_entry, en_de):
        with patch("zungenrede.storage.translation_store.tempfile.mkstemp", side_effect=PermissionError(13, "denied")):
            with pytest.raises(PersistenceError):
                store.put(hello_entry)

        assert store.get("hello", en_de) is None

    def test_crash_before_rename_leaves_previous_state(self, store, storage_file, hello_entry, en_de):
        """Process dies after the temp file is written but before the rename"""
        store.put(hello_entry)
        before = storage_file.read_bytes()

        class Killed(BaseException):
            pass

        with patch("zungenrede.storage.translation_store.os.replace", side_effect=Killed):
            with pytest.raises(Killed):
                store.put(TranslationEntry(key="bye", value="tschüss", language_pair=en_de))

        # the orphaned temp file is still there, as after a real kill
        assert storage_file.read_bytes() == before
        restarted = TranslationStore.load(storage_file)
        assert list(restarted.list()) == [hello_entry]
        assert not [p for p in storage_file.parent.iterdir() if p.name.endswith(".tmp")]


class TestFileMode:

    def test_existing_permissions_preserved(self, store, storage_file, hello_entry, en_de):
        store.put(hello_entry)
        os.chmod(storage_file, 0o666)

        reloaded = TranslationStore.load(storage_file)
        reloaded.put(TranslationEntry(key="bye", value="tschüss", language_pair=en_de))

        assert stat.S_IMODE(storage_file.stat().st_mode) == 0o666

    def test_new_file_mode_does_not_touch_umask(self, storage_file, hello_entry):
        """The umask is read once at import; writes from worker threads never change it"""
        store = TranslationStore.load(storage_file)

        with patch("zungenrede.storage.translation_store.os.umask") as umask:
            store.put(hello_entry)

        umask.assert_not_called()
        expected = 0o666 & ~translation_store._PROCESS_UMASK
        assert stat.S_IMODE(storage_file.stat().st_mode) == expected


class TestConcurrency:

    def test_concurrent_puts_on_distinct_keys(self, store, storage_file, en_de):
        """N concurrent successful puts → exactly N entries, in memory and on disk"""
        count = 200

        def put(i):
            store.put(TranslationEntry(key=f"word{i}", value=f"wort{i}", language_pair=en_de))

        with ThreadPoolExecutor(max_workers=16) as pool:
            list(pool.map(put, range(count)))

        keys = [e.key for e in store.list()]
        assert len(keys) == count
        assert set(keys) == {f"word{i}" for i in range(count)}
        on_disk = [e.key for e in _entries_on_disk(storage_file)]
        assert sorted(on_disk) == sorted(keys)

    def test_readers_never_see_partial_state(self, store, en_de):
        """Each snapshot a reader takes is internally consistent"""
        stop = threading.Event()
        errors = []

        def reader():
            while not stop.is_set():
                entries = list(store.list())
                if len({e.key for e in entries}) != len(entries):
                    errors.append("duplicate keys in snapshot")

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for thread in threads:
            thread.start()
        try:
            for i in range(100):
                store.put(TranslationEntry(key=f"key{i}", value="v", language_pair=en_de))
        finally:
            stop.set()
            for thread in threads:
                thread.join()

        assert errors == []
        assert len(store) == 100

    def test_large_store_round_trip(self, store, storage_file, en_de):
        """Thousands of entries: every put rewrites the whole file"""
        bulk = {
            (f"word{i}", en_de): TranslationEntry(key=f"word{i}", value=f"wort{i}", language_pair=en_de)
            for i in range(5000)
        }
        seeded = TranslationStore(storage_file, bulk)
        seeded.put(TranslationEntry(key="hello", value="hallo", language_pair=en_de))

        reloaded = TranslationStore.load(storage_file)
        assert len(reloaded) == 5001
        assert list(reloaded.list()) == list(seeded.list())
        assert seeded.last_persist_ms is not None
