"""
Pytest configuration and shared fixtures.
"""
import pytest

from zungenrede.dispatcher import RequestDispatcher
from zungenrede.services.access import AccessGate
from zungenrede.services.translations import TranslationService
from zungenrede.storage import LanguagePair, TranslationEntry, TranslationStore


@pytest.fixture
def en_de():
    return LanguagePair("en", "de")


@pytest.fixture
def storage_file(tmp_path):
    """Path of a not-yet-existing store file in a fresh directory"""
    return tmp_path / "data" / "translations_storage.json"


@pytest.fixture
def store(storage_file):
    return TranslationStore.load(storage_file)


@pytest.fixture
def service(store):
    return TranslationService(store)


@pytest.fixture
def hello_entry(en_de):
    return TranslationEntry(key="hello", value="hallo", language_pair=en_de)


@pytest.fixture
def make_dispatcher(service):
    """Factory: RequestDispatcher over the shared store with a given allowlist"""
    def factory(allowed_users=(), **kwargs):
        return RequestDispatcher(service, AccessGate(allowed_users), **kwargs)
    return factory
