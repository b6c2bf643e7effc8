"""
Translation memory types.

An entry is identified by (key, language_pair); the key is case-normalized so
"Hello", " hello " and "HELLO" address the same entry.
"""
import re
from dataclasses import dataclass
from typing import NamedTuple, Tuple

_LANGUAGE_CODE = re.compile(r"^[a-z]{2,3}$")


def normalize_key(key: str) -> str:
    """Trim, collapse inner whitespace and lowercase."""
    return " ".join(key.split()).lower()


def normalize_language(code: str) -> str:
    """
    Validate and lowercase a language code.

    Raises:
        ValueError: If the code is not 2-3 ASCII letters
    """
    normalized = code.strip().lower()
    if not _LANGUAGE_CODE.match(normalized):
        raise ValueError(f"invalid language code: {code!r}")
    return normalized


class LanguagePair(NamedTuple):
    """Ordered (source, target) language pair"""
    source: str
    target: str

    @classmethod
    def parse(cls, source: str, target: str) -> "LanguagePair":
        """
        Build a validated pair from raw codes.

        Raises:
            ValueError: If either code is invalid or both are the same
        """
        pair = cls(normalize_language(source), normalize_language(target))
        if pair.source == pair.target:
            raise ValueError(f"source and target language are both {pair.source!r}")
        return pair

    @classmethod
    def from_text(cls, text: str) -> "LanguagePair":
        """Parse "de,ru", "de-ru" or "de ru"."""
        parts = re.split(r"[\s,:>-]+", text.strip())
        if len(parts) != 2:
            raise ValueError(f"invalid language pair: {text!r}")
        return cls.parse(parts[0], parts[1])

    def __str__(self) -> str:
        return f"{self.source} → {self.target}"


EntryId = Tuple[str, LanguagePair]


@dataclass(frozen=True)
class TranslationEntry:
    """One translation; key is normalized and value trimmed on creation."""
    key: str
    value: str
    language_pair: LanguagePair

    def __post_init__(self):
        key = normalize_key(self.key)
        value = self.value.strip()
        if not key:
            raise ValueError("translation key is empty")
        if not value:
            raise ValueError("translation value is empty")
        object.__setattr__(self, "key", key)
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "language_pair", LanguagePair.parse(*self.language_pair))

    @property
    def entry_id(self) -> EntryId:
        return (self.key, self.language_pair)
