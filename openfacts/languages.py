"""Supported catalog languages and the ordered fallback list."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum


class Language(Enum):
    """Languages the product catalogs can localize into."""

    ENGLISH = ("en", "English")
    FRENCH = ("fr", "Français")
    SPANISH = ("es", "Español")
    GERMAN = ("de", "Deutsch")
    ITALIAN = ("it", "Italiano")
    PORTUGUESE = ("pt", "Português")
    DUTCH = ("nl", "Nederlands")
    CHINESE = ("zh", "中文")
    JAPANESE = ("ja", "日本語")
    ARABIC = ("ar", "العربية")

    @property
    def code(self) -> str:
        """ISO 639-1 code."""
        return self.value[0]

    @property
    def display_name(self) -> str:
        return self.value[1]

    @classmethod
    def from_code(cls, code: str) -> Language | None:
        code = code.strip().lower()
        for language in cls:
            if language.code == code:
                return language
        return None


DEFAULT_LANGUAGE = Language.ENGLISH


class LanguageList:
    """Ordered language preferences used for fallback resolution.

    Never empty: an empty input falls back to English. Duplicates are kept
    as given.
    """

    def __init__(self, languages: Iterable[Language] = ()) -> None:
        self._languages: list[Language] = []
        self.update(languages)

    def update(self, languages: Iterable[Language]) -> None:
        self._languages = list(languages) or [DEFAULT_LANGUAGE]

    @classmethod
    def from_codes(cls, codes: Iterable[str]) -> LanguageList:
        """Build a list from language codes, skipping unknown ones."""
        languages = [lang for lang in map(Language.from_code, codes) if lang]
        return cls(languages)

    @property
    def primary(self) -> Language:
        return self._languages[0]

    def __iter__(self):
        return iter(self._languages)

    def __len__(self) -> int:
        return len(self._languages)

    def __getitem__(self, index: int) -> Language:
        return self._languages[index]

    def __repr__(self) -> str:
        codes = ", ".join(lang.code for lang in self._languages)
        return f"LanguageList([{codes}])"
