"""
LinguaLink — Language Catalog
==============================
Languages offered by the translation screens.  The backend takes
human-readable language *names* (``"Vietnamese"``), not codes, so callers
that hold a code resolve it with :func:`get_language_name` before sending.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class Language:
    code: str
    name: str
    flag: str


AUTO_DETECT = Language(code="auto", name="Auto Detect", flag="🌐")

SOURCE_LANGUAGES: list[Language] = [
    AUTO_DETECT,
    Language(code="vi", name="Vietnamese", flag="🇻🇳"),
    Language(code="en", name="English", flag="🇬🇧"),
    Language(code="es", name="Spanish", flag="🇪🇸"),
    Language(code="fr", name="French", flag="🇫🇷"),
    Language(code="de", name="German", flag="🇩🇪"),
    Language(code="ja", name="Japanese", flag="🇯🇵"),
    Language(code="ko", name="Korean", flag="🇰🇷"),
    Language(code="zh", name="Chinese", flag="🇨🇳"),
    Language(code="th", name="Thai", flag="🇹🇭"),
    Language(code="id", name="Indonesian", flag="🇮🇩"),
]

# Auto-detect only makes sense on the input side.
TARGET_LANGUAGES: list[Language] = [
    lang for lang in SOURCE_LANGUAGES if lang.code != AUTO_DETECT.code
]

LANGUAGE_NAME_MAP: dict[str, str] = {lang.code: lang.name for lang in TARGET_LANGUAGES}


def get_language_name(code: str) -> str:
    """Return the API language name for *code*, or *code* itself if unknown."""
    return LANGUAGE_NAME_MAP.get(code, code)


def get_language_by_code(code: str) -> Language:
    """Look up a source language by code; unknown codes fall back to auto-detect."""
    for lang in SOURCE_LANGUAGES:
        if lang.code == code:
            return lang
    return AUTO_DETECT


def find_language(value: str) -> Optional[Language]:
    """Match a code or a name (case-insensitive) against the catalog."""
    needle = value.strip().lower()
    for lang in SOURCE_LANGUAGES:
        if needle in (lang.code, lang.name.lower()):
            return lang
    return None
