"""Answer-locale detection for guest questions."""
import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

SUPPORTED_LOCALES = ("en", "de", "tr")
BASELINE_LOCALE = "en"

LANGUAGE_NAMES = {
    "en": "English",
    "de": "German",
    "tr": "Turkish",
}

# Letters that only occur in Turkish among the supported languages
_TURKISH_LETTERS = re.compile(r"[çÇğĞıİşŞ]")
_TURKISH_WORDS = re.compile(
    r"\b(türkçe|merhaba|hangi|hizmet|konuş\w*|musun|musunuz|mı|mi|mu|mü|neden|nasıl|"
    r"nedir|saatleri|lokasyon|kaç|kac|evcil|teşekkür\w*|tesekkur\w*|var mı)\b"
)
_GERMAN_LETTERS = re.compile(r"[äöüßÄÖÜ]")
_GERMAN_WORDS = re.compile(
    r"\b(hallo|danke|ich|sie|wie|kann|sprechen|bitte|heute|wann|sind|haben|"
    r"haustiere|standorte|uhr|gibt|zimmer|wohnung)\b"
)
_ENGLISH_WORDS = re.compile(
    r"\b(hello|can|you|speak|english|what|how|services|reservation|thanks|"
    r"does|have|is|are|the)\b"
)


def language_name(locale: Optional[str]) -> str:
    """Human-readable language for a locale code, English when unknown."""
    return LANGUAGE_NAMES.get(locale or "", LANGUAGE_NAMES[BASELINE_LOCALE])


def normalize_locale(locale: Optional[str]) -> Optional[str]:
    """Lower-cased supported locale code, or None."""
    value = (locale or "").strip().lower()
    return value if value in SUPPORTED_LOCALES else None


def detect_question_locale(question: str) -> Optional[str]:
    """
    Guess the language a question is written in.

    Signals are checked in a fixed order: Turkish, German, English.
    Returns None when the text carries no signal.
    """
    text = str(question or "")
    lower = text.lower()

    if _TURKISH_LETTERS.search(text) or _TURKISH_WORDS.search(lower):
        return "tr"
    if _GERMAN_LETTERS.search(text) or _GERMAN_WORDS.search(lower):
        return "de"
    if _ENGLISH_WORDS.search(lower):
        return "en"
    return None


def resolve_answer_locale(question: str, requested_locale: Optional[str] = None) -> str:
    """
    Locale the answer is written in.

    The question's own language wins; otherwise the caller's site locale; otherwise English.
    """
    detected = detect_question_locale(question)
    if detected:
        return detected
    return normalize_locale(requested_locale) or BASELINE_LOCALE
