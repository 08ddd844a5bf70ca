"""Supported translation languages.

The enum value is the display name that goes into the system prompt and is
persisted verbatim as the language preference.
"""

from enum import Enum


class Language(str, Enum):
    """Language the teacher translates into."""

    ENGLISH = "English"
    TURKISH = "Turkish"
    FRENCH = "French"
    ROMANIAN = "Romanian"
    ITALIAN = "Italian"
    SPANISH = "Spanish"
    POLISH = "Polish"
    ARABIC = "العربية"

    @property
    def locale(self) -> str:
        """Speech-recognition locale tag."""
        return _LOCALES[self]

    @property
    def flag(self) -> str:
        """Display flag."""
        return _FLAGS[self]

    @classmethod
    def default(cls) -> "Language":
        return cls.ENGLISH

    @classmethod
    def parse(cls, text: str) -> "Language":
        """Resolve a member name, display value or locale tag.

        Args:
            text: e.g. "french", "French", "fr-FR"

        Returns:
            The matching Language

        Raises:
            ValueError: If nothing matches
        """
        needle = text.strip().lower()
        for language in cls:
            if needle in (language.name.lower(), language.value.lower(), language.locale.lower()):
                return language
        raise ValueError(
            f"Unknown language: {text}. "
            f"Supported languages: {', '.join(lang.value for lang in cls)}"
        )


_LOCALES = {
    Language.ENGLISH: "en-US",
    Language.TURKISH: "tr-TR",
    Language.FRENCH: "fr-FR",
    Language.ROMANIAN: "ro-RO",
    Language.ITALIAN: "it-IT",
    Language.SPANISH: "es-ES",
    Language.POLISH: "pl-PL",
    Language.ARABIC: "ar-SA",
}

_FLAGS = {
    Language.ENGLISH: "🇺🇸",
    Language.TURKISH: "🇹🇷",
    Language.FRENCH: "🇫🇷",
    Language.ROMANIAN: "🇷🇴",
    Language.ITALIAN: "🇮🇹",
    Language.SPANISH: "🇪🇸",
    Language.POLISH: "🇵🇱",
    Language.ARABIC: "🇸🇦",
}
