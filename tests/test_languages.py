"""Unit tests for the supported translation languages."""
import pytest
from hypothesis import given
from hypothesis import strategies as st

from neey.languages import Language


class TestLanguage:
    """Tests for Language enum."""

    def test_default_is_english(self):
        """Test the initial selection."""
        assert Language.default() == Language.ENGLISH

    def test_every_language_has_locale_and_flag(self):
        """Test the per-language metadata tables."""
        for language in Language:
            assert "-" in language.locale
            assert language.flag

    @pytest.mark.parametrize("text,expected", [
        ("French", Language.FRENCH),
        ("french", Language.FRENCH),
        ("  fr-FR ", Language.FRENCH),
        ("ARABIC", Language.ARABIC),
        ("العربية", Language.ARABIC),
    ])
    def test_parse(self, text: str, expected: Language):
        """Test resolving names, values and locales."""
        assert Language.parse(text) == expected

    def test_parse_unknown(self):
        """Test that unknown languages are rejected with the options."""
        with pytest.raises(ValueError, match="Supported languages"):
            Language.parse("Klingon")

    @given(st.sampled_from(list(Language)))
    def test_value_round_trip(self, language: Language):
        """Property test: the persisted value restores the language."""
        assert Language(language.value) is language
