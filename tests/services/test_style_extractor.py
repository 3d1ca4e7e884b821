"""
Unit tests for StyleExtractor.

Covers each style dimension and the determinism of the extracted record.
"""

import pytest

from voiceprint.schemas.style import (
    Capitalization,
    EmojiUsage,
    ExclamationFrequency,
    Formality,
    HumorStyle,
    ParagraphStyle,
)
from voiceprint.services.style_extractor import MAX_HEURISTIC_CONFIDENCE, StyleExtractor


FORMAL_EMAIL = "Dear John,\n\nPlease find the quarterly report enclosed.\n\nKind regards,\nMargaret"


@pytest.fixture
def extractor() -> StyleExtractor:
    return StyleExtractor()


# =============================================================================
# Formality
# =============================================================================


class TestFormality:
    """Formality comes from the ratio of formal to casual markers."""

    def test_casual_markers_only_is_very_casual(self, extractor):
        samples = [f"hey, sending over file number {i} now" for i in range(10)]

        record = extractor.extract(samples)

        assert record.formality == Formality.VERY_CASUAL

    def test_formal_markers_only_is_very_formal(self, extractor):
        record = extractor.extract([FORMAL_EMAIL, FORMAL_EMAIL])

        assert record.formality == Formality.VERY_FORMAL

    def test_no_markers_is_neutral(self, extractor):
        record = extractor.extract(["The report is ready for review.", "Numbers look right to me."])

        assert record.formality == Formality.NEUTRAL

    def test_many_casual_markers_count_as_slang(self, extractor):
        record = extractor.extract(["hey lol that was awesome tbh, gonna try it"])

        assert record.uses_slang is True


# =============================================================================
# Greeting, closing and sign-off
# =============================================================================


class TestOpeningsAndClosings:
    """Template selection for greetings, closings and sign-off names."""

    def test_formal_email_templates(self, extractor):
        record = extractor.extract([FORMAL_EMAIL])

        assert record.greeting_style == "Dear [name],"
        assert record.closing_style == "Kind regards,"
        assert record.sign_off_name == "Margaret"

    def test_greeting_tie_goes_to_earliest_pattern(self, extractor):
        samples = [
            "Hey Tom,\nThe build is green again.",
            "Hi Tom,\nThe build is red again.",
        ]

        record = extractor.extract(samples)

        assert record.greeting_style == "Hi [name],"

    def test_most_frequent_greeting_wins(self, extractor):
        samples = [
            "Hi Tom,\nFirst note.",
            "Hey Tom,\nSecond note.",
            "Hey Ana,\nThird note.",
        ]

        record = extractor.extract(samples)

        assert record.greeting_style == "Hey [name],"

    def test_defaults_when_nothing_matches(self, extractor):
        record = extractor.extract(["deploy finished", "all good here"])

        assert record.greeting_style == "Hi [name],"
        assert record.closing_style == "Best,"
        assert record.sign_off_name == ""

    def test_dash_sign_off(self, extractor):
        record = extractor.extract(["Pushed the fix to staging.\n- Priya"])

        assert record.sign_off_name == "Priya"


# =============================================================================
# Formatting and punctuation
# =============================================================================


class TestFormatting:
    """Contractions, punctuation, emoji and capitalization."""

    def test_contractions_detected(self, extractor):
        record = extractor.extract(["I don't think we can't ship it. I'll check."])

        assert record.uses_contractions is True

    def test_expanded_forms_mean_no_contractions(self, extractor):
        record = extractor.extract(["I do not believe we will make it. I am checking."])

        assert record.uses_contractions is False

    def test_frequent_exclamations(self, extractor):
        record = extractor.extract(["Great!!! Love it!"])

        assert record.punctuation.exclamation_frequency == ExclamationFrequency.FREQUENT

    def test_no_exclamations(self, extractor):
        record = extractor.extract(["Sounds fine. Will do."])

        assert record.punctuation.exclamation_frequency == ExclamationFrequency.NEVER

    def test_emoji_usage_moderate(self, extractor):
        record = extractor.extract(["shipped it 🎉🎉"])

        assert record.emoji_usage == EmojiUsage.MODERATE

    def test_no_emoji(self, extractor):
        record = extractor.extract(["shipped it"])

        assert record.emoji_usage == EmojiUsage.NONE

    def test_lowercase_starts(self, extractor):
        record = extractor.extract(["sure thing", "on it", "done"])

        assert record.capitalization == Capitalization.ALL_LOWER

    def test_one_liners(self, extractor):
        record = extractor.extract(["sure thing", "on it"])

        assert record.paragraph_style == ParagraphStyle.ONE_LINERS

    def test_bullet_points(self, extractor):
        record = extractor.extract(["Plan for today:\n- fix login\n- write tests"])

        assert record.uses_bullet_points is True


# =============================================================================
# Voice
# =============================================================================


class TestVoice:
    """Phrases, humor and categories."""

    def test_transitions_and_hedges_in_table_order(self, extractor):
        record = extractor.extract(["That said, I think we should ship. Moving forward we track it weekly."])

        assert record.common_transitions == ["that said", "moving forward"]
        assert record.hedge_words == ["I think"]

    def test_laughter_is_casual_jokes(self, extractor):
        record = extractor.extract(["lol that demo. haha. lol"])

        assert record.humor_style == HumorStyle.CASUAL_JOKES

    def test_categories_in_table_order(self, extractor):
        record = extractor.extract(["Budget review after the deploy"])

        assert record.typical_categories == ["finance", "engineering"]

    def test_follow_up_questions(self, extractor):
        record = extractor.extract(["Can you check? Does it work?"])

        assert record.asks_follow_up_questions is True


# =============================================================================
# Confidence and determinism
# =============================================================================


class TestConfidence:
    """Confidence stays within range and the extractor is deterministic."""

    def test_empty_input_gets_base_confidence(self, extractor):
        record = extractor.extract([])

        assert record.style_confidence == 40
        assert record.sample_count == 0

    def test_confidence_capped(self, extractor):
        samples = [" ".join(f"token{i}x{j}" for j in range(60)) for i in range(20)]

        record = extractor.extract(samples)

        assert record.style_confidence == MAX_HEURISTIC_CONFIDENCE
        assert 0 <= record.style_confidence <= 98

    def test_same_input_same_record(self, extractor):
        samples = [FORMAL_EMAIL, "hey, quick update: the deploy is done lol", "Thanks!\nSam"]

        first = extractor.extract(samples).model_dump(exclude={"analyzed_at"})
        second = StyleExtractor().extract(samples).model_dump(exclude={"analyzed_at"})

        assert first == second

    def test_averages(self, extractor):
        record = extractor.extract(["one two three four. five six.", "seven eight"])

        assert record.avg_words_per_message == 4
        assert record.sample_count == 2
