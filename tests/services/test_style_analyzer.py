"""Tests for batch style analysis, style instruction rendering and the profile store."""

import pytest

from voiceprint.core.exceptions import InvalidInputError
from voiceprint.schemas.style import Formality, StyleRecord
from voiceprint.services.profile_store import StyleProfileStore
from voiceprint.services.style_analyzer import analyze_style_batch, group_by_contact, render_style_instructions
from voiceprint.services.style_refiner import StyleRefiner


# =============================================================================
# Batch analysis
# =============================================================================


class TestAnalyzeStyleBatch:
    """Group by correspondent, extract, refine, merge."""

    def test_group_by_email_then_name(self, make_message):
        messages = [
            make_message("one", sender="Sarah Chen", sender_email="sarah@example.com"),
            make_message("two", sender="S. Chen", sender_email="sarah@example.com"),
            make_message("three", sender="Bot", sender_email=None),
        ]

        groups = group_by_contact(messages)

        assert list(groups) == ["sarah@example.com", "Bot"]
        name, email, group = groups["sarah@example.com"]
        assert name == "Sarah Chen"
        assert email == "sarah@example.com"
        assert len(group) == 2

    @pytest.mark.asyncio
    async def test_empty_batch_is_rejected(self):
        with pytest.raises(InvalidInputError):
            await analyze_style_batch([])

    @pytest.mark.asyncio
    async def test_one_record_per_contact(self, make_message):
        messages = [
            make_message("hey, deploy is done lol", sender="Sam Ortiz", sender_email="sam@example.com"),
            make_message("hey, rollback worked", sender="Sam Ortiz", sender_email="sam@example.com"),
            make_message(
                "Dear team,\n\nPlease find the audit enclosed.\n\nKind regards,\nMargaret",
                sender="Margaret Hale",
                sender_email="margaret@example.com",
            ),
        ]

        records, summary = await analyze_style_batch(messages)

        assert [r.contact_id for r in records] == ["sam@example.com", "margaret@example.com"]
        sam, margaret = records
        assert sam.contact_name == "Sam Ortiz"
        assert sam.message_count == 2
        assert sam.formality == Formality.VERY_CASUAL
        assert margaret.formality == Formality.VERY_FORMAL
        assert summary.profiles_created == 2
        assert summary.messages_analyzed == 3
        assert summary.overall_confidence == round((sam.style_confidence + margaret.style_confidence) / 2)
        assert [c.email for c in summary.contacts] == ["sam@example.com", "margaret@example.com"]

    @pytest.mark.asyncio
    async def test_refiner_failure_keeps_heuristic(self, make_message, unreachable_llm):
        messages = [make_message("hey, deploy is done lol", sender="Sam Ortiz", sender_email="sam@example.com")]

        plain, _ = await analyze_style_batch(messages)
        refined, _ = await analyze_style_batch(messages, refiner=StyleRefiner(unreachable_llm))

        assert refined[0].model_dump(exclude={"analyzed_at"}) == plain[0].model_dump(exclude={"analyzed_at"})

    @pytest.mark.asyncio
    async def test_refiner_candidate_is_merged(self, make_message, llm, claude_client, claude_response):
        claude_client.messages.create.return_value = claude_response(
            '{"formality": "very_casual", "greeting_style": "Yo [name]", "style_confidence": 90}'
        )
        messages = [make_message("hey, deploy is done lol", sender="Sam Ortiz", sender_email="sam@example.com")]

        records, _ = await analyze_style_batch(messages, refiner=StyleRefiner(llm))

        assert records[0].greeting_style == "Yo [name]"
        assert records[0].style_confidence == 95


# =============================================================================
# Style instructions
# =============================================================================


class TestRenderStyleInstructions:
    """Rendering a record into drafting instructions."""

    def test_sections_present(self):
        record = StyleRecord(contact_name="Sam", common_transitions=["that said"], hedge_words=["maybe"])

        text = render_style_instructions(record)

        for heading in (
            "TONE & FORMALITY:",
            "MESSAGE STRUCTURE:",
            "VOICE & PERSONALITY:",
            "PUNCTUATION & FORMATTING:",
            "CHARACTERISTIC PHRASES:",
        ):
            assert heading in text
        assert "Relationship with Sam: peer" in text
        assert '- Transitional phrases: "that said"' in text
        assert text.splitlines()[-1].startswith("CRITICAL:")

    def test_contraction_direction(self):
        assert "USE contractions" in render_style_instructions(StyleRecord(uses_contractions=True))
        assert "AVOID contractions" in render_style_instructions(StyleRecord(uses_contractions=False))

    def test_no_phrases_section_without_phrases(self):
        assert "CHARACTERISTIC PHRASES:" not in render_style_instructions(StyleRecord())

    def test_rendering_is_stable(self):
        record = StyleRecord(sign_off_name="Dana")

        assert render_style_instructions(record) == render_style_instructions(record)


# =============================================================================
# Profile store
# =============================================================================


class TestStyleProfileStore:
    """Indexed lookups by id, email and name."""

    def test_lookup_by_any_key(self):
        store = StyleProfileStore()
        record = StyleRecord(contact_id="sam@example.com", contact_name="Sam Ortiz", contact_email="sam@example.com")
        store.put(record)

        assert store.get("sam@example.com") is record
        assert store.get("SAM@EXAMPLE.COM") is record
        assert store.get("sam ortiz") is record
        assert store.get("Nobody") is None
        assert store.get(None) is None
        assert len(store) == 1
        assert "Sam Ortiz" in store

    def test_put_replaces_and_unindexes(self):
        store = StyleProfileStore()
        store.put(StyleRecord(contact_id="c1", contact_name="Sam", contact_email="old@example.com"))
        store.put(StyleRecord(contact_id="c1", contact_name="Sam", contact_email="new@example.com"))

        assert store.get("old@example.com") is None
        assert store.get("new@example.com").contact_id == "c1"
        assert len(store) == 1

    def test_find_for_sender_prefers_email(self):
        store = StyleProfileStore()
        by_email = StyleRecord(contact_id="a", contact_name="Alex A", contact_email="alex@example.com")
        by_name = StyleRecord(contact_id="b", contact_name="Alex", contact_email=None)
        store.replace_all([by_email, by_name])

        assert store.find_for_sender("Alex", "alex@example.com") is by_email
        assert store.find_for_sender("Alex", None) is by_name
        assert store.find_for_sender("Unknown", "unknown@example.com") is None

    def test_clear(self):
        store = StyleProfileStore()
        store.put(StyleRecord(contact_id="c1", contact_name="Sam"))

        store.clear()

        assert len(store) == 0
        assert store.all() == []
