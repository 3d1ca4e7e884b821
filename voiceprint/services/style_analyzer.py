"""Batch style analysis: group by correspondent, extract, refine, merge."""

import logging
from datetime import datetime

from voiceprint.core.exceptions import InvalidInputError
from voiceprint.schemas.message import UnifiedMessage
from voiceprint.schemas.style import (
    ContactStyleSummary,
    PronounPreference,
    StyleAnalysisSummary,
    StyleRecord,
)
from voiceprint.services.style_extractor import StyleExtractor
from voiceprint.services.style_refiner import StyleRefiner, merge_style_results


logger = logging.getLogger(__name__)


PRONOUN_EXAMPLES = {
    PronounPreference.I_FOCUSED: 'says "I will", "I think"',
    PronounPreference.WE_FOCUSED: 'says "we should", "our team"',
    PronounPreference.MIXED: 'mixes "I" and "we"',
    PronounPreference.AVOIDS_PRONOUNS: "avoids personal pronouns",
}


def group_by_contact(messages: list[UnifiedMessage]) -> dict[str, tuple[str, str | None, list[UnifiedMessage]]]:
    """Group messages by sender email, falling back to the display name."""
    groups: dict[str, tuple[str, str | None, list[UnifiedMessage]]] = {}
    for message in messages:
        key = message.sender_email or message.sender
        if key not in groups:
            groups[key] = (message.sender, message.sender_email, [])
        groups[key][2].append(message)
    return groups


async def analyze_style_batch(
    messages: list[UnifiedMessage],
    refiner: StyleRefiner | None = None,
    extractor: StyleExtractor | None = None,
) -> tuple[list[StyleRecord], StyleAnalysisSummary]:
    """
    Build one style record per correspondent.

    Each group runs heuristic extraction, then optional refinement, then the
    confidence-weighted merge. Refinement failures degrade to the heuristic
    record.

    Raises:
        InvalidInputError: If no messages were given
    """
    if not messages:
        raise InvalidInputError("messages array is required")

    extractor = extractor or StyleExtractor()
    records: list[StyleRecord] = []
    contacts: list[ContactStyleSummary] = []

    for key, (name, email, group) in group_by_contact(messages).items():
        samples = [m.full_message for m in group]
        heuristic = extractor.extract(samples)
        candidate = await refiner.refine(samples, name, heuristic) if refiner else None
        merged = merge_style_results(heuristic, candidate)

        record = merged.model_copy(
            update={
                "contact_id": key,
                "contact_name": name,
                "contact_email": email,
                "analyzed_at": datetime.utcnow(),
                "message_count": len(group),
            }
        )
        records.append(record)
        contacts.append(
            ContactStyleSummary(
                name=name, email=email, message_count=len(group), confidence=record.style_confidence
            )
        )

    overall = round(sum(r.style_confidence for r in records) / len(records)) if records else 0
    summary = StyleAnalysisSummary(
        profiles_created=len(records),
        messages_analyzed=len(messages),
        overall_confidence=overall,
        contacts=contacts,
    )

    logger.info(
        f"Style analysis created {summary.profiles_created} profiles from "
        f"{summary.messages_analyzed} messages (avg confidence: {overall}%)"
    )
    return records, summary


def _label(value) -> str:
    return str(getattr(value, "value", value)).replace("_", " ")


def render_style_instructions(record: StyleRecord) -> str:
    """Render a style record as explicit writing instructions for the draft generator."""
    lines = [
        f"COMMUNICATION STYLE PROFILE (Confidence: {record.style_confidence}%)",
        f"Relationship with {record.contact_name or 'this contact'}: {record.relationship.value}",
        "",
        "TONE & FORMALITY:",
        f"- Formality level: {_label(record.formality)}",
    ]
    if record.uses_contractions:
        lines.append("- USE contractions (don't, can't, I'll, etc.)")
    else:
        lines.append("- AVOID contractions. Use full forms (do not, cannot, I will)")
    lines.append(f"- Vocabulary: {record.vocabulary_level.value}")
    if record.uses_slang:
        lines.append("- Uses casual slang and informal language")
    if record.humor_style.value != "none":
        lines.append(f"- Humor style: {_label(record.humor_style)}")
    lines.append("")

    lines.append("MESSAGE STRUCTURE:")
    lines.append(f'- Greeting: "{record.greeting_style}"')
    lines.append(f'- Closing: "{record.closing_style}"')
    if record.sign_off_name:
        lines.append(f'- Sign off with name: "{record.sign_off_name}"')
    lines.append(f"- Paragraph style: {_label(record.paragraph_style)}")
    lines.append(f"- Sentence structure: {_label(record.sentence_structure)}")
    lines.append(
        f"- Average message length: ~{record.avg_words_per_message} words ({record.average_length.value})"
    )
    if record.uses_bullet_points:
        lines.append("- Uses bullet points and numbered lists when listing items")
    if record.ends_with_action_items:
        lines.append("- Typically ends messages with next steps or action items")
    lines.append("")

    lines.append("VOICE & PERSONALITY:")
    lines.append(
        f"- Pronoun preference: {_label(record.pronoun_preference)} "
        f"({PRONOUN_EXAMPLES[record.pronoun_preference]})"
    )
    if record.asks_follow_up_questions:
        lines.append("- Often asks follow-up questions to keep the conversation going")
    lines.append(f'- Acknowledgment style: "{record.acknowledgment_style}"')
    if record.time_awareness:
        lines.append("- References timing and apologizes for late responses")
    lines.append("")

    punctuation = record.punctuation
    lines.append("PUNCTUATION & FORMATTING:")
    lines.append(f"- Capitalization: {_label(record.capitalization)}")
    lines.append(f"- Exclamation marks: {punctuation.exclamation_frequency.value}")
    if punctuation.uses_ellipsis:
        lines.append("- Uses ellipsis (...) for trailing thoughts")
    if punctuation.uses_em_dash:
        lines.append("- Uses em-dashes for asides and emphasis")
    if punctuation.uses_semicolons:
        lines.append("- Uses semicolons in compound sentences")
    if punctuation.uses_parentheses:
        lines.append("- Uses parenthetical asides")
    if record.emoji_usage.value != "none":
        lines.append(f"- Emoji usage: {record.emoji_usage.value}")
    lines.append("")

    if record.common_transitions or record.hedge_words:
        lines.append("CHARACTERISTIC PHRASES:")
        if record.common_transitions:
            lines.append('- Transitional phrases: "' + '", "'.join(record.common_transitions) + '"')
        if record.hedge_words:
            lines.append('- Hedge/softening phrases: "' + '", "'.join(record.hedge_words) + '"')
        lines.append("")

    lines.append(
        "CRITICAL: Write as if you ARE this person. Match their word choices, rhythm and personality "
        "so the response reads like something they actually wrote."
    )
    return "\n".join(lines)
