"""Model-backed style refinement and confidence-weighted merging with the heuristic record."""

import logging
from enum import Enum
from typing import Any

from voiceprint.core.exceptions import ExternalServiceError
from voiceprint.core.llm_client import LLMClient
from voiceprint.schemas.style import (
    AverageLength,
    Capitalization,
    EmojiUsage,
    Formality,
    HumorStyle,
    ParagraphStyle,
    PronounPreference,
    RelationshipType,
    SentenceStructure,
    StyleRecord,
    VocabularyLevel,
)


logger = logging.getLogger(__name__)


MAX_REFINER_SAMPLES = 15
MAX_SAMPLE_CHARS = 800

DEFAULT_REFINER_CONFIDENCE = 70
FORMALITY_OVERRIDE_MIN_CONFIDENCE = 60

FORMALITY_AGREEMENT_BONUS = 5
STRUCTURE_AGREEMENT_BONUS = 3
VOCABULARY_AGREEMENT_BONUS = 3
MAX_MERGED_CONFIDENCE = 99

# Fields the refiner may override, with the type its value must parse as
ENUM_FIELDS: dict[str, type[Enum]] = {
    "average_length": AverageLength,
    "emoji_usage": EmojiUsage,
    "vocabulary_level": VocabularyLevel,
    "sentence_structure": SentenceStructure,
    "capitalization": Capitalization,
    "pronoun_preference": PronounPreference,
    "humor_style": HumorStyle,
    "paragraph_style": ParagraphStyle,
    "relationship": RelationshipType,
}
STRING_FIELDS = ("greeting_style", "closing_style", "acknowledgment_style", "sign_off_name")
BOOL_FIELDS = ("uses_contractions", "asks_follow_up_questions", "ends_with_action_items")
LIST_FIELDS = ("common_transitions", "hedge_words")


REFINER_SYSTEM_PROMPT = """You are a communication style analyst. Analyze writing samples and extract ONLY stylistic characteristics. Never store or repeat the content, topics, or any sensitive information.

HEURISTIC PRE-ANALYSIS (a starting point; refine or override it where you see patterns it missed):
- Formality: {formality}
- Average length: {average_length}
- Emoji usage: {emoji_usage}
- Greeting: "{greeting_style}"
- Closing: "{closing_style}"
- Vocabulary: {vocabulary_level}
- Contractions: {uses_contractions}
- Paragraph style: {paragraph_style}

Analyze the writing style of messages exchanged with "{contact_name}". Return ONLY a JSON object with these fields:
{{
  "formality": "very_formal" | "formal" | "neutral" | "casual" | "very_casual",
  "average_length": "brief" | "moderate" | "detailed",
  "emoji_usage": "none" | "minimal" | "moderate" | "frequent",
  "greeting_style": string,
  "closing_style": string,
  "vocabulary_level": "simple" | "moderate" | "advanced" | "technical",
  "sentence_structure": "short_direct" | "balanced" | "complex_detailed",
  "uses_contractions": boolean,
  "capitalization": "standard" | "all_lower" | "sentence_case" | "title_case",
  "pronoun_preference": "i_focused" | "we_focused" | "mixed" | "avoids_pronouns",
  "asks_follow_up_questions": boolean,
  "humor_style": "none" | "dry_wit" | "casual_jokes" | "playful" | "sarcastic",
  "paragraph_style": "one_liners" | "single_block" | "short_paragraphs" | "well_structured",
  "ends_with_action_items": boolean,
  "acknowledgment_style": string,
  "sign_off_name": string,
  "common_transitions": [transitional phrases this person uses often],
  "hedge_words": [hedge or filler phrases this person uses],
  "relationship": "manager" | "peer" | "direct_report" | "external_client" | "vendor" | "unknown",
  "style_confidence": number from 0 to 100
}}"""


class StyleRefiner:
    """Ask the generative-text service for its own reading of a correspondent's style."""

    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def refine(
        self, samples: list[str], contact_name: str, heuristic: StyleRecord
    ) -> dict[str, Any] | None:
        """
        Propose a style record for the samples, using the heuristic record as a prior.

        Returns:
            The raw candidate dict, or None if the service is unavailable or failed
        """
        if not self.llm.enabled or not samples:
            return None

        picked = samples[:MAX_REFINER_SAMPLES]
        system = REFINER_SYSTEM_PROMPT.format(
            formality=heuristic.formality.value,
            average_length=heuristic.average_length.value,
            emoji_usage=heuristic.emoji_usage.value,
            greeting_style=heuristic.greeting_style,
            closing_style=heuristic.closing_style,
            vocabulary_level=heuristic.vocabulary_level.value,
            uses_contractions=heuristic.uses_contractions,
            paragraph_style=heuristic.paragraph_style.value,
            contact_name=contact_name,
        )
        prompt = f"Analyze the writing style of these {len(picked)} messages:\n\n" + "\n\n".join(
            f"--- Message {i + 1} ---\n{sample[:MAX_SAMPLE_CHARS]}" for i, sample in enumerate(picked)
        )

        try:
            return await self.llm.complete_json(system, prompt, max_tokens=1024)
        except ExternalServiceError as e:
            logger.warning(f"Style refinement failed for {contact_name}, using heuristic only: {e}")
            return None


def _refiner_confidence(candidate: dict[str, Any]) -> int:
    value = candidate.get("style_confidence")
    if not value:
        return DEFAULT_REFINER_CONFIDENCE
    try:
        return int(value)
    except (TypeError, ValueError):
        return DEFAULT_REFINER_CONFIDENCE


def _as_enum(enum_type: type[Enum], value: Any) -> Enum | None:
    if not value:
        return None
    try:
        return enum_type(str(value).lower())
    except ValueError:
        return None


def merge_style_results(heuristic: StyleRecord, candidate: dict[str, Any] | None) -> StyleRecord:
    """
    Merge a refiner candidate into the heuristic record.

    Formality is taken from the candidate only when the refiner's confidence
    is above FORMALITY_OVERRIDE_MIN_CONFIDENCE. Every other field is taken
    whenever the candidate provides a non-empty, valid value. The merged
    confidence is the higher of the two plus agreement bonuses, capped at 99.
    """
    if not candidate:
        return heuristic

    refiner_confidence = _refiner_confidence(candidate)
    updates: dict[str, Any] = {}

    candidate_formality = _as_enum(Formality, candidate.get("formality"))
    if candidate_formality and refiner_confidence > FORMALITY_OVERRIDE_MIN_CONFIDENCE:
        updates["formality"] = candidate_formality

    for name, enum_type in ENUM_FIELDS.items():
        value = _as_enum(enum_type, candidate.get(name))
        if value is not None:
            updates[name] = value

    for name in STRING_FIELDS:
        value = candidate.get(name)
        if isinstance(value, str) and value.strip():
            updates[name] = value.strip()

    for name in BOOL_FIELDS:
        value = candidate.get(name)
        if isinstance(value, bool):
            updates[name] = value

    for name in LIST_FIELDS:
        value = candidate.get(name)
        if isinstance(value, list) and value:
            updates[name] = [str(item) for item in value]

    bonus = 0
    if candidate_formality == heuristic.formality:
        bonus += FORMALITY_AGREEMENT_BONUS
    if _as_enum(SentenceStructure, candidate.get("sentence_structure")) == heuristic.sentence_structure:
        bonus += STRUCTURE_AGREEMENT_BONUS
    if _as_enum(VocabularyLevel, candidate.get("vocabulary_level")) == heuristic.vocabulary_level:
        bonus += VOCABULARY_AGREEMENT_BONUS

    updates["style_confidence"] = max(
        0, min(MAX_MERGED_CONFIDENCE, max(heuristic.style_confidence, refiner_confidence) + bonus)
    )
    return heuristic.model_copy(update=updates)
