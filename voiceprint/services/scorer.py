"""Rule-based quality and style scoring for drafted replies."""

import re

from voiceprint.schemas.message import Channel, MessageAnalysis, MessageIntent, UnifiedMessage
from voiceprint.schemas.style import (
    EmojiUsage,
    ExclamationFrequency,
    ParagraphStyle,
    PronounPreference,
    StyleRecord,
)
from voiceprint.services.style_extractor import EMOJI_PATTERN


BASE_SCORE = 80
MIN_SCORE = 50
MAX_SCORE = 99

# Content
KEY_POINT_ADDRESSED = 2
KEY_POINT_MISSED = -3
KEY_POINT_MIN_WORD_LENGTH = 4
SLACK_MAX_WORDS = 150
EMAIL_MIN_WORDS = 30
LENGTH_PENALTY = -5
EMAIL_GREETING_BONUS = 3
EMAIL_CLOSING_BONUS = 2
SLACK_NO_DEAR_BONUS = 2
HIGH_URGENCY = 7
URGENCY_MISSED = -5
APPROVAL_OVERREACH = -3

# Style alignment
GREETING_MATCH = 5
GREETING_MISS = -3
GREETING_PREFIX_CHARS = 4
CLOSING_MATCH = 3
CLOSING_MISS = -2
CONTRACTION_MATCH = 3
CONTRACTION_MISS = -3
CONTRACTION_EXCESS = 2
EXCLAMATION_MATCH = 2
EXCLAMATION_MISS = -2
EXCLAMATION_EXCESS = 2
LENGTH_MATCH = 3
LENGTH_MISS = -3
MIN_LENGTH_RATIO = 0.5
MAX_LENGTH_RATIO = 1.5
FALLBACK_AVG_WORDS = 50
PARAGRAPH_MATCH = 2
ONE_LINER_MAX_WORDS = 30
PRONOUN_MATCH = 2
QUESTION_MATCH = 2
NO_QUESTION_MATCH = 1
EMOJI_MATCH = 1
EMOJI_MISS = -2
SIGN_OFF_MATCH = 2
TRANSITION_BONUS = 1
MAX_TRANSITION_BONUS = 4

EMAIL_GREETING_MARKERS = ("Hi ", "Dear ", "Hello ")
EMAIL_CLOSING_MARKERS = ("Best", "Regards", "Thanks")
URGENCY_PHRASES = re.compile(r"(right away|immediately|priority|urgent|asap|on it|will take a look)")

DRAFT_CONTRACTIONS = re.compile(
    r"\b(don't|doesn't|didn't|won't|can't|couldn't|shouldn't|isn't|aren't|I'm|I've|I'd|I'll|"
    r"we're|we've|it's|that's|there's|let's)\b",
    re.IGNORECASE,
)


def word_count(text: str) -> int:
    return len(text.split())


def count_contractions(text: str) -> int:
    return len(DRAFT_CONTRACTIONS.findall(text))


def count_paragraphs(text: str) -> int:
    return len([p for p in re.split(r"\n\s*\n", text) if p.strip()])


def expected_words(record: StyleRecord) -> int:
    return record.avg_words_per_message or FALLBACK_AVG_WORDS


def score_response(
    draft: str,
    message: UnifiedMessage,
    analysis: MessageAnalysis,
    style_record: StyleRecord | None,
) -> int:
    """
    Score a draft from 50 to 99.

    Starts at BASE_SCORE and applies independent content rules (key points,
    channel length, greeting/closing markers, urgency, approval safety),
    then, when a style record is given, style alignment rules. The result is
    clamped to [MIN_SCORE, MAX_SCORE].
    """
    score = BASE_SCORE
    lowered = draft.lower()
    words = word_count(draft)
    is_email = message.channel == Channel.EMAIL

    for point in analysis.key_points:
        significant = [w for w in point.lower().split(" ") if len(w) > KEY_POINT_MIN_WORD_LENGTH]
        if any(w in lowered for w in significant):
            score += KEY_POINT_ADDRESSED
        else:
            score += KEY_POINT_MISSED

    if message.channel == Channel.SLACK and words > SLACK_MAX_WORDS:
        score += LENGTH_PENALTY
    if is_email and words < EMAIL_MIN_WORDS:
        score += LENGTH_PENALTY

    if is_email:
        if any(marker in draft for marker in EMAIL_GREETING_MARKERS):
            score += EMAIL_GREETING_BONUS
        if any(marker in draft for marker in EMAIL_CLOSING_MARKERS):
            score += EMAIL_CLOSING_BONUS
    if message.channel == Channel.SLACK and "Dear " not in draft:
        score += SLACK_NO_DEAR_BONUS

    if analysis.urgency >= HIGH_URGENCY and not URGENCY_PHRASES.search(lowered):
        score += URGENCY_MISSED

    if analysis.intent == MessageIntent.APPROVAL_REQUEST and "i approve" in lowered:
        score += APPROVAL_OVERREACH

    if style_record:
        score += _style_alignment(draft, words, message, style_record)

    return max(MIN_SCORE, min(MAX_SCORE, score))


def _style_alignment(draft: str, words: int, message: UnifiedMessage, record: StyleRecord) -> int:
    score = 0
    lowered = draft.lower()
    is_email = message.channel == Channel.EMAIL

    if record.greeting_style:
        expected = record.greeting_style.replace("[name]", message.sender_first_name, 1).replace(
            "[time]", "morning", 1
        )
        if lowered.startswith(expected.lower()[:GREETING_PREFIX_CHARS]):
            score += GREETING_MATCH
        elif is_email:
            score += GREETING_MISS

    if record.closing_style and is_email:
        closing = record.closing_style.replace(",", "", 1).strip().lower()
        score += CLOSING_MATCH if closing in lowered else CLOSING_MISS

    contractions = count_contractions(draft)
    if record.uses_contractions:
        score += CONTRACTION_MATCH if contractions > 0 else CONTRACTION_MISS
    else:
        if contractions == 0:
            score += CONTRACTION_MATCH
        elif contractions > CONTRACTION_EXCESS:
            score += CONTRACTION_MISS

    exclamations = draft.count("!")
    frequency = record.punctuation.exclamation_frequency
    if frequency == ExclamationFrequency.FREQUENT and exclamations > 0:
        score += EXCLAMATION_MATCH
    if frequency == ExclamationFrequency.NEVER:
        if exclamations == 0:
            score += EXCLAMATION_MATCH
        elif exclamations > EXCLAMATION_EXCESS:
            score += EXCLAMATION_MISS

    ratio = words / expected_words(record)
    score += LENGTH_MATCH if MIN_LENGTH_RATIO <= ratio <= MAX_LENGTH_RATIO else LENGTH_MISS

    paragraphs = count_paragraphs(draft)
    if record.paragraph_style == ParagraphStyle.ONE_LINERS and paragraphs <= 1 and words < ONE_LINER_MAX_WORDS:
        score += PARAGRAPH_MATCH
    if record.paragraph_style in (ParagraphStyle.SHORT_PARAGRAPHS, ParagraphStyle.WELL_STRUCTURED) and paragraphs >= 2:
        score += PARAGRAPH_MATCH

    i_count = len(re.findall(r"\bI\b", draft))
    we_count = len(re.findall(r"\b[Ww]e\b", draft))
    if record.pronoun_preference == PronounPreference.I_FOCUSED and i_count > we_count:
        score += PRONOUN_MATCH
    if record.pronoun_preference == PronounPreference.WE_FOCUSED and we_count >= i_count:
        score += PRONOUN_MATCH

    has_question = "?" in draft
    if record.asks_follow_up_questions and has_question:
        score += QUESTION_MATCH
    if not record.asks_follow_up_questions and not has_question:
        score += NO_QUESTION_MATCH

    emojis = len(EMOJI_PATTERN.findall(draft))
    if record.emoji_usage == EmojiUsage.NONE:
        score += EMOJI_MATCH if emojis == 0 else EMOJI_MISS
    elif emojis > 0:
        score += EMOJI_MATCH

    if record.sign_off_name and is_email and record.sign_off_name in draft:
        score += SIGN_OFF_MATCH

    matched = sum(1 for t in record.common_transitions if t.lower() in lowered)
    score += min(matched, MAX_TRANSITION_BONUS) * TRANSITION_BONUS

    return score


def identify_style_mismatches(draft: str, record: StyleRecord) -> list[str]:
    """
    Specific, fixable differences between a draft and the style record.

    Only contraction direction and length ratio are reported; an empty list
    means there is nothing concrete to feed back into a refinement.
    """
    mismatches = []
    contractions = count_contractions(draft)
    if record.uses_contractions and contractions == 0:
        mismatches.append("Use contractions (don't, can't, I'll, etc.). The user always uses them.")
    if not record.uses_contractions and contractions > 0:
        mismatches.append('Do NOT use contractions. Spell out "do not", "cannot", "I will", etc.')

    words = word_count(draft)
    target = expected_words(record)
    if words > target * MAX_LENGTH_RATIO:
        mismatches.append(f"Too long. Shorten to ~{target} words.")
    if words < target * MIN_LENGTH_RATIO:
        mismatches.append(f"Too short. Expand to ~{target} words.")
    return mismatches
