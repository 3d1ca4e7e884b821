"""Heuristic style extractor for building a voice fingerprint from raw messages."""

import logging
import re
from collections import Counter

from voiceprint.schemas.style import (
    AverageLength,
    Capitalization,
    EmojiUsage,
    ExclamationFrequency,
    Formality,
    HumorStyle,
    ParagraphStyle,
    PronounPreference,
    PunctuationHabits,
    QuestionMarkUsage,
    RelationshipType,
    SentenceStructure,
    StyleRecord,
    VocabularyLevel,
)


logger = logging.getLogger(__name__)


# Emoji glyphs counted one code point at a time
EMOJI_PATTERN = re.compile(
    "["
    "\U0001F300-\U0001FAFF"  # pictographs, emoticons, transport, supplemental symbols
    "\U0001F1E0-\U0001F1FF"  # regional indicators (flags)
    "\u2600-\u27bf"  # misc symbols and dingbats
    "\u2b50\u2b55"
    "]"
)

# Formality thresholds
STRONG_MARKER_RATIO = 3
MARKER_RATIO = 1.5

# Per-message thresholds
EMOJI_FREQUENT = 3
EMOJI_MODERATE = 1
DETAILED_WORDS = 120
BRIEF_WORDS = 40
EXCLAMATION_FREQUENT = 3
EXCLAMATION_MODERATE = 1

# Ratio thresholds
TECH_RATIO = 0.02
COMPLEX_RATIO_HIGH = 0.12
COMPLEX_RATIO_LOW = 0.04
COMPLEX_WORD_LETTERS = 10
SHORT_SENTENCE_WORDS = 10
LONG_SENTENCE_WORDS = 20
CONTRACTION_RATIO = 0.5
LOWERCASE_START_RATIO = 0.6
TITLE_CASE_RATIO = 0.3
QUESTION_ALWAYS_RATIO = 0.8
QUESTION_RARELY_RATIO = 0.3
PRONOUN_MIN_RATIO = 0.01
I_FOCUSED_RATIO = 2
WE_FOCUSED_RATIO = 1.5
FOLLOW_UP_RATIO = 0.5
ACTION_ENDING_RATIO = 0.4
ACTION_TAIL_START = 0.65
SLANG_MIN_CASUAL = 3

# Confidence
BASE_CONFIDENCE = 40
CONFIDENCE_PER_MESSAGE = 5
CONFIDENCE_SAMPLE_CAP = 95
LONG_MESSAGE_WORDS = 50
DIVERSITY_RATIO = 0.4
CONFIDENCE_BONUS = 5
MAX_HEURISTIC_CONFIDENCE = 98


def _phrase_pattern(phrase: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(phrase)}\b", re.IGNORECASE)


class StyleExtractor:
    """
    Extract a style record from a correspondent's message bodies.

    Every dimension is a fixed lexicon or regex table applied to the samples.
    The result is a pure function of the input: the same samples always give
    the same record. Provenance fields are left at their defaults for the
    caller to fill in.

    Greeting and closing templates are tallied per message (first matching
    pattern wins for that message). The template with the highest tally is
    selected, and ties go to the template registered earliest in the table.
    """

    FORMAL_MARKERS = re.compile(
        r"\b(dear|sincerely|regards|respectfully|pursuant|herein|kindly|enclosed|forthwith|"
        r"moreover|furthermore|henceforth|accordingly|per our|as per)\b",
        re.IGNORECASE,
    )

    CASUAL_MARKERS = re.compile(
        r"\b(hey|yo|lol|haha|gonna|wanna|kinda|btw|np|nvm|tbh|imo|imho|fwiw|ikr|omg|tho|cuz|"
        r"nah|yep|yup|cool|awesome|dope|legit|lowkey|highkey)\b",
        re.IGNORECASE,
    )

    GREETING_PATTERNS = [
        (r"^dear\s+\w", "Dear [name],"),
        (r"^hello\s", "Hello [name],"),
        (r"^hi\s", "Hi [name],"),
        (r"^hey\s", "Hey [name],"),
        (r"^hey!?\s*$", "Hey!"),
        (r"^good\s+(morning|afternoon|evening)", "Good [time],"),
        (r"^thanks\s+for", "Thanks for..."),
        (r"^hope\s+", "Hope you're..."),
    ]
    DEFAULT_GREETING = "Hi [name],"

    CLOSING_PATTERNS = [
        (r"best\s*regards", "Best regards,"),
        (r"warm\s*regards", "Warm regards,"),
        (r"kind\s*regards", "Kind regards,"),
        (r"sincerely", "Sincerely,"),
        (r"thanks!?\s*$", "Thanks!"),
        (r"thank\s+you!?\s*$", "Thank you!"),
        (r"cheers[,!]?\s*$", "Cheers,"),
        (r"best[,!]?\s*$", "Best,"),
        (r"talk\s+soon", "Talk soon!"),
        (r"take\s+care", "Take care,"),
        (r"looking\s+forward", "Looking forward to hearing from you."),
        (r"let\s+me\s+know", "Let me know!"),
    ]
    DEFAULT_CLOSING = "Best,"

    TECH_MARKERS = re.compile(
        r"\b(api|deploy|repository|commit|refactor|pipeline|sprint|endpoint|kubernetes|docker|"
        r"microservice|authentication|middleware|webhook|latency|throughput|scalability|"
        r"orchestration|containerize|ci/cd|devops|frontend|backend|fullstack|database|schema|"
        r"migration|dependency|typescript|javascript|python|react|node|graphql)\b",
        re.IGNORECASE,
    )

    CONTRACTIONS = re.compile(
        r"\b(don't|doesn't|didn't|won't|wouldn't|can't|couldn't|shouldn't|isn't|aren't|wasn't|"
        r"weren't|haven't|hasn't|hadn't|i'm|i've|i'd|i'll|we're|we've|we'd|we'll|they're|"
        r"they've|they'd|they'll|you're|you've|you'd|you'll|he's|she's|it's|that's|there's|"
        r"here's|what's|who's|how's|where's|let's|ain't)\b",
        re.IGNORECASE,
    )

    EXPANDED_FORMS = re.compile(
        r"\b(do not|does not|did not|will not|would not|cannot|could not|should not|is not|"
        r"are not|was not|were not|have not|has not|had not|I am|I have|I would|I will|"
        r"we are|we have|we would|we will)\b",
        re.IGNORECASE,
    )

    TITLE_CASE_START = re.compile(r"^[A-Z][a-z]+ [A-Z][a-z]+ [A-Z]")

    INTERROGATIVE = re.compile(
        r"\b(who|what|when|where|why|how|can|could|would|should|is|are|do|does|will|did)\b",
        re.IGNORECASE,
    )

    TRANSITIONS = [
        "that said", "moving forward", "to be honest", "on that note",
        "with that in mind", "having said that", "in any case", "to clarify",
        "for context", "just to confirm", "quick update", "heads up",
        "for what it's worth", "as a heads up", "on another note",
        "by the way", "that being said", "in the meantime", "going forward",
        "long story short", "bottom line", "at the end of the day",
        "to summarize", "in a nutshell", "all things considered",
    ]

    HEDGES = [
        "I think", "maybe", "perhaps", "probably", "just", "sort of",
        "kind of", "I guess", "I believe", "I feel like", "it seems",
        "might be", "could be", "not sure", "I suppose", "honestly",
        "to be fair", "arguably", "in my opinion", "from my perspective",
    ]

    LAUGH_MARKERS = re.compile(r"\b(lol|lmao|haha|hehe|jk|j/k)\b|😂|🤣", re.IGNORECASE)
    WIT_MARKERS = re.compile(r"\b(ironically|apparently|spoiler alert|plot twist|fun fact)\b", re.IGNORECASE)
    PLAYFUL_MARKERS = re.compile(r"\b(oops|whoops|yikes|fingers crossed|no pressure)\b", re.IGNORECASE)

    TIME_AWARENESS = re.compile(
        r"\b(sorry for the delay|apologies for the late|getting back to you|quick reply|"
        r"just seeing this|sorry for the slow)\b",
        re.IGNORECASE,
    )

    ACTION_PHRASES = re.compile(
        r"\b(next steps|action items|to-?do|let me know|please confirm|can you|could you|"
        r"I'll|we'll|going to)\b",
        re.IGNORECASE,
    )

    ACKNOWLEDGMENT_PATTERNS = [
        (r"\b(got it|gotcha)\b", "Got it"),
        (r"\bnoted\b", "Noted"),
        (r"\bthanks for sharing\b", "Thanks for sharing"),
        (r"\bthanks for the update\b", "Thanks for the update"),
        (r"\bthanks for the heads up\b", "Thanks for the heads up"),
        (r"\bappreciate (it|the|this|that|you)\b", "Appreciate it"),
        (r"\breceived[,.]?\s", "Received"),
        (r"\bsounds good\b", "Sounds good"),
        (r"\bmakes sense\b", "Makes sense"),
        (r"\bperfect[!,.]?\s", "Perfect"),
        (r"\bawesome[!,.]?\s", "Awesome"),
        (r"\bgreat[!,.]?\s", "Great"),
    ]
    DEFAULT_ACKNOWLEDGMENT = "Thanks for sharing"

    SIGN_OFF_NAME = re.compile(r"^[A-Z][a-z]+(\s+[A-Z]\.?)?$")
    DASH_SIGN_OFF = re.compile(r"^[-–—]\s*([A-Z][a-z]+)")

    BULLET_POINTS = re.compile(r"[\n\r]\s*[-•*]\s|\n\s*\d+[.)]\s")

    CATEGORY_PATTERNS = [
        (r"\b(project|sprint|deadline|milestone|roadmap)\b", "project_management"),
        (r"\b(budget|cost|revenue|pricing|invoice)\b", "finance"),
        (r"\b(bug|issue|fix|deploy|code|pipeline|api)\b", "engineering"),
        (r"\b(meeting|schedule|calendar|standup|sync)\b", "scheduling"),
        (r"\b(client|customer|stakeholder|partner)\b", "external_comms"),
        (r"\b(design|mockup|figma|wireframe|ui|ux)\b", "design"),
        (r"\b(hire|interview|candidate|onboard|resume)\b", "hr"),
    ]

    def extract(self, samples: list[str]) -> StyleRecord:
        """
        Build a style record from message bodies.

        Args:
            samples: Raw message bodies, in order

        Returns:
            StyleRecord with every style dimension filled and provenance left
            at defaults (except sample_count)
        """
        all_text = "\n".join(samples)
        count = len(samples) or 1
        words = all_text.split()
        word_total = len(words) or 1
        avg_words = len(words) / count

        formal_count = len(self.FORMAL_MARKERS.findall(all_text))
        casual_count = len(self.CASUAL_MARKERS.findall(all_text))

        sentences = [s for s in re.split(r"[.!?]+", all_text) if len(s.strip()) > 3]
        sentence_total = sum(len(s.split()) for s in sentences)
        avg_sentence_len = sentence_total / (len(sentences) or 1)

        unique_words = {w.lower() for w in words}
        diversity = len(unique_words) / word_total

        record = StyleRecord(
            formality=self._formality(formal_count, casual_count),
            vocabulary_level=self._vocabulary_level(all_text, words),
            humor_style=self._humor_style(all_text),
            uses_slang=casual_count > SLANG_MIN_CASUAL,
            average_length=self._average_length(avg_words),
            avg_words_per_message=round(avg_words),
            avg_sentences_per_message=round(len(sentences) / count, 1),
            sentence_structure=self._sentence_structure(avg_sentence_len),
            paragraph_style=self._paragraph_style(samples, count),
            capitalization=self._capitalization(samples, count),
            punctuation=self._punctuation(all_text, count),
            emoji_usage=self._emoji_usage(all_text, count),
            uses_bullet_points=bool(self.BULLET_POINTS.search(all_text)),
            uses_contractions=self._uses_contractions(all_text),
            greeting_style=self._pick_template(
                [self._first_line(s) for s in samples], self.GREETING_PATTERNS, self.DEFAULT_GREETING
            ),
            closing_style=self._pick_template(
                [self._closing_block(s) for s in samples], self.CLOSING_PATTERNS, self.DEFAULT_CLOSING
            ),
            sign_off_name=self._sign_off_name(samples),
            pronoun_preference=self._pronoun_preference(all_text, word_total),
            asks_follow_up_questions=all_text.count("?") / count > FOLLOW_UP_RATIO,
            acknowledgment_style=self._acknowledgment_style(all_text),
            time_awareness=bool(self.TIME_AWARENESS.search(all_text)),
            ends_with_action_items=self._ends_with_action_items(samples, count),
            common_transitions=self._present_phrases(all_text, self.TRANSITIONS),
            hedge_words=self._present_phrases(all_text, self.HEDGES),
            relationship=RelationshipType.PEER,
            typical_categories=[
                name for pattern, name in self.CATEGORY_PATTERNS if re.search(pattern, all_text, re.IGNORECASE)
            ],
            sample_count=len(samples),
            style_confidence=self._confidence(len(samples), avg_words, diversity),
        )

        logger.debug(
            f"Extracted style from {len(samples)} samples: formality={record.formality.value}, "
            f"confidence={record.style_confidence}"
        )
        return record

    # Dimensions

    @staticmethod
    def _formality(formal_count: int, casual_count: int) -> Formality:
        if formal_count > casual_count * STRONG_MARKER_RATIO:
            return Formality.VERY_FORMAL
        if formal_count > casual_count * MARKER_RATIO:
            return Formality.FORMAL
        if casual_count > formal_count * STRONG_MARKER_RATIO:
            return Formality.VERY_CASUAL
        if casual_count > formal_count * MARKER_RATIO:
            return Formality.CASUAL
        return Formality.NEUTRAL

    @staticmethod
    def _emoji_usage(all_text: str, count: int) -> EmojiUsage:
        per_message = len(EMOJI_PATTERN.findall(all_text)) / count
        if per_message > EMOJI_FREQUENT:
            return EmojiUsage.FREQUENT
        if per_message > EMOJI_MODERATE:
            return EmojiUsage.MODERATE
        if per_message > 0:
            return EmojiUsage.MINIMAL
        return EmojiUsage.NONE

    @staticmethod
    def _average_length(avg_words: float) -> AverageLength:
        if avg_words > DETAILED_WORDS:
            return AverageLength.DETAILED
        if avg_words < BRIEF_WORDS:
            return AverageLength.BRIEF
        return AverageLength.MODERATE

    def _vocabulary_level(self, all_text: str, words: list[str]) -> VocabularyLevel:
        total = len(words) or 1
        complex_words = [w for w in words if len(re.sub(r"[^a-zA-Z]", "", w)) >= COMPLEX_WORD_LETTERS]
        complex_ratio = len(complex_words) / total
        tech_ratio = len(self.TECH_MARKERS.findall(all_text)) / total

        if tech_ratio > TECH_RATIO:
            return VocabularyLevel.TECHNICAL
        if complex_ratio > COMPLEX_RATIO_HIGH:
            return VocabularyLevel.ADVANCED
        if complex_ratio < COMPLEX_RATIO_LOW:
            return VocabularyLevel.SIMPLE
        return VocabularyLevel.MODERATE

    @staticmethod
    def _sentence_structure(avg_sentence_len: float) -> SentenceStructure:
        if avg_sentence_len < SHORT_SENTENCE_WORDS:
            return SentenceStructure.SHORT_DIRECT
        if avg_sentence_len > LONG_SENTENCE_WORDS:
            return SentenceStructure.COMPLEX_DETAILED
        return SentenceStructure.BALANCED

    def _uses_contractions(self, all_text: str) -> bool:
        contractions = len(self.CONTRACTIONS.findall(all_text))
        expanded = len(self.EXPANDED_FORMS.findall(all_text))
        return contractions > expanded * CONTRACTION_RATIO

    def _capitalization(self, samples: list[str], count: int) -> Capitalization:
        capitalization = Capitalization.STANDARD
        starts = [s.strip()[:1] for s in samples]
        lower_starts = sum(1 for c in starts if c and c.islower())
        if lower_starts > len(starts) * LOWERCASE_START_RATIO:
            capitalization = Capitalization.ALL_LOWER

        title_case = sum(1 for s in samples if self.TITLE_CASE_START.match(s.strip()))
        if title_case > count * TITLE_CASE_RATIO:
            capitalization = Capitalization.TITLE_CASE
        return capitalization

    def _punctuation(self, all_text: str, count: int) -> PunctuationHabits:
        exclamations_per_message = all_text.count("!") / count
        if exclamations_per_message > EXCLAMATION_FREQUENT:
            exclamation_frequency = ExclamationFrequency.FREQUENT
        elif exclamations_per_message > EXCLAMATION_MODERATE:
            exclamation_frequency = ExclamationFrequency.MODERATE
        elif exclamations_per_message == 0:
            exclamation_frequency = ExclamationFrequency.NEVER
        else:
            exclamation_frequency = ExclamationFrequency.RARE

        question_marks = all_text.count("?")
        question_sentences = sum(
            1 for s in re.split(r"[.!?\n]+", all_text) if self.INTERROGATIVE.search(s.strip())
        )
        if question_sentences > 0 and question_marks / question_sentences > QUESTION_ALWAYS_RATIO:
            question_mark_usage = QuestionMarkUsage.ALWAYS
        elif question_marks < question_sentences * QUESTION_RARELY_RATIO:
            question_mark_usage = QuestionMarkUsage.RARELY
        else:
            question_mark_usage = QuestionMarkUsage.SOMETIMES

        return PunctuationHabits(
            exclamation_frequency=exclamation_frequency,
            uses_ellipsis=bool(re.search(r"\.{3}|…", all_text)),
            uses_em_dash=bool(re.search(r"—|--", all_text)),
            question_mark_usage=question_mark_usage,
            uses_semicolons=all_text.count(";") > 1,
            uses_parentheses=all_text.count("(") > 1,
        )

    @staticmethod
    def _pronoun_preference(all_text: str, word_total: int) -> PronounPreference:
        i_count = len(re.findall(r"\bI\b", all_text))
        we_count = len(re.findall(r"\b[Ww]e\b", all_text))
        if i_count + we_count < word_total * PRONOUN_MIN_RATIO:
            return PronounPreference.AVOIDS_PRONOUNS
        if i_count > we_count * I_FOCUSED_RATIO:
            return PronounPreference.I_FOCUSED
        if we_count > i_count * WE_FOCUSED_RATIO:
            return PronounPreference.WE_FOCUSED
        return PronounPreference.MIXED

    def _humor_style(self, all_text: str) -> HumorStyle:
        if len(self.LAUGH_MARKERS.findall(all_text)) > 2:
            return HumorStyle.CASUAL_JOKES
        if len(self.WIT_MARKERS.findall(all_text)) > 1:
            return HumorStyle.DRY_WIT
        if len(self.PLAYFUL_MARKERS.findall(all_text)) > 1:
            return HumorStyle.PLAYFUL
        return HumorStyle.NONE

    @staticmethod
    def _paragraph_style(samples: list[str], count: int) -> ParagraphStyle:
        avg_paragraphs = sum(
            len([p for p in re.split(r"\n\s*\n", s) if p.strip()]) for s in samples
        ) / count
        avg_lines = sum(len([line for line in s.split("\n") if line.strip()]) for s in samples) / count

        if avg_lines <= 2:
            return ParagraphStyle.ONE_LINERS
        if avg_paragraphs <= 1.2:
            return ParagraphStyle.SINGLE_BLOCK
        if avg_paragraphs > 2.5:
            return ParagraphStyle.SHORT_PARAGRAPHS
        return ParagraphStyle.WELL_STRUCTURED

    def _ends_with_action_items(self, samples: list[str], count: int) -> bool:
        action_endings = 0
        for sample in samples:
            tail = sample[int(len(sample) * ACTION_TAIL_START):]
            if self.ACTION_PHRASES.search(tail):
                action_endings += 1
        return action_endings / count > ACTION_ENDING_RATIO

    def _acknowledgment_style(self, all_text: str) -> str:
        for pattern, name in self.ACKNOWLEDGMENT_PATTERNS:
            if re.search(pattern, all_text, re.IGNORECASE):
                return name
        return self.DEFAULT_ACKNOWLEDGMENT

    def _sign_off_name(self, samples: list[str]) -> str:
        for sample in samples:
            lines = [line for line in sample.split("\n") if line.strip()]
            last_line = lines[-1].strip() if lines else ""
            if self.SIGN_OFF_NAME.match(last_line):
                return last_line
            dash_name = self.DASH_SIGN_OFF.match(last_line)
            if dash_name:
                return dash_name.group(1)
        return ""

    @staticmethod
    def _present_phrases(all_text: str, phrases: list[str]) -> list[str]:
        return [phrase for phrase in phrases if _phrase_pattern(phrase).search(all_text)]

    @staticmethod
    def _confidence(sample_count: int, avg_words: float, diversity: float) -> int:
        confidence = min(CONFIDENCE_SAMPLE_CAP, BASE_CONFIDENCE + sample_count * CONFIDENCE_PER_MESSAGE)
        if avg_words > LONG_MESSAGE_WORDS:
            confidence += CONFIDENCE_BONUS
        if diversity > DIVERSITY_RATIO:
            confidence += CONFIDENCE_BONUS
        return min(MAX_HEURISTIC_CONFIDENCE, confidence)

    # Greeting / closing helpers

    @staticmethod
    def _first_line(sample: str) -> str:
        return sample.split("\n")[0].strip()

    @staticmethod
    def _closing_block(sample: str) -> str:
        lines = [line for line in sample.split("\n") if line.strip()]
        return " ".join(lines[-3:]).strip()

    @staticmethod
    def _pick_template(blocks: list[str], patterns: list[tuple[str, str]], default: str) -> str:
        """Tally the first matching template per block; highest tally wins, earliest pattern breaks ties."""
        counts: Counter[str] = Counter()
        for block in blocks:
            for pattern, template in patterns:
                if re.search(pattern, block, re.IGNORECASE):
                    counts[template] += 1
                    break

        if not counts:
            return default

        best_count = max(counts.values())
        for _, template in patterns:
            if counts[template] == best_count:
                return template
        return default
