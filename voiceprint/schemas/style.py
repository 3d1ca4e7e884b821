"""Style record schemas (the voice fingerprint)."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Formality(str, Enum):
    """Five-level formality scale."""

    VERY_FORMAL = "very_formal"
    FORMAL = "formal"
    NEUTRAL = "neutral"
    CASUAL = "casual"
    VERY_CASUAL = "very_casual"


class VocabularyLevel(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    ADVANCED = "advanced"
    TECHNICAL = "technical"


class HumorStyle(str, Enum):
    NONE = "none"
    DRY_WIT = "dry_wit"
    CASUAL_JOKES = "casual_jokes"
    PLAYFUL = "playful"
    SARCASTIC = "sarcastic"


class AverageLength(str, Enum):
    BRIEF = "brief"
    MODERATE = "moderate"
    DETAILED = "detailed"


class SentenceStructure(str, Enum):
    SHORT_DIRECT = "short_direct"
    BALANCED = "balanced"
    COMPLEX_DETAILED = "complex_detailed"


class ParagraphStyle(str, Enum):
    ONE_LINERS = "one_liners"
    SINGLE_BLOCK = "single_block"
    SHORT_PARAGRAPHS = "short_paragraphs"
    WELL_STRUCTURED = "well_structured"


class Capitalization(str, Enum):
    STANDARD = "standard"
    ALL_LOWER = "all_lower"
    SENTENCE_CASE = "sentence_case"
    TITLE_CASE = "title_case"


class ExclamationFrequency(str, Enum):
    NEVER = "never"
    RARE = "rare"
    MODERATE = "moderate"
    FREQUENT = "frequent"


class QuestionMarkUsage(str, Enum):
    ALWAYS = "always"
    SOMETIMES = "sometimes"
    RARELY = "rarely"


class EmojiUsage(str, Enum):
    NONE = "none"
    MINIMAL = "minimal"
    MODERATE = "moderate"
    FREQUENT = "frequent"


class PronounPreference(str, Enum):
    I_FOCUSED = "i_focused"
    WE_FOCUSED = "we_focused"
    MIXED = "mixed"
    AVOIDS_PRONOUNS = "avoids_pronouns"


class RelationshipType(str, Enum):
    """How the correspondent relates to the user."""

    MANAGER = "manager"
    PEER = "peer"
    DIRECT_REPORT = "direct_report"
    EXTERNAL_CLIENT = "external_client"
    VENDOR = "vendor"
    UNKNOWN = "unknown"


class PunctuationHabits(BaseModel):
    """Punctuation sub-record of a style record."""

    model_config = ConfigDict(frozen=True)

    exclamation_frequency: ExclamationFrequency = ExclamationFrequency.RARE
    uses_ellipsis: bool = False
    uses_em_dash: bool = False
    question_mark_usage: QuestionMarkUsage = QuestionMarkUsage.SOMETIMES
    uses_semicolons: bool = False
    uses_parentheses: bool = False


class StyleRecord(BaseModel):
    """
    Voice fingerprint for one correspondent or one user.

    Records are immutable. A new analysis run replaces the whole record;
    derived variants (channel overrides, provenance) are built with
    ``model_copy(update=...)``.
    """

    model_config = ConfigDict(frozen=True)

    # Tone
    formality: Formality = Formality.NEUTRAL
    vocabulary_level: VocabularyLevel = VocabularyLevel.MODERATE
    humor_style: HumorStyle = HumorStyle.NONE
    uses_slang: bool = False

    # Length and structure
    average_length: AverageLength = AverageLength.MODERATE
    avg_words_per_message: int = 50
    avg_sentences_per_message: float = 3.0
    sentence_structure: SentenceStructure = SentenceStructure.BALANCED
    paragraph_style: ParagraphStyle = ParagraphStyle.WELL_STRUCTURED

    # Formatting
    capitalization: Capitalization = Capitalization.STANDARD
    punctuation: PunctuationHabits = Field(default_factory=PunctuationHabits)
    emoji_usage: EmojiUsage = EmojiUsage.MINIMAL
    uses_bullet_points: bool = False
    uses_contractions: bool = True

    # Opening / closing
    greeting_style: str = "Hi [name],"
    closing_style: str = "Best,"
    sign_off_name: str = ""

    # Voice
    pronoun_preference: PronounPreference = PronounPreference.MIXED
    asks_follow_up_questions: bool = False
    acknowledgment_style: str = "Thanks"
    time_awareness: bool = False
    ends_with_action_items: bool = False
    common_transitions: list[str] = Field(default_factory=list)
    hedge_words: list[str] = Field(default_factory=list)

    # Provenance
    contact_id: str = ""
    contact_name: str = ""
    contact_email: str | None = None
    relationship: RelationshipType = RelationshipType.PEER
    typical_categories: list[str] = Field(default_factory=list)
    sample_count: int = 0
    style_confidence: int = Field(default=30, ge=0, le=99)
    analyzed_at: datetime = Field(default_factory=datetime.utcnow)
    message_count: int = 0


class ContactStyleSummary(BaseModel):
    """One row of a batch style analysis summary."""

    name: str
    email: str | None = None
    message_count: int
    confidence: int


class StyleAnalysisSummary(BaseModel):
    """Summary returned alongside the records of a batch style analysis."""

    profiles_created: int
    messages_analyzed: int
    overall_confidence: int
    contacts: list[ContactStyleSummary] = Field(default_factory=list)
