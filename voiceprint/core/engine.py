"""Reply pipeline: analyze, pick a voice, draft, score and refine."""

import asyncio
import logging
from dataclasses import dataclass

from voiceprint.config import Settings, get_settings
from voiceprint.core.exceptions import GenerationCancelled, InvalidInputError
from voiceprint.schemas.message import (
    GeneratedResponse,
    MessageAnalysis,
    ResponseConfig,
    ResponseConfigUpdate,
    StyleSource,
    UnifiedMessage,
)
from voiceprint.schemas.style import StyleAnalysisSummary, StyleRecord
from voiceprint.services.draft_generator import DraftGenerator
from voiceprint.services.message_analyzer import MessageAnalyzer
from voiceprint.services.profile_store import StyleProfileStore
from voiceprint.services.scorer import identify_style_mismatches, score_response
from voiceprint.services.strategy import build_context, select_strategy
from voiceprint.services.style_analyzer import analyze_style_batch
from voiceprint.services.style_refiner import StyleRefiner
from voiceprint.services.voice_learning import VoiceLearningService


logger = logging.getLogger(__name__)


SIGNIFICANT_GAP_SCORE = 85


@dataclass
class _ResolvedStyle:
    record: StyleRecord | None
    source: StyleSource


class ResponseEngine:
    """
    Turns an incoming message into a scored reply draft.

    Style resolution prefers the user's own learned voice (with the channel
    override applied), then a stored record for the sender, then nothing.
    """

    def __init__(
        self,
        analyzer: MessageAnalyzer,
        generator: DraftGenerator,
        store: StyleProfileStore,
        voice: VoiceLearningService,
        refiner: StyleRefiner | None = None,
        settings: Settings | None = None,
    ):
        self.analyzer = analyzer
        self.generator = generator
        self.store = store
        self.voice = voice
        self.refiner = refiner
        self.settings = settings or get_settings()

    @property
    def config(self) -> ResponseConfig:
        return self.generator.config

    async def analyze_message(self, message: UnifiedMessage) -> MessageAnalysis:
        self._require_body(message)
        return await self.analyzer.analyze(message)

    def quick_analyze(self, message: UnifiedMessage) -> MessageAnalysis:
        self._require_body(message)
        return self.analyzer.quick_analyze(message)

    def resolve_style(self, message: UnifiedMessage) -> _ResolvedStyle:
        record = self.voice.effective_record(message.channel)
        if record is not None:
            return _ResolvedStyle(record, StyleSource.USER_VOICE)
        record = self.store.find_for_sender(message.sender, message.sender_email)
        if record is not None:
            return _ResolvedStyle(record, StyleSource.CONTACT)
        return _ResolvedStyle(None, StyleSource.NONE)

    async def generate_response(
        self,
        message: UnifiedMessage,
        cancel_event: asyncio.Event | None = None,
    ) -> GeneratedResponse:
        """
        Run the full pipeline for one message.

        The draft is regenerated with style feedback while its score is below
        ``min_confidence_threshold``, a style record is in use, attempts
        remain, and the scorer can name a concrete mismatch. The latest draft
        is returned even when it never reaches the threshold; check
        ``met_threshold``.

        Args:
            message: The incoming message to reply to
            cancel_event: Checked between attempts; when set the run stops
                with GenerationCancelled

        Returns:
            GeneratedResponse with the final draft and its score
        """
        self._require_body(message)
        logger.info(f"Generating response for {message.id} from {message.sender} ({message.channel.value})")

        analysis = await self.analyzer.analyze(message)
        logger.info(
            f"Analysis for {message.id}: intent={analysis.intent.value}, "
            f"urgency={analysis.urgency}/10, sentiment={analysis.sentiment.value}"
        )

        context = build_context(message, analysis, self.config.org_context)
        style = self.resolve_style(message)
        if style.record is None:
            logger.info(f"No voice profile available for {message.id}, using default voice")
        strategy = select_strategy(message.channel, analysis.intent)

        self._check_cancelled(cancel_event)
        result = await self.generator.generate(message, analysis, context, strategy, style.record)
        draft = result.text
        confidence = score_response(draft, message, analysis, style.record)
        logger.info(f"Draft for {message.id} scored {confidence}")

        threshold = self.settings.min_confidence_threshold
        attempts = 0
        while (
            confidence < threshold
            and style.record is not None
            and attempts < self.settings.max_refinement_attempts
        ):
            feedback = identify_style_mismatches(draft, style.record)
            if not feedback:
                break
            if confidence < SIGNIFICANT_GAP_SCORE:
                feedback.insert(0, "The draft needs significant style improvements.")

            self._check_cancelled(cancel_event)
            attempts += 1
            refinement_context = (
                f'{context}\n\nPREVIOUS DRAFT (needs style alignment):\n"""{draft}"""\n\n'
                f"STYLE FEEDBACK:\n" + "\n".join(feedback)
            )
            result = await self.generator.generate(message, analysis, refinement_context, strategy, style.record)
            draft = result.text
            confidence = score_response(draft, message, analysis, style.record)
            logger.info(f"Refinement {attempts} for {message.id} scored {confidence}")

        return GeneratedResponse(
            draft_text=draft,
            confidence=confidence,
            analysis=analysis,
            reasoning_trace=self._reasoning(message, analysis, style, confidence, attempts),
            met_threshold=confidence >= threshold,
            refinement_attempts=attempts,
            style_source=style.source,
        )

    async def regenerate_with_feedback(self, message: UnifiedMessage, feedback: str) -> GeneratedResponse:
        """Draft once more with the user's feedback on the previous draft. No refinement loop."""
        self._require_body(message)
        analysis = await self.analyzer.analyze(message)
        context = build_context(message, analysis, self.config.org_context)
        style = self.resolve_style(message)
        strategy = select_strategy(message.channel, analysis.intent)

        enhanced = (
            f"{context}\n\nUSER FEEDBACK ON PREVIOUS DRAFT:\n{feedback}\n"
            "Please incorporate this feedback into the new response."
        )
        result = await self.generator.generate(message, analysis, enhanced, strategy, style.record)
        confidence = score_response(result.text, message, analysis, style.record)

        return GeneratedResponse(
            draft_text=result.text,
            confidence=confidence,
            analysis=analysis,
            reasoning_trace=[f'Regenerated with user feedback: "{feedback}"'],
            met_threshold=confidence >= self.settings.min_confidence_threshold,
            refinement_attempts=0,
            style_source=style.source,
        )

    async def analyze_style_batch(
        self, messages: list[UnifiedMessage]
    ) -> tuple[list[StyleRecord], StyleAnalysisSummary]:
        """Build per-contact style records and make them available for drafting."""
        records, summary = await analyze_style_batch(messages, refiner=self.refiner)
        self.store.replace_all(records)
        logger.info(f"Stored {len(records)} contact style records")
        return records, summary

    def get_config(self) -> ResponseConfig:
        return self.config

    def update_config(self, updates: ResponseConfigUpdate) -> ResponseConfig:
        changes = updates.model_dump(exclude_unset=True, exclude_none=True)
        if "channel_tones" in changes:
            changes["channel_tones"] = self.config.channel_tones.model_copy(update=changes["channel_tones"])
        self.generator.config = self.config.model_copy(update=changes)
        return self.generator.config

    def _reasoning(
        self,
        message: UnifiedMessage,
        analysis: MessageAnalysis,
        style: _ResolvedStyle,
        confidence: int,
        attempts: int,
    ) -> list[str]:
        tone = getattr(self.config.channel_tones, message.channel.value).value
        trace = [
            f"Detected intent: {analysis.intent.value.replace('_', ' ')}",
            f"Message sentiment: {analysis.sentiment.value}",
            f"Urgency level: {analysis.urgency}/10",
            f"Topics identified: {', '.join(analysis.topics)}",
            f"Key points addressed: {len(analysis.key_points)}",
            f"Response tone: {tone}",
            f"Confidence score: {confidence}%",
        ]
        record = style.record
        if record is not None:
            owner = "the user's own voice" if style.source == StyleSource.USER_VOICE else f"{message.sender}'s style"
            trace.append(f"Style profile: matched to {owner} ({record.style_confidence}% profile confidence)")
            trace.append(
                f"Voice match: {record.formality.value} formality, {record.average_length.value} length, "
                f"contractions={record.uses_contractions}"
            )
        if attempts:
            trace.append(f"Refinement: draft was refined {attempts} time(s) for better style alignment")
        return trace

    @staticmethod
    def _require_body(message: UnifiedMessage) -> None:
        if not message.full_message.strip():
            raise InvalidInputError("Message body is required")

    @staticmethod
    def _check_cancelled(cancel_event: asyncio.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelled("Response generation was cancelled")
