"""Style-aware reply drafting with a deterministic template fallback."""

import logging
from dataclasses import dataclass

from voiceprint.core.exceptions import ExternalServiceError
from voiceprint.core.llm_client import LLMClient
from voiceprint.schemas.message import (
    Channel,
    MessageAnalysis,
    MessageIntent,
    ResponseConfig,
    UnifiedMessage,
)
from voiceprint.schemas.style import ExclamationFrequency, StyleRecord
from voiceprint.services.style_analyzer import render_style_instructions


logger = logging.getLogger(__name__)


DRAFT_TEMPERATURE = 0.6
DRAFT_MAX_TOKENS = 800

STYLE_SECTION = """
STYLE PROFILE: MATCH THIS EXACTLY
{instructions}

This style profile was built by analyzing the user's actual messages. Every detail matters:
- Match their greeting and closing EXACTLY
- Use the same level of formality (contractions, vocabulary, etc.)
- Mirror their punctuation habits (exclamation marks, em-dashes, ellipsis)
- Follow their paragraph structure
- Use their characteristic phrases and transitions
- Match their pronoun preference (I vs we)
- Keep the same message length range
"""

GENERAL_VOICE_SECTION = """
GENERAL VOICE:
- You write as if you ARE the user: first person, their voice
- You're thoughtful, clear, and professional
- You adapt your tone to the channel and relationship
"""

SYSTEM_PROMPT = """You are an AI communications assistant helping {user_name} ({user_role} at {company_name}) draft responses to messages.

YOUR PRIMARY DIRECTIVE:
Write as if you ARE the user, in first person, in their exact voice and style. The response must read like something the user actually wrote.
{voice_section}
COMMON SENSE RULES:
- Never approve budget/spending without the user explicitly saying to
- Never commit to hard deadlines without checking the user's calendar
- Never share confidential information
- If something seems off (unexpected request, unusual urgency), flag it subtly
- For scheduling: suggest specific times but leave room for flexibility
- For technical issues: offer to help investigate, don't claim to have the fix if you don't
- For social messages: be genuine, not corporate
{custom_instructions}
RESPONSE LENGTH: Aim for {max_words} words max. Be concise.

{strategy}"""

USER_PROMPT = """Draft a response to this message.

{context}

ORIGINAL MESSAGE:
\"\"\"
{body}
\"\"\"

Write ONLY the response text. No meta-commentary, no "Here's a draft:", no quotation marks around it. Just the response as {user_name} would write it.{style_reminder}"""


@dataclass
class DraftResult:
    """Draft text and whether it came from the template fallback."""

    text: str
    used_fallback: bool = False


@dataclass
class _Voice:
    """Word choices the fallback templates switch on."""

    contractions: bool
    exclamations: bool

    @property
    def exc(self) -> str:
        return "!" if self.exclamations else "."

    def pick(self, contracted: str, expanded: str) -> str:
        return contracted if self.contractions else expanded


class DraftGenerator:
    """Compose a reply from the message, its analysis, the strategy and the active style record."""

    def __init__(self, llm: LLMClient, config: ResponseConfig):
        self.llm = llm
        self.config = config

    async def generate(
        self,
        message: UnifiedMessage,
        analysis: MessageAnalysis,
        context: str,
        strategy: str,
        style_record: StyleRecord | None,
    ) -> DraftResult:
        """
        Generate a draft with the generative-text service.

        Falls back to fallback_draft if the call fails or returns nothing.
        """
        system = self._system_prompt(strategy, style_record)
        prompt = USER_PROMPT.format(
            context=context,
            body=message.full_message,
            user_name=self.config.user_name,
            style_reminder=" Match the style profile EXACTLY." if style_record else "",
        )

        try:
            text = await self.llm.complete_text(
                system, prompt, max_tokens=DRAFT_MAX_TOKENS, temperature=DRAFT_TEMPERATURE
            )
            return DraftResult(text=text)
        except ExternalServiceError as e:
            logger.warning(f"Draft generation failed for {message.id}, using template: {e}")
            return DraftResult(text=self.fallback_draft(message, analysis, style_record), used_fallback=True)

    def _system_prompt(self, strategy: str, style_record: StyleRecord | None) -> str:
        if style_record:
            voice_section = STYLE_SECTION.format(instructions=render_style_instructions(style_record))
        else:
            voice_section = GENERAL_VOICE_SECTION

        custom = ""
        if self.config.custom_instructions:
            custom = f"\nUSER'S CUSTOM INSTRUCTIONS:\n{self.config.custom_instructions}\n"

        return SYSTEM_PROMPT.format(
            user_name=self.config.user_name,
            user_role=self.config.user_role,
            company_name=self.config.company_name,
            voice_section=voice_section,
            custom_instructions=custom,
            max_words=self.config.max_response_length,
            strategy=strategy,
        )

    def fallback_draft(
        self,
        message: UnifiedMessage,
        analysis: MessageAnalysis,
        style_record: StyleRecord | None,
    ) -> str:
        """
        Template reply chosen by intent.

        Greeting, closing, contractions and exclamation marks come straight
        from the style record fields. Greetings and closings are only used
        on email.
        """
        voice = _Voice(
            contractions=style_record.uses_contractions if style_record else True,
            exclamations=(
                style_record.punctuation.exclamation_frequency != ExclamationFrequency.NEVER
                if style_record
                else True
            ),
        )
        greeting, closing = "", ""
        if message.channel == Channel.EMAIL:
            greeting = f"{self._greeting(message, style_record)}\n\n"
            closing = f"\n\n{self._closing(style_record)}"

        body = self._template(analysis.intent, voice)
        if analysis.intent == MessageIntent.SOCIAL:
            return body
        return f"{greeting}{body}{closing}"

    @staticmethod
    def _greeting(message: UnifiedMessage, style_record: StyleRecord | None) -> str:
        name = message.sender_first_name
        template = style_record.greeting_style if style_record else ""
        # Templates like "Thanks for..." describe an opener rather than spell one out
        if not template or template.endswith("..."):
            return f"Hi {name},"
        return template.replace("[name]", name).replace("[time]", "morning")

    def _closing(self, style_record: StyleRecord | None) -> str:
        closing = style_record.closing_style if style_record else "Best regards,"
        if not self.config.include_signature:
            return closing
        name = (style_record.sign_off_name if style_record else "") or self.config.user_name
        return f"{closing}\n{name}"

    @staticmethod
    def _template(intent: MessageIntent, voice: _Voice) -> str:
        exc = voice.exc
        ill = voice.pick("I'll", "I will")
        ive = voice.pick("I've", "I have")
        im = voice.pick("I'm", "I am")
        id_ = voice.pick("I'd", "I would")
        dont = voice.pick("don't", "do not")
        hasnt = voice.pick("hasn't", "has not")
        theres = voice.pick("there's", "there is")

        templates = {
            MessageIntent.APPROVAL_REQUEST: (
                f"Thank you for the detailed breakdown. {ive} reviewed the items and they align with our "
                f"current priorities.\n\nLet me take a closer look at the specifics and {ill} get back to you "
                "with a decision by end of day. If there are any questions in the meantime, feel free to reach out."
            ),
            MessageIntent.QUESTION: (
                f"Great question{exc} Let me look into this and get back to you with a thorough answer.\n\n"
                f"{ill} have an update within the next few hours."
            ),
            MessageIntent.TECHNICAL_ISSUE: (
                f"Thanks for flagging this. {ill} take a look at the issue right away.\n\n"
                "A few things to try in the meantime:\n"
                "1. Clear cached state and retry\n"
                "2. Check the logs for more specific error messages\n"
                f"3. Verify the configuration {hasnt} changed recently\n\n"
                f"{ill} dig deeper and update the thread once I have more details."
            ),
            MessageIntent.SCHEDULING: (
                f"Thanks for reaching out about scheduling. {im} available and happy to participate.\n\n"
                f"{ill} review the materials beforehand and come prepared. Please send over the calendar "
                "invite and any additional context."
            ),
            MessageIntent.SOCIAL: f"Count me in{exc} Sounds great. 👍",
            MessageIntent.PARTNERSHIP: (
                "Thank you for sharing the details on this. The proposal looks interesting and "
                f"{id_} like to explore it further.\n\n"
                "Let me review the specifics and coordinate with the team. Could we set up a call next week "
                "to discuss the finer points?"
            ),
            MessageIntent.ACTION_REQUIRED: (
                f"Understood, {ill} take care of this. Let me review the requirements and {ill} have an "
                f"update for you shortly.\n\nIf {theres} "
                f"anything urgent in the meantime, {dont} hesitate "
                "to reach out."
            ),
            MessageIntent.INFORMATION_SHARING: (
                f"Thanks for sharing this. {ive} noted the key points and will incorporate them into our "
                "planning.\n\nLet me know if you need anything from my end."
            ),
            MessageIntent.FOLLOW_UP: (
                f"Thanks for following up. {im} on it and will have an update for you soon.\n\n"
                "Appreciate the reminder."
            ),
        }
        return templates.get(
            intent,
            f"Thank you for your message. {ill} review the details and get back to you shortly.",
        )
