"""Reply strategy selection and context assembly for draft generation."""

from voiceprint.schemas.message import Channel, MessageAnalysis, MessageIntent, UnifiedMessage


HISTORY_TURNS = 5
HISTORY_PREVIEW_CHARS = 100

CHANNEL_GUIDELINES = {
    Channel.EMAIL: """
STYLE: Professional email format.
- Start with an appropriate greeting (Hi [Name], / Dear [Name],)
- Use proper paragraphs, not one-liners
- Address each key point systematically
- End with a clear closing (Best regards, / Thanks, / Looking forward to hearing from you)
- Keep sentences well-structured and grammatically correct
- If including a signature, add the user's name and role""",
    Channel.SLACK: """
STYLE: Slack message format.
- Be concise and direct, no formal greetings needed
- Use short paragraphs or bullet points
- Emojis are welcome but don't overdo it (1-2 max)
- Use backtick formatting for technical terms or code
- Thread-friendly: assume the reader has context
- Match the casual energy of the original message""",
    Channel.TEAMS: """
STYLE: Teams message format.
- Professional but conversational
- Can use bullet points and structured lists
- Slightly more formal than Slack but less than email
- No need for email-style greetings/closings
- Mention people with @ when appropriate
- Be clear about action items""",
}

INTENT_STRATEGIES = {
    MessageIntent.APPROVAL_REQUEST: """
STRATEGY: Handle approval with care.
- Acknowledge the request clearly
- Reference specific items/amounts if mentioned
- If you can approve: state your approval clearly and any conditions
- If you need more info: ask specific questions
- If you're deferring: explain why and provide timeline
- COMMON SENSE: Don't blindly approve large expenses. Ask clarifying questions if the amount seems unusual or the justification is vague""",
    MessageIntent.QUESTION: """
STRATEGY: Answer directly.
- Lead with the answer or acknowledgment
- Provide supporting details after
- If you don't know: say so honestly and offer to find out
- Include relevant links or resources if helpful""",
    MessageIntent.TECHNICAL_ISSUE: """
STRATEGY: Technical support response.
- Acknowledge the issue quickly
- Provide immediate troubleshooting steps if possible
- Share relevant commands or code snippets
- Offer to investigate further
- Tag relevant people if needed""",
    MessageIntent.SCHEDULING: """
STRATEGY: Scheduling response.
- Confirm or suggest availability clearly
- Reference specific dates/times
- Mention any preparation needed
- Ask about agenda if not provided""",
    MessageIntent.SOCIAL: """
STRATEGY: Social/casual response.
- Be warm and genuine
- Match the energy of the original message
- Keep it brief
- Express enthusiasm where appropriate""",
    MessageIntent.PARTNERSHIP: """
STRATEGY: Business development response.
- Be professionally interested
- Ask smart follow-up questions
- Reference specific proposals/terms
- Suggest next steps
- COMMON SENSE: Don't commit to terms or numbers. Express interest and suggest a meeting to discuss details""",
    MessageIntent.ACTION_REQUIRED: """
STRATEGY: Action response.
- Confirm receipt and understanding
- State what you'll do and by when
- Ask clarifying questions if needed
- Provide an ETA for completion""",
}


def select_strategy(channel: Channel, intent: MessageIntent) -> str:
    """Channel guidelines followed by the intent strategy (empty for intents without one)."""
    return f"{CHANNEL_GUIDELINES[channel]}\n{INTENT_STRATEGIES.get(intent, '')}"


def build_context(message: UnifiedMessage, analysis: MessageAnalysis, org_context: str = "") -> str:
    """Summarize the message and its analysis for the generation prompt."""
    thread = ""
    if message.slack_channel:
        thread += f" / {message.slack_channel}"
    if message.teams_channel:
        thread += f" / {message.teams_channel}"

    parts = [
        f"SENDER: {message.sender} ({analysis.relationship})",
        f"CHANNEL: {message.channel.value.upper()}{thread}",
        f"INTENT: {analysis.intent.value.replace('_', ' ')}",
        f"SENTIMENT: {analysis.sentiment.value}",
        f"URGENCY: {analysis.urgency}/10",
        f"TOPICS: {', '.join(analysis.topics)}",
        "KEY POINTS TO ADDRESS:\n" + "\n".join(f"  {i}. {p}" for i, p in enumerate(analysis.key_points, 1)),
    ]

    if message.attachments:
        parts.append(f"ATTACHMENTS: {', '.join(a.name for a in message.attachments)}")

    if message.conversation_history:
        parts.append(f"CONVERSATION HISTORY ({len(message.conversation_history)} previous messages):")
        for turn in message.conversation_history[-HISTORY_TURNS:]:
            parts.append(f"  [{turn.role}]: {turn.content[:HISTORY_PREVIEW_CHARS]}...")

    if org_context:
        parts.append(f"ORGANIZATION CONTEXT: {org_context}")

    return "\n".join(parts)
