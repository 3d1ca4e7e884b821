"""Error types raised by the drafting pipeline."""


class VoiceprintError(Exception):
    """Base class for Voiceprint errors."""


class ExternalServiceError(VoiceprintError):
    """A call to the generative-text service failed, timed out, or returned unusable output."""

    def __init__(self, message: str, service: str = "anthropic"):
        super().__init__(message)
        self.service = service


class InvalidInputError(VoiceprintError, ValueError):
    """Required input was missing or empty."""


class GenerationCancelled(VoiceprintError):
    """Draft generation was cancelled between refinement attempts."""
