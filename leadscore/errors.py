"""Error taxonomy for the analysis pipeline.

Every failure raised by the orchestrator or its collaborators is one of these
classes. The HTTP layer maps them to status codes through ``status_code`` and
renders ``code``, the message and ``context``; callers branch on the class,
never on the message text.
"""

from typing import Any, Optional


class LeadScoreError(Exception):
    """Base class for all pipeline errors."""

    code = "internal_error"
    status_code = 500

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class NotFoundError(LeadScoreError):
    """Unknown sales call (or customer) id."""

    code = "not_found"
    status_code = 404


class ValidationError(LeadScoreError):
    """Malformed request or out-of-range parameter."""

    code = "validation_error"
    status_code = 400


class AlreadyAnalyzedError(LeadScoreError):
    """Full analysis requested for a call that is already scored."""

    code = "already_analyzed"
    status_code = 400


class AlreadyScoredError(LeadScoreError):
    """Scoring requested for a call that already has scores."""

    code = "already_scored"
    status_code = 400


class NoTranscriptError(LeadScoreError):
    """Scoring requested before the call was transcribed."""

    code = "no_transcript"
    status_code = 400


class GatewayError(LeadScoreError):
    """The transcription provider rejected the asset or failed."""

    code = "gateway_error"
    status_code = 500


class UnsupportedFormatError(GatewayError):
    """Audio asset is missing, unreadable, too large or of an unknown format."""

    code = "unsupported_format"


class TranscriptionTimeoutError(GatewayError):
    """Transcription did not finish within the configured timeout."""

    code = "transcription_timeout"


class ScoringError(LeadScoreError):
    """The scoring engine rejected its input."""

    code = "scoring_error"
    status_code = 500


class PersistenceError(LeadScoreError):
    """Commit failed, including a lost precondition race."""

    code = "persistence_error"
    status_code = 500
