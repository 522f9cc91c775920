"""Analysis orchestrator: moves a call from pending to transcribed to scored."""

import asyncio
import logging
from typing import Optional

from .errors import (
    AlreadyAnalyzedError,
    AlreadyScoredError,
    GatewayError,
    LeadScoreError,
    NoTranscriptError,
    NotFoundError,
    PersistenceError,
    ScoringError,
    TranscriptionTimeoutError,
)
from .models import (
    CallAnalysisView,
    FullAnalysisOutcome,
    SalesCall,
    ScoreFields,
    ScoreOutcome,
    ScoringResult,
    TranscriptionResult,
)
from .repository import CallRepository
from .scoring import ScoringEngine
from .stats import count_words, transcription_stats
from .transcription import TranscriptionGateway

logger = logging.getLogger(__name__)


def state_context(call: SalesCall) -> dict:
    """Which pipeline fields are already populated on a call."""
    return {
        "salesCallId": call.id,
        "hasTranscript": call.has_transcript,
        "hasScores": call.has_scores,
    }


class AnalysisOrchestrator:
    """Sequences validation, transcription, scoring and persistence for one call.

    Each operation commits through a single conditional repository update, so
    a failure anywhere before the commit leaves the call exactly as it was,
    and a concurrent run that loses the race is told the call is already done.
    """

    def __init__(
        self,
        repository: CallRepository,
        gateway: Optional[TranscriptionGateway] = None,
        engine: Optional[ScoringEngine] = None,
        *,
        transcription_timeout: float = 300.0,
    ):
        """Initialize the orchestrator. Without a gateway, pending calls cannot be analyzed."""
        self.repository = repository
        self.gateway = gateway
        self.engine = engine or ScoringEngine()
        self.transcription_timeout = transcription_timeout

    async def run_full_analysis(self, call_id: int) -> FullAnalysisOutcome:
        """
        Transcribe (if needed) and score a call, committing once.

        Args:
            call_id: Sales call id

        Returns:
            FullAnalysisOutcome with the committed call, transcription, stats and scores

        Raises:
            NotFoundError: Unknown call id
            AlreadyAnalyzedError: Call already scored, or scored concurrently
            GatewayError: Transcription failed or timed out
            ScoringError: Engine rejected the transcript
            PersistenceError: Commit failed
        """
        call = await self._load(call_id)
        if call.has_scores:
            logger.warning("Sales call %s already analyzed, skipping", call_id)
            raise AlreadyAnalyzedError("Sales call has already been analyzed", state_context(call))

        logger.info("Starting analysis for sales call %s (%s)", call_id, call.audio_file_path)

        if call.has_transcript:
            # Transcribed by an earlier run; only scoring is left.
            transcription = TranscriptionResult(
                text=call.transcript,
                language=call.transcript_language,
                duration=call.transcript_duration or 0.0,
                word_count=call.transcript_word_count or count_words(call.transcript),
            )
        else:
            transcription = await self._transcribe(call)

        stats = transcription_stats(transcription.text, transcription.duration)
        scoring = self._score(transcription.text, transcription.duration, stats.word_count)
        fields = ScoreFields.from_result(scoring)

        if call.has_transcript:
            updated = await self.repository.commit_scores(call_id, fields)
        else:
            updated = await self.repository.commit_analysis(call_id, transcription, fields)
        if updated is None:
            await self._lost_race(call_id, AlreadyAnalyzedError, "Sales call has already been analyzed")

        logger.info(
            "Analysis committed for sales call %s: overall=%d confidence=%d",
            call_id,
            scoring.scores.overall,
            scoring.analysis.confidence,
        )
        return FullAnalysisOutcome(
            sales_call=updated,
            customer=await self.repository.get_customer(updated.customer_id),
            transcription=transcription,
            stats=stats,
            scoring=scoring,
        )

    async def score_existing(self, call_id: int) -> ScoreOutcome:
        """
        Score the stored transcript of a transcribed call.

        Raises:
            NotFoundError: Unknown call id
            NoTranscriptError: Call has not been transcribed
            AlreadyScoredError: Call already has scores
            ScoringError: Engine rejected the transcript
            PersistenceError: Commit failed
        """
        call = await self._load(call_id)
        if not call.has_transcript:
            raise NoTranscriptError(
                "Sales call has no transcript; run analysis first", state_context(call)
            )
        if call.has_scores:
            logger.warning("Sales call %s already scored, skipping", call_id)
            raise AlreadyScoredError("Sales call has already been scored", state_context(call))

        duration = call.transcript_duration or 0.0
        word_count = call.transcript_word_count or count_words(call.transcript)
        scoring = self._score(call.transcript, duration, word_count)

        updated = await self.repository.commit_scores(call_id, ScoreFields.from_result(scoring))
        if updated is None:
            await self._lost_race(call_id, AlreadyScoredError, "Sales call has already been scored")

        logger.info("Scores committed for sales call %s: overall=%d", call_id, scoring.scores.overall)
        return ScoreOutcome(
            sales_call=updated,
            customer=await self.repository.get_customer(updated.customer_id),
            scoring=scoring,
        )

    async def get_analysis(self, call_id: int) -> CallAnalysisView:
        """Read-only projection of a call with its customer and transcript stats."""
        call = await self._load(call_id)
        customer = await self.repository.get_customer(call.customer_id)
        stats = (
            transcription_stats(call.transcript, call.transcript_duration)
            if call.has_transcript
            else None
        )
        return CallAnalysisView(sales_call=call, customer=customer, transcription_stats=stats)

    async def _load(self, call_id: int) -> SalesCall:
        call = await self.repository.get_call(call_id)
        if call is None:
            raise NotFoundError("Sales call not found", {"salesCallId": call_id})
        return call

    async def _transcribe(self, call: SalesCall) -> TranscriptionResult:
        path = call.audio_file_path
        if self.gateway is None:
            raise GatewayError(
                "No transcription provider configured", {"salesCallId": call.id}
            )
        try:
            await self.gateway.validate(path)
            return await asyncio.wait_for(
                self.gateway.transcribe(path), timeout=self.transcription_timeout
            )
        except asyncio.TimeoutError as e:
            logger.error("Transcription of sales call %s timed out", call.id)
            raise TranscriptionTimeoutError(
                f"Transcription timed out after {self.transcription_timeout:g}s",
                {"salesCallId": call.id, "audioFilePath": path},
            ) from e
        except GatewayError:
            logger.exception("Transcription failed for sales call %s", call.id)
            raise
        except OSError as e:
            logger.exception("Could not read audio for sales call %s", call.id)
            raise GatewayError(
                f"Could not read audio file: {e}",
                {"salesCallId": call.id, "audioFilePath": path},
            ) from e

    def _score(self, text: str, duration: float, word_count: int) -> ScoringResult:
        try:
            return self.engine.score(text, duration, word_count)
        except ScoringError:
            logger.exception("Scoring failed")
            raise

    async def _lost_race(
        self, call_id: int, already_error: type[LeadScoreError], message: str
    ) -> None:
        """Raise the right error after a conditional commit matched no row."""
        current = await self.repository.get_call(call_id)
        if current is None:
            raise NotFoundError("Sales call not found", {"salesCallId": call_id})
        logger.warning("Lost commit race for sales call %s", call_id)
        if current.has_scores:
            raise already_error(message, state_context(current))
        raise PersistenceError(
            "Sales call changed during analysis; precondition no longer holds",
            state_context(current),
        )
