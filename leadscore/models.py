"""Data models for the application."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys for the HTTP surface."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CallState(str, Enum):
    """Pipeline state of a sales call. Transitions only move forward."""

    PENDING = "pending"
    TRANSCRIBED = "transcribed"
    SCORED = "scored"


class Customer(CamelModel):
    """Person on the call. Never mutated by the analysis pipeline."""

    id: int
    name: str
    phone: str
    email: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)


class SalesCall(CamelModel):
    """Persisted unit tracking one audio asset through transcription and scoring."""

    id: int
    customer_id: int
    audio_file_path: str
    transcript: Optional[str] = None
    transcript_language: Optional[str] = None
    transcript_duration: Optional[float] = None
    transcript_word_count: Optional[int] = None
    urgency_score: Optional[int] = Field(default=None, ge=0, le=100)
    budget_score: Optional[int] = Field(default=None, ge=0, le=100)
    interest_score: Optional[int] = Field(default=None, ge=0, le=100)
    engagement_score: Optional[int] = Field(default=None, ge=0, le=100)
    overall_score: Optional[int] = Field(default=None, ge=0, le=100)
    analysis_notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def has_transcript(self) -> bool:
        return self.transcript is not None

    @property
    def has_scores(self) -> bool:
        return self.overall_score is not None

    @property
    def state(self) -> CallState:
        if self.has_scores:
            return CallState.SCORED
        if self.has_transcript:
            return CallState.TRANSCRIBED
        return CallState.PENDING

    @computed_field(alias="analysisStatus")
    @property
    def analysis_status(self) -> str:
        return "transcribed" if self.has_transcript else "pending"

    @computed_field(alias="scoringStatus")
    @property
    def scoring_status(self) -> str:
        return "completed" if self.has_scores else "pending"


class CategoryScores(CamelModel):
    """Category scores plus their weighted combination (0-100 each)."""

    urgency: int = Field(ge=0, le=100)
    budget: int = Field(ge=0, le=100)
    interest: int = Field(ge=0, le=100)
    engagement: int = Field(ge=0, le=100)
    overall: int = Field(ge=0, le=100)


class KeyPhrases(CamelModel):
    """Matched phrases per category, in order of first appearance."""

    urgency: list[str] = Field(default_factory=list)
    budget: list[str] = Field(default_factory=list)
    interest: list[str] = Field(default_factory=list)
    engagement: list[str] = Field(default_factory=list)


class ScoringAnalysis(CamelModel):
    """Explanation attached to a set of scores."""

    key_phrases: KeyPhrases
    objections: list[str] = Field(default_factory=list)
    notes: str
    confidence: int = Field(ge=0, le=100)


class ScoringMetadata(CamelModel):
    """Call-length inputs the scores were computed from."""

    duration: float
    word_count: int
    words_per_minute: int


class ScoringResult(CamelModel):
    """Complete output of the scoring engine for one transcript."""

    scores: CategoryScores
    analysis: ScoringAnalysis
    metadata: ScoringMetadata
    lexicon_version: str


class TranscriptionResult(CamelModel):
    """What the transcription provider returned for one audio asset."""

    text: str
    language: Optional[str] = None
    duration: float = 0.0
    word_count: int = 0


class TranscriptionStats(CamelModel):
    """Word/character statistics derived from transcript text."""

    word_count: int
    character_count: int
    duration: float
    words_per_minute: int
    speaking_rate: str


class ScoreFields(BaseModel):
    """Columns written by a scoring commit."""

    urgency_score: int
    budget_score: int
    interest_score: int
    engagement_score: int
    overall_score: int
    analysis_notes: str

    @classmethod
    def from_result(cls, result: ScoringResult) -> "ScoreFields":
        return cls(
            urgency_score=result.scores.urgency,
            budget_score=result.scores.budget,
            interest_score=result.scores.interest,
            engagement_score=result.scores.engagement,
            overall_score=result.scores.overall,
            analysis_notes=result.analysis.notes,
        )


class CallStatus(str, Enum):
    """Listing filter. The three values partition all calls."""

    PENDING = "pending"
    TRANSCRIBED = "transcribed"
    SCORED = "scored"


class CallFilters(BaseModel):
    """Filters accepted by the call listing."""

    status: Optional[CallStatus] = None
    customer_id: Optional[int] = None


class StatusSummary(CamelModel):
    """Counts per pipeline state across a filtered listing."""

    total: int = 0
    pending: int = 0
    transcribed: int = 0
    scored: int = 0


class CallPage(CamelModel):
    """One page of a call listing."""

    items: list[SalesCall]
    total: int
    page: int
    limit: int
    total_pages: int
    summary: StatusSummary
    customers: dict[int, Customer] = Field(default_factory=dict)


class CallAnalysisView(CamelModel):
    """Read-only projection of a call with its customer."""

    sales_call: SalesCall
    customer: Optional[Customer] = None
    transcription_stats: Optional[TranscriptionStats] = None


class FullAnalysisOutcome(CamelModel):
    """Result of running transcription and scoring for a call."""

    sales_call: SalesCall
    customer: Optional[Customer] = None
    transcription: TranscriptionResult
    stats: TranscriptionStats
    scoring: ScoringResult


class ScoreOutcome(CamelModel):
    """Result of scoring an already transcribed call."""

    sales_call: SalesCall
    customer: Optional[Customer] = None
    scoring: ScoringResult
