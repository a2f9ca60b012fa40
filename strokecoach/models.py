from datetime import date, datetime, timezone
from typing import Optional, Literal, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from strokecoach.config import settings
from strokecoach.errors import ErrorKind

Capability = Literal["text", "vision", "qa", "plan"]
ModelCapability = Literal["text", "vision", "audio"]
Persona = Literal["encouraging", "strict", "neutral"]
Level = Literal["beginner", "intermediate", "advanced"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class User(BaseModel):
    user_id: str
    name: Optional[str] = None
    preferred_language: str = "english"
    level: Level = "beginner"
    created_at: datetime


class PracticeAttempt(BaseModel):
    attempt_id: str
    character: str
    language: str
    level: str
    drawing_capture: Optional[bytes] = None
    started_at: datetime


class TokenCost(BaseModel):
    model_config = ConfigDict(frozen=True)

    input: float = 0.0
    output: float = 0.0


class ModelDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    description: str = "Advanced AI model"
    capability: ModelCapability
    cost_per_million_tokens: TokenCost
    context_length: Optional[int] = None

    @property
    def combined_cost(self) -> float:
        return self.cost_per_million_tokens.input + self.cost_per_million_tokens.output


class EvaluationResult(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    capability: Capability
    succeeded: bool
    score: Optional[int] = Field(default=None, ge=0, le=100)
    model_guess: Optional[str] = None
    verdict: Optional[str] = None
    narrative: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error_reason: Optional[str] = None

    @classmethod
    def ok(cls, capability: Capability, **fields) -> "EvaluationResult":
        return cls(capability=capability, succeeded=True, **fields)

    @classmethod
    def failure(cls, capability: Capability, error_kind: ErrorKind, reason: str) -> "EvaluationResult":
        return cls(capability=capability, succeeded=False, error_kind=error_kind, error_reason=reason)


class SessionRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    language: str
    character: str
    level: str
    score: int = Field(ge=0, le=100)
    timestamp_created: datetime
    duration_seconds: int = Field(ge=0)
    attempts_count: int = Field(default=1, ge=1)

    @field_validator("timestamp_created")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class AISettingsSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_type: str = "anthropic/claude-3.5-sonnet"
    vision_model: str = "openai/gpt-4-vision-preview"
    audio_model: str = "openai/whisper-1"
    persona: Persona = "encouraging"
    audio_assisted: bool = False
    video_assisted: bool = False  # vision-assisted scoring
    real_time_correction: bool = True
    feedback_delay_ms: int = Field(default=settings.DEFAULT_FEEDBACK_DELAY_MS, ge=0)


class QAExchange(BaseModel):
    question: str
    answer: str
    succeeded: bool
    character: str
    language: str
    asked_at: datetime


class SubmissionOutcome(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    record: SessionRecord
    narrative: List[str]
    results: List[EvaluationResult] = Field(default_factory=list)
    model_guess: Optional[str] = None
    verdict: Optional[str] = None
    measured: bool = False


class LearningGoal(BaseModel):
    goal_id: str
    user_id: str
    goal_type: str = ""
    timeline: str = ""
    target_date: Optional[date] = None
    custom_goals: List[str] = Field(default_factory=list)
    language: str = "english"
    created_at: datetime
    plan: Optional[str] = None  # last generated study plan


class StudyPlan(BaseModel):
    goal_id: Optional[str] = None
    request: str = ""
    lines: List[str]
    succeeded: bool
    error_kind: Optional[ErrorKind] = None
    error_reason: Optional[str] = None

    @property
    def text(self) -> str:
        return "\n".join(self.lines)
