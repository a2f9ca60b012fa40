# strokecoach/controller.py
import asyncio
import logging
import random
import uuid
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import strokecoach.storage.sqlite_store as memory
from strokecoach.agents.gateway import CapabilityGateway
from strokecoach.config import settings
from strokecoach.credentials import CredentialStore
from strokecoach.errors import AttemptStateError, PreconditionError
from strokecoach.models import (
    AISettingsSnapshot,
    EvaluationResult,
    PracticeAttempt,
    QAExchange,
    SessionRecord,
    SubmissionOutcome,
    utc_now,
)
from strokecoach.reference.characters import get_character_info
from strokecoach.scoring import finalize_session

logger = logging.getLogger(__name__)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


class AttemptState(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    SUBMITTED = "submitted"
    EVALUATING = "evaluating"
    FINALIZED = "finalized"


TRANSITIONS = {
    AttemptState.IDLE: {AttemptState.DRAWING},
    AttemptState.DRAWING: {AttemptState.SUBMITTED, AttemptState.IDLE},
    AttemptState.SUBMITTED: {AttemptState.EVALUATING},
    AttemptState.EVALUATING: {AttemptState.FINALIZED},
    AttemptState.FINALIZED: set(),
}


class AttemptStateMachine:
    """Lifecycle of one attempt. Never reused: a new attempt gets a new machine."""

    def __init__(self, attempt: PracticeAttempt):
        self.attempt = attempt
        self.state = AttemptState.IDLE

    def transition(self, target: AttemptState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise AttemptStateError(
                f"Attempt {self.attempt.attempt_id}: cannot go {self.state.value} -> {target.value}"
            )
        logger.debug("Attempt %s: %s -> %s", self.attempt.attempt_id, self.state.value, target.value)
        self.state = target


class PracticeOrchestrator:
    """
    Drives drawing -> evaluation -> SessionRecord for the single active canvas.

    AI failures never escape: they become narrative lines and the pseudo-score.
    The only fatal case is submitting without a user (PreconditionError).
    """

    def __init__(
        self,
        gateway: CapabilityGateway,
        credentials: CredentialStore,
        *,
        store=memory,
        clock: Callable = utc_now,
        sleep: Callable = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self._gateway = gateway
        self._credentials = credentials
        self._store = store
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._current: Optional[AttemptStateMachine] = None
        self._listeners: List[Callable[[SessionRecord], None]] = []
        self._qa_log: Dict[Tuple[str, str], List[QAExchange]] = {}

    # -----------------------
    # Attempt lifecycle
    # -----------------------
    @property
    def state(self) -> AttemptState:
        return self._current.state if self._current else AttemptState.IDLE

    @property
    def current_attempt(self) -> Optional[PracticeAttempt]:
        return self._current.attempt if self._current else None

    def subscribe(self, listener: Callable[[SessionRecord], None]) -> None:
        self._listeners.append(listener)

    def begin_attempt(self, character: str, language: str, level: str) -> PracticeAttempt:
        if self._current is not None and self._current.state in (AttemptState.SUBMITTED, AttemptState.EVALUATING):
            logger.info("Attempt %s superseded while evaluating", self._current.attempt.attempt_id)

        machine = AttemptStateMachine(
            PracticeAttempt(
                attempt_id=new_id("a"),
                character=character,
                language=language,
                level=level,
                started_at=self._clock(),
            )
        )
        machine.transition(AttemptState.DRAWING)
        self._current = machine
        return machine.attempt

    def capture(self, drawing: bytes) -> None:
        machine = self._require(AttemptState.DRAWING)
        machine.attempt.drawing_capture = drawing

    def clear_canvas(self) -> bool:
        """Abandon the current attempt. Returns True if an unfinished attempt was discarded."""
        machine = self._current
        if machine is None:
            return False

        self._current = None
        if machine.state == AttemptState.DRAWING:
            machine.transition(AttemptState.IDLE)
            logger.info("Attempt %s abandoned", machine.attempt.attempt_id)
            return True
        if machine.state in (AttemptState.SUBMITTED, AttemptState.EVALUATING):
            # the in-flight call completes, its result is dropped by the stale guard
            logger.info("Attempt %s abandoned during evaluation", machine.attempt.attempt_id)
            return True
        return False

    def _require(self, state: AttemptState) -> AttemptStateMachine:
        if self._current is None:
            raise AttemptStateError("No active attempt: start drawing first")
        if self._current.state != state:
            raise AttemptStateError(
                f"Attempt {self._current.attempt.attempt_id} is {self._current.state.value}, expected {state.value}"
            )
        return self._current

    # -----------------------
    # Submission
    # -----------------------
    async def submit(
        self,
        user_id: Optional[str],
        snapshot: AISettingsSnapshot,
        *,
        follow_up_question: Optional[str] = None,
    ) -> Optional[SubmissionOutcome]:
        """
        Evaluate and finalize the current attempt.
        Returns None when the attempt was abandoned or superseded while evaluating.
        """
        if not user_id:
            raise PreconditionError("Please log in to save your practice session")

        machine = self._require(AttemptState.DRAWING)
        attempt = machine.attempt
        machine.transition(AttemptState.SUBMITTED)

        credential_present = self._credentials.has_credential()
        machine.transition(AttemptState.EVALUATING)

        results = await self._evaluate(attempt, snapshot, credential_present, follow_up_question)

        if snapshot.feedback_delay_ms:
            await self._sleep(snapshot.feedback_delay_ms / 1000)

        if machine is not self._current:
            logger.info("Discarding stale evaluation for attempt %s", attempt.attempt_id)
            return None

        outcome = finalize_session(
            attempt,
            snapshot,
            results,
            user_id=user_id,
            credential_present=credential_present,
            now=self._clock(),
        )
        self._store.append_session(outcome.record)
        machine.transition(AttemptState.FINALIZED)
        self._emit(outcome.record)
        return outcome

    async def _evaluate(
        self,
        attempt: PracticeAttempt,
        snapshot: AISettingsSnapshot,
        credential_present: bool,
        follow_up_question: Optional[str],
    ) -> List[EvaluationResult]:
        calls = []
        if credential_present:
            if snapshot.video_assisted:
                calls.append(
                    self._gateway.analyze_handwriting(
                        character=attempt.character,
                        language=attempt.language,
                        level=attempt.level,
                        persona=snapshot.persona,
                        model=snapshot.vision_model,
                        image=attempt.drawing_capture,
                    )
                )
            else:
                calls.append(
                    self._gateway.generate_text_feedback(
                        character=attempt.character,
                        language=attempt.language,
                        level=attempt.level,
                        persona=snapshot.persona,
                        model=snapshot.model_type,
                    )
                )

        if follow_up_question:
            calls.append(
                self.ask_question(
                    follow_up_question,
                    character=attempt.character,
                    language=attempt.language,
                    level=attempt.level,
                    snapshot=snapshot,
                )
            )

        if not calls:
            return []
        gathered = await asyncio.gather(*calls)
        return [r for r in gathered if isinstance(r, EvaluationResult)]

    def _emit(self, record: SessionRecord) -> None:
        for listener in self._listeners:
            try:
                listener(record)
            except Exception:
                logger.exception("Session listener failed for record %s", record.id)

    # -----------------------
    # Q&A (independent of the attempt)
    # -----------------------
    async def ask_question(
        self,
        question: str,
        *,
        character: str,
        language: str,
        level: str,
        snapshot: AISettingsSnapshot,
    ) -> Optional[QAExchange]:
        question = (question or "").strip()
        if not question:
            return None

        if not self._credentials.has_credential():
            answer = self._canned_answer(character, language)
            succeeded = False
        else:
            result = await self._gateway.answer_question(
                question, character=character, language=language, level=level, model=snapshot.model_type
            )
            succeeded = result.succeeded
            if result.succeeded:
                answer = result.narrative
            else:
                answer = (
                    "Sorry, I couldn't process your question. Please check your AI settings. "
                    f"({result.error_kind}: {result.error_reason})"
                )

        exchange = QAExchange(
            question=question,
            answer=answer,
            succeeded=succeeded,
            character=character,
            language=language,
            asked_at=self._clock(),
        )
        log = self._qa_log.setdefault((language, character), [])
        log.append(exchange)
        del log[:-settings.QA_LOG_LIMIT]
        return exchange

    def _canned_answer(self, character: str, language: str) -> str:
        info = get_character_info(language, character)
        responses = [
            f'For "{character}": {info.usage}' if info else f'For "{character}", try breaking it down into smaller strokes.',
            f"Example usage: {info.examples[0]}" if info and info.examples
            else "Remember to maintain consistent pressure throughout the stroke.",
            f"Cultural note: {info.cultural_notes or 'Practice the basic shape first, then add details.'}" if info
            else "Practice the basic shape first, then add details.",
            "Consider the cultural context and traditional writing methods.",
        ]
        return self._rng.choice(responses)

    def qa_log(self, character: str, language: str) -> List[QAExchange]:
        return list(self._qa_log.get((language, character), []))

    def narrative_log(self, character: str, language: str) -> List[str]:
        lines: List[str] = []
        for ex in self.qa_log(character, language):
            lines.append(f"Q: {ex.question}")
            lines.append(f"A: {ex.answer}")
        return lines
