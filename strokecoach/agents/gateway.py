# strokecoach/agents/gateway.py
import logging
from typing import Any, Callable, Optional, Tuple

from strokecoach.agents.handwriting import call_handwriting_agent
from strokecoach.agents.provider import default_client_factory
from strokecoach.agents.qa import call_qa_agent
from strokecoach.agents.study_plan import call_study_plan_agent
from strokecoach.agents.text_feedback import call_text_feedback_agent
from strokecoach.credentials import CredentialStore
from strokecoach.errors import AuthError, StrokeCoachError
from strokecoach.models import Capability, EvaluationResult, Persona

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], Any]


class CapabilityGateway:
    """
    Uniform front for the provider capabilities.
    Every call returns an EvaluationResult; failures are values, never raised.
    """

    def __init__(self, credentials: CredentialStore, client_factory: ClientFactory = default_client_factory):
        self._credentials = credentials
        self._client_factory = client_factory
        self._cached: Optional[Tuple[str, Any]] = None

    def _client(self):
        key = self._credentials.get()
        if not key:
            raise AuthError("OpenRouter API key not configured")
        if self._cached is None or self._cached[0] != key:
            self._cached = (key, self._client_factory(key))
        return self._cached[1]

    async def _run(self, capability: Capability, call) -> EvaluationResult:
        try:
            client = self._client()
            return await call(client)
        except StrokeCoachError as e:
            logger.warning("%s capability failed (%s): %s", capability, e.kind, e.reason)
            return EvaluationResult.failure(capability, e.kind, e.reason)

    async def generate_text_feedback(
        self,
        *,
        character: str,
        language: str,
        level: str,
        persona: Persona,
        model: str,
    ) -> EvaluationResult:
        return await self._run(
            "text",
            lambda client: call_text_feedback_agent(
                client, character=character, language=language, level=level, persona=persona, model=model
            ),
        )

    async def analyze_handwriting(
        self,
        *,
        character: str,
        language: str,
        level: str,
        persona: Persona,
        model: str,
        image: Optional[bytes],
    ) -> EvaluationResult:
        return await self._run(
            "vision",
            lambda client: call_handwriting_agent(
                client,
                character=character,
                language=language,
                level=level,
                persona=persona,
                model=model,
                image=image,
            ),
        )

    async def answer_question(
        self,
        question: str,
        *,
        character: str,
        language: str,
        level: str,
        model: str,
    ) -> EvaluationResult:
        return await self._run(
            "qa",
            lambda client: call_qa_agent(
                client, question, character=character, language=language, level=level, model=model
            ),
        )

    async def generate_study_plan(
        self,
        request: str,
        *,
        goal_summary: str,
        language: str,
        level: str,
        progress: str,
        model: str,
    ) -> EvaluationResult:
        return await self._run(
            "plan",
            lambda client: call_study_plan_agent(
                client,
                request=request,
                goal_summary=goal_summary,
                language=language,
                level=level,
                progress=progress,
                model=model,
            ),
        )
