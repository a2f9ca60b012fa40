# strokecoach/ui_actions.py
import asyncio
from datetime import date
from typing import Iterable, List, Optional

import strokecoach.storage.sqlite_store as memory
from strokecoach.agents.gateway import CapabilityGateway
from strokecoach.analytics.aggregator import AnalyticsSummary, build_report, share_text, summarize
from strokecoach.catalog.model_catalog import ModelCatalog, RefreshResult
from strokecoach.controller import PracticeOrchestrator, new_id
from strokecoach.credentials import CredentialStore
from strokecoach.models import (
    LearningGoal,
    ModelDescriptor,
    PracticeAttempt,
    QAExchange,
    SessionRecord,
    StudyPlan,
    SubmissionOutcome,
    User,
    utc_now,
)
from strokecoach.reference.characters import (
    CharacterCategory,
    CharacterInfo,
    first_character,
    get_character_info,
    get_characters_by_category,
    get_characters_by_language,
    get_random_character,
    get_related_characters,
    search_characters,
)
from strokecoach.plan_manager import generate_plan, new_goal
from strokecoach.settings_context import SettingsContext


class Services:
    """The long-lived objects one UI process shares."""

    def __init__(self, credentials: Optional[CredentialStore] = None, *, store=memory):
        self.credentials = credentials or CredentialStore.from_env()
        self.store = store
        self.catalog = ModelCatalog(self.credentials)
        self.gateway = CapabilityGateway(self.credentials)
        self.orchestrator = PracticeOrchestrator(self.gateway, self.credentials, store=store)


def build_services(api_key: Optional[str] = None) -> Services:
    credentials = CredentialStore(api_key) if api_key else CredentialStore.from_env()
    return Services(credentials)


# -----------------------
# Users
# -----------------------
def action_list_users(limit: int = 50) -> List[User]:
    return memory.list_users(limit=limit)

def action_select_user(user_id: str) -> User:
    return memory.get_user(user_id)

def action_create_user(name: str, preferred_language: str = "english", level: str = "beginner") -> User:
    user = User(
        user_id=new_id("u"),
        name=name,
        preferred_language=preferred_language,
        level=level,
        created_at=utc_now(),
    )
    memory.save_user(user)
    return user


# -----------------------
# Settings / credentials / models
# -----------------------
def action_settings(user_id: Optional[str]) -> SettingsContext:
    return SettingsContext(user_id)

def action_update_settings(ctx: SettingsContext, **changes):
    return ctx.update_ai_settings(**changes)

def action_set_api_key(services: Services, api_key: str) -> bool:
    return services.credentials.set(api_key)

def action_clear_api_key(services: Services) -> None:
    services.credentials.clear()

def action_list_models(services: Services, capability: str) -> List[ModelDescriptor]:
    return services.catalog.list(capability)

def action_refresh_models(services: Services) -> RefreshResult:
    return asyncio.run(services.catalog.refresh())

def action_test_connection(services: Services) -> dict:
    return asyncio.run(services.catalog.test_connection())


# -----------------------
# Practice
# -----------------------
def action_new_attempt(services: Services, ctx: SettingsContext, character: Optional[str] = None) -> PracticeAttempt:
    character = character or first_character(ctx.language)
    if character is None:
        raise ValueError(f"No characters for language: {ctx.language}")
    return services.orchestrator.begin_attempt(character, ctx.language, ctx.level)

def action_capture(services: Services, png_bytes: bytes) -> None:
    services.orchestrator.capture(png_bytes)

def action_clear_canvas(services: Services) -> bool:
    return services.orchestrator.clear_canvas()

def action_submit(
    services: Services,
    user_id: Optional[str],
    ctx: SettingsContext,
    question: Optional[str] = None,
) -> Optional[SubmissionOutcome]:
    return asyncio.run(
        services.orchestrator.submit(user_id, ctx.snapshot(), follow_up_question=question)
    )

def action_ask(services: Services, ctx: SettingsContext, question: str, character: Optional[str] = None) -> Optional[QAExchange]:
    attempt = services.orchestrator.current_attempt
    character = character or (attempt.character if attempt else first_character(ctx.language))
    return asyncio.run(
        services.orchestrator.ask_question(
            question,
            character=character,
            language=ctx.language,
            level=ctx.level,
            snapshot=ctx.snapshot(),
        )
    )

def action_character_info(language: str, character: str) -> Optional[CharacterInfo]:
    return get_character_info(language, character)

def action_related(language: str, character: str) -> List[CharacterInfo]:
    return get_related_characters(language, character)

def action_search(language: str, query: str) -> List[CharacterInfo]:
    return search_characters(language, query)

def action_categories(language: str) -> List[CharacterCategory]:
    return get_characters_by_language(language)

def action_category_characters(language: str, category_id: str) -> List[CharacterInfo]:
    return get_characters_by_category(language, category_id)

def action_random_character(ctx: SettingsContext, rng=None) -> Optional[CharacterInfo]:
    """A random character at the learner's level, or from the whole language if that level has none."""
    return (
        get_random_character(ctx.language, ctx.level, rng=rng)
        or get_random_character(ctx.language, rng=rng)
    )


# -----------------------
# History / analytics
# -----------------------
def action_history(user_id: str, limit: Optional[int] = None) -> List[SessionRecord]:
    return memory.list_sessions(user_id, limit=limit)

def action_analytics(user_id: str, tz=None) -> AnalyticsSummary:
    return summarize(memory.list_sessions(user_id), tz=tz)

def action_report_json(user_id: str) -> str:
    try:
        user = memory.get_user(user_id)
    except KeyError:
        user = None
    return build_report(user, memory.list_sessions(user_id)).model_dump_json(indent=2)

def action_share_text(user_id: str) -> str:
    return share_text(action_analytics(user_id))

def action_clear_user_data(user_id: str) -> int:
    return memory.clear_user_data(user_id)


# -----------------------
# Goals / study plan
# -----------------------
def action_set_goal(
    user_id: str,
    ctx: SettingsContext,
    *,
    goal_type: str = "",
    timeline: str = "",
    target_date: Optional[date] = None,
    custom_goals: Optional[Iterable[str]] = None,
) -> LearningGoal:
    goal = new_goal(
        user_id,
        goal_type=goal_type,
        timeline=timeline,
        target_date=target_date,
        custom_goals=custom_goals,
        language=ctx.language,
    )
    memory.save_goal(goal)
    return goal

def action_list_goals(user_id: str) -> List[LearningGoal]:
    return memory.list_goals(user_id)

def action_delete_goal(goal_id: str) -> bool:
    return memory.delete_goal(goal_id)

def action_study_plan(
    services: Services,
    user_id: str,
    ctx: SettingsContext,
    request: str = "",
    goal_id: Optional[str] = None,
) -> StudyPlan:
    """Plan for one goal (the latest when goal_id is None). Saved on the goal when there is one."""
    if goal_id is not None:
        goal = memory.get_goal(goal_id)
    else:
        goals = memory.list_goals(user_id)
        goal = goals[0] if goals else None

    plan = asyncio.run(
        generate_plan(
            services.gateway,
            goal,
            action_analytics(user_id),
            ctx.snapshot(),
            language=ctx.language,
            level=ctx.level,
            request=request,
        )
    )
    if goal is not None:
        memory.save_goal_plan(goal.goal_id, plan.text)
    return plan
