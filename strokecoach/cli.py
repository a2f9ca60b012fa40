# strokecoach/cli.py
import json
from datetime import date

from strokecoach.errors import AttemptStateError, PreconditionError
from strokecoach.logging_setup import setup_logging
from strokecoach.models import SubmissionOutcome
from strokecoach.plan_manager import GOAL_TIMELINES, GOAL_TYPES
from strokecoach.ui_actions import (
    action_ask,
    action_analytics,
    action_capture,
    action_categories,
    action_category_characters,
    action_character_info,
    action_clear_canvas,
    action_create_user,
    action_list_goals,
    action_list_models,
    action_list_users,
    action_new_attempt,
    action_random_character,
    action_refresh_models,
    action_search,
    action_report_json,
    action_select_user,
    action_set_goal,
    action_settings,
    action_share_text,
    action_study_plan,
    action_submit,
    action_update_settings,
    build_services,
)

HELP = """Commands:
  /whoami                 current user, language, level, character
  /settings               show AI settings
  /set <field> <value>    change an AI setting (e.g. /set video_assisted true)
  /lang <language>        switch practice language
  /models [capability]    list text / vision / audio models
  /refresh                reload the model catalog
  /new [character|random] start a new attempt
  /categories             list character categories for the current language
  /category <id>          list the characters in one category
  /clear                  clear the canvas
  /submit <png path>      submit a drawing
  /ask <question>         ask about the current character
  /search <text>          find characters in the current language
  /stats                  practice analytics
  /report                 full JSON report
  /share                  shareable summary
  /goal                   set a learning goal (asks step by step)
  /goals                  list your goals
  /plan [request]         study plan for your latest goal
  exit                    quit"""


def print_outcome(outcome: SubmissionOutcome):
    print(f"\nScore: {outcome.record.score}%" + ("" if outcome.measured else " (basic)"))
    for line in outcome.narrative:
        print(f"  {line}")


def _choose(label, options):
    """Numbered pick from `options`; blank input means none."""
    print(f"{label}:")
    for i, opt in enumerate(options, 1):
        print(f"  {i}. {opt}")
    raw = input("Choice (blank to skip): ").strip()
    if raw.isdigit() and 1 <= int(raw) <= len(options):
        return options[int(raw) - 1]
    return ""


def ask_goal(user_id, ctx):
    goal_type = _choose("Goal type", GOAL_TYPES)
    timeline = _choose("Timeline", GOAL_TIMELINES)
    raw_date = input("Target date YYYY-MM-DD (blank to skip): ").strip()
    target = date.fromisoformat(raw_date) if raw_date else None
    custom = input("Your own goals, separated by ; (blank to skip): ").split(";")
    return action_set_goal(
        user_id, ctx, goal_type=goal_type, timeline=timeline, target_date=target, custom_goals=custom
    )


def _parse_value(raw: str):
    low = raw.lower()
    if low in ("true", "on", "yes"):
        return True
    if low in ("false", "off", "no"):
        return False
    if raw.isdigit():
        return int(raw)
    return raw


def main():
    setup_logging()
    services = build_services()

    users = action_list_users(limit=1)
    if users:
        user = action_select_user(users[0].user_id)
    else:
        name = input("Your name: ").strip() or "Learner"
        user = action_create_user(name)
    ctx = action_settings(user.user_id)

    print("Welcome to StrokeCoach")
    print(f"Language: {ctx.language}  Level: {ctx.level}")
    if not services.credentials.has_credential():
        print("No OPENROUTER_API_KEY set: AI feedback is off, basic scoring is used.")
    print("Type /help for commands.")

    attempt = action_new_attempt(services, ctx)
    print(f"Practice character: {attempt.character}")

    while True:
        msg = input("\nYou: ").strip()
        if msg.lower() in ["exit", "quit"]:
            break
        if not msg:
            continue

        cmd, _, arg = msg.partition(" ")
        cmd = cmd.lower()
        arg = arg.strip()

        if cmd == "/help":
            print(HELP)
            continue

        if cmd == "/whoami":
            current = services.orchestrator.current_attempt
            print("\n--- WHOAMI ---")
            print(f"user_id: {user.user_id}")
            print(f"name: {user.name}")
            print(f"language: {ctx.language}")
            print(f"level: {ctx.level}")
            print(f"character: {current.character if current else '(none)'}")
            print(f"state: {services.orchestrator.state.value}")
            continue

        if cmd == "/settings":
            print(json.dumps(ctx.snapshot().model_dump(), indent=2))
            continue

        if cmd == "/set":
            field, _, value = arg.partition(" ")
            if not field or not value:
                print("Usage: /set <field> <value>")
                continue
            try:
                action_update_settings(ctx, **{field: _parse_value(value.strip())})
                print(f"✅ {field} updated")
            except ValueError as e:
                print(f"❌ {e}")
            continue

        if cmd == "/lang":
            if not arg:
                print("Usage: /lang <language>")
                continue
            ctx.set_language(arg.lower())
            action_clear_canvas(services)
            try:
                attempt = action_new_attempt(services, ctx)
                print(f"Practice character: {attempt.character}")
            except ValueError as e:
                print(f"❌ {e}")
            continue

        if cmd == "/models":
            capability = arg or "text"
            try:
                models = action_list_models(services, capability)
            except ValueError as e:
                print(f"❌ {e}")
                continue
            for m in models:
                print(f"- {m.id} (${m.combined_cost:.2f}/M tokens)")
            continue

        if cmd == "/refresh":
            res = action_refresh_models(services)
            if res.ok:
                print(f"✅ Loaded {res.model_count} models")
            else:
                print(f"❌ {res.error_kind}: {res.error_reason}")
            continue

        if cmd == "/new":
            character = arg or None
            if arg.lower() == "random":
                picked = action_random_character(ctx)
                character = picked.character if picked else None
            action_clear_canvas(services)
            try:
                attempt = action_new_attempt(services, ctx, character)
            except ValueError as e:
                print(f"❌ {e}")
                continue
            info = action_character_info(ctx.language, attempt.character)
            print(f"Practice character: {attempt.character}")
            if info:
                print(f"  {info.definition}")
            continue

        if cmd == "/categories":
            for cat in action_categories(ctx.language):
                print(f"- {cat.id}: {cat.name} ({len(cat.characters)})")
            continue

        if cmd == "/category":
            chars = action_category_characters(ctx.language, arg)
            if not chars:
                print("(none) - see /categories")
            for info in chars:
                print(f"- {info.character} [{info.difficulty}]: {info.definition}")
            continue

        if cmd == "/clear":
            if action_clear_canvas(services):
                print("Canvas cleared, attempt discarded.")
            attempt = action_new_attempt(services, ctx, attempt.character)
            continue

        if cmd == "/submit":
            if not arg:
                print("Usage: /submit <png path>")
                continue
            try:
                with open(arg, "rb") as f:
                    action_capture(services, f.read())
                outcome = action_submit(services, user.user_id, ctx)
            except OSError as e:
                print(f"❌ Could not read drawing: {e}")
                continue
            except (PreconditionError, AttemptStateError) as e:
                print(f"❌ {e}")
                continue
            if outcome is not None:
                print_outcome(outcome)
            attempt = action_new_attempt(services, ctx, attempt.character)
            continue

        if cmd == "/ask":
            if not arg:
                print("Usage: /ask <question>")
                continue
            ex = action_ask(services, ctx, arg)
            if ex is not None:
                print(f"\nTutor: {ex.answer}")
            continue

        if cmd == "/search":
            hits = action_search(ctx.language, arg)
            if not hits:
                print("(none)")
            for info in hits:
                print(f"- {info.character}: {info.definition}")
            continue

        if cmd == "/stats":
            s = action_analytics(user.user_id)
            print("\n--- STATS ---")
            print(f"sessions: {s.total_sessions}")
            print(f"minutes: {s.total_duration_seconds // 60}")
            print(f"average score: {s.average_score:.1f}%")
            print(f"streak: {s.streak_days} days")
            for b in s.by_day_of_week:
                print(f"  {b.day}: score={b.score} time={b.time}s")
            for lang, pct in s.by_language.items():
                print(f"  {lang}: {pct}%")
            continue

        if cmd == "/report":
            print(action_report_json(user.user_id))
            continue

        if cmd == "/share":
            print(action_share_text(user.user_id))
            continue

        if cmd == "/goal":
            try:
                goal = ask_goal(user.user_id, ctx)
            except ValueError as e:
                print(f"❌ {e}")
                continue
            print(f"✅ Goal saved ({goal.goal_id})")
            continue

        if cmd == "/goals":
            goals = action_list_goals(user.user_id)
            if not goals:
                print("(none) - use /goal")
            for g in goals:
                parts = [g.goal_type, g.timeline, g.target_date.isoformat() if g.target_date else ""]
                parts += g.custom_goals
                print(f"- {g.goal_id}: " + " | ".join(p for p in parts if p))
            continue

        if cmd == "/plan":
            plan = action_study_plan(services, user.user_id, ctx, request=arg)
            print("\n--- STUDY PLAN ---")
            print(plan.text)
            continue

        # anything else is a question about the current character
        ex = action_ask(services, ctx, msg)
        if ex is not None:
            print(f"\nTutor: {ex.answer}")


if __name__ == "__main__":
    main()
