import streamlit as st

import pandas as pd

from strokecoach.errors import AttemptStateError, PreconditionError
from strokecoach.logging_setup import setup_logging
from strokecoach.plan_manager import GOAL_TIMELINES, GOAL_TYPES
from strokecoach.reference.characters import LANGUAGES
from strokecoach.settings_context import LEVELS
from strokecoach.ui_actions import (
    action_ask,
    action_analytics,
    action_capture,
    action_categories,
    action_category_characters,
    action_character_info,
    action_clear_canvas,
    action_clear_user_data,
    action_create_user,
    action_delete_goal,
    action_history,
    action_list_goals,
    action_list_models,
    action_list_users,
    action_new_attempt,
    action_random_character,
    action_refresh_models,
    action_related,
    action_report_json,
    action_set_api_key,
    action_set_goal,
    action_settings,
    action_share_text,
    action_study_plan,
    action_submit,
    action_test_connection,
    action_update_settings,
    build_services,
)

st.set_page_config(page_title="StrokeCoach", layout="wide")


# -------------------------
# Helpers
# -------------------------
@st.cache_resource
def get_services():
    setup_logging()
    return build_services()


def model_options(services, capability, current):
    ids = [m.id for m in action_list_models(services, capability)]
    if current not in ids:
        ids.insert(0, current)
    return ids


services = get_services()
st.session_state.setdefault("narrative", [])
st.session_state.setdefault("last_outcome", None)


# -------------------------
# FIRST-TIME SETUP SCREEN
# -------------------------
if "user_id" not in st.session_state:
    st.title("StrokeCoach")

    tab_existing, tab_new = st.tabs(["👤 Existing user", "✨ New user"])

    with tab_existing:
        try:
            users = action_list_users(limit=50)
        except Exception as e:
            users = []
            st.error(f"Could not load users: {e}")

        if not users:
            st.info("No users found yet. Create one in the 'New user' tab.")
        else:
            labels = [f"{u.name or u.user_id} • {u.preferred_language} • {u.level} • {u.user_id}" for u in users]
            picked = st.selectbox("Select user", labels, index=0)
            if st.button("Continue with this user"):
                st.session_state.user_id = picked.split(" • ")[-1].strip()
                st.rerun()

    with tab_new:
        with st.form("setup_form"):
            name = st.text_input("Your name", value="")
            lang = st.selectbox("Language to practice", list(LANGUAGES), index=0)
            level = st.selectbox("Level", list(LEVELS), index=0)
            submitted = st.form_submit_button("Start")

        if submitted:
            if not name.strip():
                st.error("Please enter your name.")
                st.stop()
            user = action_create_user(name.strip(), lang, level)
            ctx = action_settings(user.user_id)
            ctx.set_language(lang)
            ctx.set_level(level)
            st.session_state.user_id = user.user_id
            st.rerun()

    st.stop()


user_id = st.session_state.user_id
ctx = action_settings(user_id)


# -------------------------
# Sidebar (AI settings)
# -------------------------
with st.sidebar:
    st.markdown("## StrokeCoach")
    st.caption("User")
    st.code(user_id)
    if st.button("🔁 Switch user"):
        del st.session_state["user_id"]
        st.rerun()

    st.divider()
    st.markdown("### Practice")
    lang = st.selectbox("Language", list(LANGUAGES), index=list(LANGUAGES).index(ctx.language))
    if lang != ctx.language:
        ctx.set_language(lang)
    level = st.selectbox("Level", list(LEVELS), index=list(LEVELS).index(ctx.level))
    if level != ctx.level:
        ctx.set_level(level)

    st.divider()
    st.markdown("### AI settings")
    key = st.text_input("OpenRouter API key", type="password", value="")
    if st.button("Save key") and key.strip():
        action_set_api_key(services, key)
        res = action_refresh_models(services)
        if res.ok:
            st.toast(f"Loaded {res.model_count} models ✅")
        else:
            st.error(f"{res.error_kind}: {res.error_reason}")

    if st.button("Test connection"):
        res = action_test_connection(services)
        if res["success"]:
            st.success("Connection OK")
        else:
            st.error(res.get("error", "Connection failed"))

    snap = ctx.snapshot()
    text_model = st.selectbox("Text model", model_options(services, "text", snap.model_type))
    vision_model = st.selectbox("Vision model", model_options(services, "vision", snap.vision_model))
    persona = st.selectbox(
        "Tutor persona",
        ["encouraging", "strict", "neutral"],
        index=["encouraging", "strict", "neutral"].index(snap.persona),
    )
    video = st.checkbox("Vision-assisted scoring", value=snap.video_assisted)
    delay = st.number_input("Feedback delay (ms)", min_value=0, value=snap.feedback_delay_ms, step=250)
    if st.button("Save AI settings"):
        action_update_settings(
            ctx,
            model_type=text_model,
            vision_model=vision_model,
            persona=persona,
            video_assisted=video,
            feedback_delay_ms=int(delay),
        )
        st.toast("Settings saved ✅")


# -------------------------
# Main page
# -------------------------
tab_practice, tab_goals, tab_history, tab_stats = st.tabs(["✍️ Practice", "🎯 Goals", "📜 History", "📊 Analytics"])

with tab_practice:
    names = {cat.id: cat.name for cat in action_categories(ctx.language)}
    if st.button("🎲 Random character"):
        picked = action_random_character(ctx)
        if picked:
            st.session_state.practice_category = picked.category
            st.session_state.practice_character = picked.character
    if st.session_state.get("practice_category") not in names:
        st.session_state.pop("practice_category", None)
    cat_id = st.selectbox("Category", list(names), format_func=names.get, key="practice_category") if names else None

    chars = [c.character for c in action_category_characters(ctx.language, cat_id)] if cat_id else []
    if st.session_state.get("practice_character") not in chars:
        st.session_state.pop("practice_character", None)
    character = st.selectbox("Character", chars, key="practice_character") if chars else None
    info = action_character_info(ctx.language, character) if character else None
    if info:
        st.markdown(f"## {info.character}")
        st.write(info.definition if not info.pronunciation else f"{info.definition} • {info.pronunciation}")
        st.caption(info.usage)
        related = action_related(ctx.language, info.character)
        if related:
            st.caption("Related: " + " ".join(r.character for r in related))

    attempt = services.orchestrator.current_attempt
    if attempt is None or attempt.character != character or attempt.language != ctx.language:
        action_clear_canvas(services)
        if character:
            attempt = action_new_attempt(services, ctx, character)

    upload = st.file_uploader("Your drawing (PNG)", type=["png"])
    if upload is not None:
        try:
            action_capture(services, upload.getvalue())
            st.image(upload.getvalue(), width=240)
        except AttemptStateError as e:
            st.warning(str(e))

    question = st.text_input("Ask about this character (optional)", value="")

    col1, col2 = st.columns(2)
    if col1.button("Submit"):
        try:
            with st.spinner("Evaluating..."):
                outcome = action_submit(services, user_id, ctx, question.strip() or None)
            if outcome is not None:
                st.session_state.last_outcome = outcome
                st.session_state.narrative = outcome.narrative
            action_new_attempt(services, ctx, character)
        except (PreconditionError, AttemptStateError) as e:
            st.error(str(e))

    if col2.button("Clear canvas"):
        action_clear_canvas(services)
        st.session_state.narrative = []
        st.rerun()

    if st.session_state.last_outcome is not None:
        rec = st.session_state.last_outcome.record
        st.metric("Score", f"{rec.score}%")
    for line in st.session_state.narrative:
        st.write(line)

    st.divider()
    st.markdown("### Questions")
    q = st.chat_input("Ask a question...")
    if q and character:
        action_ask(services, ctx, q, character)
    if character:
        for line in services.orchestrator.narrative_log(character, ctx.language):
            st.write(line)

with tab_goals:
    st.markdown("### Set your learning goals")
    with st.form("goal_form"):
        goal_type = st.selectbox("Goal type", ["", *GOAL_TYPES], format_func=lambda g: g or "Select a goal...")
        timeline = st.selectbox("Timeline", ["", *GOAL_TIMELINES], format_func=lambda t: t or "Select timeline...")
        use_date = st.checkbox("Set a target date")
        target_date = st.date_input("Target date")
        custom = st.text_area("Custom goals (one per line)", value="")
        save_goal = st.form_submit_button("Save goal plan")

    if save_goal:
        try:
            action_set_goal(
                user_id,
                ctx,
                goal_type=goal_type,
                timeline=timeline,
                target_date=target_date if use_date else None,
                custom_goals=custom.splitlines(),
            )
            st.toast("Goal saved ✅")
        except ValueError as e:
            st.error(str(e))

    goals = action_list_goals(user_id)
    for g in goals:
        with st.expander(g.goal_type or "; ".join(g.custom_goals), expanded=False):
            if g.timeline:
                st.write(f"Timeline: {g.timeline}")
            if g.target_date:
                st.write(f"Target date: {g.target_date.isoformat()}")
            for c in g.custom_goals:
                st.write(f"• {c}")
            if g.plan:
                st.markdown(g.plan)
            if st.button("Remove", key=f"del_{g.goal_id}"):
                action_delete_goal(g.goal_id)
                st.rerun()

    st.divider()
    st.markdown("### AI-assisted goal plan")
    plan_request = st.text_input("Describe your goal or ask for a plan...", value="")
    if st.button("✨ AI Generate"):
        with st.spinner("Generating..."):
            plan = action_study_plan(services, user_id, ctx, request=plan_request)
        if not plan.succeeded:
            st.warning(f"{plan.error_kind}: {plan.error_reason}")
        st.markdown(plan.text)

with tab_history:
    records = action_history(user_id)
    if records:
        st.dataframe(pd.DataFrame([r.model_dump() for r in records]), use_container_width=True)
    else:
        st.info("No practice sessions yet.")
    if st.button("Clear my data"):
        n = action_clear_user_data(user_id)
        st.toast(f"Deleted {n} sessions")
        st.rerun()

with tab_stats:
    summary = action_analytics(user_id)
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Sessions", summary.total_sessions)
    col2.metric("Minutes", summary.total_duration_seconds // 60)
    col3.metric("Average score", f"{summary.average_score:.1f}%")
    col4.metric("Streak", f"{summary.streak_days} days")

    st.markdown("### By day of week")
    dfw = pd.DataFrame([b.model_dump() for b in summary.by_day_of_week]).set_index("day")
    st.bar_chart(dfw[["score"]])
    st.bar_chart(dfw[["time"]])

    st.markdown("### By language")
    if summary.by_language:
        st.bar_chart(pd.Series(summary.by_language, name="percent"))
    else:
        st.info("No data yet.")

    st.download_button(
        "Download report",
        data=action_report_json(user_id),
        file_name=f"strokecoach-report-{user_id}.json",
        mime="application/json",
    )
    st.text_area("Share", value=action_share_text(user_id), height=160)
