from collections.abc import Callable

import streamlit as st

from learnit.quiz.application.session_client import LiveSessionClient
from learnit.quiz.domain.errors import LearnItError, TransitionRejected
from learnit.quiz.domain.models import GameSession, GameStatus, Identity, QuestionType
from learnit.quiz.domain.ports import IStateProvider
from learnit.quiz.presentation.context import AppContext
from learnit.quiz.presentation.router import Screen, navigate
from learnit.quiz.presentation.views import components

REFRESH_EVERY_S = 1

# One live client per browser tab; it holds a store subscription and timers
LIVE_CLIENT_KEY = "live_client"


def release_live_client(state: IStateProvider, keep_session_id: str | None = None) -> None:
    """Closes the tab's live client unless it belongs to `keep_session_id`."""
    client = state.get(LIVE_CLIENT_KEY)
    if client is None or client.session_id == keep_session_id:
        return
    client.close()
    state.delete(LIVE_CLIENT_KEY)


def _get_client(ctx: AppContext, user: Identity, session_id: str) -> LiveSessionClient:
    client = ctx.state.get(LIVE_CLIENT_KEY)
    if client is not None and client.session_id == session_id and client.user_id == user.uid:
        return client

    release_live_client(ctx.state)
    client = LiveSessionClient(ctx.sessions, session_id, user.uid).open()
    ctx.state.set(LIVE_CLIENT_KEY, client)
    return client


def _leave(ctx: AppContext) -> None:
    release_live_client(ctx.state)
    navigate(Screen.DASHBOARD)


def _run(action_label: str, fn: Callable[[], None]) -> None:
    try:
        fn()
    except TransitionRejected as e:
        st.toast(f"{action_label}: {e.reason.name.replace('_', ' ').lower()}")
    except LearnItError as e:
        st.error(str(e))


def render_live_screen(ctx: AppContext, user: Identity, session_id: str) -> None:
    client = _get_client(ctx, user, session_id)

    if st.button("⬅️ Leave"):
        _leave(ctx)

    _render_live_fragment(ctx, client, user)


@st.fragment(run_every=REFRESH_EVERY_S)
def _render_live_fragment(ctx: AppContext, client: LiveSessionClient, user: Identity) -> None:
    _render_live(ctx, client, user)


def _render_live(ctx: AppContext, client: LiveSessionClient, user: Identity) -> None:
    if client.ended:
        st.toast("The host ended this game.")
        _leave(ctx)
        return

    if client.missing:
        st.error("Game not found.")
        return

    session = client.session
    if session is None:
        st.info("Connecting...")
        return

    st.title(f"🎮 {session.deck_title}")

    if not client.is_host and user.uid not in session.players:
        _render_join(client, user, session)
        return

    if session.status == GameStatus.LOBBY:
        _render_lobby(client, session)
    elif session.status == GameStatus.PLAYING:
        _render_playing(client, user, session)
    else:
        _render_finished(client, user, session)

    if client.is_host:
        st.divider()
        if st.button("⛔ End game"):
            _run("End", client.end)
            _leave(ctx)


def _render_join(client: LiveSessionClient, user: Identity, session: GameSession) -> None:
    if session.status == GameStatus.FINISHED:
        st.warning("This game is already over.")
        return
    with st.form("join_game"):
        name = st.text_input("Your name", value=user.display_name)
        if st.form_submit_button("Join", type="primary"):
            _run("Join", lambda: client.join(name))
            st.rerun()


def _render_lobby(client: LiveSessionClient, session: GameSession) -> None:
    st.markdown("Join code:")
    st.markdown(f'<div class="join-code">{session.id}</div>', unsafe_allow_html=True)

    st.subheader(f"Players ({len(session.players)})")
    for player in session.players.values():
        st.write(f"• {player.name}")

    if client.is_host:
        if st.button("🚀 Start", type="primary", disabled=not session.players):
            _run("Start", client.start)
    else:
        st.info("Waiting for the host to start...")


def _render_playing(client: LiveSessionClient, user: Identity, session: GameSession) -> None:
    question = client.current_question()
    if question is None:
        st.warning("Loading question...")
        return

    total = len(client.questions)
    idx = session.current_question_index
    st.progress((idx + 1) / total, text=f"Question {idx + 1} / {total}")
    components.render_question_text(question, idx + 1)

    if client.is_host:
        st.caption(f"{session.submission_count()} / {len(session.players)} answered")
        if session.show_answer:
            st.success(f"Answer: **{question.answer_text()}**")
            label = "Finish" if idx + 1 >= total else "Next ➡️"
            if st.button(label, type="primary"):
                _run("Advance", client.advance)
        elif st.button("👁️ Reveal answer", type="primary"):
            _run("Reveal", client.reveal)
    else:
        me = session.players[user.uid]
        if session.show_answer:
            st.info(f"Answer: **{question.answer_text()}**")
            if me.is_correct:
                st.success("Correct! +100")
            elif me.has_submitted:
                st.error("Incorrect")
            else:
                st.warning("Time's up")
        elif me.has_submitted:
            st.info(f"Submitted: {me.submitted_answer}. Waiting for others...")
        else:
            _render_answer_input(client, question.type, question.options or [], idx)

    with st.expander("Leaderboard", expanded=True):
        components.render_mini_leaderboard(client.mini_leaderboard(), highlight_id=user.uid)


def _render_answer_input(
    client: LiveSessionClient, kind: QuestionType, options: list[str], idx: int
) -> None:
    if kind == QuestionType.MULTIPLE_CHOICE:
        for i, option in enumerate(options):
            if st.button(option, key=f"live_opt_{idx}_{i}", use_container_width=True):
                _run("Submit", lambda o=option: client.submit(o))
    else:
        with st.form(f"live_answer_{idx}"):
            given = st.text_input("Your answer")
            if st.form_submit_button("Submit", type="primary"):
                _run("Submit", lambda: client.submit(given))


def _render_finished(client: LiveSessionClient, user: Identity, session: GameSession) -> None:
    st.subheader("🏁 Final scores")
    components.render_mini_leaderboard(session.ranked_players(), highlight_id=user.uid)
