import streamlit as st

from learnit.quiz.domain.errors import LearnItError
from learnit.quiz.domain.models import Identity
from learnit.quiz.presentation.context import AppContext
from learnit.quiz.presentation.router import Screen, navigate
from learnit.quiz.presentation.views import components


def render_dashboard_screen(ctx: AppContext, user: Identity) -> None:
    st.title("📚 Decks")

    col_main, col_side = st.columns([2, 1])

    with col_main:
        _render_create_deck(ctx, user)

        decks = ctx.decks.list_decks()
        if not decks:
            st.info("No decks yet. Create the first one above.")

        for deck in decks:
            with st.container(border=True):
                st.markdown(f"**{deck.title}** · {deck.subject}")
                meta = f"{deck.question_count} questions · by {deck.author}"
                if deck.exam_date:
                    meta += f" · exam {deck.exam_date}"
                st.caption(meta)
                if st.button("Open", key=f"open_{deck.id}"):
                    navigate(Screen.DECK, deck.id)

    with col_side:
        _render_join(ctx)
        components.render_global_leaderboard(ctx.profiles.leaderboard())


def _render_create_deck(ctx: AppContext, user: Identity) -> None:
    with st.expander("➕ New deck"):
        with st.form("create_deck", clear_on_submit=True):
            title = st.text_input("Title")
            subject = st.text_input("Subject")
            purpose = st.text_input("Purpose (e.g. midterm review)")
            exam_date = st.text_input("Exam date (optional)")
            if st.form_submit_button("Create", type="primary"):
                try:
                    deck_id = ctx.decks.create_deck(
                        title, subject, purpose, exam_date, author=user.display_name
                    )
                    navigate(Screen.DECK, deck_id)
                except LearnItError as e:
                    st.error(str(e))


def _render_join(ctx: AppContext) -> None:
    st.subheader("🎮 Join a game")
    code = st.text_input("Game code", key="join_code").strip()
    if st.button("Join", disabled=not code):
        if ctx.sessions.get_session(code) is None:
            st.error("Game not found")
        else:
            navigate(Screen.PLAY, code)
