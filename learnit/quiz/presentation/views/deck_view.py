import streamlit as st

from learnit.config import AppConfig, QuestionKind
from learnit.quiz.domain.errors import LearnItError
from learnit.quiz.domain.models import Deck, Identity, Question, QuestionDraft, QuestionType
from learnit.quiz.presentation.context import AppContext
from learnit.quiz.presentation.router import Screen, navigate


def render_deck_screen(ctx: AppContext, user: Identity, deck_id: str) -> None:
    deck = ctx.decks.get_deck(deck_id)
    if deck is None:
        st.error("Deck not found.")
        if st.button("Back"):
            navigate(Screen.DASHBOARD)
        return

    st.title(deck.title)
    st.caption(f"{deck.subject} · {deck.purpose or 'General'} · by {deck.author}")

    questions = ctx.decks.get_questions(deck.id)

    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("📖 Review", disabled=not questions, use_container_width=True):
            navigate(Screen.REVIEW, deck.id)
    with col2:
        if st.button("🎮 Host live game", disabled=not questions, use_container_width=True):
            try:
                session_id = ctx.sessions.create_session(deck.id, user.uid)
                navigate(Screen.PLAY, session_id)
            except LearnItError as e:
                st.error(str(e))
    with col3:
        _render_generate(ctx, deck)

    _render_add_question(ctx, user, deck)

    st.subheader(f"Questions ({len(questions)})")
    for number, question in enumerate(questions, start=1):
        _render_question_row(ctx, deck, question, number)


def _render_generate(ctx: AppContext, deck: Deck) -> None:
    if st.button("✨ Generate with AI", use_container_width=True):
        with st.spinner("Generating questions..."):
            try:
                ids = ctx.decks.generate_questions(deck.id)
                st.toast(f"Added {len(ids)} questions")
                st.rerun()
            except LearnItError as e:
                st.error(str(e))


def _render_add_question(ctx: AppContext, user: Identity, deck: Deck) -> None:
    with st.expander("➕ Add question"):
        kind = st.selectbox(
            "Type",
            QuestionKind.all_values(),
            format_func=QuestionKind.get_label,
            key="new_q_type",
        )
        with st.form("add_question", clear_on_submit=True):
            text = st.text_area("Question")
            options = None
            if kind == QuestionType.MULTIPLE_CHOICE.value:
                options = [st.text_input(f"Option {i + 1}", key=f"opt_{i}") for i in range(4)]
                answer = st.text_input("Correct answer (must match an option)")
            elif kind == QuestionType.ENUMERATION.value:
                answer = st.text_input("Answers, separated by commas")
            else:
                answer = st.text_input("Answer")

            if st.form_submit_button("Add", type="primary"):
                try:
                    ctx.decks.add_question(
                        deck.id,
                        QuestionDraft(
                            type=QuestionType(kind),
                            question=text,
                            options=options,
                            answer=answer,
                            author=user.display_name,
                        ),
                    )
                    st.toast("Question added")
                    st.rerun()
                except LearnItError as e:
                    st.error(str(e))


def _render_question_row(ctx: AppContext, deck: Deck, question: Question, number: int) -> None:
    with st.container(border=True):
        st.markdown(f"**{number}. {question.question}**")
        if question.options:
            st.caption(" · ".join(question.options))
        st.caption(f"Answer: {question.answer_text()} · by {question.author}")
        if question.author == AppConfig.GENERATED_AUTHOR:
            st.caption("✨ generated")
        if st.button("🗑️ Delete", key=f"del_{question.id}"):
            try:
                ctx.decks.delete_question(deck.id, question.id)
                st.rerun()
            except LearnItError as e:
                st.error(str(e))
