import streamlit as st

from learnit.quiz.application.review_service import SoloReview
from learnit.quiz.domain.errors import LearnItError
from learnit.quiz.domain.models import Identity, QuestionType
from learnit.quiz.presentation.context import AppContext
from learnit.quiz.presentation.router import Screen, navigate
from learnit.quiz.presentation.views import components


def _get_review(ctx: AppContext, user: Identity, deck_id: str) -> SoloReview:
    key = f"review_{deck_id}"
    review = ctx.state.get(key)
    if review is None:
        review = SoloReview(ctx.decks.get_questions(deck_id), uid=user.uid, profiles=ctx.profiles)
        ctx.state.set(key, review)
    return review


def render_review_screen(ctx: AppContext, user: Identity, deck_id: str) -> None:
    review = _get_review(ctx, user, deck_id)

    if review.total == 0:
        st.warning("This deck has no questions yet.")
        if st.button("Back to deck"):
            navigate(Screen.DECK, deck_id)
        return

    if review.finished:
        _render_summary(ctx, review, deck_id)
        return

    question = review.current()
    assert question is not None
    st.progress(review.index / review.total, text=f"{review.index + 1} / {review.total}")
    components.render_question_text(question, review.index + 1)

    attempt = review.current_attempt()
    if attempt is None:
        _render_input(review, question.type, question.options or [], key=f"{deck_id}_{review.index}")
    else:
        if attempt.gave_up:
            st.info(f"Answer: **{question.answer_text()}**")
        elif attempt.is_correct:
            st.success("Correct! 🎉")
        else:
            st.error(f"Incorrect. The answer is **{question.answer_text()}**")

        if st.button("Next ➡️", type="primary", use_container_width=True):
            review.next()
            st.rerun()


def _render_input(review: SoloReview, kind: QuestionType, options: list[str], key: str) -> None:
    if kind == QuestionType.MULTIPLE_CHOICE:
        for i, option in enumerate(options):
            if st.button(option, key=f"rv_opt_{key}_{i}", use_container_width=True):
                review.answer(option)
                st.rerun()
    else:
        with st.form(f"rv_form_{key}"):
            given = st.text_input("Your answer")
            if st.form_submit_button("Check", type="primary"):
                try:
                    review.answer(given)
                    st.rerun()
                except LearnItError as e:
                    st.error(str(e))

    if st.button("Show answer", key=f"rv_giveup_{key}"):
        review.give_up()
        st.rerun()


def _render_summary(ctx: AppContext, review: SoloReview, deck_id: str) -> None:
    summary = review.summary()
    if summary.correct == summary.total:
        st.balloons()

    st.title("🏁 Summary")
    col1, col2 = st.columns(2)
    col1.metric("Score", f"{summary.correct} / {summary.total}")
    col2.metric("Accuracy", f"{summary.percentage}%")

    col_a, col_b = st.columns(2)
    with col_a:
        if st.button("🔄 Restart", use_container_width=True):
            review.restart()
            st.rerun()
    with col_b:
        if st.button("Back to deck", type="primary", use_container_width=True):
            ctx.state.delete(f"review_{deck_id}")
            navigate(Screen.DECK, deck_id)
