import streamlit as st

from learnit.config import AppConfig, QuestionKind
from learnit.quiz.domain.models import Identity, Player, Question, UserProfile
from learnit.quiz.presentation.router import Screen, navigate


def apply_styles() -> None:
    st.markdown(
        """
        <style>
            .block-container { padding-top: 2rem !important; }
            .stat-box { padding: 10px; background-color: #f0f2f6; border-radius: 5px; text-align: center; font-weight: bold; }
            .question-text { font-size: 1.2rem; font-weight: 600; margin-bottom: 1rem; }
            .join-code { font-family: monospace; font-size: 1.6rem; letter-spacing: 0.1em; }
        </style>
        """,
        unsafe_allow_html=True,
    )


def render_sidebar(user: Identity) -> bool:
    """Returns True when the user asked to sign out."""
    st.sidebar.header(f"{AppConfig.APP_ICON} {AppConfig.APP_TITLE}")

    if user.photo_url:
        st.sidebar.image(user.photo_url, width=64)
    st.sidebar.write(f"**{user.display_name or 'Anonymous'}**")
    if user.is_guest:
        st.sidebar.caption("Guest")

    if st.sidebar.button("🏠 Dashboard", use_container_width=True):
        navigate(Screen.DASHBOARD)
    if st.sidebar.button("👤 Profile", use_container_width=True):
        navigate(Screen.PROFILE)
    if st.sidebar.button("💬 Feedback", use_container_width=True):
        navigate(Screen.FEEDBACK)

    sign_out = st.sidebar.button("Sign out")

    with st.sidebar.expander("🕵️‍♂️ Telemetry"):
        st.caption("Trace ID: " + str(st.session_state.get("correlation_id", "N/A")))

    return sign_out


def render_question_text(question: Question, number: int | None = None) -> None:
    kind = QuestionKind.get_label(question.type.value)
    prefix = f"Q{number} · " if number is not None else ""
    st.caption(f"{prefix}{kind}")
    st.markdown(
        f'<div class="question-text">{question.question}</div>', unsafe_allow_html=True
    )


def render_mini_leaderboard(players: list[Player], highlight_id: str | None = None) -> None:
    if not players:
        st.caption("No players yet")
        return
    for rank, player in enumerate(players, start=1):
        marker = " (you)" if player.id == highlight_id else ""
        st.write(f"{rank}. **{player.name}**{marker} · {player.score} pts")


def render_global_leaderboard(profiles: list[UserProfile]) -> None:
    st.subheader("🏆 Leaderboard")
    if not profiles:
        st.caption("Nobody has answered a question yet")
        return
    for rank, profile in enumerate(profiles, start=1):
        st.write(
            f"{rank}. **{profile.display_name or 'Anonymous'}** · "
            f"{profile.total_correct_answers} correct"
        )
