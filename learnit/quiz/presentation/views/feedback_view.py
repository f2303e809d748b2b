from datetime import datetime

import streamlit as st

from learnit.quiz.domain.errors import LearnItError
from learnit.quiz.domain.models import FeedbackStatus, FeedbackType, Identity
from learnit.quiz.presentation.context import AppContext

STATUS_ICONS = {
    FeedbackStatus.OPEN: "🟡",
    FeedbackStatus.REVIEWED: "🔵",
    FeedbackStatus.RESOLVED: "🟢",
}


def render_feedback_screen(ctx: AppContext, user: Identity) -> None:
    st.title("💬 Feedback")

    with st.form("feedback_form", clear_on_submit=True):
        kind = st.radio(
            "Type",
            [t.value for t in FeedbackType],
            format_func=lambda v: "🐞 Bug report" if v == FeedbackType.BUG.value else "💡 Feedback",
            horizontal=True,
        )
        title = st.text_input("Title")
        description = st.text_area("Description")
        email = st.text_input("Email (optional)", value=user.email or "")
        if st.form_submit_button("Send", type="primary"):
            try:
                ctx.feedback.submit_feedback(kind, title, description, email, user.display_name)
                st.success("Thanks! Your feedback was sent.")
            except LearnItError as e:
                st.error(str(e))

    counts = ctx.feedback.counts()
    filter_label = st.radio(
        "Show",
        ["all", *[t.value for t in FeedbackType]],
        format_func=lambda v: f"{v.capitalize()} ({counts.get(v, 0)})",
        horizontal=True,
    )
    items = ctx.feedback.list_feedback(None if filter_label == "all" else FeedbackType(filter_label))

    for item in items:
        with st.container(border=True):
            when = datetime.fromtimestamp(item.timestamp / 1000).strftime("%Y-%m-%d %H:%M")
            st.markdown(f"{STATUS_ICONS[item.status]} **{item.title}** · {item.type.value}")
            st.write(item.description)
            st.caption(f"{item.username or 'Anonymous'} · {when}")

            statuses = [s.value for s in FeedbackStatus]
            new_status = st.selectbox(
                "Status",
                statuses,
                index=statuses.index(item.status.value),
                key=f"fb_status_{item.id}",
                label_visibility="collapsed",
            )
            if new_status != item.status.value:
                ctx.feedback.update_status(item.id, new_status)
                st.rerun()
