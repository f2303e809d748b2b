import streamlit as st

from learnit.config import AppConfig
from learnit.quiz.domain.errors import LearnItError
from learnit.quiz.presentation.context import AppContext


def render_login_screen(ctx: AppContext, redirect_to: str) -> None:
    st.title(f"{AppConfig.APP_ICON} {AppConfig.APP_TITLE}")
    st.write("Study decks alone or play them live with friends.")

    with st.form("guest_login"):
        name = st.text_input("Your name")
        if st.form_submit_button("Continue as guest", type="primary"):
            try:
                identity = ctx.guest.sign_in_as_guest(name)
                ctx.profiles.ensure_profile(identity)
                st.rerun()
            except LearnItError as e:
                st.error(str(e))

    if ctx.federated is not None:
        st.divider()
        try:
            st.link_button("Sign in with Google", ctx.federated.sign_in_url(redirect_to))
        except LearnItError as e:
            st.error(str(e))
