import streamlit as st

from learnit.quiz.domain.errors import LearnItError
from learnit.quiz.domain.models import Identity
from learnit.quiz.presentation.context import AppContext


def render_profile_screen(ctx: AppContext, user: Identity) -> None:
    st.title("👤 Profile")

    profile = ctx.profiles.ensure_profile(user)

    col1, col2 = st.columns(2)
    col1.metric("Correct answers", profile.total_correct_answers)
    col2.metric("Questions contributed", profile.questions_contributed)

    if st.button("🔄 Recount contributions"):
        ctx.profiles.recalculate_contributions(user.uid, user.display_name)
        st.rerun()

    st.divider()

    photo_url = user.photo_url or profile.photo_url
    if photo_url:
        st.image(photo_url, width=96)

    with st.form("profile_form"):
        name = st.text_input("Username", value=user.display_name)
        upload = st.file_uploader("Profile picture", type=["png", "jpg", "jpeg", "gif", "webp"])
        if st.form_submit_button("Save", type="primary"):
            try:
                new_photo = None
                if upload is not None:
                    new_photo = ctx.profiles.upload_profile_picture(
                        user.uid, upload.getvalue(), upload.type or ""
                    )
                ctx.profiles.save_profile(user, name, new_photo)
                st.success("Profile updated")
                st.rerun()
            except LearnItError as e:
                st.error(str(e))
