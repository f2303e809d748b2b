import pytest
import streamlit as st

from learnit.quiz.presentation.router import Route, Screen, parse_route
from learnit.quiz.presentation.state_provider import StreamlitStateProvider


@pytest.mark.parametrize(
    "params, expected",
    [
        ({}, Route(Screen.DASHBOARD)),
        ({"deck": "D1"}, Route(Screen.DECK, "D1")),
        ({"review": "D1"}, Route(Screen.REVIEW, "D1")),
        ({"play": "S1"}, Route(Screen.PLAY, "S1")),
        ({"play": "S1", "deck": "D1"}, Route(Screen.PLAY, "S1")),
        ({"page": "feedback"}, Route(Screen.FEEDBACK)),
        ({"page": "profile"}, Route(Screen.PROFILE)),
        ({"page": "admin"}, Route(Screen.DASHBOARD)),
    ],
)
def test_parse_route(params, expected):
    assert parse_route(params) == expected


def test_state_provider_uses_session_state(mock_streamlit_session):
    state = StreamlitStateProvider()

    state.set("collab_uid", "user_abc")
    assert st.session_state["collab_uid"] == "user_abc"
    assert state.get("collab_uid") == "user_abc"
    assert state.get("missing", "default") == "default"

    state.delete("collab_uid")
    state.delete("collab_uid")
    assert "collab_uid" not in st.session_state

    state.set("a", 1)
    state.clear()
    assert dict(st.session_state) == {}
