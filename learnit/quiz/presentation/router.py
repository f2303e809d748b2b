from dataclasses import dataclass
from enum import Enum
from typing import Any

import streamlit as st


class Screen(Enum):
    DASHBOARD = "dashboard"
    DECK = "deck"
    REVIEW = "review"
    PLAY = "play"
    FEEDBACK = "feedback"
    PROFILE = "profile"


@dataclass(frozen=True)
class Route:
    screen: Screen
    target: str | None = None


def parse_route(params: Any) -> Route:
    """
    Query params -> screen.
    ?play=<session id>, ?deck=<id>, ?review=<deck id>, ?page=feedback|profile;
    anything else is the dashboard.
    """
    if params.get("play"):
        return Route(Screen.PLAY, params.get("play"))
    if params.get("review"):
        return Route(Screen.REVIEW, params.get("review"))
    if params.get("deck"):
        return Route(Screen.DECK, params.get("deck"))

    page = params.get("page")
    if page == Screen.FEEDBACK.value:
        return Route(Screen.FEEDBACK)
    if page == Screen.PROFILE.value:
        return Route(Screen.PROFILE)
    return Route(Screen.DASHBOARD)


def navigate(screen: Screen, target: str | None = None) -> None:
    st.query_params.clear()
    if screen in (Screen.PLAY, Screen.REVIEW, Screen.DECK):
        st.query_params[screen.value] = target or ""
    elif screen != Screen.DASHBOARD:
        st.query_params["page"] = screen.value
    st.rerun()
