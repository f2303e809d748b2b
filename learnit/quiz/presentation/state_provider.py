from typing import Any

import streamlit as st

from learnit.quiz.domain.ports import IStateProvider


class StreamlitStateProvider(IStateProvider):
    def get(self, key: str, default: Any = None) -> Any:
        return st.session_state.get(key, default)

    def set(self, key: str, value: Any) -> None:
        st.session_state[key] = value

    def delete(self, key: str) -> None:
        if key in st.session_state:
            del st.session_state[key]

    def clear(self) -> None:
        st.session_state.clear()
