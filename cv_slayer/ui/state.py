from __future__ import annotations
import asyncio
from typing import Any, Awaitable, TypeVar

import streamlit as st

from ..session import SessionManager
from ..submission import SubmissionStateMachine

T = TypeVar("T")


def init_session_state() -> None:
    if "submission" not in st.session_state:
        st.session_state.submission = SubmissionStateMachine()
    if "admin_session" not in st.session_state:
        st.session_state.admin_session = SessionManager()

    st.session_state.setdefault("consent", False)
    st.session_state.setdefault("admin_view", "dashboard")
    st.session_state.setdefault("admin_selected", None)
    st.session_state.setdefault("admin_page", 1)
    st.session_state.setdefault("admin_error", None)


def submission_machine() -> SubmissionStateMachine:
    return st.session_state.submission


def admin_session() -> SessionManager:
    return st.session_state.admin_session


def run_async(coro: Awaitable[T]) -> T:
    # each Streamlit rerun is synchronous; one event loop per call
    return asyncio.run(coro)


def reset_admin_view(error: Any = None) -> None:
    st.session_state.admin_view = "dashboard"
    st.session_state.admin_selected = None
    st.session_state.admin_page = 1
    st.session_state.admin_error = error
