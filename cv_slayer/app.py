from __future__ import annotations
import streamlit as st

from cv_slayer.config import APP_TITLE
from cv_slayer.logger import setup_logger
from cv_slayer.submission import SubmissionState
from cv_slayer.ui.sections import results_display, submission_form
from cv_slayer.ui.state import init_session_state, submission_machine

logger = setup_logger("app")

st.set_page_config(page_title=APP_TITLE, layout="centered")
st.title(APP_TITLE)
st.caption("Upload your resume and get roasted by AI. Honest feedback, gentle or savage.")

init_session_state()
machine = submission_machine()

if machine.state is SubmissionState.COMPLETE and machine.result is not None:
    results_display(machine.result)
else:
    submission_form()

logger.debug(f"rendered in state {machine.state.value}")
