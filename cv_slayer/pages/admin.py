from __future__ import annotations
import streamlit as st

from cv_slayer.config import ADMIN_TITLE
from cv_slayer.ui.sections import admin_panel
from cv_slayer.ui.state import init_session_state

st.set_page_config(page_title=ADMIN_TITLE, layout="wide")
st.title(ADMIN_TITLE)

init_session_state()
admin_panel()
