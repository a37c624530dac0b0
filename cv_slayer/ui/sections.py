from __future__ import annotations
import json
from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

from ..config import UPLOAD_EXTENSIONS
from ..errors import CvSlayerError, SessionExpired
from ..models import Gender, Language, RoastLevel, RoastType, SafeResult, SubmissionSummary, UploadedDocument
from ..sanitization import clean_text
from ..services.admin_api import get_submission, list_submissions, load_dashboard
from ..submission import SubmissionState
from ..validation import validate_options
from .formatting import escape_markdown, format_report, score_band
from .state import admin_session, reset_admin_view, run_async, submission_machine

PRIORITY_BADGE = {"high": "🔴 High", "medium": "🟠 Medium", "low": "🟢 Low"}


def toast(msg: str) -> None:
    st.toast(msg)


# ----------------------------- submission --------------------------------

def options_form() -> None:
    machine = submission_machine()
    current = machine.options
    c1, c2 = st.columns(2)
    with c1:
        gender = st.selectbox("Gender", [g.value for g in Gender], index=list(Gender).index(current.gender))
        level = st.selectbox("Roast level", [lv.value for lv in RoastLevel],
                             index=list(RoastLevel).index(current.roast_level))
    with c2:
        kind = st.selectbox("Roast type", [t.value for t in RoastType], index=list(RoastType).index(current.roast_type))
        language = st.selectbox("Language", [lang.value for lang in Language],
                                index=list(Language).index(current.language))
    try:
        machine.set_options(validate_options(gender, level, kind, language))
    except CvSlayerError as e:
        st.error(e.user_message)


def file_picker() -> None:
    machine = submission_machine()
    uploaded = st.file_uploader("Upload your resume (PDF, DOC or DOCX)", type=UPLOAD_EXTENSIONS, key="resume_file")
    if uploaded is None:
        machine.select_file(None)
        return
    outcome = machine.select_file(UploadedDocument.from_upload(uploaded))
    if not outcome.accepted:
        st.error(outcome.message)


def submission_form() -> None:
    machine = submission_machine()
    options_form()
    file_picker()
    consent = st.checkbox("I accept the Terms & Conditions and Privacy Policy", key="consent")

    idle = machine.state is SubmissionState.IDLE
    if st.button("Roast my resume", type="primary", disabled=not idle, key="submit"):
        bar = st.progress(0, text="")

        def _update(snap):
            if snap.step is not None:
                bar.progress(snap.progress, text=f"{machine.step_message()} ({snap.progress}%)")

        run_async(machine.submit(consent, on_change=_update))
        st.rerun()

    if machine.is_busy:
        st.info(machine.step_message() or "Analysis in progress...")
        st.button("Cancel", on_click=machine.reset, key="cancel")
    if machine.error:
        st.error(machine.error)
        st.button("Try again", on_click=machine.reset, key="try_again")


def _bullets(items, empty: str) -> None:
    if not items:
        st.caption(empty)
        return
    st.markdown("\n".join(f"- {escape_markdown(item)}" for item in items))


def results_display(result: SafeResult) -> None:
    color, verdict = score_band(result.score)
    head_l, head_r = st.columns([0.7, 0.3])
    with head_l:
        st.subheader(escape_markdown(result.file_name))
        st.markdown(f":{color}[{verdict}]")
    with head_r:
        st.metric("Score", f"{result.score} / 100")

    tab_roast, tab_imp, tab_analysis = st.tabs(["Roast", "Improvements", "Analysis"])
    with tab_roast:
        if result.feedback:
            for paragraph in result.feedback:
                st.text(paragraph)
        else:
            st.info("No feedback available for this analysis.")
    with tab_imp:
        if not result.improvements:
            st.info("No specific improvements suggested.")
        for imp in result.improvements:
            with st.container(border=True):
                st.markdown(f"**{PRIORITY_BADGE[imp.priority.value]}** · {escape_markdown(imp.title)}")
                if imp.description:
                    st.text(imp.description)
                if imp.example:
                    st.caption(f"Example: {escape_markdown(imp.example)}")
    with tab_analysis:
        c1, c2 = st.columns(2)
        with c1:
            st.markdown("**Strengths**")
            _bullets(result.strengths, "No strengths listed.")
        with c2:
            st.markdown("**Weaknesses**")
            _bullets(result.weaknesses, "No weaknesses listed.")

    c1, c2 = st.columns(2)
    with c1:
        st.download_button("Download report", data=format_report(result),
                           file_name="cv-slayer-report.txt", mime="text/plain")
    with c2:
        if st.button("Analyze another resume"):
            submission_machine().reset()
            st.session_state.pop("resume_file", None)
            toast("Starting fresh analysis...")
            st.rerun()


# ----------------------------- admin --------------------------------------

def _admin_call(coro) -> Optional[Any]:
    """Run an admin request; a dead session sends the operator back to login."""
    try:
        return run_async(coro)
    except SessionExpired as e:
        admin_session().logout()
        reset_admin_view(e.user_message)
        st.rerun()
    except CvSlayerError as e:
        st.error(e.user_message)
    return None


def login_form() -> None:
    st.subheader("Admin login")
    if st.session_state.admin_error:
        st.warning(st.session_state.admin_error)
    with st.form("admin_login"):
        email = st.text_input("Email address")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Log in", type="primary")
    if submitted:
        try:
            run_async(admin_session().login(email, password))
        except CvSlayerError as e:
            st.error(e.user_message)
            return
        reset_admin_view()
        st.rerun()


def summaries_df(items: List[SubmissionSummary]) -> pd.DataFrame:
    return pd.DataFrame([
        {
            "ID": s.id,
            "Name": s.display_name,
            "File": s.file_name,
            "Email": s.email,
            "Score": s.score,
            "Level": s.roast_level,
            "Language": s.language,
            "Uploaded": s.uploaded_at or "",
        }
        for s in items
    ], columns=["ID", "Name", "File", "Email", "Score", "Level", "Language", "Uploaded"])


def _submission_table(items: List[SubmissionSummary], key: str) -> None:
    if not items:
        st.caption("No submissions yet.")
        return
    st.dataframe(summaries_df(items), hide_index=True, width="stretch", key=key)
    choice = st.selectbox("Open submission", [s.id for s in items], key=f"{key}_pick",
                          format_func=lambda i: next(f"{s.display_name} ({s.id})" for s in items if s.id == i))
    if st.button("Show details", key=f"{key}_open"):
        st.session_state.admin_selected = choice
        st.session_state.admin_view = "detail"
        st.rerun()


def dashboard_section() -> None:
    summary = _admin_call(load_dashboard(admin_session()))
    if summary is None:
        return
    c1, c2, c3 = st.columns(3)
    c1.metric("Total submissions", summary.total_submissions)
    c2.metric("Today", summary.today_submissions)
    c3.metric("Average score", f"{summary.average_score} / 100")
    st.subheader("Recent submissions")
    _submission_table(summary.recent, key="recent")


def submissions_section() -> None:
    page = st.session_state.admin_page
    result = _admin_call(list_submissions(admin_session(), page=page))
    if result is None:
        return
    st.caption(f"{result.total_count} submissions · page {result.current_page} of {max(result.total_pages, 1)}")
    _submission_table(result.submissions, key="all")
    c1, c2 = st.columns(2)
    with c1:
        if st.button("Previous page", disabled=not result.has_prev):
            st.session_state.admin_page = max(1, page - 1)
            st.rerun()
    with c2:
        if st.button("Next page", disabled=not result.has_next):
            st.session_state.admin_page = page + 1
            st.rerun()


def _field(data: Dict[str, Any], *path: str, fallback: str = "N/A") -> str:
    value: Any = data
    for key in path:
        value = value.get(key) if isinstance(value, dict) else None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return clean_text(value, fallback=fallback)


def _labelled(label: str, value: str) -> None:
    st.markdown(f"**{label}:** {escape_markdown(value)}")


def detail_section() -> None:
    sub_id = st.session_state.admin_selected
    if st.button("← Back"):
        st.session_state.admin_view = "dashboard"
        st.session_state.admin_selected = None
        st.rerun()
    data = _admin_call(get_submission(admin_session(), sub_id))
    if data is None:
        return

    st.subheader("Basic information")
    _labelled("File", _field(data, "fileInfo", "originalFileName", fallback="Unknown"))
    _labelled("Uploaded", _field(data, "timestamps", "uploadedAt"))
    st.subheader("Personal information")
    for label, key in (("Name", "name"), ("Email", "email"), ("Phone", "phone"), ("LinkedIn", "linkedin")):
        _labelled(label, _field(data, "extractedInfo", "personalInfo", key, fallback="Not found"))
    st.subheader("Analysis")
    _labelled("Overall score", _field(data, "analysis", "overallScore"))
    feedback = _field(data, "analysis", "feedback", fallback="")
    if feedback:
        st.text(feedback)
    st.subheader("Preferences")
    for label, key in (("Gender", "gender"), ("Roast level", "roastLevel"),
                       ("Roast type", "roastType"), ("Language", "language")):
        _labelled(label, _field(data, "preferences", key))
    with st.expander("Raw record"):
        st.code(json.dumps(data, ensure_ascii=False, indent=2, default=str), language="json")


def admin_panel() -> None:
    session = admin_session()
    if not session.is_valid():
        login_form()
        return

    with st.sidebar:
        st.caption(f"Signed in as {session.identity}")
        remaining = session.expires_in()
        if remaining is not None:
            st.caption(f"Session expires in {int(remaining.total_seconds() // 60)} min")
        view = st.radio("View", ["dashboard", "submissions"], format_func=str.title,
                        index=0 if st.session_state.admin_view != "submissions" else 1)
        if view != st.session_state.admin_view and st.session_state.admin_view != "detail":
            st.session_state.admin_view = view
        if st.button("Log out"):
            session.logout()
            reset_admin_view()
            st.rerun()

    if st.session_state.admin_view == "detail" and st.session_state.admin_selected:
        detail_section()
    elif st.session_state.admin_view == "submissions":
        submissions_section()
    else:
        dashboard_section()
