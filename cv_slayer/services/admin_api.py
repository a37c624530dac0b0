from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

from pydantic import ValidationError

from ..config import DASHBOARD_PATH, SUBMISSION_DETAIL_PATH, SUBMISSIONS_PATH
from ..errors import InputRejected, ServiceRejected
from ..logger import setup_logger
from ..models import AnalysisEnvelope, DashboardSummary, SubmissionPage, SubmissionSummary
from ..sanitization import clamp_score, clean_text
from ..session import SessionManager

logger = setup_logger("admin_api")

PAGE_SIZE_DEFAULT = 20
PAGE_SIZE_MAX = 50


def _envelope(body: Any) -> Optional[AnalysisEnvelope]:
    try:
        return AnalysisEnvelope.model_validate(body)
    except ValidationError:
        logger.warning(f"unexpected admin reply shape: {str(body)[:200]}")
        return None


def _count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(number, 0)


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def summarize_submission(raw: Any) -> Optional[SubmissionSummary]:
    if not isinstance(raw, Mapping):
        return None
    sub_id = raw.get("id") or raw.get("resumeId") or raw.get("_id")
    if sub_id is None or isinstance(sub_id, (dict, list)):
        return None

    personal = _mapping(raw.get("personalInfo"))
    preferences = _mapping(raw.get("preferences"))
    file_name = clean_text(raw.get("fileName"), fallback="Unknown")
    stem = file_name.rsplit(".", 1)[0] if "." in file_name else file_name
    name = clean_text(personal.get("name")) or clean_text(raw.get("name"))
    if not name or name == "Unknown":
        name = stem

    uploaded_at = raw.get("uploadedAt")
    return SubmissionSummary(
        id=str(sub_id),
        file_name=file_name,
        display_name=name or "Unknown",
        email=clean_text(personal.get("email")) or clean_text(raw.get("email"), fallback="Not found"),
        score=clamp_score(raw.get("score")),
        uploaded_at=str(uploaded_at) if uploaded_at else None,
        roast_level=clean_text(raw.get("roastLevel") or preferences.get("roastLevel"), fallback="N/A"),
        language=clean_text(raw.get("language") or preferences.get("language"), fallback="N/A"),
    )


def _summaries(items: Any) -> List[SubmissionSummary]:
    if not isinstance(items, list):
        return []
    return [s for s in (summarize_submission(item) for item in items) if s is not None]


async def load_dashboard(session: SessionManager) -> DashboardSummary:
    body = await session.authenticated_request(DASHBOARD_PATH)
    envelope = _envelope(body)
    if envelope is None or not envelope.success or not isinstance(envelope.data, Mapping):
        return DashboardSummary()
    data = envelope.data
    summary = DashboardSummary(
        total_submissions=_count(data.get("totalResumes")),
        today_submissions=_count(data.get("todayResumes")),
        average_score=clamp_score(data.get("averageScore")),
        recent=_summaries(data.get("recentResumes")),
    )
    logger.info(f"dashboard: total={summary.total_submissions}, today={summary.today_submissions}, "
                f"avg={summary.average_score}")
    return summary


async def list_submissions(session: SessionManager, page: int = 1, limit: int = PAGE_SIZE_DEFAULT) -> SubmissionPage:
    page = max(1, _count(page))
    limit = min(PAGE_SIZE_MAX, max(1, _count(limit)))
    body = await session.authenticated_request(SUBMISSIONS_PATH, params={"page": page, "limit": limit})
    envelope = _envelope(body)
    if envelope is None or not envelope.success:
        return SubmissionPage(current_page=page)

    data = envelope.data
    if isinstance(data, list):
        items = _summaries(data)
        return SubmissionPage(submissions=items, total_count=len(items), current_page=1,
                              total_pages=1 if items else 0)

    data = _mapping(data)
    items = _summaries(data.get("resumes"))
    pagination = _mapping(data.get("pagination"))
    total_pages = _count(pagination.get("totalPages"))
    current = max(1, _count(pagination.get("currentPage")) or page)
    return SubmissionPage(
        submissions=items,
        total_count=_count(pagination.get("totalCount")) or len(items),
        current_page=current,
        total_pages=total_pages,
        has_next=current < total_pages,
        has_prev=current > 1,
    )


async def get_submission(session: SessionManager, submission_id: str) -> Dict[str, Any]:
    submission_id = str(submission_id or "").strip()
    if not submission_id:
        raise InputRejected("Pick a submission first")
    path = SUBMISSION_DETAIL_PATH.format(id=quote(submission_id, safe=""))
    body = await session.authenticated_request(path)
    envelope = _envelope(body)
    if envelope is None or not envelope.success or not isinstance(envelope.data, Mapping):
        raise ServiceRejected("Could not load this submission.", detail=str(body)[:500])
    return dict(envelope.data)
