from __future__ import annotations

APP_TITLE = "CV Slayer"
ADMIN_TITLE = "CV Slayer Admin"

PDF_TYPE = "application/pdf"
DOC_TYPE = "application/msword"
DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
ALLOWED_MEDIA_TYPES = frozenset({PDF_TYPE, DOC_TYPE, DOCX_TYPE})
UPLOAD_EXTENSIONS = ["pdf", "doc", "docx"]

ANALYZE_PATH = "/resume/analyze"
LOGIN_PATH = "/admin/login"
DASHBOARD_PATH = "/admin/dashboard"
SUBMISSIONS_PATH = "/admin/resumes"
SUBMISSION_DETAIL_PATH = "/admin/resume/{id}"

GENERIC_RETRY_MESSAGE = "Cannot connect to the analysis service. Please try again."
ANALYSIS_FAILED_MESSAGE = "Analysis failed. Please try again."
SESSION_EXPIRED_MESSAGE = "Session expired. Please log in again."
