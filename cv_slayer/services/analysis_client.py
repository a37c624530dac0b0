from __future__ import annotations
import time
from typing import Optional

import httpx
from pydantic import ValidationError

from ..config import ANALYSIS_FAILED_MESSAGE, ANALYZE_PATH, GENERIC_RETRY_MESSAGE
from ..errors import ServiceRejected, TransportFailure
from ..logger import setup_logger
from ..models import AnalysisEnvelope, SubmissionRequest
from ..settings import settings

logger = setup_logger("analysis_client")


def analyze_url(base_url: Optional[str] = None) -> str:
    return (base_url or settings.api_base_url).rstrip("/") + ANALYZE_PATH


async def request_analysis(
    request: SubmissionRequest,
    *,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AnalysisEnvelope:
    """Send one résumé to the analysis service and parse the reply envelope.

    Raises ``TransportFailure`` when the service can't be reached and
    ``ServiceRejected`` for a non-success status or an unreadable body. The
    envelope's ``data`` is returned untouched; sanitizing it is the caller's job.
    """
    url = analyze_url(base_url)
    timeout = settings.request_timeout_seconds if timeout is None else timeout
    logger.info(f"POST {url} ({request.file.name}, {request.file.size} bytes, "
                f"level={request.roast_level.value}, type={request.roast_type.value}, lang={request.language.value})")

    started = time.monotonic()
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.post(
                url,
                data=request.form_fields(),
                files=request.form_files(),
                headers={"Accept": "application/json"},
            )
    except httpx.TimeoutException as e:
        logger.error(f"analysis request timed out after {timeout}s: {e}")
        raise TransportFailure(GENERIC_RETRY_MESSAGE, detail=str(e)) from e
    except httpx.HTTPError as e:
        logger.error(f"analysis request failed: {e!r}")
        raise TransportFailure(GENERIC_RETRY_MESSAGE, detail=str(e)) from e

    logger.info(f"analysis reply {resp.status_code} in {time.monotonic() - started:.2f}s")
    if resp.status_code >= 400:
        logger.error(f"analysis service returned {resp.status_code}: {resp.text[:200]}")
        raise ServiceRejected(ANALYSIS_FAILED_MESSAGE, detail=resp.text[:500], status_code=resp.status_code)

    try:
        return AnalysisEnvelope.model_validate(resp.json())
    except (ValueError, ValidationError) as e:
        logger.error(f"unreadable analysis reply: {e}; body={resp.text[:200]}")
        raise ServiceRejected(ANALYSIS_FAILED_MESSAGE, detail=str(e), status_code=resp.status_code) from e
