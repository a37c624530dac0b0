from datetime import datetime, timedelta, timezone
from typing import Callable, List

import httpx
import pytest

from cv_slayer.config import DOCX_TYPE, PDF_TYPE
from cv_slayer.models import UploadedDocument


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def _handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_handler)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def pdf_file() -> UploadedDocument:
    content = b"%PDF-1.4\n% fake resume\n"
    return UploadedDocument(name="jane_doe_resume.pdf", size=len(content), media_type=PDF_TYPE, content=content)


@pytest.fixture
def docx_file() -> UploadedDocument:
    return UploadedDocument(name="cv.docx", size=2048, media_type=DOCX_TYPE, content=b"PK\x03\x04")


@pytest.fixture
def make_transport():
    return RecordingTransport
