from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class RoastLevel(str, Enum):
    GENTLE = "gentle"
    BALANCED = "balanced"
    SAVAGE = "savage"

    @property
    def wire_code(self) -> str:
        # level codes the analysis service validates against
        return {"gentle": "pyar", "balanced": "ache", "savage": "dhang"}[self.value]


class RoastType(str, Enum):
    FUNNY = "funny"
    SERIOUS = "serious"
    SARCASTIC = "sarcastic"
    MOTIVATIONAL = "motivational"


class Language(str, Enum):
    ENGLISH = "english"
    HINDI = "hindi"
    HINGLISH = "hinglish"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class UploadedDocument:
    name: str
    size: int
    media_type: str
    content: bytes = field(default=b"", repr=False)

    @classmethod
    def from_upload(cls, uploaded: Any) -> "UploadedDocument":
        """Wrap a Streamlit ``UploadedFile`` (or anything with name/size/type/getvalue)."""
        content = uploaded.getvalue()
        size = getattr(uploaded, "size", None)
        return cls(
            name=uploaded.name,
            size=len(content) if size is None else int(size),
            media_type=uploaded.type or "",
            content=content,
        )


@dataclass(frozen=True)
class SubmissionOptions:
    gender: Gender = Gender.MALE
    roast_level: RoastLevel = RoastLevel.GENTLE
    roast_type: RoastType = RoastType.FUNNY
    language: Language = Language.ENGLISH


@dataclass(frozen=True)
class SubmissionRequest:
    file: UploadedDocument
    gender: Gender
    roast_level: RoastLevel
    roast_type: RoastType
    language: Language
    consent_given: bool

    @classmethod
    def build(cls, file: UploadedDocument, options: SubmissionOptions) -> "SubmissionRequest":
        return cls(
            file=file,
            gender=options.gender,
            roast_level=options.roast_level,
            roast_type=options.roast_type,
            language=options.language,
            consent_given=True,
        )

    def form_fields(self) -> Dict[str, str]:
        return {
            "gender": self.gender.value,
            "roastLevel": self.roast_level.wire_code,
            "roastType": self.roast_type.value,
            "language": self.language.value,
            "consentGiven": "true" if self.consent_given else "false",
            "termsAccepted": "true" if self.consent_given else "false",
        }

    def form_files(self) -> Dict[str, Tuple[str, bytes, str]]:
        return {"resume": (self.file.name, self.file.content, self.file.media_type)}


class AnalysisEnvelope(BaseModel):
    """Outer shape of an analysis/admin reply; ``data`` stays untrusted."""
    success: bool
    data: Optional[Any] = None
    error: Optional[Any] = None
    message: Optional[str] = None

    def error_message(self) -> Optional[str]:
        if isinstance(self.error, dict):
            msg = self.error.get("message")
            return msg if isinstance(msg, str) else None
        if isinstance(self.error, str):
            return self.error
        return self.message


class Improvement(BaseModel):
    model_config = ConfigDict(frozen=True)

    priority: Priority = Priority.MEDIUM
    title: str = "Improvement"
    description: str = ""
    example: str = ""


class SafeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(default=0, ge=0, le=100)
    file_name: str = "Unknown File"
    feedback: Tuple[str, ...] = ()
    improvements: Tuple[Improvement, ...] = ()
    strengths: Tuple[str, ...] = ()
    weaknesses: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SessionToken:
    token: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return bool(self.token) and now < self.expires_at


class SubmissionSummary(BaseModel):
    id: str
    file_name: str = "Unknown"
    display_name: str = "Unknown"
    email: str = "Not found"
    score: int = 0
    uploaded_at: Optional[str] = None
    roast_level: str = "N/A"
    language: str = "N/A"


class DashboardSummary(BaseModel):
    total_submissions: int = 0
    today_submissions: int = 0
    average_score: int = 0
    recent: List[SubmissionSummary] = Field(default_factory=list)


class SubmissionPage(BaseModel):
    submissions: List[SubmissionSummary] = Field(default_factory=list)
    total_count: int = 0
    current_page: int = 1
    total_pages: int = 0
    has_next: bool = False
    has_prev: bool = False
