from __future__ import annotations
from enum import Enum
from typing import Any, Optional

from .config import ALLOWED_MEDIA_TYPES
from .errors import InputRejected
from .models import Gender, Language, RoastLevel, RoastType, SubmissionOptions, UploadedDocument
from .settings import settings


class ValidationOutcome(str, Enum):
    ACCEPTED = "accepted"
    MISSING = "missing"
    UNSUPPORTED_TYPE = "unsupported-type"
    TOO_LARGE = "too-large"
    EMPTY = "empty"
    CONSENT_REQUIRED = "consent-required"
    FILE_REQUIRED = "file-required"

    @property
    def accepted(self) -> bool:
        return self is ValidationOutcome.ACCEPTED

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    ValidationOutcome.ACCEPTED: "",
    ValidationOutcome.MISSING: "Please select a file",
    ValidationOutcome.UNSUPPORTED_TYPE: "Please upload only PDF or Word documents (.pdf, .doc, .docx)",
    ValidationOutcome.TOO_LARGE: "File is too large. Please compress your file and try again.",
    ValidationOutcome.EMPTY: "The selected file appears to be empty. Please select a valid resume file.",
    ValidationOutcome.CONSENT_REQUIRED: "Please accept our Terms & Conditions and Privacy Policy to continue",
    ValidationOutcome.FILE_REQUIRED: "Please select a resume file to analyze",
}


def validate_file(file: Optional[UploadedDocument], max_size: Optional[int] = None) -> ValidationOutcome:
    if file is None:
        return ValidationOutcome.MISSING
    if file.media_type not in ALLOWED_MEDIA_TYPES:
        return ValidationOutcome.UNSUPPORTED_TYPE
    ceiling = settings.max_file_size if max_size is None else max_size
    if file.size > ceiling:
        return ValidationOutcome.TOO_LARGE
    if file.size <= 0:
        return ValidationOutcome.EMPTY
    return ValidationOutcome.ACCEPTED


def validate_submission_preconditions(consent_given: bool, file: Optional[UploadedDocument],
                                      max_size: Optional[int] = None) -> ValidationOutcome:
    # consent first: policy acceptance is reported before anything about the file
    if not consent_given:
        return ValidationOutcome.CONSENT_REQUIRED
    if file is None:
        return ValidationOutcome.FILE_REQUIRED
    return validate_file(file, max_size=max_size)


def _coerce(enum_cls, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise InputRejected(f"Unsupported {field_name}: please pick one of the listed options.",
                            detail=f"{field_name}={value!r}") from None


def validate_options(gender: Any = Gender.MALE, roast_level: Any = RoastLevel.GENTLE,
                     roast_type: Any = RoastType.FUNNY, language: Any = Language.ENGLISH) -> SubmissionOptions:
    return SubmissionOptions(
        gender=_coerce(Gender, gender, "gender"),
        roast_level=_coerce(RoastLevel, roast_level, "roast level"),
        roast_type=_coerce(RoastType, roast_type, "roast type"),
        language=_coerce(Language, language, "language"),
    )
