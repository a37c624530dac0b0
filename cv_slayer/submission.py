"""
Submission workflow: validate → upload → await analysis → normalize → display.

One ``SubmissionStateMachine`` lives per page session. It owns the selected
file, the form options, the progress step, the error message and the final
``SafeResult``. Only one submission is in flight at a time; ``reset()``
during a request supersedes whatever that request returns.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from .config import ANALYSIS_FAILED_MESSAGE, GENERIC_RETRY_MESSAGE
from .errors import CvSlayerError
from .logger import setup_logger
from .models import AnalysisEnvelope, Language, SafeResult, SubmissionOptions, SubmissionRequest, UploadedDocument
from .sanitization import clean_text, sanitize_result, strip_markup, truncate
from .services.analysis_client import request_analysis
from .settings import settings
from .validation import ValidationOutcome, validate_file, validate_submission_preconditions

logger = setup_logger("submission")

SERVICE_MESSAGE_MAX = 200


class SubmissionState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    AWAITING_ANALYSIS = "awaiting-analysis"
    NORMALIZING = "normalizing"
    COMPLETE = "complete"
    ERRORED = "errored"


class Step(str, Enum):
    UPLOADING = "uploading"
    ANALYZING = "analyzing"
    PROCESSING = "processing"
    COMPLETE = "complete"


# display only; says nothing about real server progress
STEP_PROGRESS: Dict[Step, int] = {
    Step.UPLOADING: 25,
    Step.ANALYZING: 50,
    Step.PROCESSING: 75,
    Step.COMPLETE: 100,
}

STEP_MESSAGES: Dict[Language, Dict[Step, str]] = {
    Language.ENGLISH: {
        Step.UPLOADING: "Uploading your resume...",
        Step.ANALYZING: "AI is analyzing your content...",
        Step.PROCESSING: "Generating feedback...",
        Step.COMPLETE: "Analysis complete!",
    },
    Language.HINDI: {
        Step.UPLOADING: "आपका resume upload हो रहा है...",
        Step.ANALYZING: "AI आपका resume पढ़ रहा है...",
        Step.PROCESSING: "Feedback तैयार हो रहा है...",
        Step.COMPLETE: "Roast तैयार है!",
    },
    Language.HINGLISH: {
        Step.UPLOADING: "Tumhara resume upload ho raha hai...",
        Step.ANALYZING: "AI tumhara resume dekh raha hai...",
        Step.PROCESSING: "Roast ready ho raha hai...",
        Step.COMPLETE: "Ho gaya bhai!",
    },
}

_S = SubmissionState
_ALLOWED = {
    _S.IDLE: {_S.VALIDATING},
    _S.VALIDATING: {_S.UPLOADING, _S.ERRORED},
    _S.UPLOADING: {_S.AWAITING_ANALYSIS, _S.ERRORED},
    _S.AWAITING_ANALYSIS: {_S.NORMALIZING, _S.ERRORED},
    _S.NORMALIZING: {_S.COMPLETE, _S.ERRORED},
    _S.COMPLETE: set(),
    _S.ERRORED: set(),
}

Analyzer = Callable[[SubmissionRequest], Awaitable[AnalysisEnvelope]]


class InvalidTransition(RuntimeError):
    pass


@dataclass(frozen=True)
class SubmissionSnapshot:
    state: SubmissionState
    step: Optional[Step]
    progress: int
    error: Optional[str]
    result: Optional[SafeResult]
    file_name: Optional[str]
    options: SubmissionOptions

    @property
    def is_busy(self) -> bool:
        return self.state in (_S.VALIDATING, _S.UPLOADING, _S.AWAITING_ANALYSIS, _S.NORMALIZING)


class SubmissionStateMachine:
    def __init__(
        self,
        analyze: Optional[Analyzer] = None,
        *,
        complete_delay: Optional[float] = None,
        max_file_size: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._analyze = analyze or request_analysis
        self._complete_delay = settings.complete_step_delay_seconds if complete_delay is None else complete_delay
        self._max_file_size = max_file_size
        self._sleep = sleep
        self._generation = 0
        self._in_flight = False
        self._clear()

    def _clear(self) -> None:
        self._state = SubmissionState.IDLE
        self._step: Optional[Step] = None
        self._error: Optional[str] = None
        self._result: Optional[SafeResult] = None
        self._file_name: Optional[str] = None
        self._selected_file: Optional[UploadedDocument] = None
        self._options = SubmissionOptions()

    # -- read side ---------------------------------------------------------

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def step(self) -> Optional[Step]:
        return self._step

    @property
    def progress(self) -> int:
        return STEP_PROGRESS.get(self._step, 0) if self._step else 0

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def result(self) -> Optional[SafeResult]:
        return self._result

    @property
    def file_name(self) -> Optional[str]:
        return self._file_name

    @property
    def options(self) -> SubmissionOptions:
        return self._options

    @property
    def selected_file(self) -> Optional[UploadedDocument]:
        return self._selected_file

    @property
    def is_busy(self) -> bool:
        return self.snapshot().is_busy

    def snapshot(self) -> SubmissionSnapshot:
        return SubmissionSnapshot(
            state=self._state,
            step=self._step,
            progress=self.progress,
            error=self._error,
            result=self._result,
            file_name=self._file_name,
            options=self._options,
        )

    def step_message(self, language: Optional[Language] = None) -> str:
        if self._step is None:
            return ""
        language = language or self._options.language
        messages = STEP_MESSAGES.get(language, STEP_MESSAGES[Language.ENGLISH])
        return messages.get(self._step, "Processing...")

    # -- form state --------------------------------------------------------

    def select_file(self, file: Optional[UploadedDocument]) -> ValidationOutcome:
        """Keep ``file`` as the pending selection if it passes validation."""
        if file is None:
            self._selected_file = None
            return ValidationOutcome.MISSING
        outcome = validate_file(file, max_size=self._max_file_size)
        self._selected_file = file if outcome.accepted else None
        if not outcome.accepted:
            logger.info(f"file selection rejected: {outcome.value} ({file.media_type}, {file.size} bytes)")
        return outcome

    def set_options(self, options: SubmissionOptions) -> bool:
        if self._state is not SubmissionState.IDLE:
            return False
        self._options = options
        return True

    # -- transitions -------------------------------------------------------

    def _move(self, target: SubmissionState) -> None:
        if target not in _ALLOWED[self._state]:
            raise InvalidTransition(f"{self._state.value} -> {target.value}")
        logger.debug(f"submission {self._state.value} -> {target.value}")
        self._state = target

    def _fail(self, message: str, detail: Optional[str] = None) -> None:
        if detail:
            logger.warning(f"submission failed in {self._state.value}: {detail}")
        self._move(SubmissionState.ERRORED)
        self._error = message
        self._step = None

    def _notify(self, on_change: Optional[Callable[[SubmissionSnapshot], None]]) -> None:
        if on_change is not None:
            on_change(self.snapshot())

    async def submit(
        self,
        consent_given: bool,
        file: Optional[UploadedDocument] = None,
        options: Optional[SubmissionOptions] = None,
        on_change: Optional[Callable[[SubmissionSnapshot], None]] = None,
    ) -> SubmissionSnapshot:
        """Run one submission to ``COMPLETE`` or ``ERRORED``.

        Ignored (current snapshot returned) unless the machine is idle with
        nothing in flight. ``file`` defaults to the pending selection.
        ``on_change`` is called after every visible step change.
        """
        if self._state is not SubmissionState.IDLE or self._in_flight:
            logger.warning(f"submit ignored: state={self._state.value}, in_flight={self._in_flight}")
            return self.snapshot()

        if file is None:
            file = self._selected_file
        if options is not None:
            self._options = options

        self._error = None
        self._move(SubmissionState.VALIDATING)
        outcome = validate_submission_preconditions(consent_given, file, max_size=self._max_file_size)
        if not outcome.accepted:
            self._fail(outcome.message, f"preconditions: {outcome.value}")
            self._notify(on_change)
            return self.snapshot()

        request = SubmissionRequest.build(file, self._options)
        self._file_name = file.name
        generation = self._generation
        try:
            return await self._run(request, generation, on_change)
        except BaseException as e:
            # interrupted (rerun, cancellation): never leave the session busy
            if self._is_current(generation) and self.is_busy:
                self._fail(GENERIC_RETRY_MESSAGE, f"interrupted: {e!r}")
            raise

    async def _run(
        self,
        request: SubmissionRequest,
        generation: int,
        on_change: Optional[Callable[[SubmissionSnapshot], None]],
    ) -> SubmissionSnapshot:
        self._move(SubmissionState.UPLOADING)
        self._step = Step.UPLOADING
        self._notify(on_change)

        self._in_flight = True
        try:
            self._move(SubmissionState.AWAITING_ANALYSIS)
            self._step = Step.ANALYZING
            self._notify(on_change)
            envelope = await self._analyze(request)
        except CvSlayerError as e:
            if self._is_current(generation):
                self._fail(e.user_message, e.detail or repr(e))
                self._notify(on_change)
            return self.snapshot()
        except Exception as e:
            logger.exception("unexpected error during analysis request")
            if self._is_current(generation):
                self._fail(GENERIC_RETRY_MESSAGE, repr(e))
                self._notify(on_change)
            return self.snapshot()
        finally:
            self._in_flight = False

        if not self._is_current(generation):
            logger.info("discarding analysis reply that arrived after reset")
            return self.snapshot()

        self._step = Step.PROCESSING
        self._notify(on_change)

        if not envelope.success:
            self._fail(self._service_message(envelope), f"service reported failure: {envelope.error!r}")
            self._notify(on_change)
            return self.snapshot()

        self._move(SubmissionState.NORMALIZING)
        result = sanitize_result(envelope.data, fallback_file_name=request.file.name)
        logger.info(f"analysis normalized: score={result.score}, improvements={len(result.improvements)}, "
                    f"strengths={len(result.strengths)}, weaknesses={len(result.weaknesses)}")

        self._step = Step.COMPLETE
        self._notify(on_change)
        if self._complete_delay > 0:
            await self._sleep(self._complete_delay)
        if not self._is_current(generation):
            logger.info("discarding analysis result after reset")
            return self.snapshot()

        self._result = result
        self._move(SubmissionState.COMPLETE)
        self._notify(on_change)
        return self.snapshot()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    @staticmethod
    def _service_message(envelope: AnalysisEnvelope) -> str:
        message = clean_text(strip_markup(envelope.error_message() or ""))
        return truncate(message, SERVICE_MESSAGE_MAX) if message else ANALYSIS_FAILED_MESSAGE

    def reset(self) -> SubmissionSnapshot:
        if self._state is not SubmissionState.IDLE:
            logger.info(f"reset from {self._state.value}")
        self._generation += 1
        self._clear()
        return self.snapshot()
