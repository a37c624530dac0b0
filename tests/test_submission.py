import asyncio
from functools import partial

import httpx
import pytest

from cv_slayer.config import ANALYSIS_FAILED_MESSAGE, GENERIC_RETRY_MESSAGE
from cv_slayer.errors import ServiceRejected
from cv_slayer.models import AnalysisEnvelope, Language, Priority, RoastLevel, SubmissionOptions, UploadedDocument
from cv_slayer.services.analysis_client import request_analysis
from cv_slayer.submission import STEP_MESSAGES, STEP_PROGRESS, Step, SubmissionState, SubmissionStateMachine
from cv_slayer.validation import ValidationOutcome

BASE_URL = "http://cv-slayer.test/api"


def machine_for(transport, **kwargs) -> SubmissionStateMachine:
    analyze = partial(request_analysis, base_url=BASE_URL, transport=transport)
    return SubmissionStateMachine(analyze, complete_delay=0, **kwargs)


def ok_reply(data):
    return lambda request: httpx.Response(200, json={"success": True, "data": data})


def test_scenario_a_consent_required_without_network(make_transport, pdf_file):
    transport = make_transport(ok_reply({"score": 50}))
    m = machine_for(transport)
    snap = asyncio.run(m.submit(False, pdf_file))
    assert snap.state is SubmissionState.ERRORED
    assert snap.error == ValidationOutcome.CONSENT_REQUIRED.message
    assert "Terms" in snap.error
    assert transport.requests == []


def test_scenario_b_score_and_priority_sanitized(make_transport, pdf_file):
    transport = make_transport(ok_reply({"score": 137, "strengths": ["a"], "improvements": [{"priority": "urgent"}]}))
    m = machine_for(transport)
    snap = asyncio.run(m.submit(True, pdf_file))
    assert snap.state is SubmissionState.COMPLETE
    assert snap.error is None
    assert snap.result.score == 100
    assert snap.result.strengths == ("a",)
    assert snap.result.improvements[0].priority is Priority.MEDIUM
    assert snap.file_name == pdf_file.name
    assert snap.result.file_name == pdf_file.name
    assert snap.step is Step.COMPLETE and snap.progress == 100
    assert len(transport.requests) == 1


def test_scenario_c_http_error_is_generic(make_transport, pdf_file):
    transport = make_transport(lambda r: httpx.Response(503, text="upstream gemini quota exceeded (code 8812)"))
    m = machine_for(transport)
    snap = asyncio.run(m.submit(True, pdf_file))
    assert snap.state is SubmissionState.ERRORED
    assert snap.error == ANALYSIS_FAILED_MESSAGE
    assert "503" not in snap.error and "8812" not in snap.error
    assert snap.result is None


def test_transport_failure_collapses_to_retry_message(make_transport, pdf_file):
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    m = machine_for(make_transport(boom))
    snap = asyncio.run(m.submit(True, pdf_file))
    assert snap.state is SubmissionState.ERRORED
    assert snap.error == GENERIC_RETRY_MESSAGE


def test_timeout_collapses_to_retry_message(make_transport, pdf_file):
    def slow(request):
        raise httpx.ReadTimeout("timed out", request=request)

    snap = asyncio.run(machine_for(make_transport(slow)).submit(True, pdf_file))
    assert snap.error == GENERIC_RETRY_MESSAGE


def test_service_failure_uses_service_message(make_transport, pdf_file):
    reply = {"success": False, "error": {"message": "Could not read <b>this</b> PDF", "code": "PARSE"}}
    m = machine_for(make_transport(lambda r: httpx.Response(200, json=reply)))
    snap = asyncio.run(m.submit(True, pdf_file))
    assert snap.state is SubmissionState.ERRORED
    assert snap.error == "Could not read bthis/b PDF"


def test_service_failure_without_message_falls_back(make_transport, pdf_file):
    m = machine_for(make_transport(lambda r: httpx.Response(200, json={"success": False})))
    assert asyncio.run(m.submit(True, pdf_file)).error == ANALYSIS_FAILED_MESSAGE


def test_reply_without_success_flag_is_a_failure(make_transport, pdf_file):
    m = machine_for(make_transport(lambda r: httpx.Response(200, json={"score": 90})))
    snap = asyncio.run(m.submit(True, pdf_file))
    assert snap.state is SubmissionState.ERRORED
    assert snap.error == ANALYSIS_FAILED_MESSAGE


def test_non_json_reply_is_a_failure(make_transport, pdf_file):
    m = machine_for(make_transport(lambda r: httpx.Response(200, text="<html>oops</html>")))
    assert asyncio.run(m.submit(True, pdf_file)).state is SubmissionState.ERRORED


def test_unexpected_exception_is_absorbed(pdf_file):
    async def broken(request):
        raise KeyError("internal detail")

    m = SubmissionStateMachine(broken, complete_delay=0)
    snap = asyncio.run(m.submit(True, pdf_file))
    assert snap.state is SubmissionState.ERRORED
    assert "internal" not in snap.error


def test_submit_is_noop_outside_idle(make_transport, pdf_file):
    transport = make_transport(ok_reply({"score": 10}))
    m = machine_for(transport)
    asyncio.run(m.submit(True, pdf_file))
    assert m.state is SubmissionState.COMPLETE
    snap = asyncio.run(m.submit(True, pdf_file))
    assert snap.state is SubmissionState.COMPLETE
    assert len(transport.requests) == 1

    m2 = machine_for(transport)
    asyncio.run(m2.submit(False, pdf_file))
    assert asyncio.run(m2.submit(True, pdf_file)).state is SubmissionState.ERRORED
    assert len(transport.requests) == 1


def test_progress_steps_reported_in_order(make_transport, pdf_file):
    m = machine_for(make_transport(ok_reply({"score": 70})))
    seen = []
    asyncio.run(m.submit(True, pdf_file, on_change=lambda s: seen.append((s.state, s.step, s.progress))))
    steps = [step for _, step, _ in seen if step is not None]
    assert [s for i, s in enumerate(steps) if i == 0 or steps[i - 1] != s] == [
        Step.UPLOADING, Step.ANALYZING, Step.PROCESSING, Step.COMPLETE]
    assert [STEP_PROGRESS[s] for s in Step] == [25, 50, 75, 100]
    assert seen[-1][0] is SubmissionState.COMPLETE


def test_complete_step_waits_before_showing_result(make_transport, pdf_file):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    analyze = partial(request_analysis, base_url=BASE_URL, transport=make_transport(ok_reply({"score": 1})))
    m = SubmissionStateMachine(analyze, complete_delay=0.8, sleep=fake_sleep)
    asyncio.run(m.submit(True, pdf_file))
    assert delays == [0.8]
    assert m.state is SubmissionState.COMPLETE


def test_reset_restores_defaults(make_transport, pdf_file):
    m = machine_for(make_transport(ok_reply({"score": 70})))
    m.select_file(pdf_file)
    m.set_options(SubmissionOptions(roast_level=RoastLevel.SAVAGE, language=Language.HINDI))
    asyncio.run(m.submit(True))
    assert m.result is not None
    assert m.set_options(SubmissionOptions()) is False

    snap = m.reset()
    assert snap.state is SubmissionState.IDLE
    assert snap.result is None and snap.error is None and snap.step is None and snap.file_name is None
    assert m.selected_file is None
    assert snap.options == SubmissionOptions()


def test_reset_from_errored_allows_retry(make_transport, pdf_file):
    transport = make_transport(ok_reply({"score": 42}))
    m = machine_for(transport)
    asyncio.run(m.submit(False, pdf_file))
    m.reset()
    assert asyncio.run(m.submit(True, pdf_file)).result.score == 42


def test_reset_supersedes_late_reply(pdf_file):
    async def scenario():
        gate = asyncio.Event()

        async def analyze(request):
            await gate.wait()
            return AnalysisEnvelope(success=True, data={"score": 99})

        m = SubmissionStateMachine(analyze, complete_delay=0)
        task = asyncio.create_task(m.submit(True, pdf_file))
        await asyncio.sleep(0)
        assert m.state is SubmissionState.AWAITING_ANALYSIS
        assert m.is_busy

        ignored = await m.submit(True, pdf_file)
        assert ignored.state is SubmissionState.AWAITING_ANALYSIS

        m.reset()
        # still one request outstanding, so a new submit waits its turn
        assert (await m.submit(True, pdf_file)).state is SubmissionState.IDLE

        gate.set()
        await task
        return m

    m = asyncio.run(scenario())
    assert m.state is SubmissionState.IDLE
    assert m.result is None


def test_late_failure_after_reset_is_discarded(pdf_file):
    async def scenario():
        gate = asyncio.Event()

        async def analyze(request):
            await gate.wait()
            raise ServiceRejected("nope")

        m = SubmissionStateMachine(analyze, complete_delay=0)
        task = asyncio.create_task(m.submit(True, pdf_file))
        await asyncio.sleep(0)
        m.reset()
        gate.set()
        await task
        return m

    m = asyncio.run(scenario())
    assert m.state is SubmissionState.IDLE
    assert m.error is None


def test_select_file_rejects_bad_selection(pdf_file):
    m = SubmissionStateMachine(complete_delay=0)
    assert m.select_file(pdf_file) is ValidationOutcome.ACCEPTED
    assert m.selected_file == pdf_file
    png = UploadedDocument(name="me.png", size=10, media_type="image/png")
    assert m.select_file(png) is ValidationOutcome.UNSUPPORTED_TYPE
    assert m.selected_file is None
    assert m.state is SubmissionState.IDLE


def test_submit_without_selection_needs_a_file(make_transport):
    transport = make_transport(ok_reply({}))
    snap = asyncio.run(machine_for(transport).submit(True))
    assert snap.error == ValidationOutcome.FILE_REQUIRED.message
    assert transport.requests == []


@pytest.mark.parametrize("language, expected", [
    (Language.ENGLISH, "Uploading your resume..."),
    (Language.HINGLISH, "Tumhara resume upload ho raha hai..."),
])
def test_step_message_localized(make_transport, pdf_file, language, expected):
    m = machine_for(make_transport(ok_reply({})))
    messages = []
    asyncio.run(m.submit(True, pdf_file, options=SubmissionOptions(language=language),
                         on_change=lambda s: messages.append(m.step_message())))
    assert messages[0] == expected
    assert m.step_message() == STEP_MESSAGES[language][Step.COMPLETE]


class PageRerun(BaseException):
    """Stands in for the control-flow exception a UI framework raises mid-script."""


def test_interrupted_progress_callback_leaves_retryable_error(make_transport, pdf_file):
    transport = make_transport(ok_reply({"score": 64}))
    m = machine_for(transport)
    calls = []

    def on_change(snap):
        calls.append(snap.step)
        if len(calls) == 3:
            raise PageRerun()

    with pytest.raises(PageRerun):
        asyncio.run(m.submit(True, pdf_file, on_change=on_change))
    assert m.state is SubmissionState.ERRORED
    assert not m.is_busy
    assert m.error == GENERIC_RETRY_MESSAGE
    assert m.result is None

    m.reset()
    assert asyncio.run(m.submit(True, pdf_file)).result.score == 64


def test_cancelled_analysis_leaves_retryable_error(pdf_file):
    async def cancelled(request):
        raise asyncio.CancelledError()

    m = SubmissionStateMachine(cancelled, complete_delay=0)
    with pytest.raises(asyncio.CancelledError):
        asyncio.run(m.submit(True, pdf_file))
    assert m.state is SubmissionState.ERRORED
    assert not m.is_busy
    assert m.error == GENERIC_RETRY_MESSAGE


def test_interrupt_during_complete_pause(make_transport, pdf_file):
    async def interrupted_sleep(seconds):
        raise PageRerun()

    analyze = partial(request_analysis, base_url=BASE_URL, transport=make_transport(ok_reply({"score": 5})))
    m = SubmissionStateMachine(analyze, complete_delay=0.8, sleep=interrupted_sleep)
    with pytest.raises(PageRerun):
        asyncio.run(m.submit(True, pdf_file))
    assert m.state is SubmissionState.ERRORED
    assert m.step is None


def test_interrupt_after_reset_keeps_idle(pdf_file):
    async def scenario():
        gate = asyncio.Event()

        async def analyze(request):
            await gate.wait()
            raise asyncio.CancelledError()

        m = SubmissionStateMachine(analyze, complete_delay=0)
        task = asyncio.create_task(m.submit(True, pdf_file))
        await asyncio.sleep(0)
        m.reset()
        gate.set()
        with pytest.raises(asyncio.CancelledError):
            await task
        return m

    m = asyncio.run(scenario())
    assert m.state is SubmissionState.IDLE
    assert m.error is None
