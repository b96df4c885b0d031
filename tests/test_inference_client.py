import httpx
import pytest

from conftest import AI_TEXT, FakeGradio

from mobile.liondetect.errors import JobCancelledError, PollTimeoutError, SubmitError, UploadError
from mobile.liondetect.models import InferenceJob, JobStatus
from mobile.liondetect.services.inference import extract_result


def test_classify_runs_upload_submit_poll(make_client):
    gradio = FakeGradio(pending_polls=2)
    client = make_client(gradio)
    job = InferenceJob(chunk_id=3, payload=b"RIFF....")

    text = client.classify(job.payload, job=job, attempts=5, delay=0)

    assert text == AI_TEXT
    assert gradio.calls == {"upload": 1, "submit": 1, "poll": 3}
    assert gradio.submitted[0] == {"data": [{"path": "/tmp/gradio/1/audio.wav", "meta": {"_type": "gradio.FileData"}}]}
    assert job.uploaded_path == "/tmp/gradio/1/audio.wav"
    assert job.event_id == "evt-1"
    assert job.status is JobStatus.COMPLETED


def test_upload_sends_multipart_files_field(make_client):
    seen = {}

    def handler(request):
        seen["body"] = request.content
        seen["type"] = request.headers["content-type"]
        return httpx.Response(200, json=["/tmp/x.wav"])

    assert make_client(handler).upload(b"RIFFDATA") == "/tmp/x.wav"
    assert seen["type"].startswith("multipart/form-data")
    assert b'name="files"; filename="audio.wav"' in seen["body"]
    assert b"RIFFDATA" in seen["body"]


def test_upload_status_error(make_client):
    client = make_client(FakeGradio(upload_status=503))
    job = InferenceJob(chunk_id=1, payload=b"x")
    with pytest.raises(UploadError, match="503"):
        client.classify(b"x", job=job, attempts=1, delay=0)
    assert job.status is JobStatus.FAILED


def test_submit_without_event_id(make_client):
    def handler(request):
        if request.url.path.endswith("/upload"):
            return httpx.Response(200, json=["/tmp/x.wav"])
        return httpx.Response(200, json={"detail": "queue full"})

    with pytest.raises(SubmitError):
        make_client(handler).classify(b"x", attempts=1, delay=0)


def test_poll_times_out_after_attempt_budget(make_client):
    gradio = FakeGradio(pending_polls=100)
    job = InferenceJob(chunk_id=1, payload=b"x")
    with pytest.raises(PollTimeoutError):
        make_client(gradio).classify(b"x", job=job, attempts=4, delay=0)
    assert gradio.calls["poll"] == 4
    assert job.status is JobStatus.TIMED_OUT


def test_poll_survives_transport_errors(make_client):
    state = {"polls": 0}

    def handler(request):
        state["polls"] += 1
        if state["polls"] == 1:
            raise httpx.ConnectError("reset")
        return httpx.Response(200, text='data: ["AI Generated: 1% Real Voice: 99%"]\n')

    assert make_client(handler).poll("evt", attempts=3, delay=0) == "AI Generated: 1% Real Voice: 99%"


def test_cancelled_job_stops_polling(make_client):
    gradio = FakeGradio(pending_polls=100)
    job = InferenceJob(chunk_id=9, payload=b"x")
    gradio.on_poll = job.cancel
    with pytest.raises(JobCancelledError):
        make_client(gradio).classify(b"x", job=job, attempts=10, delay=5.0)
    assert gradio.calls["poll"] == 1
    assert job.status is JobStatus.CANCELLED


def test_bearer_token_is_sent_when_configured(make_client):
    seen = []

    def handler(request):
        seen.append(request.headers.get("authorization"))
        return httpx.Response(200, json=["/tmp/x.wav"])

    client = make_client(handler)
    client.upload(b"x")
    client.settings_store.update(api_token="hf_secret")
    client.upload(b"x")
    assert seen == [None, "Bearer hf_secret"]


def test_extract_result_skips_malformed_lines():
    stream = "\n".join(
        [
            "event: generating",
            "data: {not json",
            "data: null",
            'data: [""]',
            "data: [42]",
            'data: ["AI Generated: 70% | Real Voice: 30%"]',
            'data: ["second"]',
        ]
    )
    assert extract_result(stream) == "AI Generated: 70% | Real Voice: 30%"
    assert extract_result("event: error\ndata: null\n") is None
