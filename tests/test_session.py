import pytest

from conftest import AI_TEXT, REAL_TEXT, FakeGradio, tone

from mobile.liondetect.config import StreamConfig
from mobile.liondetect.errors import CaptureError
from mobile.liondetect.services.logger import LogBuffer
from mobile.liondetect.services.session import StreamSession
from mobile.liondetect.store.history_store import HistoryLedger

RATE = 8000


class FakeCapture:
    sample_rate = RATE

    def __init__(self, *, fail_start=False, fail_stop=False, sample_rate=RATE) -> None:
        self.sample_rate = sample_rate
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.sink = None
        self.on_error = None
        self.stopped = False

    def start(self, on_samples, on_error=None) -> None:
        if self.fail_start:
            raise CaptureError("no input device")
        self.sink = on_samples
        self.on_error = on_error

    def stop(self) -> None:
        self.stopped = True
        if self.fail_stop:
            raise CaptureError("device busy")


def _session(make_client, gradio, capture, **kwargs):
    config = StreamConfig(
        sample_rate=RATE,
        chunk_seconds=0.5,
        min_chunk_interval_ms=0,
        buffer_seconds=2.0,
        stream_poll_attempts=2,
        stream_poll_delay_ms=0,
    )
    return StreamSession(
        make_client(gradio),
        capture,
        LogBuffer(50),
        HistoryLedger(3),
        config=config,
        runner=lambda task: task(),
        background=False,
        **kwargs,
    )


def test_sustained_detection_alerts_once(make_client):
    gradio = FakeGradio([AI_TEXT, AI_TEXT, REAL_TEXT, AI_TEXT])
    capture = FakeCapture()
    alerts = []
    session = _session(make_client, gradio, capture, on_alert=alerts.append)
    session.start()

    for _ in range(4):
        capture.sink(tone(0.5, RATE))
        session.scheduler.tick()

    assert [r.chunk_id for r in alerts] == [1, 4]
    assert [r.chunk_id for r in session.history.list()] == [4, 3, 2]
    assert session.detector.state.active is True
    assert any("Detection ended after 2" in line for line in session.logger.get())

    session.stop()
    assert capture.stopped
    assert session.status == "Stopped"


def test_restart_resets_state_and_chunk_ids(make_client):
    capture = FakeCapture()
    session = _session(make_client, FakeGradio(AI_TEXT), capture)
    session.start()
    capture.sink(tone(0.5, RATE))
    session.scheduler.tick()
    assert session.detector.state.active
    session.stop()

    session.start()
    assert session.detector.state.consecutive_count == 0
    assert len(session.accumulator) == 0
    capture.sink(tone(0.5, RATE))
    assert session.scheduler.tick().chunk_id == 1


def test_capture_failure_at_start_propagates(make_client):
    session = _session(make_client, FakeGradio(), FakeCapture(fail_start=True))
    with pytest.raises(CaptureError):
        session.start()
    assert not session.running


def test_capture_failure_at_stop_propagates_after_scheduler_stops(make_client):
    session = _session(make_client, FakeGradio(), FakeCapture(fail_stop=True))
    session.start()
    with pytest.raises(CaptureError):
        session.stop()
    assert not session.running


def test_runtime_capture_failure_stops_the_session(make_client):
    errors = []
    capture = FakeCapture()
    session = _session(make_client, FakeGradio(), capture, on_error=errors.append)
    session.start()

    capture.on_error(CaptureError("stream lost"))

    assert not session.running
    assert session.status == "Capture failed: stream lost"
    assert str(errors[0]) == "stream lost"
    session.stop()
    assert capture.stopped


def test_fractional_chunk_fits_when_buffer_is_shorter(make_client):
    capture = FakeCapture(sample_rate=22050)
    config = StreamConfig(
        sample_rate=22050,
        chunk_seconds=1.1,
        buffer_seconds=1.0,
        min_chunk_interval_ms=0,
        stream_poll_attempts=1,
        stream_poll_delay_ms=0,
    )
    session = StreamSession(
        make_client(FakeGradio()),
        capture,
        LogBuffer(10),
        HistoryLedger(3),
        config=config,
        runner=lambda task: task(),
        background=False,
    )
    session.start()
    capture.sink(tone(5.0, 22050))

    job = session.scheduler.tick()

    assert job is not None
    assert len(job.payload) == 44 + 2 * session.scheduler.chunk_samples
    assert session.history.latest().chunk_id == 1
    session.stop()
