"""HTTP client for the Gradio upload / submit / poll protocol."""

from __future__ import annotations

import json
import logging
import time
from typing import Optional

import httpx

from ..config import CONFIG
from ..errors import InferenceError, JobCancelledError, PollTimeoutError, SubmitError, UploadError
from ..models import InferenceJob, JobStatus
from ..store.settings_store import SettingsStore

LOGGER = logging.getLogger("liondetect.inference")

_DATA_PREFIX = "data: "


def extract_result(stream_text: str) -> Optional[str]:
    """Return the first ``data:`` array whose head is a non-empty string."""
    for line in stream_text.splitlines():
        if not line.startswith(_DATA_PREFIX):
            continue
        try:
            data = json.loads(line[len(_DATA_PREFIX):])
        except ValueError:
            continue
        if isinstance(data, list) and data and isinstance(data[0], str) and data[0]:
            return data[0]
    return None


class InferenceClient:
    def __init__(
        self,
        settings: SettingsStore,
        *,
        timeout: float = CONFIG.request_timeout,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.settings_store = settings
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def _headers(self) -> dict:
        token = self.settings_store.get().api_token
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def _url(self, path: str) -> str:
        base = (self.settings_store.get().server_url or CONFIG.server_url).rstrip("/")
        return f"{base}{path}"

    def upload(self, payload: bytes, filename: str = "audio.wav") -> str:
        try:
            resp = self._client.post(
                self._url("/upload"),
                headers=self._headers(),
                files={"files": (filename, payload, "audio/wav")},
            )
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as exc:
            raise UploadError(f"Upload failed: {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise UploadError(f"Upload failed: {exc}") from exc
        except ValueError as exc:
            raise UploadError(f"Invalid upload response: {exc}") from exc
        if not isinstance(body, list) or not body or not isinstance(body[0], str):
            raise UploadError(f"Unexpected upload response: {body!r}")
        return body[0]

    def submit(self, uploaded_path: str) -> str:
        request = {"data": [{"path": uploaded_path, "meta": {"_type": "gradio.FileData"}}]}
        try:
            resp = self._client.post(self._url("/call/predict"), headers=self._headers(), json=request)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as exc:
            raise SubmitError(f"Submit failed: {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise SubmitError(f"Submit failed: {exc}") from exc
        except ValueError as exc:
            raise SubmitError(f"Invalid submit response: {exc}") from exc
        event_id = body.get("event_id") if isinstance(body, dict) else None
        if not isinstance(event_id, str) or not event_id:
            raise SubmitError(f"Submit response missing event_id: {body!r}")
        return event_id

    def poll(
        self,
        event_id: str,
        *,
        attempts: int = CONFIG.stream_poll_attempts,
        delay: float = CONFIG.stream_poll_delay_ms / 1000.0,
        job: Optional[InferenceJob] = None,
    ) -> str:
        url = self._url(f"/call/predict/{event_id}")
        for attempt in range(1, attempts + 1):
            if job is not None and job.cancelled:
                raise JobCancelledError(f"Chunk {job.chunk_id} cancelled")
            try:
                resp = self._client.get(url, headers=self._headers())
                resp.raise_for_status()
            except httpx.HTTPError as exc:
                LOGGER.debug("Poll attempt %d for %s failed: %s", attempt, event_id, exc)
            else:
                result = extract_result(resp.text)
                if result is not None:
                    return result
            if attempt == attempts:
                break
            if job is not None:
                if job.wait(delay):
                    raise JobCancelledError(f"Chunk {job.chunk_id} cancelled")
            elif delay > 0:
                time.sleep(delay)
        raise PollTimeoutError(f"No result for {event_id} after {attempts} attempts")

    def classify(
        self,
        payload: bytes,
        *,
        job: Optional[InferenceJob] = None,
        attempts: int = CONFIG.stream_poll_attempts,
        delay: float = CONFIG.stream_poll_delay_ms / 1000.0,
    ) -> str:
        """Run upload, submit and poll for one payload and return the raw result text."""
        job = job or InferenceJob(chunk_id=0, payload=payload)
        try:
            job.status = JobStatus.UPLOADING
            job.uploaded_path = self.upload(payload)
            self._check_cancelled(job)
            job.event_id = self.submit(job.uploaded_path)
            job.status = JobStatus.SUBMITTED
            self._check_cancelled(job)
            job.status = JobStatus.POLLING
            text = self.poll(job.event_id, attempts=attempts, delay=delay, job=job)
        except JobCancelledError:
            job.status = JobStatus.CANCELLED
            raise
        except PollTimeoutError:
            job.status = JobStatus.TIMED_OUT
            raise
        except InferenceError:
            job.status = JobStatus.FAILED
            raise
        job.status = JobStatus.COMPLETED
        return text

    @staticmethod
    def _check_cancelled(job: InferenceJob) -> None:
        if job.cancelled:
            raise JobCancelledError(f"Chunk {job.chunk_id} cancelled")

    def close(self) -> None:
        self._client.close()


__all__ = ["InferenceClient", "extract_result"]
