from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx

from guide.dto import AnalysisJob, JobStatus
from guide.errors import AnalysisFailure, AnalysisTimeout
from guide.logger import get_logger

logger = get_logger(__name__)

_STATUS_MAP = {
    "notstarted": JobStatus.PENDING,
    "running": JobStatus.PENDING,
    "pending": JobStatus.PENDING,
    "succeeded": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
}


class VisionAnalyzer:
    """
    Async client for a submit/poll image analyzer.
    POST the image → 202 + Operation-Location → GET until terminal.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        analyzer_id: str,
        api_version: str,
        label_field: str = "landmark",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.analyzer_id = analyzer_id
        self.api_version = api_version
        self.label_field = label_field
        self.headers = {"Ocp-Apim-Subscription-Key": api_key}
        self._client = client or httpx.AsyncClient(timeout=30.0)

    async def submit(self, image_bytes: bytes) -> AnalysisJob:
        url = f"{self.endpoint}/contentunderstanding/analyzers/{self.analyzer_id}:analyze"
        response = await self._client.post(
            url,
            params={"api-version": self.api_version},
            headers={**self.headers, "Content-Type": "application/octet-stream"},
            content=image_bytes,
        )
        response.raise_for_status()

        handle = response.headers.get("Operation-Location")
        if not handle:
            raise AnalysisFailure("Analyzer did not return an Operation-Location")
        return AnalysisJob(operation_handle=handle)

    async def poll(self, job: AnalysisJob) -> AnalysisJob:
        response = await self._client.get(job.operation_handle, headers=self.headers)
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise AnalysisFailure(f"Unexpected analysis status body: {body!r}")

        raw_status = str(body.get("status", "")).lower()
        status = _STATUS_MAP.get(raw_status)
        if status is None:
            raise AnalysisFailure(f"Unknown analysis status '{body.get('status')}'")

        job.status = status
        if status is JobStatus.SUCCEEDED:
            job.result_label = self.extract_label(body.get("result") or {})
        elif status is JobStatus.FAILED:
            error = body.get("error") or {}
            job.error = error.get("message") if isinstance(error, dict) else str(error)
        return job

    def extract_label(self, result: Dict[str, Any]) -> Optional[str]:
        contents = result.get("contents") or []
        if not contents:
            return None
        field = (contents[0].get("fields") or {}).get(self.label_field)
        if not field:
            return None
        label = field.get("valueString") if isinstance(field, dict) else field
        if isinstance(label, str) and label.strip():
            return label.strip()
        return None

    async def aclose(self):
        await self._client.aclose()


class AnalysisPoller:
    """
    Submits an image and polls the job until it reaches a terminal state.

    Polling is bounded by ``max_attempts`` (None disables the bound); an
    exhausted budget marks the job TIMED_OUT and raises AnalysisTimeout.
    """

    def __init__(self, analyzer, poll_interval: float = 2.0, max_attempts: Optional[int] = 60):
        self.analyzer = analyzer
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts

    async def analyze(self, image_bytes: bytes) -> Optional[str]:
        try:
            job = await self.analyzer.submit(image_bytes)
            logger.info(f"📷 Analysis submitted ({len(image_bytes)} bytes)")

            attempts = 0
            while True:
                job = await self.analyzer.poll(job)
                attempts += 1
                if job.status.is_terminal:
                    break
                if self.max_attempts is not None and attempts >= self.max_attempts:
                    job.status = JobStatus.TIMED_OUT
                    raise AnalysisTimeout(f"Analysis still pending after {attempts} polls")
                await asyncio.sleep(self.poll_interval)
        except (httpx.HTTPError, ValueError) as e:
            raise AnalysisFailure(f"Analysis request failed: {e}") from e

        if job.status is JobStatus.FAILED:
            raise AnalysisFailure(job.error or "Analysis failed")

        if job.result_label:
            logger.info(f"🔍 Identified '{job.result_label}' after {attempts} poll(s)")
        else:
            logger.info("🔍 Analysis finished without an identification")
        return job.result_label or None
