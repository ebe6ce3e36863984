"""Generation API client with rate limiting and retry.

This module provides the HTTP client for the remote generation API (Google
Flow via useapi.net): image generation, asset upload, async video jobs, job
status and media download. It implements:
- Global request rate limit via AsyncLimiter
- Automatic retry with exponential backoff for retriable failures
  (429, 5xx, timeouts, connection errors) up to a configured attempt count
- Immediate failure for every other non-2xx response
- No retry on job status queries (the job poller owns that loop)

Usage:
    client = GenerationClient(auth_token)
    result = await client.generate_images("a red fox at dawn", count=4)
    await client.close()
"""

from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx
from aiolimiter import AsyncLimiter
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from clipflow.config import (
    get_generation_api_base_url,
    get_generation_max_retries,
    get_generation_rate_limit,
    get_generation_retry_base_delay,
    get_generation_retry_max_delay,
    get_image_model,
    get_video_model,
)
from clipflow.schemas.project import GeneratedImage
from clipflow.services.interfaces import (
    JOB_STATUS_COMPLETED,
    ImageGenerationResult,
    JobStatus,
)
from clipflow.utils.logging import get_logger

log = get_logger(__name__)

RETRIABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class GenerationAPIError(Exception):
    """Raised for a non-2xx response from the generation API.

    Attributes:
        status_code: HTTP status code of the response
        response_body: Decoded JSON body, or raw text
    """

    def __init__(self, message: str, status_code: int, response_body: Any = None):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(f"{message} - Status: {status_code}")


def is_retriable_error(exception: BaseException) -> bool:
    """Determine if an error should trigger retry logic.

    Returns:
        True for rate limits, server errors and network failures.
    """
    if isinstance(exception, GenerationAPIError):
        return exception.status_code in RETRIABLE_STATUS_CODES
    return isinstance(exception, (httpx.TimeoutException, httpx.ConnectError))


def _error_text(body: Any) -> str:
    """Extract a readable error message from an API error body."""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or error)
        if error:
            return str(error)
        return str(body)
    return str(body)


def _log_retry(retry_state: RetryCallState) -> None:
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    log.warning(
        "generation_api_retry",
        attempt=retry_state.attempt_number,
        error=str(exception),
        next_wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
    )


class GenerationClient:
    """Client for the remote generation API.

    Attributes:
        base_url: API root (e.g., "https://api.useapi.net")
        client: Shared async HTTP client
        rate_limiter: Requests-per-second limiter shared by every call
    """

    def __init__(
        self,
        auth_token: str,
        base_url: str | None = None,
        max_retries: int | None = None,
        retry_base_delay: float | None = None,
        retry_max_delay: float | None = None,
        rate_limit: int | None = None,
        image_model: str | None = None,
        video_model: str | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            auth_token: Bearer token for the API
            base_url: API root, defaults to GENERATION_API_BASE_URL
            max_retries: Extra attempts for retriable failures
            retry_base_delay: Backoff multiplier in seconds
            retry_max_delay: Backoff ceiling in seconds
            rate_limit: Requests per second
            image_model: Default image model name
            video_model: Default video model name
        """
        self.auth_token = auth_token
        self.base_url = (base_url or get_generation_api_base_url()).rstrip("/")
        self.max_retries = get_generation_max_retries() if max_retries is None else max_retries
        self.retry_base_delay = (
            get_generation_retry_base_delay() if retry_base_delay is None else retry_base_delay
        )
        self.retry_max_delay = (
            get_generation_retry_max_delay() if retry_max_delay is None else retry_max_delay
        )
        self.image_model = image_model or get_image_model()
        self.video_model = video_model or get_video_model()
        self.client = httpx.AsyncClient(timeout=httpx.Timeout(60.0, read=300.0))
        self.rate_limiter = AsyncLimiter(
            max_rate=rate_limit or get_generation_rate_limit(), time_period=1
        )

    def _get_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self.auth_token}"}
        if extra:
            headers.update(extra)
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send one request (rate limited) and decode the response.

        Raises:
            GenerationAPIError: On any non-2xx response
        """
        log.debug("generation_api_request", method=method, path=path)
        async with self.rate_limiter:
            response = await self.client.request(
                method,
                f"{self.base_url}{path}",
                headers=self._get_headers(headers),
                json=json,
                content=content,
            )

        content_type = response.headers.get("content-type", "")
        body: Any = response.json() if "application/json" in content_type else response.text

        if response.status_code >= 400:
            raise GenerationAPIError(
                f"API {method} {path} failed: {_error_text(body)}",
                response.status_code,
                body,
            )
        return body

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request, retrying retriable failures with exponential backoff."""
        result: Any = None
        async for attempt in AsyncRetrying(
            retry=retry_if_exception(is_retriable_error),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.retry_base_delay, max=self.retry_max_delay),
            before_sleep=_log_retry,
            reraise=True,
        ):
            with attempt:
                result = await self._send(method, path, **kwargs)
        return result

    async def generate_images(
        self,
        prompt: str,
        *,
        model: str | None = None,
        aspect_ratio: str = "portrait",
        count: int = 1,
        email: str | None = None,
    ) -> ImageGenerationResult:
        """Generate one or more image candidates for a prompt.

        Returns:
            ImageGenerationResult with one GeneratedImage per returned media item

        Raises:
            GenerationAPIError: If the request fails after retries
        """
        body: dict[str, Any] = {
            "prompt": prompt,
            "model": model or self.image_model,
            "aspectRatio": aspect_ratio,
            "count": count,
        }
        if email:
            body["email"] = email

        response = await self._request("POST", "/v1/google-flow/images", json=body)

        media = []
        for item in response.get("media", []):
            generated = item["image"]["generatedImage"]
            media.append(
                GeneratedImage(
                    url=generated["fifeUrl"],
                    asset_ref=generated["mediaGenerationId"],
                    seed=generated.get("seed"),
                )
            )

        log.info("images_generated", job_id=response.get("jobId"), count=len(media))
        return ImageGenerationResult(job_id=response.get("jobId", ""), media=media)

    async def upload_asset(
        self, image_bytes: bytes, content_type: str, *, email: str | None = None
    ) -> str:
        """Upload an image and return its opaque asset reference.

        The reference is used as the starting frame of a video job.
        """
        path = "/v1/google-flow/assets"
        if email:
            path = f"{path}/{quote(email, safe='')}"

        response = await self._request(
            "POST",
            path,
            content=image_bytes,
            headers={"Content-Type": content_type},
        )
        asset_ref = response["mediaGenerationId"]["mediaGenerationId"]
        log.info("asset_uploaded", asset_ref=asset_ref[:40], size_bytes=len(image_bytes))
        return asset_ref

    async def submit_video_job(
        self,
        prompt: str,
        *,
        start_image_ref: str,
        aspect_ratio: str = "portrait",
        model: str | None = None,
        email: str | None = None,
    ) -> str:
        """Submit an async image-to-video job and return its job id."""
        body: dict[str, Any] = {
            "prompt": prompt,
            "model": model or self.video_model,
            "aspectRatio": aspect_ratio,
            "count": 1,
            "async": True,
            "startImage": start_image_ref,
        }
        if email:
            body["email"] = email

        response = await self._request("POST", "/v1/google-flow/videos", json=body)
        job_id = response["jobid"]
        log.info("video_job_submitted", job_id=job_id)
        return job_id

    async def get_job_status(self, job_id: str) -> JobStatus:
        """Query a job's status once (no retry).

        Returns:
            JobStatus; result_url is filled for completed video jobs
        """
        response = await self._send("GET", f"/v1/google-flow/jobs/{job_id}")
        status = response.get("status", "")

        result_url = None
        if status == JOB_STATUS_COMPLETED:
            result_url = self._video_url_from_job(response)

        return JobStatus(
            job_id=job_id,
            status=status,
            payload=response,
            error=response.get("error") or response.get("errorDetails"),
            result_url=result_url,
        )

    @staticmethod
    def _video_url_from_job(job: dict[str, Any]) -> str | None:
        """Extract the video download URL from a completed job body."""
        operations = (job.get("response") or {}).get("operations") or []
        if not operations:
            return None
        metadata = (operations[0].get("operation") or {}).get("metadata") or {}
        return (metadata.get("video") or {}).get("fifeUrl")

    async def get_accounts(self) -> dict[str, Any]:
        """List configured accounts keyed by email."""
        return await self._request("GET", "/v1/google-flow/accounts")

    async def download_file(self, url: str, destination: Path) -> Path:
        """Download a signed media URL to a local path.

        Raises:
            GenerationAPIError: If the download returns a non-2xx status
        """
        response = await self.client.get(url, follow_redirects=True)
        if response.status_code >= 400:
            raise GenerationAPIError(f"Download failed: {url[:80]}", response.status_code)

        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(response.content)
        log.info("file_downloaded", path=str(destination), size_bytes=len(response.content))
        return destination

    async def close(self) -> None:
        """Close HTTP client connection."""
        await self.client.aclose()
