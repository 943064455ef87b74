"""HTTP client for worker-to-queue communication."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

import config
from worker.enums import ExchangeKind

logger = logging.getLogger(__name__)

# Fallback for requests made without an explicit timeout (seconds)
TIMEOUT_DEFAULT = 30.0


@dataclass(frozen=True)
class ExchangeResult:
    """
    Outcome of one request/response exchange.

    `body` is only set for OK results and is always a JSON object. HTTP
    error statuses that still carry a JSON object come back as OK so callers
    can read the server's own `ok`/`error` fields.
    """

    kind: ExchangeKind
    status_code: Optional[int] = None
    body: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return self.kind == ExchangeKind.OK


class JobQueueClient:
    """HTTP client for the job queue's claim and status endpoints."""

    def __init__(
        self,
        next_job_url: str,
        job_status_url: str,
        headers: Optional[Dict[str, str]] = None,
        claim_timeout: Optional[float] = None,
        report_timeout: Optional[float] = None,
    ):
        """
        Initialize the job queue client.

        Args:
            next_job_url: Full claim URL, including any authentication query
                          parameters supplied by the caller
            job_status_url: Status update URL
            headers: Extra headers merged over the JSON content type
                     (e.g. an auth token handed in by the caller)
            claim_timeout: Timeout for claim requests in seconds
                           (default: config.CLAIM_TIMEOUT)
            report_timeout: Timeout for status reports in seconds
                            (default: config.REPORT_TIMEOUT)
        """
        self.next_job_url = next_job_url
        self.job_status_url = job_status_url
        self.headers = {"Content-Type": "application/json", **(headers or {})}
        self.claim_timeout = claim_timeout if claim_timeout is not None else config.CLAIM_TIMEOUT
        self.report_timeout = report_timeout if report_timeout is not None else config.REPORT_TIMEOUT
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client with connection pooling."""
        if self._client is None or self._client.is_closed:
            limits = httpx.Limits(
                max_connections=4,
                max_keepalive_connections=2,
                keepalive_expiry=30.0,
            )
            self._client = httpx.AsyncClient(timeout=TIMEOUT_DEFAULT, limits=limits)
        return self._client

    async def exchange(
        self,
        method: str,
        url: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> ExchangeResult:
        """
        Perform a single request and parse the JSON response.

        Never raises for network or parse problems and never retries; the
        next poll cycle is the retry.
        """
        try:
            client = await self._get_client()
            resp = await client.request(
                method,
                url,
                headers=self.headers,
                json=json,
                params=params,
                timeout=timeout if timeout is not None else TIMEOUT_DEFAULT,
            )
        except (httpx.RequestError, httpx.InvalidURL) as e:
            # InvalidURL is raised while building the request, before any I/O
            return ExchangeResult(
                ExchangeKind.TRANSPORT_ERROR,
                error=f"{type(e).__name__}: {e}",
            )

        try:
            body = resp.json()
        except ValueError as e:
            return ExchangeResult(
                ExchangeKind.PARSE_ERROR,
                status_code=resp.status_code,
                error=f"Invalid JSON in HTTP {resp.status_code} response: {e}",
            )

        if not isinstance(body, dict):
            return ExchangeResult(
                ExchangeKind.PARSE_ERROR,
                status_code=resp.status_code,
                error=f"Expected a JSON object, got {type(body).__name__}",
            )

        if resp.is_error:
            logger.debug(f"HTTP {resp.status_code} from {method} {url}: {body}")
        return ExchangeResult(ExchangeKind.OK, status_code=resp.status_code, body=body)

    async def claim_job(self) -> ExchangeResult:
        """
        Ask the queue for the next job.

        Returns:
            Exchange result whose body carries `ok`, `has_job` and `job`
        """
        return await self.exchange("POST", self.next_job_url, timeout=self.claim_timeout)

    async def report_status(self, payload: dict) -> ExchangeResult:
        """
        Send a job status update.

        Args:
            payload: JSON body (job id, status token, worker identity, detail)

        Returns:
            Exchange result whose body carries `ok`
        """
        return await self.exchange(
            "POST",
            self.job_status_url,
            json=payload,
            timeout=self.report_timeout,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
