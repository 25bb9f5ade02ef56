"""
Save Page Now (SPN) client.

Submissions are paced by a RateLimiter shared by every caller in the process:
SPN tolerates roughly one capture request every 10 seconds per client, no
matter which credentials are used. Status polls are not paced.
"""

import logging
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Callable, List, Optional
from urllib.parse import quote

import requests

from .exceptions import (
    InvalidCredentialsError,
    InvalidResponseError,
    MissingCredentialsError,
    RateLimitedError,
    RateLimitWaitCancelled,
    SnapshotError,
    SnapshotHTTPError,
)
from .fetch_wikitext import get_session
from .utils import CancellationToken

logger = logging.getLogger(__name__)

SPN_SUBMIT_URL = 'https://web.archive.org/save'
SPN_STATUS_URL = 'https://web.archive.org/save/status/'
MAX_SUBMIT_URLS = 10
DEFAULT_MIN_INTERVAL = 10.0
DEFAULT_SUBMIT_TIMEOUT = 30.0
DEFAULT_STATUS_TIMEOUT = 10.0

JOB_PENDING = 'pending'
JOB_SUCCESS = 'success'
JOB_ERROR = 'error'


@dataclass
class SnapshotJob:
    """A pending or completed capture request."""
    url: str = ''
    job_id: str = ''
    status: str = JOB_PENDING
    timestamp: str = ''
    error: str = ''

    def to_dict(self) -> dict:
        data = asdict(self)
        for optional in ('timestamp', 'error'):
            if not data[optional]:
                del data[optional]
        return data


@dataclass
class SubmitResponse:
    """Outcome of a batch submission: one job per URL plus the collected error messages."""
    submitted: List[SnapshotJob] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {'submitted': [job.to_dict() for job in self.submitted]}
        if self.errors:
            data['errors'] = list(self.errors)
        return data


class RateLimiter:
    """
    Global pacing gate for SPN submissions.

    wait() blocks until at least min_interval seconds have passed since the
    previous call returned, across all threads. The lock is held while
    waiting, so concurrent submitters are served one at a time.
    """

    def __init__(self, min_interval: float = DEFAULT_MIN_INTERVAL,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep,
                 poll_interval: float = 0.25):
        self.min_interval = min_interval
        self.last_request: Optional[float] = None
        self._clock = clock
        self._sleep = sleep
        self._poll_interval = poll_interval
        self._lock = threading.Lock()

    def wait(self, cancel_token: Optional[CancellationToken] = None):
        """
        Block until the next submission may go out.

        Raises:
            RateLimitWaitCancelled: If cancel_token fires while waiting
        """
        with self._lock:
            if self.last_request is not None:
                while True:
                    remaining = self.min_interval - (self._clock() - self.last_request)
                    if remaining <= 0:
                        break
                    if cancel_token is not None and cancel_token.is_cancelled():
                        raise RateLimitWaitCancelled(cancel_token.reason())
                    self._sleep(min(remaining, self._poll_interval))
            self.last_request = self._clock()


_default_rate_limiter = None
_default_rate_limiter_lock = threading.Lock()


def default_rate_limiter() -> RateLimiter:
    """Get or create the process-wide rate limiter."""
    global _default_rate_limiter
    with _default_rate_limiter_lock:
        if _default_rate_limiter is None:
            _default_rate_limiter = RateLimiter()
    return _default_rate_limiter


def job_status_from_response(data: dict) -> str:
    """Derive a job status: explicit status, else job id means pending, else timestamp means success."""
    if data.get('status'):
        return str(data['status'])
    if data.get('job_id'):
        return JOB_PENDING
    if data.get('timestamp'):
        return JOB_SUCCESS
    return JOB_PENDING


class SavePageNowClient:
    """
    Submit capture requests to the Wayback Machine and poll their status.

    Args:
        session: requests session to use (defaults to the shared session)
        rate_limiter: Pacing gate shared by every submitter in the process
        submit_timeout: Timeout for a submission request in seconds
        status_timeout: Timeout for a status poll in seconds
    """

    def __init__(self, session: Optional[requests.Session] = None,
                 rate_limiter: Optional[RateLimiter] = None,
                 submit_timeout: float = DEFAULT_SUBMIT_TIMEOUT,
                 status_timeout: float = DEFAULT_STATUS_TIMEOUT):
        self.session = session or get_session()
        self.rate_limiter = rate_limiter or default_rate_limiter()
        self.submit_timeout = submit_timeout
        self.status_timeout = status_timeout

    def submit(self, urls: List[str], access_key: str, secret_key: str,
               cancel_token: Optional[CancellationToken] = None) -> SubmitResponse:
        """
        Submit up to 10 URLs for capture, one after another.

        Per-URL failures become jobs with status 'error'; they never stop the
        remaining submissions.

        Raises:
            MissingCredentialsError: If either key is empty
            ValueError: If no URLs were given
        """
        if not access_key or not secret_key:
            raise MissingCredentialsError()
        if not urls:
            raise ValueError("no URLs provided")

        if len(urls) > MAX_SUBMIT_URLS:
            logger.info("[SPN] Limiting submission to the first %d of %d URLs", MAX_SUBMIT_URLS, len(urls))
            urls = urls[:MAX_SUBMIT_URLS]

        response = SubmitResponse()
        for url in urls:
            try:
                job = self.submit_url(url, access_key, secret_key, cancel_token=cancel_token)
            except SnapshotError as e:
                job = SnapshotJob(url=url, status=JOB_ERROR, error=str(e))
                response.errors.append(f"{url}: {e}")
            response.submitted.append(job)
        return response

    def submit_url(self, url: str, access_key: str, secret_key: str,
                   cancel_token: Optional[CancellationToken] = None) -> SnapshotJob:
        """
        Submit a single URL to Save Page Now.

        Returns:
            SnapshotJob describing the accepted request

        Raises:
            RateLimitedError: SPN answered 429
            InvalidCredentialsError: SPN answered 401 or 403
            SnapshotHTTPError: Any other non-200 answer
            RateLimitWaitCancelled: cancel_token fired while waiting for the rate limiter
            SnapshotError: The request itself failed
        """
        job = SnapshotJob(url=url)
        self.rate_limiter.wait(cancel_token)

        headers = {
            'Accept': 'application/json',
            'Authorization': f'LOW {access_key}:{secret_key}',
        }
        form = {'url': url, 'capture_all': '1'}

        logger.info("[SPN] Submitting URL: %s", url)
        try:
            response = self.session.post(SPN_SUBMIT_URL, data=form, headers=headers,
                                         timeout=self.submit_timeout)
        except requests.RequestException as e:
            logger.warning("[SPN] Request failed for %s: %s", url, e)
            raise SnapshotError(str(e)) from e

        logger.debug("[SPN] Response status: %d, body: %s", response.status_code, response.text)

        if response.status_code == 429:
            raise RateLimitedError()
        if response.status_code in (401, 403):
            raise InvalidCredentialsError()
        if response.status_code != 200:
            raise SnapshotHTTPError(response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            # SPN sometimes answers a successful submission with HTML
            logger.info("[SPN] JSON decode error, treating as pending: %s", e)
            data = None
        if not isinstance(data, dict):
            job.status = JOB_PENDING
            return job

        job.job_id = str(data.get('job_id') or '')
        job.timestamp = str(data.get('timestamp') or '')
        job.status = job_status_from_response(data)

        logger.info("[SPN] Submitted %s: job_id=%s, status=%s", url, job.job_id, job.status)
        return job

    def check_status(self, job_id: str) -> SnapshotJob:
        """
        Poll the status of a capture job.

        Raises:
            ValueError: If job_id is empty
            InvalidResponseError: If SPN does not answer with a JSON object
            SnapshotError: The request itself failed
        """
        if not job_id:
            raise ValueError("job_id required")

        job = SnapshotJob(job_id=job_id)
        status_url = SPN_STATUS_URL + quote(job_id, safe='')
        logger.debug("[SPN] Checking status: %s", status_url)

        try:
            response = self.session.get(status_url, headers={'Accept': 'application/json'},
                                        timeout=self.status_timeout)
        except requests.RequestException as e:
            logger.warning("[SPN] Status request failed for %s: %s", job_id, e)
            raise SnapshotError(str(e)) from e

        logger.debug("[SPN] Status response: %d, body: %s", response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponseError() from e
        if not isinstance(data, dict):
            raise InvalidResponseError()

        job.url = str(data.get('original_url') or '')
        job.status = str(data.get('status') or '')
        job.timestamp = str(data.get('timestamp') or '')
        if job.status == JOB_ERROR:
            job.error = str(data.get('message') or '')
        return job
