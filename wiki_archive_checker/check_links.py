import logging
from typing import List, NamedTuple, Optional, Tuple

import requests
from tqdm import tqdm

from .fetch_wikitext import get_session

logger = logging.getLogger(__name__)

# Constants
DEFAULT_LIVE_TIMEOUT = 8.0
METHOD_FALLBACK_CODES = (405, 501)
RANGE_HEADERS = {'Range': 'bytes=0-0'}

DNS_ERROR_MARKERS = (
    'no such host', 'dns lookup', 'failed to resolve', 'name or service not known',
    'nodename nor servname', 'getaddrinfo failed', 'temporary failure in name resolution',
    'no address associated with hostname', 'nameresolutionerror',
)
TLS_ERROR_MARKERS = ('certificate', 'sslerror', 'ssl:', '[ssl', 'tls handshake')
TIMEOUT_ERROR_MARKERS = ('timeout', 'timed out', 'deadline exceeded')
REFUSED_ERROR_MARKERS = ('connection refused', 'actively refused', 'errno 111')
RESET_ERROR_MARKERS = ('connection reset', 'connectionreseterror', 'errno 104')


class LiveCheck(NamedTuple):
    """Outcome of probing a URL: HTTP status (0 when no response) and a label."""
    code: int
    status: str


def status_line(response: requests.Response) -> str:
    """Return the '<code> <reason>' status line of a response."""
    reason = response.reason or ''
    return f"{response.status_code} {reason}".strip()


def classify_status(code: int, original: str) -> str:
    """
    Provide a human-readable interpretation of an HTTP status code.

    Args:
        code: HTTP status code
        original: Original status line, e.g. '404 Not Found'

    Returns:
        'OK' for 2xx, a fixed label for 403/429, the original status line otherwise
    """
    if 200 <= code < 300:
        return 'OK'
    if code == 403:
        return '403 Forbidden'   # may be alive but blocking bots
    if code == 429:
        return '429 Rate Limited'
    # 3xx here means the redirect chain was cut short
    return original


def _contains_any(text: str, markers: Tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


def classify_error(error: Optional[BaseException]) -> str:
    """
    Map a network-level failure onto a short human-readable label.

    Args:
        error: Exception raised while talking to the server

    Returns:
        One of 'DNS lookup failed', 'TLS/certificate error', 'timeout',
        'connection refused', 'connection reset' or 'network error'
    """
    if error is None:
        return 'unknown'

    text = f"{type(error).__name__}: {error}".lower()

    if _contains_any(text, DNS_ERROR_MARKERS):
        return 'DNS lookup failed'
    if isinstance(error, requests.exceptions.SSLError) or _contains_any(text, TLS_ERROR_MARKERS):
        return 'TLS/certificate error'
    if isinstance(error, requests.exceptions.Timeout) or _contains_any(text, TIMEOUT_ERROR_MARKERS):
        return 'timeout'
    if _contains_any(text, REFUSED_ERROR_MARKERS):
        return 'connection refused'
    if _contains_any(text, RESET_ERROR_MARKERS):
        return 'connection reset'
    return 'network error'


def _request(session: requests.Session, method: str, url: str, timeout: float,
             headers: Optional[dict] = None) -> requests.Response:
    """Issue a request, returning the last response if the redirect cap is hit."""
    try:
        return session.request(method, url, headers=headers, timeout=timeout,
                               allow_redirects=True, stream=True)
    except requests.TooManyRedirects as e:
        if e.response is None:
            raise
        logger.debug("[LIVE] Redirect cap hit for %s, using last response", url)
        return e.response


def check_link_status(url: str, session: Optional[requests.Session] = None,
                      timeout: float = DEFAULT_LIVE_TIMEOUT) -> LiveCheck:
    """
    Check whether a URL still responds.

    A HEAD request is tried first. Servers that refuse HEAD (405/501) get a
    ranged GET for the first byte so the body is never downloaded.

    Args:
        url: URL to probe
        session: requests session to use (defaults to the shared session)
        timeout: Per-request timeout in seconds

    Returns:
        LiveCheck(code, status); code is 0 if no response was received
    """
    session = session or get_session()

    try:
        response = _request(session, 'HEAD', url, timeout)
    except requests.RequestException as e:
        logger.debug("[LIVE] HEAD request failed for %s: %s", url, e)
        return LiveCheck(0, classify_error(e))

    code = response.status_code
    status = classify_status(code, status_line(response))
    response.close()
    logger.debug("[LIVE] HEAD response for %s: %d %s", url, code, status)

    if code not in METHOD_FALLBACK_CODES:
        return LiveCheck(code, status)

    logger.debug("[LIVE] HEAD returned %d, trying GET for %s", code, url)
    try:
        response = _request(session, 'GET', url, timeout, headers=RANGE_HEADERS)
    except requests.RequestException as e:
        logger.debug("[LIVE] GET request failed for %s: %s", url, e)
        return LiveCheck(code, classify_error(e))

    code = response.status_code
    status = classify_status(code, status_line(response))
    response.close()
    logger.debug("[LIVE] GET response for %s: %d %s", url, code, status)
    return LiveCheck(code, status)


def check_all_links(links: List[str], session: Optional[requests.Session] = None,
                    timeout: float = DEFAULT_LIVE_TIMEOUT,
                    progress: bool = False) -> List[Tuple[str, LiveCheck]]:
    """Check the live status of several links one after another, keeping input order."""
    if not links:
        return []

    session = session or get_session()
    results = []
    for link in tqdm(links, desc="Checking links", unit="link", disable=not progress):
        results.append((link, check_link_status(link, session=session, timeout=timeout)))
    return results
