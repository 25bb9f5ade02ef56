"""
Wayback Machine snapshot lookup.

The availability API accepts a ``statuscodes`` filter, but it has proven
unreliable (comma-separated values come back empty), so it is never sent.
Snapshot status filtering is done here, client side.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional

import requests

from .fetch_wikitext import get_session

logger = logging.getLogger(__name__)

AVAILABILITY_API_URL = 'https://archive.org/wayback/available'
DEFAULT_WAYBACK_TIMEOUT = 8.0

TIMESTAMP_FORMAT = '%Y%m%d%H%M%S'
WAYBACK_START = datetime(1996, 3, 1, tzinfo=timezone.utc)
# Indexing can put snapshots slightly ahead of our clock
FUTURE_TOLERANCE = timedelta(days=7)

ACCEPTED_SNAPSHOT_STATUSES = frozenset({'200', '203', '206'})


class ArchiveCheck(NamedTuple):
    """Outcome of a Wayback lookup. archive_status holds the snapshot status or the rejection reason."""
    archived: bool
    archive_url: str
    archive_status: str


def is_valid_archive_timestamp(timestamp: str, now: Optional[datetime] = None) -> bool:
    """
    Validate a Wayback Machine timestamp (YYYYMMDDHHMMSS).

    Rejects anything that is not exactly 14 digits, does not parse, predates
    1996-03-01 (when the Wayback Machine started), or lies more than 7 days
    in the future.

    Args:
        timestamp: Timestamp string returned by the availability API
        now: Reference time (defaults to the current UTC time)

    Returns:
        True if the timestamp is acceptable
    """
    if not isinstance(timestamp, str) or len(timestamp) != 14 or not timestamp.isdigit():
        return False

    try:
        captured = datetime.strptime(timestamp, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return False

    if captured < WAYBACK_START:
        return False

    now = now or datetime.now(timezone.utc)
    if captured > now + FUTURE_TOLERANCE:
        return False

    return True


def _closest_snapshot(data) -> dict:
    """Pull archived_snapshots.closest out of a decoded response, {} when absent."""
    if not isinstance(data, dict):
        raise ValueError(f"expected JSON object, got {type(data).__name__}")
    snapshots = data.get('archived_snapshots') or {}
    if not isinstance(snapshots, dict):
        raise ValueError("archived_snapshots is not an object")
    closest = snapshots.get('closest') or {}
    if not isinstance(closest, dict):
        raise ValueError("closest is not an object")
    return closest


def evaluate_snapshot(url: str, closest: dict) -> ArchiveCheck:
    """Decide whether the closest snapshot reported for a URL can be trusted."""
    available = closest.get('available') is True
    snapshot_url = closest.get('url') or ''
    timestamp = closest.get('timestamp') or ''
    status = str(closest.get('status') or '')

    logger.debug("[WAYBACK] Parsed response for %s: available=%s, url=%s, status=%s, timestamp=%s",
                 url, available, snapshot_url, status, timestamp)

    if not available or not snapshot_url:
        logger.debug("[WAYBACK] No archive found for %s", url)
        return ArchiveCheck(False, '', 'not archived')

    if not is_valid_archive_timestamp(timestamp):
        logger.info("[WAYBACK] Invalid timestamp for %s: %s (rejected)", url, timestamp)
        return ArchiveCheck(False, '', 'invalid archive timestamp')

    if status not in ACCEPTED_SNAPSHOT_STATUSES:
        logger.info("[WAYBACK] Bad snapshot status for %s: %s (rejected)", url, status)
        return ArchiveCheck(False, '', f'snapshot has bad status: {status}')

    logger.debug("[WAYBACK] Found archive for %s: %s (status: %s)", url, snapshot_url, status)
    return ArchiveCheck(True, snapshot_url, status)


def check_wayback(url: str, session: Optional[requests.Session] = None,
                  timeout: float = DEFAULT_WAYBACK_TIMEOUT) -> ArchiveCheck:
    """
    Look up the closest Wayback Machine snapshot for a URL.

    Args:
        url: Original URL
        session: requests session to use (defaults to the shared session)
        timeout: Request timeout in seconds

    Returns:
        ArchiveCheck; availability-check failures are reported as
        'error: ...', 'HTTP ...' or 'decode error: ...' rather than 'not archived'
    """
    session = session or get_session()

    logger.debug("[WAYBACK] Checking %s", url)
    try:
        response = session.get(AVAILABILITY_API_URL, params={'url': url}, timeout=timeout)
    except requests.RequestException as e:
        logger.warning("[WAYBACK] Request failed for %s: %s", url, e)
        return ArchiveCheck(False, '', f'error: {e}')

    if response.status_code != 200:
        reason = response.reason or ''
        logger.warning("[WAYBACK] Non-OK status for %s: %d %s", url, response.status_code, reason)
        return ArchiveCheck(False, '', f'HTTP {response.status_code} {reason}'.strip())

    logger.debug("[WAYBACK] Raw API response for %s: %s", url, response.text)
    try:
        closest = _closest_snapshot(response.json())
    except ValueError as e:
        logger.warning("[WAYBACK] JSON decode error for %s: %s", url, e)
        return ArchiveCheck(False, '', f'decode error: {e}')

    return evaluate_snapshot(url, closest)
