"""
Wikipedia Archive Checker

A Python library for checking the citation links of Wikipedia articles against
the live web and the Wayback Machine, and for requesting new snapshots.
"""

from .core import WikiArchiveChecker, ScanConfig, ScanResult, ScanState, LinkResult, scan_page
from .extract_references import (
    Citation,
    CitationIndex,
    iter_ref_tags,
    parse_citations,
    extract_urls_from_content,
    is_archive_url,
)
from .check_links import LiveCheck, check_link_status, classify_status, classify_error
from .wayback import ArchiveCheck, check_wayback, is_valid_archive_timestamp
from .save_page_now import RateLimiter, SavePageNowClient, SnapshotJob, SubmitResponse
from .fetch_wikitext import get_article_wikitext, get_external_links, get_session
from .exceptions import (
    WikiArchiveCheckerError,
    CitationSourceError,
    SnapshotError,
    RateLimitedError,
    InvalidCredentialsError,
    MissingCredentialsError,
)
from .utils import CancellationToken, clean_article_title, format_duration

__version__ = "1.0.0"
__author__ = "Wikipedia Archive Checker Contributors"

__all__ = [
    "WikiArchiveChecker",
    "ScanConfig",
    "ScanResult",
    "ScanState",
    "LinkResult",
    "scan_page",
    "Citation",
    "CitationIndex",
    "iter_ref_tags",
    "parse_citations",
    "extract_urls_from_content",
    "is_archive_url",
    "LiveCheck",
    "check_link_status",
    "classify_status",
    "classify_error",
    "ArchiveCheck",
    "check_wayback",
    "is_valid_archive_timestamp",
    "RateLimiter",
    "SavePageNowClient",
    "SnapshotJob",
    "SubmitResponse",
    "get_article_wikitext",
    "get_external_links",
    "get_session",
    "WikiArchiveCheckerError",
    "CitationSourceError",
    "SnapshotError",
    "RateLimitedError",
    "InvalidCredentialsError",
    "MissingCredentialsError",
    "CancellationToken",
    "clean_article_title",
    "format_duration",
]
