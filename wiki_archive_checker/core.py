"""
Core API for the Wikipedia archive checker

This module scans a Wikipedia article: it extracts citation URLs from the
wikitext, checks whether each one is still live, and looks up a trustworthy
Wayback Machine snapshot for it.
"""

import concurrent.futures
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import requests
from tqdm import tqdm

from .check_links import DEFAULT_LIVE_TIMEOUT, check_link_status
from .exceptions import CitationSourceError
from .extract_references import CitationIndex, build_index_from_links, is_archive_url, parse_citations
from .fetch_wikitext import (
    DEFAULT_API_URL,
    DEFAULT_FETCH_TIMEOUT,
    get_article_wikitext,
    get_external_links,
    get_session,
)
from .utils import CancellationToken, clean_article_title, format_duration
from .wayback import DEFAULT_WAYBACK_TIMEOUT, check_wayback

logger = logging.getLogger(__name__)

SOURCE_WIKITEXT = 'wikitext'
SOURCE_EXTERNALLINKS = 'externallinks'

ARCHIVE_LIVE_STATUS = 'archive URL (skipped)'
ARCHIVE_STATUS = 'is archive'


@dataclass(frozen=True)
class LinkResult:
    """Result of checking a single URL."""
    url: str
    live_code: int
    live_status: str
    archived: bool
    archive_url: str
    archive_status: str
    citation_numbers: Tuple[int, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'live_code': self.live_code,
            'live_status': self.live_status,
            'archived': self.archived,
            'archive_url': self.archive_url,
            'archive_status': self.archive_status,
            'citation_numbers': list(self.citation_numbers),
        }


class ScanState(enum.Enum):
    DONE = 'done'
    CANCELLED = 'cancelled'
    FAILED = 'failed'


@dataclass
class ScanResult:
    """Result of scanning one article. Partial results are kept when the scan is cancelled."""
    title: str
    state: ScanState
    results: List[LinkResult] = field(default_factory=list)
    citations: Optional[CitationIndex] = None
    error: str = ''
    total_urls: int = 0
    processing_time: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state is ScanState.DONE


@dataclass
class ScanConfig:
    """Configuration for a page scan."""
    api_url: str = DEFAULT_API_URL
    source: str = SOURCE_WIKITEXT
    max_links: int = 50
    live_timeout: float = DEFAULT_LIVE_TIMEOUT
    wayback_timeout: float = DEFAULT_WAYBACK_TIMEOUT
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    scan_timeout: float = 300.0
    max_workers: int = 1
    progress: bool = False
    verbose: bool = False

    def __post_init__(self):
        if self.source not in (SOURCE_WIKITEXT, SOURCE_EXTERNALLINKS):
            raise ValueError(f"unknown citation source: {self.source!r}")
        if self.max_links < 1:
            raise ValueError("max_links must be at least 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")


def archive_link_result(url: str, citation_numbers: Tuple[int, ...] = ()) -> LinkResult:
    """Result for a URL that already points at an archive: reported archived, never probed."""
    return LinkResult(
        url=url,
        live_code=0,
        live_status=ARCHIVE_LIVE_STATUS,
        archived=True,
        archive_url=url,
        archive_status=ARCHIVE_STATUS,
        citation_numbers=citation_numbers,
    )


class WikiArchiveChecker:
    """
    High-level API for checking the citation links of a Wikipedia article.

    One scan is a single sequential task: fetch wikitext, parse citations,
    then check each unique URL in sorted order. A deadline (scan_timeout) and
    an optional external CancellationToken stop the loop between URLs.
    """

    def __init__(self, config: Optional[ScanConfig] = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize the checker.

        Args:
            config: Configuration object. If None, uses default settings.
            session: requests session shared by every probe (defaults to the shared session)
        """
        self.config = config or ScanConfig()
        self.session = session or get_session()

    def fetch_citations(self, title: str) -> CitationIndex:
        """Fetch the article source and build its citation index."""
        if self.config.source == SOURCE_EXTERNALLINKS:
            links = get_external_links(title, session=self.session, api_url=self.config.api_url,
                                       timeout=self.config.fetch_timeout)
            return build_index_from_links(links)

        wikitext = get_article_wikitext(title, session=self.session, api_url=self.config.api_url,
                                        timeout=self.config.fetch_timeout)
        return parse_citations(wikitext)

    def check_url(self, url: str, citation_numbers: Tuple[int, ...] = ()) -> LinkResult:
        """Run the live check and the Wayback lookup for one URL."""
        if is_archive_url(url):
            logger.debug("[SCAN] %s is an archive URL, skipping checks", url)
            return archive_link_result(url, citation_numbers)

        try:
            live = check_link_status(url, session=self.session, timeout=self.config.live_timeout)
            logger.debug("[SCAN] Live check for %s: %d %s", url, live.code, live.status)
            archive = check_wayback(url, session=self.session, timeout=self.config.wayback_timeout)
            logger.debug("[SCAN] Wayback check for %s: archived=%s status=%s",
                         url, archive.archived, archive.archive_status)
        except Exception as e:
            # One misbehaving URL must not take the rest of the scan down
            logger.exception("[SCAN] Unexpected error while checking %s", url)
            return LinkResult(url=url, live_code=0, live_status='network error', archived=False,
                              archive_url='', archive_status=f'error: {e}',
                              citation_numbers=citation_numbers)

        return LinkResult(
            url=url,
            live_code=live.code,
            live_status=live.status,
            archived=archive.archived,
            archive_url=archive.archive_url,
            archive_status=archive.archive_status,
            citation_numbers=citation_numbers,
        )

    def scan_page(self, title: str, cancel_token: Optional[CancellationToken] = None,
                  progress: Optional[bool] = None) -> ScanResult:
        """
        Scan the citation links of a Wikipedia article.

        Args:
            title: Article title
            cancel_token: Optional external cancellation signal
            progress: Show a progress bar; None falls back to config.progress

        Returns:
            ScanResult; state is FAILED if the article could not be fetched,
            CANCELLED (with partial results) if the deadline passed or the
            token fired, DONE otherwise
        """
        start_time = time.time()
        title = clean_article_title(title)
        deadline = CancellationToken(timeout=self.config.scan_timeout)
        tokens = [token for token in (cancel_token, deadline) if token is not None]

        logger.info("[SCAN] Starting scan for page: %s", title)
        try:
            index = self.fetch_citations(title)
        except CitationSourceError as e:
            logger.warning("[SCAN] Could not fetch citations for %s: %s", title, e)
            return ScanResult(title=title, state=ScanState.FAILED, error=str(e),
                              processing_time=time.time() - start_time)

        urls = sorted(index.get_unique_urls())
        total_urls = len(urls)
        logger.info("[SCAN] Found %d citations with URLs, %d unique URLs", len(index.citations), total_urls)
        if total_urls > self.config.max_links:
            logger.info("[SCAN] Limiting to first %d of %d unique links", self.config.max_links, total_urls)
            urls = urls[:self.config.max_links]

        show_progress = self.config.progress if progress is None else progress
        if self.config.max_workers > 1:
            results, cancel_reason = self._check_urls_parallel(urls, index, tokens, show_progress)
        else:
            results, cancel_reason = self._check_urls_sequential(urls, index, tokens, show_progress)

        result = ScanResult(title=title, state=ScanState.DONE, results=results, citations=index,
                            total_urls=total_urls, processing_time=time.time() - start_time)
        if cancel_reason:
            result.state = ScanState.CANCELLED
            result.error = f"scan cancelled after {len(results)} links: {cancel_reason}"
            logger.warning("[SCAN] %s", result.error)
        else:
            logger.info("[SCAN] Completed scan: processed %d links in %s",
                        len(results), format_duration(result.processing_time))
        return result

    def _check_urls_sequential(self, urls: List[str], index: CitationIndex,
                               tokens: List[CancellationToken],
                               progress: bool) -> Tuple[List[LinkResult], str]:
        results = []
        with tqdm(total=len(urls), desc="Checking links", unit="link",
                  disable=not progress) as pbar:
            for i, url in enumerate(urls):
                reason = _cancel_reason(tokens)
                if reason:
                    return results, reason

                logger.info("[SCAN] [%d/%d] Checking: %s", i + 1, len(urls), url)
                results.append(self.check_url(url, tuple(index.get_citation_numbers(url))))
                pbar.update(1)
        return results, ''

    def _check_urls_parallel(self, urls: List[str], index: CitationIndex,
                             tokens: List[CancellationToken],
                             progress: bool) -> Tuple[List[LinkResult], str]:
        """Check URLs with a bounded worker pool, keeping the sorted order in the output."""
        buffer: List[Optional[LinkResult]] = [None] * len(urls)

        def worker(position: int) -> None:
            if _cancel_reason(tokens):
                return
            url = urls[position]
            buffer[position] = self.check_url(url, tuple(index.get_citation_numbers(url)))

        with tqdm(total=len(urls), desc=f"Checking links ({self.config.max_workers} workers)",
                  unit="link", disable=not progress) as pbar:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                futures = [executor.submit(worker, i) for i in range(len(urls))]
                for future in concurrent.futures.as_completed(futures):
                    future.result()
                    pbar.update(1)

        results = [result for result in buffer if result is not None]
        reason = _cancel_reason(tokens) if len(results) < len(urls) else ''
        return results, reason

    @staticmethod
    def get_summary_stats(scan: ScanResult) -> Dict[str, Any]:
        """Get summary statistics for a scan as a dictionary."""
        results = scan.results
        return {
            'title': scan.title,
            'state': scan.state.value,
            'total_urls': scan.total_urls,
            'checked_urls': len(results),
            'citations_with_urls': len(scan.citations.citations) if scan.citations else 0,
            'live_ok': sum(1 for r in results if r.live_status == 'OK'),
            'archived': sum(1 for r in results if r.archived),
            'archive_urls': sum(1 for r in results if r.archive_status == ARCHIVE_STATUS),
            'unreachable': sum(1 for r in results if r.live_code == 0 and r.archive_status != ARCHIVE_STATUS),
            'processing_time_seconds': scan.processing_time,
        }


def _cancel_reason(tokens: List[CancellationToken]) -> str:
    for token in tokens:
        if token.is_cancelled():
            return token.reason()
    return ''


def scan_page(title: str, config: Optional[ScanConfig] = None,
              cancel_token: Optional[CancellationToken] = None,
              progress: Optional[bool] = None) -> ScanResult:
    """Convenience wrapper: scan one article with a fresh WikiArchiveChecker."""
    return WikiArchiveChecker(config).scan_page(title, cancel_token=cancel_token, progress=progress)
