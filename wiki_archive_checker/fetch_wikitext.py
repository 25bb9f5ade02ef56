import logging
from typing import List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .exceptions import CitationSourceError

logger = logging.getLogger(__name__)

USER_AGENT = 'wiki-archive-checker/1.0 (+https://github.com/wiki-archive-checker/wiki-archive-checker)'
DEFAULT_API_URL = 'https://en.wikipedia.org/w/api.php'
DEFAULT_FETCH_TIMEOUT = 30.0
MAX_REDIRECTS = 10

# Global session with connection pooling and a stable client identifier
_session = None


def create_session() -> requests.Session:
    """Create a session that identifies this client and caps redirects at 10 hops."""
    session = requests.Session()
    session.headers.update({
        'Accept-Encoding': 'gzip, deflate',
        'User-Agent': USER_AGENT,
    })
    session.max_redirects = MAX_REDIRECTS

    # No retries at all: a failed probe is classified on the first attempt
    adapter = HTTPAdapter(
        pool_connections=20,
        pool_maxsize=50,
        max_retries=Retry(
            total=0,
            connect=0,
            read=False,
            redirect=False,
            status=False,
        )
    )
    session.mount('https://', adapter)
    session.mount('http://', adapter)
    return session


def get_session() -> requests.Session:
    """Get or create the process-wide session."""
    global _session
    if _session is None:
        _session = create_session()
    return _session


def _fetch_parse(title: str, prop: str, session: Optional[requests.Session],
                 api_url: str, timeout: float) -> dict:
    session = session or get_session()
    params = {
        'action': 'parse',
        'page': title,
        'prop': prop,
        'format': 'json',
        # harmless server-side, keeps some edge policies happy
        'origin': '*',
    }

    logger.info("[SCAN] Fetching %s for '%s' from %s", prop, title, api_url)
    try:
        response = session.get(api_url, params=params, timeout=timeout)
    except requests.RequestException as e:
        logger.warning("[SCAN] Error fetching from MediaWiki API: %s", e)
        raise CitationSourceError(f"mediawiki api request failed: {e}") from e

    logger.info("[SCAN] MediaWiki API response status: %d", response.status_code)
    body = response.text

    try:
        data = response.json()
    except ValueError as e:
        logger.warning("[SCAN] Error decoding MediaWiki response: %s", e)
        raise CitationSourceError("mediawiki api decode", response.status_code, body) from e

    if not isinstance(data, dict):
        raise CitationSourceError("mediawiki api decode", response.status_code, body)

    if response.status_code != 200:
        raise CitationSourceError("mediawiki api", response.status_code, body)

    if 'error' in data:
        error = data['error']
        info = error.get('info', '') if isinstance(error, dict) else str(error)
        raise CitationSourceError(f"mediawiki api error: {info}")

    parsed = data.get('parse')
    if not isinstance(parsed, dict):
        raise CitationSourceError("mediawiki api decode", response.status_code, body)
    return parsed


def get_article_wikitext(title: str, session: Optional[requests.Session] = None,
                         api_url: str = DEFAULT_API_URL,
                         timeout: float = DEFAULT_FETCH_TIMEOUT) -> str:
    """
    Fetch the raw wikitext of a Wikipedia article via the MediaWiki parse API.

    Args:
        title: The title of the Wikipedia article
        session: requests session to use (defaults to the shared session)
        api_url: MediaWiki api.php endpoint
        timeout: Request timeout in seconds

    Returns:
        Raw wikitext of the article

    Raises:
        CitationSourceError: If the request fails or the response cannot be decoded
    """
    parsed = _fetch_parse(title, 'wikitext', session, api_url, timeout)
    wikitext = parsed.get('wikitext', {})
    if isinstance(wikitext, dict):
        wikitext = wikitext.get('*', '')
    if not isinstance(wikitext, str):
        raise CitationSourceError("mediawiki api decode: unexpected wikitext shape")

    logger.info("[SCAN] Got wikitext (%d chars)", len(wikitext))
    return wikitext


def get_external_links(title: str, session: Optional[requests.Session] = None,
                       api_url: str = DEFAULT_API_URL,
                       timeout: float = DEFAULT_FETCH_TIMEOUT) -> List[str]:
    """
    Fetch the external links list the wiki has recorded for an article.

    This is the fallback citation source: it carries no citation structure.

    Raises:
        CitationSourceError: If the request fails or the response cannot be decoded
    """
    parsed = _fetch_parse(title, 'externallinks', session, api_url, timeout)
    links = parsed.get('externallinks', [])
    if not isinstance(links, list):
        raise CitationSourceError("mediawiki api decode: unexpected externallinks shape")

    # Protocol-relative links are reported as //host/path
    links = ['https:' + link if link.startswith('//') else link
             for link in links if isinstance(link, str)]
    logger.info("[SCAN] Got %d external links", len(links))
    return links
