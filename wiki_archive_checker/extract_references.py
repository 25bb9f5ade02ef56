import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional


# A <ref ...>content</ref> or <ref .../> tag. Attributes are tokenized
# separately so that name= can appear alongside group= or other attributes.
# Content may not contain another <ref or </ref, which keeps an unclosed tag
# from scanning to the end of the document and lets a nested ref match alone.
REF_TAG_PATTERN = re.compile(
    r'<ref'
    r'(?P<attrs>(?:\s+[^\s=/>]+(?:\s*=\s*(?:"[^"]*"|\'[^\']*\'|[^\s"\'/>]+))?)*)'
    r'\s*(?:(?P<self_closing>/>)|>(?P<content>(?:(?!</?ref\b).)*)</ref\s*>)',
    re.IGNORECASE | re.DOTALL,
)

NAME_ATTR_PATTERN = re.compile(
    r'(?:^|\s)name\s*=\s*(?:"(?P<dq>[^"]*)"|\'(?P<sq>[^\']*)\'|(?P<bare>[^\s"\'/>]+))',
    re.IGNORECASE,
)

# Bare URLs run until whitespace, an angle/square/curly bracket, a pipe or a quote
BARE_URL_PATTERN = re.compile(r'https?://[^\s<>"\]|{}\[]+')

# |url=..., |archive-url=..., |archiveurl=... inside citation templates
TEMPLATE_URL_PATTERN = re.compile(r'\|\s*(?:url|archive-url|archiveurl)\s*=\s*([^\s|}]+)')

TRAILING_PUNCTUATION = '.,;:)]\'"'

IGNORED_URL_MARKERS = (
    'wikipedia.org/wiki/',
    'wikimedia.org',
    'wikidata.org',
)

ARCHIVE_HOSTS = (
    'web.archive.org',                     # Internet Archive Wayback Machine
    'archive.org/web/',                    # Alternative Wayback path
    'archive.today',                       # archive.today family
    'archive.is',
    'archive.ph',
    'archive.fo',
    'archive.li',
    'archive.md',
    'archive.vn',
    'webcitation.org',                     # WebCite
    'perma.cc',
    'archive-it.org',
    'webarchive.org.uk',                   # UK Web Archive
    'webarchive.nationalarchives.gov.uk',  # UK National Archives
    'arquivo.pt',                          # Portuguese Web Archive
    'webarchive.library.unt.edu',
    'webarchive.loc.gov',                  # Library of Congress
    'swap.stanford.edu',
    'vefsafn.is',                          # Icelandic Web Archive
    'screenshots.com',
)


@dataclass
class RefTag:
    """A single ref tag found in wikitext. content is None for self-closing tags."""
    name: str
    content: Optional[str]
    start: int
    end: int

    @property
    def self_closing(self) -> bool:
        return self.content is None


@dataclass
class Citation:
    """A numbered citation that contains at least one checkable URL."""
    number: int
    name: str
    urls: List[str] = field(default_factory=list)


@dataclass
class CitationIndex:
    """Bidirectional lookup between citations and the URLs they mention."""
    citations: List[Citation] = field(default_factory=list)
    url_to_citations: Dict[str, List[int]] = field(default_factory=dict)
    name_to_number: Dict[str, int] = field(default_factory=dict)

    def add_citation(self, citation: Citation):
        self.citations.append(citation)
        for url in citation.urls:
            numbers = self.url_to_citations.setdefault(url, [])
            if citation.number not in numbers:
                numbers.append(citation.number)

    def get_unique_urls(self) -> List[str]:
        """Return every distinct URL in the index (unordered)."""
        return list(self.url_to_citations)

    def get_citation_numbers(self, url: str) -> List[int]:
        """Return the citation numbers that reference a URL (empty if none)."""
        return list(self.url_to_citations.get(url, []))


def is_archive_url(url: str) -> bool:
    """
    Check if a URL already points at a known archival host (Wayback, archive.today, etc.).

    Args:
        url: URL to check

    Returns:
        True if the URL is an archive link
    """
    lower = url.lower()
    return any(host in lower for host in ARCHIVE_HOSTS)


def is_ignored_url(url: str) -> bool:
    """Return True for Wikipedia/Wikimedia/Wikidata links, which are not external references."""
    lower = url.lower()
    return any(marker in lower for marker in IGNORED_URL_MARKERS)


def clean_url(url: str) -> str:
    """Strip surrounding whitespace and any trailing punctuation that is not part of the URL."""
    return url.strip().rstrip(TRAILING_PUNCTUATION)


def extract_urls_from_content(content: str) -> List[str]:
    """
    Extract checkable URLs from the content of a single ref.

    Bare http(s) URLs are collected first, then values of url=/archive-url=/archiveurl=
    template parameters. Wiki-internal links are dropped and duplicates are removed
    while keeping first-seen order.

    Args:
        content: Text between <ref> and </ref>

    Returns:
        List of cleaned URLs
    """
    seen = set()
    urls = []

    def _add(candidate: str):
        if candidate and candidate not in seen and not is_ignored_url(candidate):
            seen.add(candidate)
            urls.append(candidate)

    for match in BARE_URL_PATTERN.finditer(content):
        _add(clean_url(match.group(0)))

    for match in TEMPLATE_URL_PATTERN.finditer(content):
        candidate = clean_url(match.group(1))
        if candidate.startswith('http'):
            _add(candidate)

    return urls


def _ref_name(attrs: str) -> str:
    match = NAME_ATTR_PATTERN.search(attrs or '')
    if not match:
        return ''
    value = match.group('dq') if match.group('dq') is not None else (
        match.group('sq') if match.group('sq') is not None else match.group('bare'))
    return value.strip()


def iter_ref_tags(wikitext: str) -> Iterator[RefTag]:
    """
    Tokenize wikitext into ref tags, in document order.

    Recognized forms (case-insensitive):
        <ref>content</ref>
        <ref name="x" group=notes>content</ref>
        <ref name='x' />

    Args:
        wikitext: Raw article source

    Yields:
        RefTag for every ref tag found
    """
    if not wikitext:
        return
    for match in REF_TAG_PATTERN.finditer(wikitext):
        yield RefTag(
            name=_ref_name(match.group('attrs')),
            content=None if match.group('self_closing') else match.group('content'),
            start=match.start(),
            end=match.end(),
        )


def parse_citations(wikitext: str) -> CitationIndex:
    """
    Extract numbered citations from Wikipedia wikitext.

    Every candidate definition consumes a citation number, even when it has no
    URLs, so that numbers line up with what readers see in the rendered page.
    Reuse tags (<ref name="x"/>) and repeated definitions of an already
    registered name do not consume a number.

    Args:
        wikitext: Raw article source

    Returns:
        CitationIndex holding only the citations that contain URLs
    """
    index = CitationIndex()
    citation_number = 0

    for tag in iter_ref_tags(wikitext):
        # <ref name="foo"/> reuses an earlier definition
        if tag.name and not tag.content:
            continue

        if tag.name and tag.name in index.name_to_number:
            continue

        citation_number += 1
        if tag.name:
            index.name_to_number[tag.name] = citation_number

        urls = extract_urls_from_content(tag.content or '')
        if not urls:
            continue

        index.add_citation(Citation(number=citation_number, name=tag.name, urls=urls))

    return index


def build_index_from_links(links: Iterable[str]) -> CitationIndex:
    """
    Build a citation-less index from a plain list of external links.

    Used when the page's external links list is the citation source instead of
    its wikitext; URLs carry no citation numbers.
    """
    index = CitationIndex()
    for link in links:
        url = clean_url(link)
        if url.startswith(('http://', 'https://')) and not is_ignored_url(url):
            index.url_to_citations.setdefault(url, [])
    return index
