#!/usr/bin/env python3
"""
Command-line interface for the Wikipedia archive checker

This module provides the CLI functionality, separated from the core library.
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from .core import SOURCE_EXTERNALLINKS, SOURCE_WIKITEXT, ScanConfig, ScanResult, ScanState, WikiArchiveChecker
from .exceptions import WikiArchiveCheckerError
from .save_page_now import SavePageNowClient
from .utils import format_duration, set_logging_level

VIEW_URL = 'url'
VIEW_CITATION = 'citation'


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog='wiki-archive-checker',
        description='Check citation links of a Wikipedia article against the live web and the Wayback Machine')
    parser.add_argument('--verbose', action='store_true', default=False,
                        help='Enable verbose output (default: False)')
    parser.add_argument('--debug', action='store_true', default=False,
                        help='Enable debug logging of every request (default: False)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # Page scan
    scan = subparsers.add_parser('scan', help='Scan the citation links of an article')
    scan.add_argument('title', help='Article title, e.g. "Python (programming language)"')
    scan.add_argument('--view', choices=[VIEW_URL, VIEW_CITATION], default=VIEW_URL,
                      help='Group output by URL or by citation (default: url)')
    scan.add_argument('--limit', type=int, default=50,
                      help='Maximum number of unique links to check (default: 50)')
    scan.add_argument('--source', choices=[SOURCE_WIKITEXT, SOURCE_EXTERNALLINKS], default=SOURCE_WIKITEXT,
                      help='Where links come from: parsed wikitext citations or the external links list '
                           '(default: wikitext)')
    scan.add_argument('--api-url', type=str, default=ScanConfig.api_url,
                      help='MediaWiki api.php endpoint (default: English Wikipedia)')
    scan.add_argument('--timeout', type=float, default=8.0,
                      help='Per-request timeout for live and archive checks in seconds (default: 8.0)')
    scan.add_argument('--scan-timeout', type=float, default=300.0,
                      help='Deadline for the whole scan in seconds (default: 300)')
    scan.add_argument('--workers', type=int, default=1,
                      help='Number of concurrent workers; 1 checks links sequentially (default: 1)')
    scan.add_argument('--no-progress', action='store_false', dest='progress',
                      help='Hide the progress bar')

    # Save Page Now
    submit = subparsers.add_parser('submit', help='Ask the Wayback Machine to capture URLs (max 10)')
    submit.add_argument('urls', nargs='+', help='URLs to capture')
    submit.add_argument('--access-key', default=os.environ.get('IA_ACCESS_KEY', ''),
                        help='Internet Archive S3 access key (default: $IA_ACCESS_KEY)')
    submit.add_argument('--secret-key', default=os.environ.get('IA_SECRET_KEY', ''),
                        help='Internet Archive S3 secret key (default: $IA_SECRET_KEY)')

    status = subparsers.add_parser('status', help='Check the status of a capture job')
    status.add_argument('job_id', help='Job id returned by submit')

    return parser


def create_config_from_args(args) -> ScanConfig:
    """Create a ScanConfig from parsed arguments."""
    return ScanConfig(
        api_url=args.api_url,
        source=args.source,
        max_links=args.limit,
        live_timeout=args.timeout,
        wayback_timeout=args.timeout,
        scan_timeout=args.scan_timeout,
        max_workers=args.workers,
        progress=args.progress,
        verbose=args.verbose,
    )


def format_link_line(result) -> str:
    """Render one LinkResult as a single console line."""
    marker = '📦' if result.archived else ('✅' if result.live_status == 'OK' else '❌')
    code = result.live_code if result.live_code else '---'
    refs = ','.join(str(n) for n in result.citation_numbers)
    refs = f" [refs {refs}]" if refs else ''
    archive = result.archive_url if result.archived else result.archive_status
    return f"{marker} {code} {result.live_status} | {archive} | {result.url}{refs}"


def print_url_view(scan: ScanResult):
    for result in scan.results:
        print(format_link_line(result))


def print_citation_view(scan: ScanResult):
    by_url = {result.url: result for result in scan.results}
    citations = scan.citations.citations if scan.citations else []
    for citation in citations:
        label = f"[{citation.number}]" + (f" {citation.name}" if citation.name else '')
        print(label)
        for url in citation.urls:
            result = by_url.get(url)
            if result is None:
                print(f"    ⏭️  not checked | {url}")
            else:
                print(f"    {format_link_line(result)}")


def print_scan_summary(scan: ScanResult, verbose: bool = False):
    """Print a summary of the scan."""
    stats = WikiArchiveChecker.get_summary_stats(scan)
    print(f"\n🎯 Scan Summary: {scan.title}")
    print("=" * 30)
    print(f"🔗 Links checked: {stats['checked_urls']} of {stats['total_urls']}")
    print(f"📚 Citations with links: {stats['citations_with_urls']}")
    print(f"✅ Live: {stats['live_ok']}")
    print(f"📦 Archived: {stats['archived']} ({stats['archive_urls']} already archive links)")
    print(f"🔌 No response: {stats['unreachable']}")
    if verbose:
        print(f"⏱️  Processing time: {format_duration(scan.processing_time)}")


def run_scan(args) -> int:
    config = create_config_from_args(args)
    checker = WikiArchiveChecker(config)

    if config.verbose:
        print(f"🔍 Scanning '{args.title}' (limit {config.max_links}, {config.max_workers} worker(s))")

    scan = checker.scan_page(args.title)

    if scan.state is ScanState.FAILED:
        print(f"❌ {scan.error}")
        return 1

    if args.view == VIEW_CITATION:
        print_citation_view(scan)
    else:
        print_url_view(scan)
    print_scan_summary(scan, verbose=config.verbose)

    if not scan.ok:
        print(f"\n⚠️  {scan.error}")
        return 1
    return 0


def run_submit(args) -> int:
    client = SavePageNowClient()
    response = client.submit(args.urls, args.access_key, args.secret_key)
    print(json.dumps(response.to_dict(), indent=2))
    return 1 if response.errors else 0


def run_status(args) -> int:
    client = SavePageNowClient()
    job = client.check_status(args.job_id)
    print(json.dumps(job.to_dict(), indent=2))
    return 0


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    set_logging_level(verbose=args.verbose, debug=args.debug)

    commands = {
        'scan': run_scan,
        'submit': run_submit,
        'status': run_status,
    }

    try:
        sys.exit(commands[args.command](args))
    except KeyboardInterrupt:
        print("\n⚠️  Processing interrupted by user.")
        sys.exit(1)
    except (WikiArchiveCheckerError, ValueError) as e:
        print(f"\n❌ An error occurred: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
