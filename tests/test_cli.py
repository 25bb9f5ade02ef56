from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from wiki_archive_checker.cli import create_config_from_args, create_parser, format_link_line, main
from wiki_archive_checker.core import LinkResult, ScanResult, ScanState
from wiki_archive_checker.extract_references import parse_citations
from wiki_archive_checker.save_page_now import SnapshotJob, SubmitResponse


def test_scan_arguments_become_config():
    args = create_parser().parse_args([
        "scan", "Python", "--limit", "10", "--timeout", "3", "--workers", "4",
        "--source", "externallinks", "--no-progress",
    ])
    config = create_config_from_args(args)

    assert args.title == "Python"
    assert (config.max_links, config.max_workers, config.source) == (10, 4, "externallinks")
    assert config.live_timeout == config.wayback_timeout == 3.0
    assert config.progress is False


def test_command_is_required():
    with pytest.raises(SystemExit):
        create_parser().parse_args([])


def test_format_link_line():
    line = format_link_line(LinkResult("http://x", 404, "404 Not Found", False, "", "not archived", (1, 3)))
    assert "404 404 Not Found" in line
    assert "not archived" in line
    assert line.endswith("http://x [refs 1,3]")


def _scan(state=ScanState.DONE, error=""):
    results = [LinkResult("http://a.example/", 200, "OK", False, "", "not archived", (1,))]
    return ScanResult(title="T", state=state, results=results, error=error, total_urls=1,
                      citations=parse_citations("<ref>http://a.example/</ref>"))


@pytest.mark.parametrize("view", ["url", "citation"])
def test_scan_command(capsys, view):
    with patch("wiki_archive_checker.cli.WikiArchiveChecker") as checker_cls:
        checker_cls.get_summary_stats.side_effect = lambda scan: {
            "checked_urls": 1, "total_urls": 1, "citations_with_urls": 1, "live_ok": 1,
            "archived": 0, "archive_urls": 0, "unreachable": 0}
        checker_cls.return_value.scan_page.return_value = _scan()

        with pytest.raises(SystemExit) as excinfo:
            main(["scan", "T", "--view", view])

    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    assert "http://a.example/" in out
    assert "Scan Summary: T" in out


def test_scan_command_failure(capsys):
    with patch("wiki_archive_checker.cli.WikiArchiveChecker") as checker_cls:
        checker_cls.return_value.scan_page.return_value = ScanResult(
            title="T", state=ScanState.FAILED, error="mediawiki api error: missing")

        with pytest.raises(SystemExit) as excinfo:
            main(["scan", "T"])

    assert excinfo.value.code == 1
    assert "mediawiki api error: missing" in capsys.readouterr().out


def test_submit_command_prints_jobs(capsys):
    with patch("wiki_archive_checker.cli.SavePageNowClient") as client_cls:
        client_cls.return_value.submit.return_value = SubmitResponse(
            submitted=[SnapshotJob(url="http://x", job_id="spn2-1")])

        with pytest.raises(SystemExit) as excinfo:
            main(["submit", "http://x", "--access-key", "AK", "--secret-key", "SK"])

    assert excinfo.value.code == 0
    assert json.loads(capsys.readouterr().out) == {
        "submitted": [{"url": "http://x", "job_id": "spn2-1", "status": "pending"}]}
    client_cls.return_value.submit.assert_called_once_with(["http://x"], "AK", "SK")


def test_submit_without_credentials(capsys, monkeypatch):
    monkeypatch.delenv("IA_ACCESS_KEY", raising=False)
    monkeypatch.delenv("IA_SECRET_KEY", raising=False)

    with pytest.raises(SystemExit) as excinfo:
        main(["submit", "http://x", "--access-key", "", "--secret-key", ""])

    assert excinfo.value.code == 1
    assert "credentials required" in capsys.readouterr().out


def test_status_command(capsys):
    with patch("wiki_archive_checker.cli.SavePageNowClient") as client_cls:
        client_cls.return_value.check_status.return_value = SnapshotJob(
            url="http://x", job_id="spn2-1", status="success", timestamp="20240101120000")

        with pytest.raises(SystemExit) as excinfo:
            main(["status", "spn2-1"])

    assert excinfo.value.code == 0
    assert json.loads(capsys.readouterr().out)["timestamp"] == "20240101120000"
