from __future__ import annotations

import pytest
import requests

from wiki_archive_checker.check_links import (
    LiveCheck,
    check_all_links,
    check_link_status,
    classify_error,
    classify_status,
)

from .helpers import make_response


class TestClassifyStatus:
    @pytest.mark.parametrize("code,original,expected", [
        (200, "200 OK", "OK"),
        (204, "204 No Content", "OK"),
        (206, "206 Partial Content", "OK"),
        (301, "301 Moved Permanently", "301 Moved Permanently"),
        (403, "403 Forbidden", "403 Forbidden"),
        (429, "429 Too Many Requests", "429 Rate Limited"),
        (404, "404 Not Found", "404 Not Found"),
        (410, "410 Gone", "410 Gone"),
        (503, "503 Service Unavailable", "503 Service Unavailable"),
    ])
    def test_labels(self, code, original, expected):
        assert classify_status(code, original) == expected


class TestClassifyError:
    @pytest.mark.parametrize("error,expected", [
        (requests.exceptions.ConnectionError(
            "HTTPSConnectionPool(host='nope.invalid', port=443): Max retries exceeded "
            "(Caused by NameResolutionError(\"Failed to resolve 'nope.invalid'\"))"),
         "DNS lookup failed"),
        (requests.exceptions.ConnectionError("[Errno -2] Name or service not known"), "DNS lookup failed"),
        (requests.exceptions.SSLError("certificate verify failed: self signed certificate"),
         "TLS/certificate error"),
        (requests.exceptions.ConnectTimeout("Connection to example.com timed out. (connect timeout=8)"),
         "timeout"),
        (requests.exceptions.ReadTimeout("Read timed out."), "timeout"),
        (requests.exceptions.ConnectionError("[Errno 111] Connection refused"), "connection refused"),
        (requests.exceptions.ConnectionError(
            "('Connection aborted.', ConnectionResetError(104, 'Connection reset by peer'))"),
         "connection reset"),
        (requests.exceptions.ConnectionError("something odd happened"), "network error"),
        (requests.exceptions.MissingSchema("Invalid URL 'example': No scheme supplied"), "network error"),
    ])
    def test_labels(self, error, expected):
        assert classify_error(error) == expected

    def test_none(self):
        assert classify_error(None) == "unknown"


class TestCheckLinkStatus:
    def test_head_success_is_final(self, session):
        session.request.return_value = make_response(200, reason="OK")

        assert check_link_status("http://x.example/", session=session) == LiveCheck(200, "OK")
        session.request.assert_called_once()
        method, url = session.request.call_args.args
        assert (method, url) == ("HEAD", "http://x.example/")
        assert session.request.call_args.kwargs["allow_redirects"] is True
        assert session.request.call_args.kwargs["timeout"] == 8.0

    def test_head_405_falls_back_to_ranged_get(self, session):
        session.request.side_effect = [
            make_response(405, reason="Method Not Allowed"),
            make_response(200, reason="OK"),
        ]

        result = check_link_status("http://x.example/", session=session)

        assert result == LiveCheck(200, "OK")
        get_call = session.request.call_args_list[1]
        assert get_call.args[0] == "GET"
        assert get_call.kwargs["headers"] == {"Range": "bytes=0-0"}
        assert get_call.kwargs["stream"] is True

    def test_head_501_falls_back_to_get(self, session):
        session.request.side_effect = [
            make_response(501, reason="Not Implemented"),
            make_response(404, reason="Not Found"),
        ]
        assert check_link_status("http://x.example/", session=session) == LiveCheck(404, "404 Not Found")

    def test_head_404_is_final(self, session):
        session.request.return_value = make_response(404, reason="Not Found")

        assert check_link_status("http://x.example/", session=session) == LiveCheck(404, "404 Not Found")
        assert session.request.call_count == 1

    def test_forbidden_and_rate_limited(self, session):
        session.request.return_value = make_response(403, reason="Forbidden")
        assert check_link_status("http://x.example/", session=session).status == "403 Forbidden"

        session.request.return_value = make_response(429, reason="Too Many Requests")
        assert check_link_status("http://x.example/", session=session) == LiveCheck(429, "429 Rate Limited")

    def test_network_error_on_head_returns_code_zero_without_retry(self, session):
        session.request.side_effect = requests.exceptions.ConnectionError("[Errno 111] Connection refused")

        assert check_link_status("http://x.example/", session=session) == LiveCheck(0, "connection refused")
        assert session.request.call_count == 1

    def test_redirect_cap_uses_last_response(self, session):
        last = make_response(302, reason="Found")
        session.request.side_effect = requests.TooManyRedirects("Exceeded 10 redirects.", response=last)

        assert check_link_status("http://loop.example/", session=session) == LiveCheck(302, "302 Found")

    def test_get_failure_after_405_keeps_head_code(self, session):
        session.request.side_effect = [
            make_response(405, reason="Method Not Allowed"),
            requests.exceptions.ReadTimeout("Read timed out."),
        ]
        assert check_link_status("http://x.example/", session=session) == LiveCheck(405, "timeout")


def test_check_all_links_keeps_order(session):
    session.request.side_effect = [
        make_response(200, reason="OK"),
        make_response(404, reason="Not Found"),
    ]

    results = check_all_links(["http://a.example/", "http://b.example/"], session=session)

    assert results == [
        ("http://a.example/", LiveCheck(200, "OK")),
        ("http://b.example/", LiveCheck(404, "404 Not Found")),
    ]


def test_check_all_links_empty():
    assert check_all_links([]) == []
