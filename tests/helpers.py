from __future__ import annotations

import json
from unittest.mock import MagicMock


def make_response(status_code=200, payload=None, text=None, reason="OK"):
    """Build a MagicMock that quacks like requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    if payload is not None:
        response.text = json.dumps(payload)
        response.json.return_value = payload
    else:
        response.text = text if text is not None else ""
        response.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    return response


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 100.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds
