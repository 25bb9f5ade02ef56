from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from .helpers import FakeClock


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def session():
    return MagicMock()
