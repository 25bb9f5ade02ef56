import logging
import threading
import time
from typing import Callable, Optional


def clean_article_title(title: str) -> str:
    """
    Clean and normalize a Wikipedia article title.

    Args:
        title: Raw article title

    Returns:
        Cleaned title
    """
    # Replace underscores with spaces
    title = title.replace('_', ' ')

    # Remove any extra whitespace
    title = ' '.join(title.split())

    return title


def format_duration(seconds: float) -> str:
    """
    Format a duration in seconds to a human-readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string
    """
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"


def set_logging_level(verbose: bool = False, debug: bool = False):
    """Set the package logging level based on the verbose/debug flags."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.getLogger().setLevel(level)
    logging.getLogger('wiki_archive_checker').setLevel(level)


class CancellationToken:
    """
    Cooperative cancellation signal with an optional deadline.

    Work loops call is_cancelled() between units of work; nothing is
    interrupted mid-request.
    """

    def __init__(self, timeout: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        self._event = threading.Event()
        self._clock = clock
        self.deadline = clock() + timeout if timeout is not None else None

    def cancel(self):
        """Request cancellation (e.g. from another thread or a signal handler)."""
        self._event.set()

    def deadline_exceeded(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    def is_cancelled(self) -> bool:
        return self._event.is_set() or self.deadline_exceeded()

    def reason(self) -> str:
        if self._event.is_set():
            return "cancelled"
        if self.deadline_exceeded():
            return "deadline exceeded"
        return ""
