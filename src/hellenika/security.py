"""Input sanitization, input validation and client-side throttling."""
import html
import re
import time
from collections import deque
from typing import Callable, Deque, Optional

from hellenika.config import settings
from hellenika.errors import RateLimitError

# Greek (polytonic and combining marks included), Latin with diacritics, digits, punctuation
_GREEK_INPUT = re.compile(r"^[\u0370-\u03FF\u1F00-\u1FFF\u0300-\u036F\u00C0-\u024F\u1E00-\u1EFFa-zA-Z0-9\s.,;:!?'\"()-]*$")


def sanitize_input(text: str) -> str:
    """Escape HTML metacharacters so the text can only match or render literally."""
    if not isinstance(text, str):
        return ""
    return html.escape(text, quote=True).replace("/", "&#x2F;")


def validate_greek_input(text: str) -> bool:
    """Check that a typed answer only holds characters a learner would type."""
    return bool(_GREEK_INPUT.match(text))


def is_valid_internal_url(url: Optional[str]) -> bool:
    """Only relative paths are accepted as redirect targets."""
    if not url:
        return False
    return url.startswith("/") and not url.startswith("//")


class RateLimiter:
    """Sliding-window limiter for attempts made from one client.

    This throttles a single client only and is not a security boundary.
    """

    def __init__(
        self,
        max_requests: Optional[int] = None,
        window_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests or settings.auth.sign_in_max_attempts
        self.window_seconds = window_seconds or settings.auth.sign_in_window_seconds
        self.clock = clock
        self._requests: Deque[float] = deque()

    def _prune(self, now: float) -> None:
        window_start = now - self.window_seconds
        while self._requests and self._requests[0] < window_start:
            self._requests.popleft()

    def is_allowed(self) -> bool:
        """Record an attempt if the window has room for it."""
        now = self.clock()
        self._prune(now)
        if len(self._requests) >= self.max_requests:
            return False
        self._requests.append(now)
        return True

    def retry_after(self) -> float:
        """Seconds until the oldest attempt leaves the window."""
        now = self.clock()
        self._prune(now)
        if len(self._requests) < self.max_requests:
            return 0.0
        return max(0.0, self._requests[0] + self.window_seconds - now)

    def check(self) -> None:
        """Record an attempt or raise RateLimitError."""
        if not self.is_allowed():
            raise RateLimitError(self.retry_after())
