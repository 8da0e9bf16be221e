from __future__ import annotations

import secrets
import string
import threading
import time
from typing import Callable, Optional

from ..core.constants import PASS_CODE_PREFIX, PASS_CODE_RANDOM_CHARS

_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


class PassCodeGenerator:
    """``PASS-`` + base36 nanosecond timestamp + random suffix, uppercase.

    Timestamps are strictly increasing per generator, so two codes from the same
    process never share a prefix; the random tail keeps codes hard to guess.
    """

    def __init__(
        self,
        *,
        clock_ns: Optional[Callable[[], int]] = None,
        random_chars: int = PASS_CODE_RANDOM_CHARS,
    ):
        self._clock_ns = clock_ns or time.time_ns
        self._random_chars = int(random_chars)
        self._last_ns = 0
        self._lock = threading.Lock()

    def next_code(self) -> str:
        with self._lock:
            stamp = max(self._clock_ns(), self._last_ns + 1)
            self._last_ns = stamp
        suffix = "".join(secrets.choice(_ALPHABET) for _ in range(self._random_chars))
        return f"{PASS_CODE_PREFIX}{to_base36(stamp)}{suffix}"
