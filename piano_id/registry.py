"""Read-once storage for errors crossing an integer-only boundary.

Some host round-trips (activity results, process-level callbacks) can only
carry a primitive code. The error is parked here under a code derived from
its content, and the receiving side takes it back exactly once.
"""

import hashlib
import logging
import threading

from .errors import PianoIdError

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "Unknown error"

_CODE_MASK = 0x7FFFFFFF


def error_code(error: PianoIdError) -> int:
    """Content-derived code for an error: a positive 31-bit int, never 0."""
    content = f"{type(error).__module__}.{type(error).__qualname__}:{error}"
    digest = hashlib.sha256(content.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big") & _CODE_MASK or 1


class ExceptionRegistry:
    """Thread-safe map from issued codes to pending errors.

    A code resolves to exactly one error until taken; taking removes it.
    Codes live in memory only and mean nothing after a restart.
    """

    def __init__(self) -> None:
        self._errors: dict[int, PianoIdError] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._errors)

    def store(self, error: PianoIdError) -> int:
        """Park an error and return its code."""
        code = error_code(error)
        with self._lock:
            # Probe past codes already held by a different error
            while code in self._errors and self._errors[code] is not error:
                code = (code % _CODE_MASK) + 1
            self._errors[code] = error
        logger.debug(f"Stored {type(error).__name__} under code {code}")
        return code

    def take(self, code: int) -> PianoIdError | None:
        """Remove and return the error for a code, None if unknown."""
        with self._lock:
            return self._errors.pop(code, None)

    def take_or_default(self, code: int) -> PianoIdError:
        """Remove and return the error for a code, a generic error if unknown."""
        error = self.take(code)
        if error is None:
            logger.debug(f"No error stored under code {code}")
            return PianoIdError(UNKNOWN_ERROR_MESSAGE)
        return error
